# SPDX-License-Identifier: MIT
"""Shared pytest fixtures for shardstore tests."""

from __future__ import annotations

import posixpath
import threading
from collections.abc import Iterable
from contextlib import contextmanager

import httpx
import pytest

from shardstore.exceptions import RemoteErrorKind, TransportError
from shardstore.infrastructure.dropbox_api import DropboxEntry, ListFolderPage
from shardstore.storage.dropbox import DropboxStorage
from shardstore.storage.pool import ClientPool


def _not_found(summary: str = "path/not_found/") -> TransportError:
    return TransportError(RemoteErrorKind.NOT_FOUND, summary, 409)


def _conflict(summary: str = "path/conflict/folder/") -> TransportError:
    return TransportError(RemoteErrorKind.CONFLICT, summary, 409)


def _parent(path: str) -> str:
    return posixpath.dirname(path) or "/"


class FakeDropboxStore:
    """In-memory Dropbox account shared by several client handles."""

    def __init__(self, page_size: int = 1000) -> None:
        self.folders: dict[str, None] = {"/": None}
        self.files: dict[str, bytes] = {}
        self.page_size = page_size
        self.lock = threading.Lock()
        self._cursors: dict[str, list[DropboxEntry]] = {}

    def exists(self, path: str) -> bool:
        return path in self.folders or path in self.files

    def add_folder(self, path: str) -> None:
        while path not in self.folders:
            self.folders[path] = None
            path = _parent(path)

    def add_file(self, path: str, data: bytes) -> None:
        self.add_folder(_parent(path))
        self.files[path] = data

    def children(self, path: str) -> list[DropboxEntry]:
        entries = [
            DropboxEntry(tag="folder", name=posixpath.basename(p), path_display=p)
            for p in self.folders
            if p != "/" and _parent(p) == path
        ]
        entries += [
            DropboxEntry(tag="file", name=posixpath.basename(p), path_display=p, size=len(data))
            for p, data in self.files.items()
            if _parent(p) == path
        ]
        return entries

    def page(self, entries: list[DropboxEntry]) -> ListFolderPage:
        head, rest = entries[: self.page_size], entries[self.page_size :]
        if not rest:
            return ListFolderPage(entries=head, cursor="", has_more=False)
        cursor = f"cursor-{len(self._cursors)}"
        self._cursors[cursor] = rest
        return ListFolderPage(entries=head, cursor=cursor, has_more=True)

    def resume(self, cursor: str) -> ListFolderPage:
        return self.page(self._cursors.pop(cursor))


class FakeDropboxClient:
    """A :class:`RemoteFilesClient` backed by a :class:`FakeDropboxStore`.

    Every call is appended to :attr:`calls` as ``(method, *args)``.  Set
    :attr:`fail_with` to make the next matching call raise.
    """

    def __init__(self, store: FakeDropboxStore) -> None:
        self.store = store
        self.calls: list[tuple] = []
        self.fail_with: dict[str, TransportError] = {}
        self.closed = False
        self.open_downloads = 0

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self.fail_with:
            raise self.fail_with.pop(method)

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    def list_folder(self, path: str) -> ListFolderPage:
        self._record("list_folder", path)
        with self.store.lock:
            if path not in self.store.folders:
                raise _not_found()
            return self.store.page(self.store.children(path))

    def list_folder_continue(self, cursor: str) -> ListFolderPage:
        self._record("list_folder_continue", cursor)
        with self.store.lock:
            return self.store.resume(cursor)

    def get_metadata(self, path: str) -> DropboxEntry:
        self._record("get_metadata", path)
        with self.store.lock:
            if path in self.store.folders:
                return DropboxEntry(tag="folder", name=posixpath.basename(path), path_display=path)
            if path in self.store.files:
                data = self.store.files[path]
                return DropboxEntry(tag="file", name=posixpath.basename(path), path_display=path, size=len(data))
        raise _not_found()

    def create_folder(self, path: str) -> None:
        self._record("create_folder", path)
        with self.store.lock:
            if self.store.exists(path):
                raise _conflict()
            self.store.add_folder(path)

    def delete(self, path: str) -> None:
        self._record("delete", path)
        with self.store.lock:
            if path in self.store.files:
                del self.store.files[path]
            elif path in self.store.folders:
                del self.store.folders[path]
            else:
                raise _not_found("path_lookup/not_found/")

    def move(self, from_path: str, to_path: str) -> None:
        self._record("move", from_path, to_path)
        with self.store.lock:
            if from_path not in self.store.files:
                raise _not_found("from_lookup/not_found/")
            if self.store.exists(to_path):
                raise _conflict("to/conflict/file/")
            self.store.add_file(to_path, self.store.files.pop(from_path))

    def upload(self, path: str, content: bytes | Iterable[bytes]) -> None:
        self._record("upload", path)
        data = content if isinstance(content, bytes) else b"".join(content)
        with self.store.lock:
            self.store.add_file(path, data)

    @contextmanager
    def download(self, path: str):
        self._record("download", path)
        with self.store.lock:
            if path not in self.store.files:
                raise _not_found()
            data = self.store.files[path]
        self.open_downloads += 1
        try:
            yield httpx.Response(200, content=data, request=httpx.Request("POST", "https://test"))
        finally:
            self.open_downloads -= 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> FakeDropboxStore:
    return FakeDropboxStore()


@pytest.fixture
def make_client(store: FakeDropboxStore):
    """Factory for extra fake handles onto the shared *store*."""
    return lambda: FakeDropboxClient(store)


@pytest.fixture
def make_storage(store: FakeDropboxStore):
    """Build a :class:`DropboxStorage` over fake clients sharing *store*."""
    created: list[DropboxStorage] = []

    def _make(threads: int = 1, storage_dir: str = "/backup", minimum_nesting: int = 1, **kwargs) -> DropboxStorage:
        clients = ClientPool([FakeDropboxClient(store) for _ in range(threads)])
        storage = DropboxStorage(clients, storage_dir, minimum_nesting, **kwargs)
        created.append(storage)
        return storage

    yield _make
    for storage in created:
        storage.close()


@pytest.fixture
def storage(make_storage) -> DropboxStorage:
    return make_storage()


@pytest.fixture
def client0(storage: DropboxStorage) -> FakeDropboxClient:
    """The fake handle behind thread index 0 of :func:`storage`."""
    return storage._clients[0]  # type: ignore[return-value]
