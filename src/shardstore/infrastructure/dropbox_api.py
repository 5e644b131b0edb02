# SPDX-License-Identifier: MIT
"""Minimal Dropbox API v2 client.

Covers only the endpoints the storage backend needs.  Every failed call is
raised as :class:`~shardstore.exceptions.TransportError` with a structured
:class:`~shardstore.exceptions.RemoteErrorKind`, so callers never inspect
Dropbox's ``error_summary`` strings themselves.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from ..exceptions import RemoteErrorKind, TransportError

logger = logging.getLogger("shardstore")

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"


@dataclass(frozen=True)
class DropboxEntry:
    """A file or folder entry as returned by ``list_folder`` / ``get_metadata``."""

    tag: str
    name: str
    path_display: str = ""
    size: int = 0

    @property
    def is_folder(self) -> bool:
        return self.tag == "folder"

    @classmethod
    def from_json(cls, payload: dict) -> DropboxEntry:
        return cls(
            tag=payload.get(".tag", ""),
            name=payload.get("name", ""),
            path_display=payload.get("path_display", ""),
            size=int(payload.get("size", 0)),
        )


@dataclass(frozen=True)
class ListFolderPage:
    """One page of a folder listing."""

    entries: list[DropboxEntry] = field(default_factory=list)
    cursor: str = ""
    has_more: bool = False

    @classmethod
    def from_json(cls, payload: dict) -> ListFolderPage:
        return cls(
            entries=[DropboxEntry.from_json(e) for e in payload.get("entries", [])],
            cursor=payload.get("cursor", ""),
            has_more=bool(payload.get("has_more", False)),
        )


class RemoteFilesClient(Protocol):
    """One handle onto the Dropbox file API.

    :class:`DropboxClient` is the real implementation.  Every method raises
    :class:`~shardstore.exceptions.TransportError` on failure, classified by
    :class:`~shardstore.exceptions.RemoteErrorKind`.
    """

    def list_folder(self, path: str) -> ListFolderPage: ...

    def list_folder_continue(self, cursor: str) -> ListFolderPage: ...

    def get_metadata(self, path: str) -> DropboxEntry: ...

    def create_folder(self, path: str) -> None: ...

    def delete(self, path: str) -> None: ...

    def move(self, from_path: str, to_path: str) -> None: ...

    def upload(self, path: str, content: bytes | Iterable[bytes]) -> None: ...

    def download(self, path: str) -> AbstractContextManager[httpx.Response]: ...

    def close(self) -> None: ...


def classify_error(status_code: int, summary: str) -> RemoteErrorKind:
    """Map an HTTP status and Dropbox ``error_summary`` to a :class:`RemoteErrorKind`.

    Summaries look like ``path/not_found/..`` or ``path/conflict/folder/...``;
    only the slash-separated segments are inspected.
    """
    if status_code == 401:
        return RemoteErrorKind.UNAUTHORIZED
    if status_code == 429:
        return RemoteErrorKind.RATE_LIMITED
    segments = summary.split("/")
    if "not_found" in segments:
        return RemoteErrorKind.NOT_FOUND
    if "conflict" in segments:
        return RemoteErrorKind.CONFLICT
    return RemoteErrorKind.OTHER


def _error_from_response(resp: httpx.Response) -> TransportError:
    summary = ""
    try:
        payload = resp.json()
    except ValueError:
        summary = resp.text.strip()
    else:
        if isinstance(payload, dict):
            summary = str(payload.get("error_summary", ""))
    return TransportError(classify_error(resp.status_code, summary), summary, resp.status_code)


def _api_path(path: str) -> str:
    # The Dropbox API addresses its root folder as "".
    return "" if path == "/" else path


class DropboxClient:
    """Synchronous Dropbox API v2 client bound to a single access token.

    One instance is meant to be used by one worker thread at a time; the
    storage backend keeps a pool of them, one per thread index.
    """

    def __init__(self, access_token: str, *, timeout: float = 300.0) -> None:
        self._token = access_token
        self._client = httpx.Client(timeout=timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> DropboxClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def _rpc(self, endpoint: str, payload: dict) -> dict:
        try:
            resp = self._client.post(f"{API_URL}/{endpoint}", headers=self._headers(), json=payload)
        except httpx.TransportError as e:
            raise TransportError(RemoteErrorKind.NETWORK, str(e)) from e
        if not resp.is_success:
            raise _error_from_response(resp)
        return resp.json()

    # ------------------------------------------------------------------
    # Metadata endpoints
    # ------------------------------------------------------------------

    def list_folder(self, path: str) -> ListFolderPage:
        payload = self._rpc(
            "files/list_folder",
            {
                "path": _api_path(path),
                "recursive": False,
                "include_media_info": False,
                "include_deleted": False,
            },
        )
        return ListFolderPage.from_json(payload)

    def list_folder_continue(self, cursor: str) -> ListFolderPage:
        return ListFolderPage.from_json(self._rpc("files/list_folder/continue", {"cursor": cursor}))

    def get_metadata(self, path: str) -> DropboxEntry:
        payload = self._rpc("files/get_metadata", {"path": _api_path(path), "include_media_info": False})
        return DropboxEntry.from_json(payload)

    def create_folder(self, path: str) -> None:
        self._rpc("files/create_folder_v2", {"path": _api_path(path), "autorename": False})

    def delete(self, path: str) -> None:
        self._rpc("files/delete_v2", {"path": _api_path(path)})

    def move(self, from_path: str, to_path: str) -> None:
        self._rpc("files/move_v2", {"from_path": _api_path(from_path), "to_path": _api_path(to_path)})

    # ------------------------------------------------------------------
    # Content endpoints
    # ------------------------------------------------------------------

    def upload(self, path: str, content: bytes | Iterable[bytes]) -> None:
        """Upload *content* to *path*, overwriting any existing file."""
        arg = {"path": path, "mode": "overwrite", "autorename": False, "mute": True}
        headers = self._headers()
        headers["Content-Type"] = "application/octet-stream"
        headers["Dropbox-API-Arg"] = json.dumps(arg)
        try:
            resp = self._client.post(f"{CONTENT_URL}/files/upload", headers=headers, content=content)
        except httpx.TransportError as e:
            raise TransportError(RemoteErrorKind.NETWORK, str(e)) from e
        if not resp.is_success:
            raise _error_from_response(resp)
        logger.debug("Uploaded %s", path)

    @contextmanager
    def download(self, path: str) -> Iterator[httpx.Response]:
        """Open a streamed download of *path*.

        The response body is only valid inside the ``with`` block; the
        connection is released on exit, including on errors.
        """
        headers = self._headers()
        headers["Dropbox-API-Arg"] = json.dumps({"path": path})
        try:
            with self._client.stream("POST", f"{CONTENT_URL}/files/download", headers=headers) as resp:
                if not resp.is_success:
                    resp.read()
                    raise _error_from_response(resp)
                yield resp
        except httpx.TransportError as e:
            raise TransportError(RemoteErrorKind.NETWORK, str(e)) from e
