# SPDX-License-Identifier: MIT
"""Dropbox storage backend.

Stores chunks and snapshot files under a configured folder of a Dropbox
account, using one :class:`~shardstore.infrastructure.dropbox_api.DropboxClient`
per worker thread.
"""

from __future__ import annotations

import io
import logging

from ..exceptions import TransportError
from ..infrastructure.rate_limit import (
    ByteRateLimiter,
    per_client_limit,
    rate_limited_chunks,
    rate_limited_reader,
)
from ..paths import join_root, normalize_root
from .chunks import locate_chunk
from .pool import ClientPool
from .protocol import ChunkLocation, FileEntry, FileMetadata, StorageCapabilities

logger = logging.getLogger("shardstore")

DROPBOX_CAPABILITIES = StorageCapabilities(
    needs_local_cache=True,
    supports_move=True,
    is_strongly_consistent=False,
    supports_fast_listing=False,
)


class DropboxStorage:
    """Chunk storage on Dropbox.

    Args:
        clients: Client handles, one per worker thread index.
        storage_dir: Root folder for everything this backend stores.
        minimum_nesting: Shard levels always created before a chunk file is
            probed (see :func:`~shardstore.storage.chunks.locate_chunk`).
        download_rate_limit: Total download cap in KB/s, ``0`` = unlimited.
        upload_rate_limit: Total upload cap in KB/s, ``0`` = unlimited.

    Raises:
        TransportError: If the storage root cannot be created.
    """

    def __init__(
        self,
        clients: ClientPool,
        storage_dir: str,
        minimum_nesting: int = 1,
        *,
        download_rate_limit: int = 0,
        upload_rate_limit: int = 0,
    ) -> None:
        if minimum_nesting < 0:
            raise ValueError(f"minimum_nesting must be non-negative, got {minimum_nesting}")
        self._clients = clients
        self._storage_dir = normalize_root(storage_dir)
        self._minimum_nesting = minimum_nesting
        self.capabilities = DROPBOX_CAPABILITIES

        self._download_limiters: list[ByteRateLimiter | None] = []
        self._upload_limiters: list[ByteRateLimiter | None] = []
        self.set_rate_limits(download_rate_limit, upload_rate_limit)

        # The account root always exists and cannot be created.
        if self._storage_dir != "/":
            try:
                self.create_directory(0, "")
            except BaseException:
                self._close_limiters()
                raise

    @property
    def storage_dir(self) -> str:
        return self._storage_dir

    @property
    def minimum_nesting(self) -> int:
        return self._minimum_nesting

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close all client handles and rate limiters.

        Should be called during application shutdown.
        """
        self._close_limiters()
        self._clients.close()

    def __enter__(self) -> DropboxStorage:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Rate limits
    # ------------------------------------------------------------------

    def set_rate_limits(self, download_rate_limit: int, upload_rate_limit: int) -> None:
        """Set total bandwidth caps in KB/s, shared evenly by all clients."""
        self._close_limiters()
        self.download_rate_limit = download_rate_limit
        self.upload_rate_limit = upload_rate_limit
        self._download_limiters = self._make_limiters("download", download_rate_limit)
        self._upload_limiters = self._make_limiters("upload", upload_rate_limit)

    def _make_limiters(self, direction: str, total: int) -> list[ByteRateLimiter | None]:
        share = per_client_limit(total, len(self._clients))
        if not share:
            return [None] * len(self._clients)
        logger.debug("Limiting %s to %d KB/s per client", direction, share)
        return [ByteRateLimiter(f"{direction}-{i}", share) for i in range(len(self._clients))]

    def _close_limiters(self) -> None:
        for limiter in self._download_limiters + self._upload_limiters:
            if limiter is not None:
                limiter.close()
        self._download_limiters = []
        self._upload_limiters = []

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def _remote_path(self, path: str) -> str:
        return join_root(self._storage_dir, path)

    # ------------------------------------------------------------------
    # Directory operations
    # ------------------------------------------------------------------

    def list_files(self, thread_index: int, directory: str) -> list[FileEntry]:
        client = self._clients[thread_index]
        page = client.list_folder(self._remote_path(directory))

        results: list[FileEntry] = []
        while True:
            for entry in page.entries:
                if entry.is_folder:
                    results.append(FileEntry(name=entry.name + "/", size=0))
                else:
                    results.append(FileEntry(name=entry.name, size=entry.size))
            if not page.has_more:
                break
            page = client.list_folder_continue(page.cursor)
        return results

    def delete_file(self, thread_index: int, file_path: str) -> None:
        try:
            self._clients[thread_index].delete(self._remote_path(file_path))
        except TransportError as e:
            if not e.is_not_found:
                raise
            logger.debug("Delete of missing path %s ignored", file_path)

    def move_file(self, thread_index: int, from_path: str, to_path: str) -> None:
        self._clients[thread_index].move(self._remote_path(from_path), self._remote_path(to_path))

    def create_directory(self, thread_index: int, directory: str) -> None:
        try:
            self._clients[thread_index].create_folder(self._remote_path(directory))
        except TransportError as e:
            if not e.is_conflict:
                raise

    def get_file_info(self, thread_index: int, file_path: str) -> FileMetadata:
        try:
            entry = self._clients[thread_index].get_metadata(self._remote_path(file_path))
        except TransportError as e:
            if e.is_not_found:
                return FileMetadata(exists=False)
            raise
        return FileMetadata(exists=True, is_dir=entry.is_folder, size=entry.size)

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def find_chunk(self, thread_index: int, chunk_id: str, is_fossil: bool = False) -> ChunkLocation:
        return locate_chunk(
            self,
            thread_index,
            chunk_id,
            minimum_nesting=self._minimum_nesting,
            is_fossil=is_fossil,
        )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def download_file(self, thread_index: int, file_path: str) -> bytes:
        client = self._clients[thread_index]
        limiter = self._download_limiters[thread_index]
        buf = io.BytesIO()
        with client.download(self._remote_path(file_path)) as resp:
            for block in rate_limited_chunks(resp.iter_bytes(), limiter):
                buf.write(block)
        logger.debug("Downloaded %s (%d bytes)", file_path, buf.tell())
        return buf.getvalue()

    def upload_file(self, thread_index: int, file_path: str, content: bytes) -> None:
        client = self._clients[thread_index]
        limiter = self._upload_limiters[thread_index]
        body = content if limiter is None else rate_limited_reader(content, limiter)
        client.upload(self._remote_path(file_path), body)
