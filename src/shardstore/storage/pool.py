# SPDX-License-Identifier: MIT
"""Fixed-size pool of remote client handles, one per worker thread index."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from ..infrastructure.dropbox_api import DropboxClient, RemoteFilesClient

logger = logging.getLogger("shardstore")


class ClientPool:
    """Immutable collection of independent client handles.

    Handle ``i`` belongs to worker thread ``i`` for the duration of a call.
    The pool never grows, shrinks, or reassigns a handle after construction,
    so no locking is needed to read from it.
    """

    def __init__(self, clients: Sequence[RemoteFilesClient]) -> None:
        if not clients:
            raise ValueError("ClientPool requires at least one client")
        self._clients: tuple[RemoteFilesClient, ...] = tuple(clients)

    @classmethod
    def for_dropbox(cls, access_token: str, threads: int) -> ClientPool:
        """Create *threads* independent Dropbox clients sharing one token."""
        if threads < 1:
            raise ValueError(f"threads must be at least 1, got {threads}")
        return cls([DropboxClient(access_token) for _ in range(threads)])

    def __len__(self) -> int:
        return len(self._clients)

    def __getitem__(self, thread_index: int) -> RemoteFilesClient:
        if not 0 <= thread_index < len(self._clients):
            raise IndexError(f"thread index {thread_index} out of range for a pool of {len(self._clients)}")
        return self._clients[thread_index]

    def __iter__(self) -> Iterator[RemoteFilesClient]:
        return iter(self._clients)

    def close(self) -> None:
        """Close every handle in the pool."""
        for client in self._clients:
            client.close()
        logger.debug("Closed %d remote client(s)", len(self._clients))
