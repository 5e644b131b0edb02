# SPDX-License-Identifier: MIT
"""Exception types shared by the transport client and the storage backend."""

from __future__ import annotations

import enum


class RemoteErrorKind(enum.Enum):
    """Structured classification of a failed remote API call."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    OTHER = "other"


class StorageError(Exception):
    """Base class for all shardstore errors."""


class TransportError(StorageError):
    """A remote API call failed.

    Attributes:
        kind: Classified failure kind.
        summary: Error summary as reported by the remote API (may be empty).
        status_code: HTTP status code, or ``None`` for network failures.
    """

    def __init__(self, kind: RemoteErrorKind, summary: str = "", status_code: int | None = None) -> None:
        self.kind = kind
        self.summary = summary
        self.status_code = status_code
        detail = f": {summary}" if summary else ""
        super().__init__(f"{kind.value}{detail}")

    @property
    def is_not_found(self) -> bool:
        return self.kind is RemoteErrorKind.NOT_FOUND

    @property
    def is_conflict(self) -> bool:
        return self.kind is RemoteErrorKind.CONFLICT


class ChunkNotResolvedError(StorageError):
    """Every nesting level was searched without resolving a chunk.

    This is never a transient condition: it means the chunk ID is malformed or
    the shard tree is inconsistent with the configured minimum nesting.
    Callers should abort rather than retry.
    """

    def __init__(self, chunk_id: str) -> None:
        self.chunk_id = chunk_id
        super().__init__(
            f"Chunk {chunk_id!r} is still not found after having searched the maximum level of directories"
        )
