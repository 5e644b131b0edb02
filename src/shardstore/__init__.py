# SPDX-License-Identifier: MIT
"""shardstore: sharded Dropbox chunk storage for deduplicating backups."""

from .exceptions import ChunkNotResolvedError, RemoteErrorKind, StorageError, TransportError
from .storage import get_storage

__all__ = ["ChunkNotResolvedError", "RemoteErrorKind", "StorageError", "TransportError", "get_storage"]
