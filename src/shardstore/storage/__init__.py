# SPDX-License-Identifier: MIT
"""Pluggable chunk storage for shardstore.

The storage layer gives a deduplicating backup engine a fixed contract for
storing content-addressed chunks and snapshot files in a remote store.

Usage::

    from shardstore.storage import get_storage

    storage = get_storage()
    location = storage.find_chunk(0, chunk_id)
    if not location.exists:
        storage.upload_file(0, location.path, chunk_bytes)
"""

from .factory import get_storage
from .protocol import ChunkLocation, FileEntry, FileMetadata, StorageBackend, StorageCapabilities

__all__ = [
    "ChunkLocation",
    "FileEntry",
    "FileMetadata",
    "StorageBackend",
    "StorageCapabilities",
    "get_storage",
]
