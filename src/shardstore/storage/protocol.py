# SPDX-License-Identifier: MIT
"""Storage backend protocol and shared types.

Defines the capability contract the backup engine consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class FileEntry:
    """An immediate child of a listed directory.

    Folder names carry a trailing ``/`` and a size of 0.
    """

    name: str
    size: int


@dataclass(frozen=True)
class FileMetadata:
    """Result of a stat call.  A missing path is ``exists=False``, not an error."""

    exists: bool
    is_dir: bool = False
    size: int = 0


@dataclass(frozen=True)
class ChunkLocation:
    """Where a chunk lives, or where it would be created if absent."""

    path: str
    exists: bool
    size: int = 0


@dataclass(frozen=True)
class StorageCapabilities:
    """Static behavioural properties of a backend.

    Attributes:
        needs_local_cache: The engine should keep a local snapshot cache to
            avoid redundant remote calls.
        supports_move: ``move_file`` may replace delete-and-reupload.
        is_strongly_consistent: A just-written file is immediately visible
            to list and stat.
        supports_fast_listing: Bulk listing is cheap enough to prefer over
            targeted stat calls.
    """

    needs_local_cache: bool
    supports_move: bool
    is_strongly_consistent: bool
    supports_fast_listing: bool


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for chunk storage backends.

    Every *thread_index* selects the client handle owned by the calling
    worker thread.  Paths are relative to the backend's storage root and are
    normalized internally.
    """

    capabilities: StorageCapabilities

    # ------------------------------------------------------------------
    # Directory operations
    # ------------------------------------------------------------------

    def list_files(self, thread_index: int, directory: str) -> list[FileEntry]:
        """List immediate children of *directory*, following pagination."""
        ...

    def delete_file(self, thread_index: int, file_path: str) -> None:
        """Delete a file or empty directory.  Missing paths are not an error."""
        ...

    def move_file(self, thread_index: int, from_path: str, to_path: str) -> None:
        """Rename *from_path* to *to_path*."""
        ...

    def create_directory(self, thread_index: int, directory: str) -> None:
        """Create *directory*.  Existing directories are not an error."""
        ...

    def get_file_info(self, thread_index: int, file_path: str) -> FileMetadata:
        """Stat *file_path*; a missing path yields ``exists=False``."""
        ...

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def find_chunk(self, thread_index: int, chunk_id: str, is_fossil: bool = False) -> ChunkLocation:
        """Resolve the storage path of a chunk, creating shard directories as needed.

        Raises:
            ChunkNotResolvedError: If every nesting level was exhausted.
        """
        ...

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def download_file(self, thread_index: int, file_path: str) -> bytes:
        """Read an entire file through the download rate limiter."""
        ...

    def upload_file(self, thread_index: int, file_path: str, content: bytes) -> None:
        """Write (overwrite) a file through the upload rate limiter."""
        ...

    def set_rate_limits(self, download_rate_limit: int, upload_rate_limit: int) -> None:
        """Set total bandwidth caps in KB/s (``0`` = unlimited)."""
        ...

    def close(self) -> None:
        """Release client handles and limiters."""
        ...
