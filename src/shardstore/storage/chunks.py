# SPDX-License-Identifier: MIT
"""Chunk location over a sharded directory tree.

Chunks live under ``/chunks``, nested in directories named by successive
two-character slices of the chunk ID::

    /chunks/ab/12cd34ef         (one level)
    /chunks/ab/12/cd34ef        (two levels)
    /chunks/ab/12cd34ef.fsl     (fossil)

The first ``minimum_nesting`` levels are always created on the way down.
Below that, a level is only entered if its directory already exists, so
the tree grows only as deep as actual occupancy requires.

A chunk, once placed, is never relocated except by an explicit move.  A
missing shard directory below the minimum nesting therefore proves the
chunk is absent, and no sibling locations are probed.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Protocol

from ..exceptions import ChunkNotResolvedError
from .protocol import ChunkLocation, FileMetadata

logger = logging.getLogger("shardstore")

CHUNKS_DIR = "/chunks"
FOSSIL_SUFFIX = ".fsl"

_CHUNK_ID_RE = re.compile(r"[0-9a-fA-F]*")


class ShardedDirectory(Protocol):
    """The two directory operations chunk location needs."""

    def get_file_info(self, thread_index: int, file_path: str) -> FileMetadata: ...

    def create_directory(self, thread_index: int, directory: str) -> None: ...


def locate_chunk(
    storage: ShardedDirectory,
    thread_index: int,
    chunk_id: str,
    *,
    minimum_nesting: int,
    is_fossil: bool = False,
) -> ChunkLocation:
    """Find the chunk *chunk_id*, or the path it would be created at.

    Args:
        storage: Directory operations to probe and create shards with.
        thread_index: Client handle index of the calling worker.
        chunk_id: Hex chunk ID.
        minimum_nesting: Number of shard levels always created before the
            chunk file itself is probed.
        is_fossil: Look for the fossil (``.fsl``) variant instead.

    Returns:
        The resolved location.  ``exists`` is False when the chunk is absent,
        in which case ``path`` is where it should be uploaded.

    Raises:
        ValueError: If *chunk_id* contains non-hex characters.
        ChunkNotResolvedError: If every nesting level was exhausted.
        TransportError: On any remote failure.
    """
    if not _CHUNK_ID_RE.fullmatch(chunk_id):
        raise ValueError(f"Invalid chunk ID: {chunk_id!r}")

    suffix = FOSSIL_SUFFIX if is_fossil else ""
    directory = CHUNKS_DIR

    level = 0
    while 2 * level < len(chunk_id):
        remainder = chunk_id[2 * level :]

        if level >= minimum_nesting:
            file_path = posixpath.join(directory, remainder) + suffix
            info = storage.get_file_info(thread_index, file_path)
            if info.exists and not info.is_dir:
                logger.debug("Chunk %s found at %s", chunk_id, file_path)
                return ChunkLocation(path=file_path, exists=True, size=info.size)

        sub_dir = posixpath.join(directory, chunk_id[2 * level : 2 * level + 2])
        if storage.get_file_info(thread_index, sub_dir).exists:
            directory = sub_dir
            level += 1
            continue

        if level < minimum_nesting:
            storage.create_directory(thread_index, sub_dir)
            logger.debug("Created shard directory %s", sub_dir)
            directory = sub_dir
            level += 1
            continue

        file_path = posixpath.join(directory, remainder) + suffix
        logger.debug("Chunk %s not found; would be stored at %s", chunk_id, file_path)
        return ChunkLocation(path=file_path, exists=False, size=0)

    logger.error("Chunk %s is still not found after searching %d level(s) of directories", chunk_id, level)
    raise ChunkNotResolvedError(chunk_id)
