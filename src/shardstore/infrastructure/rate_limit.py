# SPDX-License-Identifier: MIT
"""Bandwidth limiting for chunk transfers, built on pyrate-limiter.

Tokens are kilobytes: a limiter created with ``kilobytes_per_second=512``
lets roughly 512 KiB through per second and blocks the calling thread when
the budget is spent.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from pyrate_limiter import Duration, InMemoryBucket, Limiter, Rate  # type: ignore[attr-defined]

if TYPE_CHECKING:
    from types import TracebackType

KILOBYTE = 1024
MAX_BLOCK_SIZE = 64 * KILOBYTE


class ByteRateLimiter:
    """Throughput cap for a single transfer direction of a single client.

    Example:
        with ByteRateLimiter("download-0", kilobytes_per_second=256) as limiter:
            for block in rate_limited_chunks(response.iter_bytes(), limiter):
                sink.write(block)
    """

    def __init__(self, name: str, kilobytes_per_second: int) -> None:
        """Initialize rate limiter.

        Args:
            name: Identifier for this limiter (used as bucket key)
            kilobytes_per_second: Throughput ceiling, must be positive
        """
        if kilobytes_per_second <= 0:
            raise ValueError(f"kilobytes_per_second must be positive, got {kilobytes_per_second}")
        self.name = name
        self.kilobytes_per_second = kilobytes_per_second
        self._bucket = InMemoryBucket(rates=[Rate(kilobytes_per_second, Duration.SECOND)])
        self._limiter = Limiter(self._bucket, max_delay=Duration.MINUTE, raise_when_fail=True)

    @property
    def block_size(self) -> int:
        """Largest block, in bytes, that fits in one second of budget."""
        return min(MAX_BLOCK_SIZE, self.kilobytes_per_second * KILOBYTE)

    def acquire(self, nbytes: int) -> None:
        """Block until *nbytes* may pass.

        *nbytes* must not exceed :attr:`block_size`.
        """
        weight = max(1, math.ceil(nbytes / KILOBYTE))
        self._limiter.try_acquire(self.name, weight=weight)

    def close(self) -> None:
        """Release the bucket and its background leak task."""
        self._limiter.dispose(self._bucket)

    def __enter__(self) -> ByteRateLimiter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def _reblock(source: Iterable[bytes], size: int) -> Iterator[bytes]:
    buf = bytearray()
    for data in source:
        buf.extend(data)
        while len(buf) >= size:
            yield bytes(buf[:size])
            del buf[:size]
    if buf:
        yield bytes(buf)


def rate_limited_chunks(source: Iterable[bytes], limiter: ByteRateLimiter | None) -> Iterator[bytes]:
    """Yield the bytes of *source*, throttled by *limiter*.

    With no limiter the source is passed through untouched.  Otherwise it is
    re-blocked so that no single block outweighs one second of budget.
    """
    if limiter is None:
        yield from source
        return
    for block in _reblock(source, limiter.block_size):
        limiter.acquire(len(block))
        yield block


def rate_limited_reader(content: bytes, limiter: ByteRateLimiter | None) -> Iterator[bytes]:
    """Stream an in-memory buffer in throttled blocks (for uploads)."""
    if limiter is None:
        yield content
        return
    size = limiter.block_size
    for offset in range(0, len(content), size):
        block = content[offset : offset + size]
        limiter.acquire(len(block))
        yield block


def per_client_limit(total_kilobytes_per_second: int, clients: int) -> int:
    """Split a bandwidth cap evenly across *clients*.

    Returns ``0`` (unlimited) when no cap is set; a set cap never rounds down
    to unlimited.
    """
    if total_kilobytes_per_second <= 0:
        return 0
    return max(1, total_kilobytes_per_second // clients)
