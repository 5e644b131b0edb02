# SPDX-License-Identifier: MIT
"""Tests for transfer bandwidth limiting."""

from __future__ import annotations

import time

import pytest

from shardstore.infrastructure.rate_limit import (
    MAX_BLOCK_SIZE,
    ByteRateLimiter,
    per_client_limit,
    rate_limited_chunks,
    rate_limited_reader,
)


@pytest.mark.unit
class TestByteRateLimiter:
    """Tests for the pyrate-limiter wrapper."""

    def test_create_limiter(self) -> None:
        with ByteRateLimiter("download-0", kilobytes_per_second=64) as limiter:
            assert limiter.name == "download-0"
            assert limiter.kilobytes_per_second == 64

    @pytest.mark.parametrize("kbps", [0, -5])
    def test_rejects_non_positive_rate(self, kbps: int) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            ByteRateLimiter("x", kilobytes_per_second=kbps)

    def test_block_size_capped_by_rate(self) -> None:
        with ByteRateLimiter("slow", kilobytes_per_second=2) as slow, ByteRateLimiter("fast", 4096) as fast:
            assert slow.block_size == 2048
            assert fast.block_size == MAX_BLOCK_SIZE

    def test_acquire_within_limit(self) -> None:
        with ByteRateLimiter("test", kilobytes_per_second=1024) as limiter:
            start = time.monotonic()
            limiter.acquire(4096)
            elapsed = time.monotonic() - start

            assert elapsed < 0.1

    def test_acquire_blocks_when_exceeded(self) -> None:
        # 1 KB/s: the second kilobyte has to wait for the first to leave the window
        with ByteRateLimiter("test", kilobytes_per_second=1) as limiter:
            limiter.acquire(1024)

            start = time.monotonic()
            limiter.acquire(1024)
            elapsed = time.monotonic() - start

            assert elapsed >= 0.9


@pytest.mark.unit
class TestRateLimitedChunks:
    def test_passthrough_without_limiter(self) -> None:
        source = [b"abc", b"", b"defg"]

        assert list(rate_limited_chunks(source, None)) == source

    def test_reblocks_to_block_size(self, mocker) -> None:
        with ByteRateLimiter("test", kilobytes_per_second=2) as limiter:
            acquire = mocker.patch.object(limiter, "acquire")
            source = [b"a" * 1500, b"b" * 1500, b"c" * 1500]

            blocks = list(rate_limited_chunks(source, limiter))

        assert [len(b) for b in blocks] == [2048, 2048, 404]
        assert b"".join(blocks) == b"".join(source)
        assert [c.args[0] for c in acquire.call_args_list] == [2048, 2048, 404]

    def test_empty_source(self, mocker) -> None:
        with ByteRateLimiter("test", kilobytes_per_second=2) as limiter:
            acquire = mocker.patch.object(limiter, "acquire")

            assert list(rate_limited_chunks(iter([]), limiter)) == []

        acquire.assert_not_called()


@pytest.mark.unit
class TestRateLimitedReader:
    def test_single_block_without_limiter(self) -> None:
        assert list(rate_limited_reader(b"payload", None)) == [b"payload"]

    def test_splits_buffer(self, mocker) -> None:
        with ByteRateLimiter("test", kilobytes_per_second=1) as limiter:
            acquire = mocker.patch.object(limiter, "acquire")

            blocks = list(rate_limited_reader(b"z" * 2500, limiter))

        assert [len(b) for b in blocks] == [1024, 1024, 452]
        assert acquire.call_count == 3


@pytest.mark.unit
@pytest.mark.parametrize(
    ("total", "clients", "expected"),
    [(0, 4, 0), (-1, 1, 0), (1000, 4, 250), (1000, 3, 333), (2, 4, 1), (512, 1, 512)],
)
def test_per_client_limit(total: int, clients: int, expected: int) -> None:
    assert per_client_limit(total, clients) == expected
