"""Tests for the fail-fast fan-out helper."""

from __future__ import annotations

import asyncio

import pytest

from ingestion_gate.utils import concurrency


@pytest.mark.asyncio
async def test_gather_fail_fast_keeps_order() -> None:
    async def delayed(value: int, delay: float) -> int:
        await asyncio.sleep(delay)
        return value

    results = await concurrency.gather_fail_fast(
        [delayed(1, 0.03), delayed(2, 0.0), delayed(3, 0.01)]
    )
    assert results == [1, 2, 3]


@pytest.mark.asyncio
async def test_gather_fail_fast_empty() -> None:
    assert await concurrency.gather_fail_fast([]) == []


@pytest.mark.asyncio
async def test_gather_fail_fast_cancels_remaining_work() -> None:
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def never_finishes() -> None:
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def fails() -> None:
        await started.wait()
        raise ValueError("broken file")

    with pytest.raises(ValueError, match="broken file"):
        await concurrency.gather_fail_fast([never_finishes(), fails()])
    assert cancelled.is_set()
