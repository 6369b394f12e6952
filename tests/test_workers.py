"""Tests for the bounded parallel runner."""

import asyncio
import io

import pytest
from rich.console import Console

from mpr_manager.core.errors import ParallelWorkError
from mpr_manager.core.workers import run_parallel


@pytest.fixture
def console():
    return Console(file=io.StringIO(), force_terminal=False)


class TestRunParallel:
    @pytest.mark.asyncio
    async def test_runs_every_item(self, console):
        seen = []

        async def work(item):
            seen.append(item)

        await run_parallel(["a", "b", "c"], work, console=console)
        assert sorted(seen) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, console):
        running = 0
        peak = 0

        async def work(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        await run_parallel([str(i) for i in range(12)], work, limit=3, console=console)
        assert peak == 3

    @pytest.mark.asyncio
    async def test_collects_all_errors(self, console):
        finished = []

        async def work(item):
            if item in ("b", "d"):
                raise RuntimeError(f"{item} broke")
            await asyncio.sleep(0.01)
            finished.append(item)

        with pytest.raises(ParallelWorkError) as excinfo:
            await run_parallel(["a", "b", "c", "d"], work, limit=2, console=console)

        assert sorted(finished) == ["a", "c"]
        assert [item for item, _ in excinfo.value.failures] == ["b", "d"]
        assert "- b: b broke" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_no_items(self, console):
        async def work(item):
            raise AssertionError("not called")

        await run_parallel([], work, console=console)
