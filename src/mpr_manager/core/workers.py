"""
Bounded-concurrency fan-out over packages.

Each package is handled by its own task; at most `limit` run at once. All
failures are collected and reported together once every task has finished.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from mpr_manager.core.config import DEFAULT_CONCURRENCY
from mpr_manager.core.errors import ParallelWorkError

logger = logging.getLogger(__name__)


async def run_parallel(
    items: Sequence[str],
    work: Callable[[str], Awaitable[None]],
    limit: int = DEFAULT_CONCURRENCY,
    description: str = "Working",
    console: Console | None = None,
) -> None:
    """
    Run `work(item)` for every item, at most `limit` at a time.

    Args:
        items: Package names (or any labels) to process.
        work: Coroutine function handling one item.
        limit: Maximum number of concurrent tasks.
        description: Progress bar label.
        console: Console to draw progress on. A fresh one is used if omitted.

    Raises:
        ParallelWorkError: One or more items failed; lists all of them.
    """
    sem = asyncio.Semaphore(limit)
    failures: list[tuple[str, BaseException]] = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console or Console(),
        transient=False,
    ) as progress:
        task_id = progress.add_task(f"[green]{description}...[/green]", total=len(items))

        async def process_single(item: str) -> None:
            async with sem:
                try:
                    await work(item)
                except Exception as e:
                    logger.debug(f"Error processing {item}: {e}")
                    failures.append((item, e))
                finally:
                    progress.update(task_id, advance=1, description=f"[green]{description}: {item}[/green]")

        await asyncio.gather(*(process_single(item) for item in items))

    if failures:
        order = {item: idx for idx, item in enumerate(items)}
        failures.sort(key=lambda failure: order.get(failure[0], 0))
        raise ParallelWorkError(failures)
