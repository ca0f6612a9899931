"""Bounded-concurrency fan-out for bulk operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from onboarding_api.utils.secure_logging import log_warning

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ItemOutcome(Generic[T, R]):
    """Result of one item: either a value or the exception it raised."""

    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
) -> list[ItemOutcome[T, R]]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Exceptions are captured per item and never cancel the other items.
    Outcomes are returned in input order.

    Args:
        items: Items to process
        worker: Coroutine function applied to each item
        concurrency: Maximum number of concurrent workers (at least 1)

    Returns:
        One outcome per input item
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(item: T) -> ItemOutcome[T, R]:
        async with semaphore:
            try:
                return ItemOutcome(item=item, value=await worker(item))
            except Exception as e:
                log_warning(logger, "Bulk item failed", e)
                return ItemOutcome(item=item, error=e)

    return list(await asyncio.gather(*(_run(item) for item in items)))
