"""Concurrent fan-out helpers for provider calls."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class TaskResult:
    """Outcome of one item in a fan-out."""

    item: Any
    success: bool
    result: Any | None
    error: str | None
    exception: Exception | None = None


async def _settle_one(func: Callable[[T], R], item: T) -> TaskResult:
    """
    Run a blocking function on one item in a worker thread.

    Args:
        func: Blocking function to execute
        item: Item to process

    Returns:
        TaskResult with success/failure info
    """
    try:
        result = await asyncio.to_thread(func, item)
        return TaskResult(item=item, success=True, result=result, error=None)
    except Exception as e:
        logger.debug(f"Error processing {item}: {e}")
        return TaskResult(item=item, success=False, result=None, error=str(e), exception=e)


async def settle_all(func: Callable[[T], R], items: list[T]) -> list[TaskResult]:
    """
    Apply a blocking function to every item concurrently and wait for all.

    Nothing short-circuits: one failure never cancels the others. Each call
    runs in a worker thread so the event loop stays responsive.

    Args:
        func: Blocking function to execute on each item
        items: Items to process

    Returns:
        List of TaskResult objects in the same order as input items
    """
    if not items:
        return []
    return list(await asyncio.gather(*(_settle_one(func, item) for item in items)))
