"""
Bounded-concurrency batch execution with index-aligned results.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from .errors import BatchTaskError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]


async def run_bounded(tasks: Sequence[TaskFactory], limit: int, name: str = "batch") -> List[T]:
    """
    Run ``tasks`` with at most ``limit`` in flight, returning results in input order.

    Each entry of ``tasks`` is a zero-argument callable returning an awaitable;
    it is not called until its slot opens, so launch order follows the index.

    On the first failure no further tasks are launched. Tasks already running
    are left to finish (their own cleanup stays intact) and their results are
    dropped. The error reported is the one from the lowest-indexed failed task,
    so the same inputs always produce the same error.

    Raises:
        BatchTaskError: wrapping the lowest-indexed task error
        ValueError: if ``limit`` is not a positive integer
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    results: List[Optional[T]] = [None] * len(tasks)
    errors: Dict[int, BaseException] = {}
    pending: Dict[asyncio.Future, int] = {}
    next_index = 0

    try:
        while next_index < len(tasks) or pending:
            while not errors and next_index < len(tasks) and len(pending) < limit:
                future = asyncio.ensure_future(tasks[next_index]())
                pending[future] = next_index
                next_index += 1

            if not pending:
                break

            done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for future in done:
                index = pending.pop(future)
                error = future.exception()
                if error is not None:
                    if not errors:
                        logger.warning(f"{name}: task {index} failed, draining {len(pending)} in flight")
                    errors[index] = error
                else:
                    results[index] = future.result()
    except asyncio.CancelledError:
        for future in pending:
            future.cancel()
        raise

    if errors:
        index = min(errors)
        raise BatchTaskError(index, errors[index]) from errors[index]

    return results  # type: ignore[return-value]
