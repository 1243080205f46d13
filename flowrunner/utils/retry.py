from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff(attempt: int, base: float = 1.5, jitter: float = 0.5) -> float:
    """Compute exponential backoff with jitter for the 1-based ``attempt``."""
    delay = base ** attempt
    return delay + random.uniform(0, jitter)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
    backoff: Callable[[int], float] = compute_backoff,
) -> T:
    """Await ``operation`` up to ``attempts`` times, sleeping between tries.

    The last error is re-raised once every attempt has failed.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= attempts:
                raise
            delay = backoff(attempt)
            logger.warning(
                f"{description} failed (attempt {attempt}/{attempts}): {exc}; "
                f"retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
    raise ValueError("attempts must be at least 1")
