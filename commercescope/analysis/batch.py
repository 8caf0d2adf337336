"""Order-preserving fan-out for batch scoring and forecasting.

Items are independent, so a batch can run on a thread pool. Results come
back in input order regardless of completion order.
"""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from commercescope.etl.config import DEFAULT_BATCH_WORKERS

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_batch(
    func: Callable[[T], R],
    items: Iterable[T],
    max_workers: int | None = None,
) -> list[R]:
    """Apply func to every item, optionally on a worker pool.

    Args:
        func: Pure per-item computation.
        items: Inputs; consumed once.
        max_workers: Pool size. None or 1 runs sequentially in the caller's thread.

    Returns:
        List of results, same order as items.
    """
    items = list(items)
    workers = max_workers or DEFAULT_BATCH_WORKERS

    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    logger.debug("Running batch of %d items on %d workers", len(items), workers)
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        return list(executor.map(func, items))
