"""Order-preserving parallel map for independent per-option work."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(func: Callable[[T], R], items: Sequence[T], max_workers: int = 1) -> list[R]:
    """Apply ``func`` to every item, returning results in input order.

    Runs serially when ``max_workers`` <= 1 or there is at most one item.
    Threads only pay off where ``func`` spends its time inside numpy; the
    binomial tree's per-step loop holds the GIL and gains little.
    Exceptions raised by ``func`` propagate to the caller.
    """
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    workers = min(max_workers, len(items))
    logger.debug(f"Mapping {len(items)} items over {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(func, items))
