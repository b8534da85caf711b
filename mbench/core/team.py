"""mbench thread team — fork/join over static contiguous partitions."""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable

from mbench.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

THREADS_ENV = "OMP_NUM_THREADS"


def default_team_size() -> int:
    """Team size from ``OMP_NUM_THREADS`` (first entry), else the CPU count."""
    value = os.environ.get(THREADS_ENV, "").split(",")[0].strip()
    if value:
        try:
            size = int(value)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", THREADS_ENV, value)
        else:
            if size > 0:
                return size
            logger.warning("Ignoring non-positive %s=%r", THREADS_ENV, value)
    return os.cpu_count() or 1


def partition(n: int, parts: int) -> list[tuple[int, int]]:
    """Split ``range(n)`` into ``parts`` contiguous ``(lo, hi)`` chunks.

    The first ``n % parts`` chunks get one extra element; chunks may be empty.
    """
    base, extra = divmod(n, parts)
    bounds = []
    lo = 0
    for i in range(parts):
        hi = lo + base + (1 if i < extra else 0)
        bounds.append((lo, hi))
        lo = hi
    return bounds


class ThreadTeam:
    """Fixed-size team of worker threads, formed once and reused per iteration.

    Usage:
        with ThreadTeam(4) as team:
            results = team.run(lambda lo, hi: work(lo, hi), n)

    ``run`` forks one task per member and joins them all before returning.
    If any member raised, the first failure in member order is re-raised.
    A team of one runs inline in the calling thread.
    """

    def __init__(self, size: int | None = None) -> None:
        if size is None:
            size = default_team_size()
        if size < 1:
            raise ConfigurationError(f"thread team size must be >= 1, got {size}")
        self.size = size
        self._pool: ThreadPoolExecutor | None = None

    def __enter__(self) -> ThreadTeam:
        if self.size > 1:
            self._pool = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="mbench-team")
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def run(self, fn: Callable[[int, int], Any], n: int) -> list[Any]:
        bounds = partition(n, self.size)
        if self._pool is None:
            if self.size > 1:
                raise RuntimeError("ThreadTeam used outside its 'with' block")
            return [fn(lo, hi) for lo, hi in bounds]

        futures: list[Future] = [self._pool.submit(fn, lo, hi) for lo, hi in bounds]
        wait(futures)
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise exc
        return [future.result() for future in futures]

    def __repr__(self) -> str:
        return f"ThreadTeam[{self.size}]"
