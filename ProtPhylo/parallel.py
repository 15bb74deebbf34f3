"""
Bounded worker pool over indexed work items.

Results are collected by index, never by arrival order, so the output of
`run_indexed` is identical for any pool size or scheduling.
"""
from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import (FIRST_COMPLETED, Future, ProcessPoolExecutor,
                                ThreadPoolExecutor, wait)
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from .errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_POLL_SECONDS = 0.1


class CancelToken:
    """
    Cooperative cancellation flag with an optional deadline.

    Checked between units of work; an in-flight unit always runs to
    completion and its result is discarded.
    """

    def __init__(self, deadline: Optional[float] = None):
        self._event = threading.Event()
        self._expires_at = (time.monotonic() + deadline) if deadline is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError("operation cancelled or deadline exceeded")


def resolve_n_jobs(n_jobs: Optional[int]) -> int:
    """None/0 = all CPUs (like the distance backends), negative is invalid"""
    if n_jobs is None or n_jobs == 0:
        return os.cpu_count() or 1
    if n_jobs < 0:
        raise ValueError("n_jobs must be >= 0 or None")
    return n_jobs


def _make_executor(backend: str, workers: int):
    if backend == "thread":
        return ThreadPoolExecutor(max_workers=workers)
    if backend == "process":
        return ProcessPoolExecutor(max_workers=workers)
    raise ValueError("backend must be 'thread' | 'process'")


def run_indexed(func: Callable[[T], R],
                items: Sequence[T],
                n_jobs: Optional[int] = 1,
                backend: str = "process",
                cancel: Optional[CancelToken] = None) -> List[R]:
    """
    Apply `func` to every item and return results in input order.

    Parameters
    ----------
    func : callable
        Must be picklable (module-level function / functools.partial) when
        backend='process'.
    items : sequence
        Work items; each is handled independently.
    n_jobs : int or None
        Pool size. 1 runs inline; None/0 = all CPUs.
    backend : str
        'thread' | 'process'
    cancel : CancelToken, optional
        Checked before each submission and while waiting.

    Raises
    ------
    OperationCancelledError
        When the token fires before every item has finished.
    """
    workers = resolve_n_jobs(n_jobs)
    n = len(items)
    results: List[Optional[R]] = [None] * n

    if workers == 1 or n <= 1:
        for idx, item in enumerate(items):
            if cancel is not None:
                cancel.raise_if_cancelled()
            results[idx] = func(item)
        return results  # type: ignore[return-value]

    workers = min(workers, n)
    window = workers * 2
    logger.debug("Dispatching %d work items to %d %s workers", n, workers, backend)

    with _make_executor(backend, workers) as ex:
        pending: Dict[Future, int] = {}
        next_idx = 0
        try:
            while next_idx < n or pending:
                while next_idx < n and len(pending) < window:
                    if cancel is not None:
                        cancel.raise_if_cancelled()
                    pending[ex.submit(func, items[next_idx])] = next_idx
                    next_idx += 1

                done, _ = wait(list(pending), timeout=_POLL_SECONDS,
                               return_when=FIRST_COMPLETED)
                for fut in done:
                    results[pending.pop(fut)] = fut.result()
                if cancel is not None:
                    cancel.raise_if_cancelled()
        except BaseException:
            for fut in pending:
                fut.cancel()
            raise

    return results  # type: ignore[return-value]
