"""Batch evaluation backends.

Each generation's offspring are evaluated as one batch. Backends return results
in input order and stop scheduling new work once a cancellation token is set;
an evaluation already running is always allowed to finish.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Any, Callable, Sequence

from .core import CancellationToken


class EvaluationBackend(ABC):
    """Backend interface for evaluating one batch of candidates.

    Backends may be used as context managers so pooled executors live for a
    whole optimization run instead of one generation.
    """

    def __enter__(self) -> "EvaluationBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    @abstractmethod
    def map(
        self,
        fn: Callable[[Any], Any],
        items: Sequence[Any],
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Any | None]:
        """Apply ``fn`` to ``items`` and return results in input order.

        Entries that were never evaluated because of cancellation are ``None``.
        """


class SequentialBackend(EvaluationBackend):
    """Single-thread deterministic backend."""

    def map(
        self,
        fn: Callable[[Any], Any],
        items: Sequence[Any],
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Any | None]:
        results: list[Any | None] = [None] * len(items)
        for i, item in enumerate(items):
            if cancel is not None and cancel.cancelled:
                break
            results[i] = fn(item)
        return results


class _FuturePoolBackend(EvaluationBackend):
    """Common logic for thread/process backends."""

    executor_cls: type[ThreadPoolExecutor] | type[ProcessPoolExecutor]

    def __init__(self, max_workers: int | None = None) -> None:
        self.max_workers = max_workers
        self._executor: Executor | None = None

    def __enter__(self) -> "_FuturePoolBackend":
        if self._executor is None:
            self._executor = self.executor_cls(max_workers=self.max_workers)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def map(
        self,
        fn: Callable[[Any], Any],
        items: Sequence[Any],
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Any | None]:
        n = len(items)
        if n == 0:
            return []
        if self._executor is None:
            with self:
                return self.map(fn, items, cancel=cancel)

        # Results are written back by original index. This preserves input
        # ordering even though futures complete out-of-order.
        results: list[Any | None] = [None] * n
        index_by_future: dict[Future, int] = {
            self._executor.submit(fn, item): i for i, item in enumerate(items)
        }
        try:
            for fut in as_completed(index_by_future):
                if fut.cancelled():
                    continue
                results[index_by_future[fut]] = fut.result()
                if cancel is not None and cancel.cancelled:
                    _cancel_pending(index_by_future)
        except BaseException:
            _cancel_pending(index_by_future)
            raise
        return results


def _cancel_pending(futures: dict[Future, int]) -> None:
    # Future.cancel() only succeeds for work that has not started yet.
    for pending in futures:
        if not pending.done():
            pending.cancel()


class ThreadPoolBackend(_FuturePoolBackend):
    """Thread-based execution backend."""

    # Scoring closures need no pickling here. Integration is pure Python, so
    # the speed-up depends on how much of the scoring releases the GIL.
    executor_cls = ThreadPoolExecutor


class ProcessPoolBackend(_FuturePoolBackend):
    """Process-based execution backend.

    The scoring function must be picklable (a module-level function or an
    instance of a module-level class).
    """

    executor_cls = ProcessPoolExecutor


BACKENDS = ("sequential", "thread", "process")


def make_backend(backend: str = "thread", n_jobs: int = 1) -> EvaluationBackend:
    """Select a backend by name.

    ``n_jobs`` of ``0`` means one worker per available CPU less one, and any
    single-worker request runs sequentially.
    """
    workers = int(n_jobs)
    if workers == 0:
        workers = max(1, (os.cpu_count() or 1) - 1)
    workers = max(1, workers)

    key = backend.strip().lower()
    if key not in BACKENDS:
        raise ValueError("backend must be one of: 'sequential', 'thread', 'process'.")
    if key == "sequential" or workers == 1:
        return SequentialBackend()
    if key == "thread":
        return ThreadPoolBackend(max_workers=workers)
    return ProcessPoolBackend(max_workers=workers)
