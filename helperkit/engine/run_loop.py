"""Batching boundary for synchronous chain work.

This module is intentionally app-agnostic and must not import `acceptance.*`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterator

logger = logging.getLogger(__name__)


@dataclass
class Batch:
    depth: int
    jobs: list[tuple[Callable[..., Any], tuple[Any, ...]]] = field(default_factory=list)
    keys: set[Hashable] = field(default_factory=set)

    def add(self, fn: Callable[..., Any], args: tuple[Any, ...]) -> None:
        if not callable(fn):
            raise TypeError(f"Run loop job must be callable (type={type(fn).__name__})")
        self.jobs.append((fn, args))


class RunLoop:
    def __init__(self) -> None:
        self._stack: list[Batch] = []

    @property
    def current(self) -> Batch | None:
        return self._stack[-1] if self._stack else None

    @contextmanager
    def begin(self) -> Iterator[Batch]:
        batch = Batch(depth=len(self._stack))
        self._stack.append(batch)
        try:
            yield batch
        finally:
            try:
                self._flush(batch)
            finally:
                self._stack.pop()

    def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self.begin():
            return fn(*args, **kwargs)

    def run_batched(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run `fn` inside a batch, joining the active one instead of nesting."""

        if self.current is None:
            return self.run(fn, *args, **kwargs)
        return fn(*args, **kwargs)

    def schedule(self, fn: Callable[..., Any], *args: Any) -> None:
        batch = self.current
        if batch is None:
            fn(*args)
            return
        batch.add(fn, args)

    def schedule_once(self, key: Hashable, fn: Callable[..., Any], *args: Any) -> None:
        batch = self.current
        if batch is None:
            fn(*args)
            return
        if key in batch.keys:
            return
        batch.keys.add(key)
        batch.add(fn, args)

    def _flush(self, batch: Batch) -> None:
        # Jobs queued while flushing land on the same batch and run in this pass.
        # A failing job does not drop the rest; the first failure is re-raised
        # once the queue is drained.
        first_error: Exception | None = None
        index = 0
        while index < len(batch.jobs):
            fn, args = batch.jobs[index]
            index += 1
            try:
                fn(*args)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                else:
                    logger.error(
                        "Run loop job %r failed at depth %d: %s",
                        fn,
                        batch.depth,
                        exc,
                        exc_info=(type(exc), exc, exc.__traceback__),
                    )
        if index:
            logger.debug("Flushed %d run loop job(s) at depth %d", index, batch.depth)
        batch.jobs.clear()
        batch.keys.clear()
        if first_error is not None:
            raise first_error
