from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator

WaiterPredicate = Callable[..., Any]


@dataclass(frozen=True)
class Waiter:
    """Idle-detection predicate with an optional receiver.

    Equality is structural: two waiters are equal when their contexts compare
    equal and they share the same predicate.
    """

    predicate: WaiterPredicate
    context: Any = None

    def __post_init__(self) -> None:
        if not callable(self.predicate):
            raise TypeError(
                f"Waiter.predicate must be callable (type={type(self.predicate).__name__})"
            )


class WaiterRegistry:
    def __init__(self) -> None:
        self._waiters: list[Waiter] = []

    def register(self, predicate: WaiterPredicate, context: Any = None) -> Waiter:
        waiter = Waiter(predicate=predicate, context=context)
        self._waiters.append(waiter)
        return waiter

    def unregister(self, predicate: WaiterPredicate, context: Any = None) -> bool:
        target = Waiter(predicate=predicate, context=context)
        for index, waiter in enumerate(self._waiters):
            if waiter == target:
                del self._waiters[index]
                return True
        return False

    def snapshot(self) -> tuple[Waiter, ...]:
        return tuple(self._waiters)

    def clear(self) -> None:
        self._waiters.clear()

    def __iter__(self) -> Iterator[Waiter]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._waiters)
