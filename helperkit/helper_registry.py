from __future__ import annotations

import difflib
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)

HelperMethod = Callable[..., Any]


def _first_doc_line(fn: Any) -> str | None:
    doc = inspect.getdoc(fn)
    if not doc:
        return None
    line = doc.strip().splitlines()[0].strip()
    return line or None


def _callable_source(fn: Any) -> str | None:
    module = getattr(fn, "__module__", None) or "<unknown_module>"
    qualname = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    if not qualname:
        return None
    return f"{module}.{qualname}"


@dataclass(frozen=True)
class Helper:
    name: str
    method: HelperMethod
    wait: bool = True
    doc: str | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise TypeError("Helper.name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())

        if not callable(self.method):
            raise TypeError(
                f"Helper.method must be callable (helper={self.name}, type={type(self.method).__name__})"
            )
        if not isinstance(self.wait, bool):
            raise TypeError(f"Helper.wait must be a bool (helper={self.name}, got {self.wait!r})")

        if self.doc is None:
            object.__setattr__(self, "doc", _first_doc_line(self.method))
        elif not isinstance(self.doc, str) or not self.doc.strip():
            raise TypeError("Helper.doc must be a non-empty string or None")
        if self.source is None:
            object.__setattr__(self, "source", _callable_source(self.method))


class HelperRegistry:
    """Named test helpers. Later registrations overwrite earlier ones."""

    def __init__(self) -> None:
        self._by_name: dict[str, Helper] = {}

    def register(self, name: str, method: HelperMethod, *, wait: bool = True) -> Helper:
        helper = Helper(name=name, method=method, wait=wait)
        previous = self._by_name.get(helper.name)
        if previous is not None:
            logger.debug(
                "Overwriting helper %s (%s -> %s)", helper.name, previous.source, helper.source
            )
        self._by_name[helper.name] = helper
        return helper

    def unregister(self, name: str) -> Helper | None:
        key = (name or "").strip() if isinstance(name, str) else name
        return self._by_name.pop(key, None)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name.keys()))

    def describe(self) -> tuple[dict[str, Any], ...]:
        rows: list[dict[str, Any]] = []
        for helper in sorted(self._by_name.values(), key=lambda h: h.name):
            rows.append(
                {
                    "name": helper.name,
                    "wait": helper.wait,
                    "doc": helper.doc,
                    "source": helper.source,
                }
            )
        return tuple(rows)

    def get(self, name: str) -> Helper:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("helper name must be a non-empty string")
        helper = self._by_name.get(name.strip())
        if helper is None:
            available = ", ".join(self.available()) or "<none>"
            suggestions = self.suggest(name)
            hint = f"; did you mean: {', '.join(suggestions)}" if suggestions else ""
            raise ValueError(f"Unknown helper: {name} (available: {available}){hint}")
        return helper

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))

    def items(self) -> tuple[tuple[str, Helper], ...]:
        return tuple(self._by_name.items())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._by_name))

    def __len__(self) -> int:
        return len(self._by_name)
