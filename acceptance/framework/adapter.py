"""Test adapters: where chain failures and async boundaries reach the test runner."""

from __future__ import annotations

import logging
import traceback

from acceptance.foundation.logging_utils import write_text_log
from acceptance.framework.config import ALLOWED_ADAPTER_KINDS

logger = logging.getLogger(__name__)


class Adapter:
    """Base adapter. `exception` re-raises so failures are never silent."""

    def async_start(self) -> None:
        return

    def async_end(self) -> None:
        return

    def exception(self, error: BaseException) -> None:
        raise error


class RecordingAdapter(Adapter):
    def __init__(self) -> None:
        self.exceptions: list[BaseException] = []
        self.async_starts = 0
        self.async_ends = 0

    @property
    def pending_async(self) -> int:
        return self.async_starts - self.async_ends

    def async_start(self) -> None:
        self.async_starts += 1

    def async_end(self) -> None:
        self.async_ends += 1

    def exception(self, error: BaseException) -> None:
        self.exceptions.append(error)
        logger.error(
            "Helper chain failed: %s",
            error,
            exc_info=(type(error), error, error.__traceback__),
        )

    def write_report(self, path: str) -> None:
        blocks: list[str] = [f"failures: {len(self.exceptions)}"]
        for index, error in enumerate(self.exceptions, start=1):
            formatted = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ).rstrip()
            blocks.append(f"--- failure {index:02d} ---\n{formatted}")
        write_text_log(path, "\n".join(blocks) + "\n")


def build_adapter(kind: str) -> Adapter:
    normalized = (kind or "").strip().lower()
    if normalized == "recording":
        return RecordingAdapter()
    if normalized == "raising":
        return Adapter()
    raise ValueError(
        f"Unknown adapter kind: {kind!r} (expected one of {', '.join(ALLOWED_ADAPTER_KINDS)})"
    )
