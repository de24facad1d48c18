"""Logging setup for harness runs."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
HARNESS_LOGGERS: tuple[str, ...] = ("acceptance", "helperkit")


def setup_harness_logger(
    level: str | int = "INFO",
    *,
    log_dir: str | None = None,
    logger_names: tuple[str, ...] = HARNESS_LOGGERS,
) -> tuple[logging.Logger, str | None]:
    """
    Configure the harness loggers.

    Logs go to stderr at `level` and, when `log_dir` is set, to a UTF-8
    `harness.log` file in that directory at DEBUG. Every name in
    `logger_names` gets the same handlers; the first logger is returned.
    """

    if not logger_names:
        raise ValueError("logger_names must not be empty")

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)

    handlers: list[logging.Handler] = [stream_handler]
    log_file: str | None = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, "harness.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in logger_names:
        configured = logging.getLogger(name)
        configured.setLevel(logging.DEBUG)
        configured.handlers.clear()
        for handler in handlers:
            configured.addHandler(handler)
        configured.propagate = False

    logger = logging.getLogger(logger_names[0])
    logger.debug("Harness logging initialized (level=%s)", logging.getLevelName(stream_handler.level))
    if log_file:
        logger.debug("Harness log file: %s", log_file)

    return logger, log_file


def write_text_log(log_path: str, text: str) -> None:
    """Write text to a UTF-8 file."""
    with open(log_path, "w", encoding="utf-8") as file:
        file.write(text)
