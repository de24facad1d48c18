from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping

AdapterKind = Literal["recording", "raising"]
ALLOWED_ADAPTER_KINDS: tuple[str, ...] = ("recording", "raising")
ALLOWED_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# section -> keys it may hold; `strict` is the only top-level scalar
SCHEMA: dict[str, tuple[str, ...]] = {
    "helpers": ("default_wait", "install_defaults"),
    "waiters": ("poll_interval_seconds", "timeout_seconds"),
    "adapter": ("kind",),
    "logging": ("level", "log_dir"),
}

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def as_bool(value: Any, key: str) -> bool:
    """YAML usually hands over real bools; quoted words and 0/1 are accepted too."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"{key}: expected a boolean, got {value!r}")


def as_seconds(value: Any, key: str, *, allow_none: bool = False) -> float | None:
    if value is None and allow_none:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{key}: expected a number of seconds, got {value!r}")
    try:
        seconds = float(value)
    except ValueError as exc:
        raise ValueError(f"{key}: expected a number of seconds, got {value!r}") from exc
    if seconds <= 0:
        raise ValueError(f"{key}: must be > 0" + (" or null" if allow_none else ""))
    return seconds


def unknown_keys(cfg: Mapping[str, Any]) -> list[str]:
    unknown = [str(key) for key in cfg if key != "strict" and key not in SCHEMA]
    for section, keys in SCHEMA.items():
        body = cfg.get(section)
        if isinstance(body, Mapping):
            unknown.extend(f"{section}.{key}" for key in body if key not in keys)
    return sorted(unknown)


def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    body = cfg.get(name)
    if body is None:
        return {}
    if not isinstance(body, Mapping):
        raise ValueError(f"{name}: expected a mapping, got {type(body).__name__}")
    return body


@dataclass(frozen=True)
class HarnessConfig:
    default_wait: bool = True
    install_default_helpers: bool = True

    poll_interval_seconds: float = 0.01
    wait_timeout_seconds: float | None = 10.0

    adapter_kind: AdapterKind = "recording"

    log_level: str = "INFO"
    log_dir: str | None = None

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> tuple["HarnessConfig", list[str]]:
        """
        Validate a raw config mapping, returning (HarnessConfig, warnings).

        Unknown keys are warnings unless `strict: true`, in which case they
        raise `ValueError` like any other invalid value.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")

        warnings: list[str] = []
        strict = as_bool(cfg.get("strict", False), "strict")
        unknown = unknown_keys(cfg)
        if unknown and strict:
            raise ValueError("Unknown config keys: " + ", ".join(unknown))
        warnings.extend(f"Unknown config key: {key}" for key in unknown)

        defaults = HarnessConfig()
        helpers = _section(cfg, "helpers")
        waiters = _section(cfg, "waiters")
        adapter = _section(cfg, "adapter")
        log_cfg = _section(cfg, "logging")

        poll_interval = as_seconds(
            waiters.get("poll_interval_seconds", defaults.poll_interval_seconds),
            "waiters.poll_interval_seconds",
        )
        timeout = defaults.wait_timeout_seconds
        if "timeout_seconds" in waiters:
            timeout = as_seconds(waiters["timeout_seconds"], "waiters.timeout_seconds", allow_none=True)
        if timeout is not None and timeout < poll_interval:
            warnings.append(
                "waiters.timeout_seconds is shorter than waiters.poll_interval_seconds; "
                "waits will time out after a single poll"
            )

        raw_kind = adapter.get("kind", defaults.adapter_kind)
        kind = raw_kind.strip().lower() if isinstance(raw_kind, str) else raw_kind
        if kind not in ALLOWED_ADAPTER_KINDS:
            raise ValueError(
                f"adapter.kind: expected one of {', '.join(ALLOWED_ADAPTER_KINDS)}, got {raw_kind!r}"
            )

        raw_level = log_cfg.get("level", defaults.log_level)
        level = raw_level
        if isinstance(level, int) and not isinstance(level, bool):
            level = logging.getLevelName(level)
        level = level.strip().upper() if isinstance(level, str) else level
        if level not in ALLOWED_LOG_LEVELS:
            raise ValueError(
                f"logging.level: expected one of {', '.join(ALLOWED_LOG_LEVELS)}, got {raw_level!r}"
            )

        log_dir = log_cfg.get("log_dir")
        if log_dir is not None:
            if not isinstance(log_dir, str) or not log_dir.strip():
                raise ValueError(f"logging.log_dir: expected a non-empty path or null, got {log_dir!r}")
            log_dir = log_dir.strip()

        config = HarnessConfig(
            default_wait=as_bool(
                helpers.get("default_wait", defaults.default_wait), "helpers.default_wait"
            ),
            install_default_helpers=as_bool(
                helpers.get("install_defaults", defaults.install_default_helpers),
                "helpers.install_defaults",
            ),
            poll_interval_seconds=poll_interval,
            wait_timeout_seconds=timeout,
            adapter_kind=kind,
            log_level=level,
            log_dir=log_dir,
        )
        return config, warnings


def load_harness_config(**kwargs: Any) -> tuple[HarnessConfig, list[str], dict[str, Any]]:
    """Load YAML config (see `config_io.load_config`) and validate it."""

    from acceptance.foundation.config_io import load_config

    raw, meta = load_config(**kwargs)
    config, warnings = HarnessConfig.from_dict(raw)
    return config, warnings, meta
