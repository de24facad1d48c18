"""Reading `config/testing.yaml` and its local overlay."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ENV_VAR = "ACCEPTANCE_CONFIG"
CONFIG_DIR_NAME = "config"
BASE_FILE = "testing.yaml"
LOCAL_FILE = "testing.local.yaml"


def find_config_dir(start: str | os.PathLike[str] | None = None) -> Path:
    """Return the nearest `config/` directory holding `testing.yaml`, searching upwards."""

    origin = Path(start or os.getcwd()).resolve()
    for candidate in (origin, *origin.parents):
        config_dir = candidate / CONFIG_DIR_NAME
        if (config_dir / BASE_FILE).is_file():
            return config_dir
    raise FileNotFoundError(f"No {CONFIG_DIR_NAME}/{BASE_FILE} found in {origin} or its parents")


def read_yaml_mapping(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(payload).__name__}")
    return payload


def overlay_sections(base: dict[str, Any], local: dict[str, Any], *, source: Path) -> dict[str, Any]:
    """
    Apply the local overlay to the base config.

    Harness config is one level of sections (`helpers`, `waiters`, ...) holding
    scalar keys, so sections merge key by key and anything else is replaced.
    """

    merged = dict(base)
    for key, value in local.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = {**current, **value}
        elif isinstance(current, dict) and value is not None:
            raise ValueError(
                f"{source}: section {key!r} must be a mapping, got {type(value).__name__}"
            )
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = DEFAULT_ENV_VAR,
    config_dir: str | os.PathLike[str] | None = None,
    start_dir: str | os.PathLike[str] | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load the raw harness config mapping.

    `config_path` (or the `env_var` environment variable) selects one file and
    skips the overlay. Otherwise `testing.yaml` is read from `config_dir` (or
    the nearest `config/` above `start_dir`) with `testing.local.yaml` laid on
    top when it exists. Returns (cfg, meta); meta records the mode and files read.
    """

    single = str(config_path) if config_path is not None else None
    mode = "explicit"
    if single is None and env_var:
        single = os.environ.get(env_var, "").strip() or None
        mode = "env"

    if single:
        path = Path(os.path.expandvars(os.path.expanduser(single))).resolve()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        return read_yaml_mapping(path), {"mode": mode, "paths": [str(path)]}

    directory = Path(config_dir).resolve() if config_dir is not None else find_config_dir(start_dir)
    base_path = directory / BASE_FILE
    if not base_path.is_file():
        raise FileNotFoundError(f"Missing base config file: {base_path}")

    cfg = read_yaml_mapping(base_path)
    paths = [str(base_path)]
    local_path = directory / LOCAL_FILE
    if local_path.is_file():
        cfg = overlay_sections(cfg, read_yaml_mapping(local_path), source=local_path)
        paths.append(str(local_path))

    return cfg, {"mode": "base+local" if len(paths) == 2 else "base", "paths": paths}
