from __future__ import annotations

import argparse
import importlib
import json
import sys
from collections.abc import Sequence

from acceptance.foundation.logging_utils import setup_harness_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="acceptance", add_help=True)
    sub = parser.add_subparsers(dest="command", required=True)

    list_helpers = sub.add_parser("list-helpers", help="List registered test helpers")
    list_helpers.add_argument(
        "--plugin",
        action="append",
        default=[],
        help="Module that registers helpers (on import or via register_helpers(harness))",
    )
    list_helpers.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    list_helpers.add_argument(
        "--no-defaults", action="store_true", help="Skip the built-in wait/and_then helpers"
    )

    check_config = sub.add_parser("check-config", help="Load and validate harness config")
    check_config.add_argument("--config", default=None, help="Explicit config file path")

    return parser


def _list_helpers(args: argparse.Namespace) -> int:
    from acceptance.framework.testing import harness
    from acceptance.helpers import install_default_helpers

    if not args.no_defaults:
        install_default_helpers(harness)

    for module_name in args.plugin:
        module = importlib.import_module(module_name)
        register = getattr(module, "register_helpers", None)
        if callable(register):
            register(harness)

    rows = list(harness.helpers.describe())
    if args.json:
        print(json.dumps(rows, indent=2, ensure_ascii=False))
        return 0

    for row in rows:
        mode = "wait" if row["wait"] else "sync"
        doc = f" - {row['doc']}" if row.get("doc") else ""
        print(f"{row['name']} [{mode}] ({row['source']}){doc}")
    return 0


def _check_config(args: argparse.Namespace) -> int:
    from acceptance.framework.config import load_harness_config

    try:
        config, warnings, meta = load_harness_config(config_path=args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return 1

    setup_harness_logger(config.log_level, log_dir=config.log_dir)

    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(f"Loaded config ({meta['mode']}): {', '.join(meta['paths'])}")
    print(
        f"default_wait={config.default_wait} adapter={config.adapter_kind} "
        f"poll_interval_seconds={config.poll_interval_seconds:g} "
        f"timeout_seconds={config.wait_timeout_seconds}"
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "list-helpers":
        return _list_helpers(args)

    if args.command == "check-config":
        return _check_config(args)

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
