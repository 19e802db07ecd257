"""Command-line entry point for the tfx build tasks."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

from . import agent
from .errors import TfxTaskError
from .inputs import TaskInputs, configure_proxy, load_env_file
from .propagation import check_update_tasks_version
from .tasks import package_extension, share_extension


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    agent.configure_logging(args.log_level.upper())
    if args.env_file:
        load_env_file(args.env_file)

    inputs = TaskInputs().with_overrides(_parse_inputs(args.input or []))
    configure_proxy(inputs)

    if args.command == "package":
        return 0 if package_extension(inputs, manifest_file=_optional_path(args.manifest)) else 1
    if args.command == "share":
        return 0 if share_extension(inputs) else 1
    if args.command == "update-tasks-version":
        return _handle_update_tasks_version(inputs, _optional_path(args.manifest))

    parser.error(f"Unknown command '{args.command}'")
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tfx-tasks", description="Package and share extensions with tfx.")
    parser.add_argument("--input", action="append", help="Task input name=value (repeatable).")
    parser.add_argument("--env-file", help="Load task inputs and variables from a .env file.")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    package = subparsers.add_parser("package", help="Create a .vsix with tfx extension create.")
    package.add_argument("--manifest", help="Extension manifest whose tasks get the new version.")

    subparsers.add_parser("share", help="Share the extension with accounts.")

    update = subparsers.add_parser("update-tasks-version", help="Propagate the extension version to task manifests.")
    update.add_argument("--manifest", help="Extension manifest to read instead of searching rootFolder.")

    return parser


def _handle_update_tasks_version(inputs: TaskInputs, manifest_file: Optional[Path]) -> int:
    try:
        result = check_update_tasks_version(inputs, manifest_file)
    except TfxTaskError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    _print_json(result.to_dict())
    return 0


def _parse_inputs(values: Sequence[str]) -> Dict[str, str]:
    inputs: Dict[str, str] = {}
    for entry in values:
        if "=" not in entry:
            raise SystemExit(f"Task input must be name=value (got '{entry}')")
        name, raw_value = entry.split("=", 1)
        inputs[name.strip()] = raw_value.strip()
    return inputs


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


def _print_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
