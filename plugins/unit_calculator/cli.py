"""Command line interface for the unit calculator plugin."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, TextIO

from .core import (
    SnapshotError,
    Workspace,
    build_workspace,
    describe_result,
    dumps,
    list_domains,
    list_unit_sets,
    loads,
)

_PROMPT = "> "
_QUIT = {"exit", "quit"}


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _workspace(args: argparse.Namespace) -> Workspace:
    if args.load:
        if args.domain or args.unit_sets:
            raise SystemExit("--load cannot be combined with --domain or --unit-set; the snapshot sets both.")
        try:
            text = Path(args.load).read_text(encoding="utf-8")
        except OSError as exc:
            raise SystemExit(f"Cannot read {args.load}: {exc.strerror}") from exc
        try:
            return loads(text)
        except SnapshotError as exc:
            raise SystemExit(f"Cannot load {args.load}: {exc}") from exc
    try:
        return build_workspace(args.domain or "real", args.unit_sets or ["common"], answer_variable=args.answer)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc


def _save(workspace: Workspace, args: argparse.Namespace) -> None:
    if args.save:
        Path(args.save).write_text(dumps(workspace, indent=2), encoding="utf-8")


def _report(workspace: Workspace, expression: str, as_json: bool, out: TextIO) -> bool:
    result = workspace.evaluate(expression)
    if as_json:
        out.write(json.dumps(describe_result(workspace, expression, result), sort_keys=True) + "\n")
    elif result:
        out.write(workspace.format_quantity(result.quantity) + "\n")
    else:
        out.write(f"error: {result.message}\n")
    return result.success


def command_eval(args: argparse.Namespace) -> int:
    workspace = _workspace(args)
    failures = 0
    for expression in args.expressions:
        if not _report(workspace, expression, args.json, sys.stdout):
            failures += 1
    _save(workspace, args)
    return 1 if failures else 0


def command_repl(args: argparse.Namespace) -> int:
    workspace = _workspace(args)
    interactive = sys.stdin.isatty()
    while True:
        if interactive:
            sys.stdout.write(_PROMPT)
            sys.stdout.flush()
        line = sys.stdin.readline()
        if not line:
            break
        expression = line.strip()
        if not expression:
            continue
        if expression in _QUIT:
            break
        _report(workspace, expression, args.json, sys.stdout)
    _save(workspace, args)
    return 0


def command_units(args: argparse.Namespace) -> int:
    workspace = _workspace(args)
    domain = workspace.domain
    if args.json:
        _print(
            {
                "domains": list_domains(),
                "unit_sets": list_unit_sets(),
                "input_units": {
                    name: {"factor": domain.to_json_scalar(quantity.scalar), "base": str(quantity.unit)}
                    for name, quantity in sorted(workspace.input_units.items())
                },
                "output_units": {str(entry.base): str(entry.unit) for entry in workspace.output_units},
            }
        )
        return 0
    for name, quantity in sorted(workspace.input_units.items()):
        print(f"{name:>10}  {workspace.format_quantity(quantity)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Unit calculator CLI")
    parser.add_argument("--domain", choices=list_domains(), help="Scalar domain (default: real)")
    parser.add_argument(
        "--unit-set",
        dest="unit_sets",
        action="append",
        choices=list_unit_sets(),
        help="Unit set to install (repeatable, default: common)",
    )
    parser.add_argument("--answer", default="ans", help="Variable that stores the last result")
    parser.add_argument(
        "--load", help="Load a workspace snapshot (JSON); its domain, units and settings are used as saved"
    )
    parser.add_argument("--save", help="Save the workspace snapshot (JSON) when done")
    parser.add_argument("--json", action="store_true", help="Print machine readable output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_parser = subparsers.add_parser("eval", help="Evaluate expressions in order")
    eval_parser.add_argument("expressions", nargs="+", help="Expressions such as '2 km/hour in m/s'")
    eval_parser.set_defaults(func=command_eval)

    repl_parser = subparsers.add_parser("repl", help="Read expressions from standard input")
    repl_parser.set_defaults(func=command_repl)

    units_parser = subparsers.add_parser("units", help="List the registered input units")
    units_parser.set_defaults(func=command_units)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
