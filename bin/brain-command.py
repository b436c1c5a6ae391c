#!/usr/bin/env python3
"""brain-command — compile agent command definitions into documents.

Subcommands:
    compile <command-id | file.yaml>   Compile a registered command or a YAML definition
    list                               List registered command ids
    check <file.yaml>...               Validate YAML definitions without printing them

Configuration (CLI args take precedence over env vars):
    --format     md|xml|json|yaml  (env: BRAIN_COMMAND_FORMAT,    default: "md")
    --log-level  logging level     (env: BRAIN_COMMAND_LOG_LEVEL, default: "WARNING")

Per-command environment instructions (prefix = command id, upper case,
non-alphanumerics as "_", e.g. TASK_CREATE):
    <PREFIX>_RULE_0, _RULE_1, ...            extra critical rules
    <PREFIX>_GUIDELINE_0, _GUIDELINE_1, ...  extra guidelines
    <PREFIX>_DISABLE=1                       skip the command

Exit codes:
    0  success (or command disabled)
    1  compilation failed; every defect is printed to stderr
    2  unknown command, unreadable/malformed file, or bad arguments

Usage:
    bin/brain-command.py compile task:create
    bin/brain-command.py compile task:create --format xml --variables '{"HAS_AUTO_APPROVE": true}'
    bin/brain-command.py compile my-command.yaml --output out.md
    BRAIN_COMMAND_FORMAT=json bin/brain-command.py compile task:create
"""

import argparse
import json
import logging
import os
import pathlib
import sys
from typing import Any

from brain_command import (
    BrainCommandError,
    CommandDefinition,
    CompilationError,
    DefinitionLoadError,
    build_command,
    is_disabled,
    load_definition,
    load_env_instructions,
    normalize_name,
    registered_commands,
    render,
)
from brain_command.definition import get_command
from brain_command.render import RENDERERS

logger = logging.getLogger("brain_command.cli")

_YAML_SUFFIXES = (".yaml", ".yml")


class UsageError(Exception):
    """Bad input from the command line; maps to exit code 2."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="brain-command",
        description="Compile agent command definitions into rule/workflow documents.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Environment variables:\n"
            "  BRAIN_COMMAND_FORMAT     Output format    (default: 'md')\n"
            "  BRAIN_COMMAND_LOG_LEVEL  Logging level    (default: 'WARNING')\n"
        ),
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("BRAIN_COMMAND_LOG_LEVEL", "WARNING"),
        metavar="LEVEL",
        help="Logging level (env: BRAIN_COMMAND_LOG_LEVEL, default: 'WARNING')",
    )
    subparsers = parser.add_subparsers(dest="subcommand", metavar="<subcommand>")

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile a registered command or a YAML definition",
    )
    compile_parser.add_argument(
        "target",
        metavar="COMMAND_OR_FILE",
        help="Registered command id (e.g. task:create) or path to a .yaml definition",
    )
    compile_parser.add_argument(
        "--format",
        default=os.environ.get("BRAIN_COMMAND_FORMAT", "md"),
        choices=sorted(RENDERERS),
        help="Output format (env: BRAIN_COMMAND_FORMAT, default: 'md')",
    )
    compile_parser.add_argument(
        "--variables",
        default=None,
        metavar="JSON",
        help='JSON object of symbol overrides, e.g. \'{"HAS_AUTO_APPROVE": true}\'',
    )
    compile_parser.add_argument(
        "--output",
        default=None,
        metavar="PATH",
        help="Write the document to PATH instead of stdout",
    )

    subparsers.add_parser("list", help="List registered command ids")

    check_parser = subparsers.add_parser("check", help="Validate YAML definitions")
    check_parser.add_argument("files", nargs="+", metavar="FILE", help="YAML definition files")

    return parser


def configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise UsageError(f"Unknown log level {level!r}.")
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def parse_variables(raw: str | None) -> dict[str, Any]:
    """Decode --variables; it must be a JSON object."""
    if raw is None:
        return {}
    try:
        variables = json.loads(raw)
    except json.JSONDecodeError as error:
        raise UsageError(f"--variables is not valid JSON: {error}") from error
    if not isinstance(variables, dict):
        raise UsageError("--variables must be a JSON object.")
    for name in variables:
        try:
            normalize_name(name)
        except ValueError as error:
            raise UsageError(f"--variables: {error}") from None
    return variables


def is_definition_file(target: str) -> bool:
    return target.endswith(_YAML_SUFFIXES) or pathlib.Path(target).is_file()


def resolve_definition(target: str, variables: dict[str, Any]) -> CommandDefinition | None:
    """Build the definition named by target, or None when it is disabled.

    Raises:
        UsageError: unknown command id.
        DefinitionLoadError: malformed or unreadable YAML file.
    """
    if is_definition_file(target):
        definition = load_definition(target)
        if is_disabled(definition.id):
            return None
        load_env_instructions(definition, environ=os.environ)
        return definition.apply_variables(variables)

    try:
        get_command(target)
    except KeyError as error:
        raise UsageError(error.args[0]) from None
    if is_disabled(target):
        return None
    return build_command(target, environ=os.environ, variables=variables)


def report_failure(error: BrainCommandError) -> None:
    if isinstance(error, CompilationError):
        print(f"Error: {len(error.errors)} defect(s) in {error.command_id!r}:", file=sys.stderr)
        for defect in error.errors:
            print(f"  - {type(defect).__name__}: {defect}", file=sys.stderr)
    else:
        print(f"Error: {type(error).__name__}: {error}", file=sys.stderr)


# ─── Subcommands ──────────────────────────────────────────────────────────────


def cmd_compile(args: argparse.Namespace) -> int:
    # argparse only checks choices for values given on the command line.
    if args.format not in RENDERERS:
        choices = ", ".join(sorted(RENDERERS))
        raise UsageError(f"Unknown output format {args.format!r}. Choose one of: {choices}")
    variables = parse_variables(args.variables)
    try:
        definition = resolve_definition(args.target, variables)
    except DefinitionLoadError as error:
        print(f"Error: {error}", file=sys.stderr)
        return 2
    except BrainCommandError as error:
        report_failure(error)
        return 1
    if definition is None:
        logger.warning("%s is disabled by its _DISABLE environment variable", args.target)
        return 0

    try:
        document = definition.compile()
    except BrainCommandError as error:
        report_failure(error)
        return 1

    text = render(document, args.format)
    if args.output:
        pathlib.Path(args.output).write_text(text, encoding="utf-8")
        logger.info("wrote %s (%s) to %s", document.command_id, args.format, args.output)
    else:
        sys.stdout.write(text)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    for command_id in registered_commands():
        entry = get_command(command_id)
        suffix = " (disabled)" if is_disabled(command_id) else ""
        print(f"{command_id}{suffix}\t{entry.description}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    worst = 0
    for name in args.files:
        try:
            load_definition(name).compile()
        except DefinitionLoadError as error:
            print(f"Error: {error}", file=sys.stderr)
            worst = 2
            continue
        except BrainCommandError as error:
            print(f"{name}: FAILED", file=sys.stderr)
            report_failure(error)
            worst = max(worst, 1)
            continue
        print(f"{name}: OK")
    return worst


_HANDLERS = {
    "compile": cmd_compile,
    "list": cmd_list,
    "check": cmd_check,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.subcommand is None:
        parser.print_help()
        return 0

    try:
        configure_logging(args.log_level)
        return _HANDLERS[args.subcommand](args)
    except UsageError as error:
        print(f"Error: {error}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
