from __future__ import annotations

import argparse
import sys

from .client import _resolve_client_version
from .commands import COMMANDS, PROG, Command, GlobalOptions
from .errors import HelpRequested, ParseError, WorkerCLIError


def _emit_commands() -> None:
    sys.stderr.write("commands:\n")
    for name in COMMANDS:
        sys.stderr.write("  %s\n" % name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        allow_abbrev=False,
        description="Upload code packages, queue and schedule tasks on the task-queue service.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Trace requests sent to the service on stderr",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s " + _resolve_client_version(),
    )
    parser.add_argument(
        "--token",
        "-token",
        default="",
        help="Token override (default: config files and IRON_TOKEN)",
    )
    parser.add_argument(
        "--project-id",
        "-project-id",
        dest="project_id",
        default="",
        help="Project id override (default: config files and IRON_PROJECT_ID)",
    )
    parser.add_argument(
        "--env",
        "-env",
        default="",
        help="Named environment section to read from config files",
    )
    parser.add_argument("command", help="One of: %s" % ", ".join(COMMANDS))
    parser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def run_command(command: Command, args: list[str]) -> int:
    """Drive one command through flags, args, config and run."""
    try:
        command.parse_flags(args)
    except HelpRequested:
        command.usage()()
        return 2
    except ParseError as exc:
        sys.stderr.write(f"error: {exc}\n")
        command.usage()()
        return 2

    try:
        command.validate_args()
        command.configure()
    except WorkerCLIError as exc:
        sys.stderr.write(f"error: {exc}\n")
        command.close()
        return 1

    try:
        return command.run()
    except WorkerCLIError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1
    finally:
        command.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)

    command_class = COMMANDS.get(ns.command)
    if command_class is None:
        sys.stderr.write(f"error: unknown command {ns.command!r}\n")
        _emit_commands()
        return 2

    options = GlobalOptions(
        project_id=ns.project_id,
        token=ns.token,
        env=ns.env,
        verbose=bool(ns.verbose),
    )
    return run_command(command_class(options), list(ns.args))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
