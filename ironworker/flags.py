from __future__ import annotations

"""Per-command flag declaration and validation.

Every command instance builds its own `WorkerFlagSet`; nothing is registered
on a process-wide parser. Flags accept the single-dash spelling used by the
legacy tool (``-payload``) as well as the GNU spelling (``--payload``).
"""

import argparse
import sys
from typing import Any, NoReturn, TextIO

from .errors import HelpRequested, ParseError
from .utils import parse_rfc3339

PRIORITIES = (0, 1, 2)


class _RaisingArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing and exiting."""

    def error(self, message: str) -> NoReturn:
        raise ParseError(message)


class WorkerFlagSet:
    """Typed, named command-line options for one command invocation."""

    def __init__(self, prog: str, usage: str, *, remainder: bool = False) -> None:
        self.remainder = remainder
        self.values = argparse.Namespace()
        self._positionals: list[str] = []
        self._parser = _RaisingArgumentParser(
            prog=prog,
            usage=usage,
            add_help=False,
            allow_abbrev=False,
            formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        )
        self._parser.add_argument(
            "-h", "--help", action="store_true", default=False, help=argparse.SUPPRESS
        )
        if remainder:
            self._parser.add_argument(
                "positionals", nargs=argparse.REMAINDER, help=argparse.SUPPRESS
            )
        else:
            self._parser.add_argument("positionals", nargs="*", help=argparse.SUPPRESS)

    def _string(self, name: str, help_text: str, default: str = "") -> None:
        self._parser.add_argument(
            "-" + name,
            "--" + name,
            dest=name.replace("-", "_"),
            default=default,
            metavar="VALUE",
            help=help_text,
        )

    def _int(self, name: str, help_text: str, default: int = 0) -> None:
        self._parser.add_argument(
            "-" + name,
            "--" + name,
            dest=name.replace("-", "_"),
            type=int,
            default=default,
            metavar="N",
            help=help_text,
        )

    def _bool(self, name: str, help_text: str) -> None:
        self._parser.add_argument(
            "-" + name,
            "--" + name,
            dest=name.replace("-", "_"),
            action="store_true",
            default=False,
            help=help_text,
        )

    # Task and schedule flags.
    def payload(self) -> None:
        self._string("payload", "give worker payload")

    def payload_file(self) -> None:
        self._string("payload-file", "give worker payload of file contents")

    def priority(self) -> None:
        self._int("priority", "0(default), 1 or 2")

    def timeout(self) -> None:
        self._int("timeout", "0 is default (3600 seconds on the service), max is 3600")

    def delay(self) -> None:
        self._int("delay", "seconds to delay before queueing task")

    def wait(self) -> None:
        self._bool("wait", "wait for task to complete and print log")

    def cluster(self) -> None:
        self._string("cluster", "optional: specify cluster to queue task on")

    def max_concurrency(self) -> None:
        self._int(
            "max-concurrency",
            "max workers to run in parallel. default is no limit",
        )

    def run_every(self) -> None:
        self._int("run-every", "time between runs in seconds (>= 60), default is run once")

    def run_times(self) -> None:
        self._int("run-times", "number of times a task will run")

    def start_at(self) -> None:
        self._string("start-at", "time or datetime in RFC3339 format: '2006-01-02T15:04:05Z'")

    def end_at(self) -> None:
        self._string("end-at", "time or datetime in RFC3339 format: '2006-01-02T15:04:05Z'")

    # Code package flags.
    def name(self) -> None:
        self._string("name", "name of code package")

    def config(self) -> None:
        self._string("config", "optional configuration string for the code package")

    def config_file(self) -> None:
        self._string("config-file", "optional configuration file for the code package")

    def retries(self) -> None:
        self._int("retries", "max times to retry failed task, max 10, default 0")

    def retries_delay(self) -> None:
        self._int("retries-delay", "time between retries, in seconds. default 0")

    def zip(self) -> None:
        self._string("zip", "optional: upload code in a .zip file")

    def host(self) -> None:
        self._string("host", "optional: host name to expose the worker at")

    # Docker registry flags.
    def docker_username(self) -> None:
        self._string("username", "docker repo user name")

    def docker_password(self) -> None:
        self._string("password", "docker repo password")

    def docker_email(self) -> None:
        self._string("email", "docker repo user email")

    def docker_auth(self) -> None:
        self._string("auth", "docker repo auth token, base64 of 'username:password'")

    def docker_url(self) -> None:
        self._parser.add_argument(
            "-url",
            "--url",
            "-repo-url",
            "--repo-url",
            dest="url",
            default="",
            metavar="VALUE",
            help="docker repo url, if you're using custom repo",
        )

    def parse(self, args: list[str]) -> argparse.Namespace:
        """Parse `args`, raising `ParseError` or `HelpRequested`."""
        args = list(args)
        if self.remainder:
            ns = self._parser.parse_args(args)
        else:
            ns = self._parser.parse_intermixed_args(args)
        if ns.help:
            raise HelpRequested("help requested")

        positionals = list(ns.positionals or [])
        if self.remainder and positionals and positionals[0] == "--":
            positionals = positionals[1:]
        self._positionals = positionals
        self.values = ns
        return ns

    def value(self, name: str, default: Any = None) -> Any:
        return getattr(self.values, name.replace("-", "_"), default)

    def args(self) -> list[str]:
        return list(self._positionals)

    def narg(self) -> int:
        return len(self._positionals)

    def arg(self, index: int) -> str:
        if index < 0 or index >= len(self._positionals):
            return ""
        return self._positionals[index]

    def validate_all_flags(self) -> None:
        """Check flag values that argparse types cannot express."""
        priority = self.value("priority")
        if priority is not None and priority not in PRIORITIES:
            raise ParseError("priority must be 0, 1 or 2, got: %d" % priority)

        for name in (
            "timeout",
            "delay",
            "max-concurrency",
            "run-every",
            "run-times",
            "retries",
            "retries-delay",
        ):
            number = self.value(name)
            if number is not None and number < 0:
                raise ParseError("-%s cannot be negative" % name)

        parsed = {}
        for name in ("start-at", "end-at"):
            text = self.value(name)
            if not text:
                continue
            try:
                parsed[name] = parse_rfc3339(text)
            except ValueError as exc:
                raise ParseError(
                    "-%s must be an RFC3339 timestamp, got: %s" % (name, text)
                ) from exc

        if "start-at" in parsed and "end-at" in parsed:
            if parsed["end-at"] < parsed["start-at"]:
                raise ParseError("-end-at cannot be before -start-at")

    def format_help(self) -> str:
        return self._parser.format_help()

    def print_defaults(self, stream: TextIO | None = None) -> None:
        """Write usage and flag defaults to `stream` (stderr by default)."""
        if stream is None:
            stream = sys.stderr
        stream.write(self.format_help())
