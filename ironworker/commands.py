from __future__ import annotations

"""Subcommands and their shared lifecycle.

Every command goes through the same phases, in order:

1. `parse_flags(args)` - declare and parse the command's flags
2. `validate_args()`   - check positionals and cross-field rules, build the descriptor
3. `configure()`       - resolve the connection profile and check it against the service
4. `run()`             - perform the remote call(s) and print the result

A phase that raises stops the pipeline; later phases are never reached.
`run()` reports service failures itself and returns an exit code.
"""

import sys
from dataclasses import dataclass
from typing import Callable

import httpx

from .auth import probe_registry
from .builder import DescriptorBuilder
from .client import WorkerClient
from .config import ConnectionProfile, resolve_connection_profile
from .errors import ConfigurationError, RemoteServiceError, ValidationError
from .flags import WorkerFlagSet
from .models import CodePackage, DockerCredentials, Schedule, Task
from .utils import BLANKS, LINES, dashboard_link

PROG = "iron-worker"


def _out(text: str = "") -> None:
    sys.stdout.write(text + "\n")


@dataclass(frozen=True)
class GlobalOptions:
    """Options given before the command name; shared by every command."""

    project_id: str = ""
    token: str = ""
    env: str = ""
    verbose: bool = False


class Command:
    """Base for all commands: holds the profile, the client and the flag set."""

    name = ""
    usage_line = ""
    remainder = False

    def __init__(
        self,
        options: GlobalOptions | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self.options = options if options is not None else GlobalOptions()
        self.transport = transport
        self.poll_interval = poll_interval
        self.flags = WorkerFlagSet(
            prog="%s %s" % (PROG, self.name),
            usage="%s %s" % (PROG, self.usage_line),
            remainder=self.remainder,
        )
        self.profile: ConnectionProfile | None = None
        self.client: WorkerClient | None = None

    def declare_flags(self) -> None:
        """Register command specific flags on `self.flags`."""

    def parse_flags(self, args: list[str]) -> None:
        self.declare_flags()
        self.flags.parse(args)
        self.flags.validate_all_flags()

    def validate_args(self) -> None:
        raise NotImplementedError

    def configure(self) -> None:
        """Resolve the connection profile and print the project it points at."""
        profile = resolve_connection_profile(
            project_id=self.options.project_id or None,
            token=self.options.token or None,
            env=self.options.env or None,
        )
        _out("%s Configuring client" % LINES)

        client = WorkerClient(
            profile,
            transport=self.transport,
            poll_interval=self.poll_interval,
            verbose=self.options.verbose,
        )
        try:
            project_name = client.project_name()
        except RemoteServiceError as exc:
            client.close()
            raise ConfigurationError(
                "could not load project %s: %s" % (profile.project_id, exc)
            ) from exc

        self.profile = profile
        self.client = client
        _out("%s Project '%s' with id='%s'" % (BLANKS, project_name, profile.project_id))

    def usage(self) -> Callable[[], None]:
        """Return a routine that prints usage and flag defaults to stderr."""

        def _usage() -> None:
            self.flags.print_defaults(sys.stderr)

        return _usage

    def run(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    def connected(self) -> WorkerClient:
        """Return the client bound during configure."""
        if self.client is None or self.profile is None:
            raise ConfigurationError("%s has not been configured" % self.name)
        return self.client

    def link(self, resource: str, identifier: str) -> str:
        if self.profile is None:
            raise ConfigurationError("%s has not been configured" % self.name)
        return dashboard_link(self.profile, resource, identifier)


class UploadCommand(Command):
    name = "upload"
    usage_line = "upload [-zip my.zip] -name NAME [OPTIONS] some/image[:tag] [command...]"
    remainder = True

    code: CodePackage

    def declare_flags(self) -> None:
        self.flags.name()
        self.flags.max_concurrency()
        self.flags.retries()
        self.flags.retries_delay()
        self.flags.config()
        self.flags.config_file()
        self.flags.zip()
        self.flags.host()

    def validate_args(self) -> None:
        value = self.flags.value
        self.code = DescriptorBuilder.build_code_package(
            value("name"),
            self.flags.args(),
            zip_path=value("zip"),
            config=value("config"),
            config_file=value("config-file"),
            max_concurrency=value("max-concurrency"),
            retries=value("retries"),
            retries_delay=value("retries-delay"),
            host=value("host"),
        )

    def run(self) -> int:
        client = self.connected()
        _out("%s Uploading worker '%s'" % (LINES, self.code.name))
        try:
            code = client.upload_code(self.code)
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1

        _out("%s Uploaded code package with id='%s'" % (BLANKS, code.id))
        if code.host:
            _out("%s Hosted at: '%s'" % (BLANKS, code.host))
        _out("%s %s" % (BLANKS, self.link("code", code.id)))
        return 0


class QueueCommand(Command):
    name = "queue"
    usage_line = "queue [OPTIONS] CODE_PACKAGE_NAME"

    task: Task

    def declare_flags(self) -> None:
        self.flags.payload()
        self.flags.payload_file()
        self.flags.priority()
        self.flags.timeout()
        self.flags.delay()
        self.flags.wait()
        self.flags.cluster()

    def validate_args(self) -> None:
        if self.flags.narg() != 1:
            raise ValidationError("queue takes one argument, a code name")
        value = self.flags.value
        self.task = DescriptorBuilder.build_task(
            self.flags.arg(0),
            payload=value("payload"),
            payload_file=value("payload-file"),
            priority=value("priority"),
            timeout=value("timeout"),
            delay=value("delay"),
            cluster=value("cluster"),
        )

    def run(self) -> int:
        client = self.connected()
        _out("%s Queueing task '%s'" % (LINES, self.task.code_name))
        try:
            ids = client.queue_tasks([self.task])
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1
        task_id = ids[0]

        _out("%s Queued task with id='%s'" % (BLANKS, task_id))
        _out("%s %s" % (BLANKS, self.link("jobs", task_id)))

        if not self.flags.value("wait"):
            return 0

        _out("%s Waiting for task %s" % (LINES, task_id))
        pending = client.wait_for_task_log(task_id)
        try:
            log = pending.result()
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1
        _out("%s Done" % LINES)
        _out("%s Printing Log:" % LINES)
        sys.stdout.write(log.decode("utf-8", errors="replace"))
        return 0


class ScheduleCommand(Command):
    name = "schedule"
    usage_line = "schedule [OPTIONS] CODE_PACKAGE_NAME"

    sched: Schedule

    def declare_flags(self) -> None:
        self.flags.payload()
        self.flags.payload_file()
        self.flags.priority()
        self.flags.timeout()
        self.flags.delay()
        self.flags.max_concurrency()
        self.flags.run_every()
        self.flags.run_times()
        self.flags.end_at()
        self.flags.start_at()
        self.flags.cluster()

    def validate_args(self) -> None:
        if self.flags.narg() != 1:
            raise ValidationError("schedule takes one argument, a code name")
        value = self.flags.value
        self.sched = DescriptorBuilder.build_schedule(
            self.flags.arg(0),
            payload=value("payload"),
            payload_file=value("payload-file"),
            priority=value("priority"),
            timeout=value("timeout"),
            delay=value("delay"),
            max_concurrency=value("max-concurrency"),
            run_every=value("run-every"),
            run_times=value("run-times"),
            start_at=value("start-at"),
            end_at=value("end-at"),
            cluster=value("cluster"),
        )

    def run(self) -> int:
        client = self.connected()
        _out("%s Scheduling task '%s'" % (LINES, self.sched.code_name))
        try:
            ids = client.schedule([self.sched])
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1
        sched_id = ids[0]

        _out("%s Scheduled task with id='%s'" % (BLANKS, sched_id))
        _out("%s %s" % (BLANKS, self.link("scheduled_jobs", sched_id)))
        return 0


class StatusCommand(Command):
    name = "status"
    usage_line = "status [OPTIONS] task_id"

    task_id = ""

    def validate_args(self) -> None:
        if self.flags.narg() != 1:
            raise ValidationError("status takes one argument, a task_id")
        self.task_id = self.flags.arg(0)

    def run(self) -> int:
        client = self.connected()
        _out("%s Getting status of task with id='%s'" % (LINES, self.task_id))
        try:
            info = client.task_info(self.task_id)
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1
        _out(info.status)
        return 0


class LogCommand(Command):
    name = "log"
    usage_line = "log [OPTIONS] task_id"

    task_id = ""

    def validate_args(self) -> None:
        if self.flags.narg() != 1:
            raise ValidationError("log takes one argument, a task_id")
        self.task_id = self.flags.arg(0)

    def run(self) -> int:
        client = self.connected()
        _out("%s Getting log for task with id='%s'" % (LINES, self.task_id))
        try:
            log = client.task_log(self.task_id)
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1
        _out(log.decode("utf-8", errors="replace"))
        return 0


class DockerLoginCommand(Command):
    name = "login"
    usage_line = "login --username USER --password PASS --email EMAIL [--auth TOKEN] [--repo-url URL]"

    credentials: DockerCredentials

    def declare_flags(self) -> None:
        self.flags.docker_auth()
        self.flags.docker_email()
        self.flags.docker_password()
        self.flags.docker_url()
        self.flags.docker_username()

    def validate_args(self) -> None:
        if self.flags.narg() != 0:
            raise ValidationError("login does not take positional arguments")
        value = self.flags.value
        self.credentials = DescriptorBuilder.build_docker_credentials(
            email=value("email"),
            auth=value("auth"),
            url=value("url"),
            username=value("username"),
            password=value("password"),
        )
        probe_registry(self.credentials, transport=self.transport)

    def run(self) -> int:
        client = self.connected()
        _out("%s Storing docker repo credentials" % LINES)
        try:
            msg = client.add_docker_credentials(self.credentials)
        except RemoteServiceError as exc:
            _out("%s %s" % (BLANKS, exc))
            return 1
        _out("%s Added docker repo credentials: %s" % (BLANKS, msg))
        return 0


COMMANDS: dict[str, type[Command]] = {
    command.name: command
    for command in (
        UploadCommand,
        QueueCommand,
        ScheduleCommand,
        StatusCommand,
        LogCommand,
        DockerLoginCommand,
    )
}
