from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import ValidationError
from .utils import format_rfc3339

EMPTY_PAYLOAD = "{}"


def _put(body: dict[str, Any], key: str, value: Any) -> None:
    """Set `key` only when a value was supplied."""
    if value is None or value == "":
        return
    body[key] = value


@dataclass
class Task:
    """One immediate unit of work against a code package."""

    code_name: str
    payload: str = EMPTY_PAYLOAD
    priority: int | None = None
    timeout: int | None = None
    delay: int | None = None
    cluster: str | None = None

    def __post_init__(self) -> None:
        if not self.code_name.strip():
            raise ValidationError("code_name must be a non-empty string")

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code_name": self.code_name, "payload": self.payload}
        _put(body, "priority", self.priority)
        _put(body, "timeout", self.timeout)
        _put(body, "delay", self.delay)
        _put(body, "cluster", self.cluster)
        return body


@dataclass
class Schedule:
    """A recurring or deferred execution plan against a code package."""

    code_name: str
    payload: str = EMPTY_PAYLOAD
    priority: int | None = None
    timeout: int | None = None
    run_times: int | None = None
    run_every: int | None = None
    delay: int | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    max_concurrency: int | None = None
    cluster: str | None = None

    def __post_init__(self) -> None:
        if not self.code_name.strip():
            raise ValidationError("code_name must be a non-empty string")

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code_name": self.code_name, "payload": self.payload}
        _put(body, "priority", self.priority)
        _put(body, "timeout", self.timeout)
        _put(body, "run_times", self.run_times)
        _put(body, "run_every", self.run_every)
        _put(body, "delay", self.delay)
        if self.start_at is not None:
            body["start_at"] = format_rfc3339(self.start_at)
        if self.end_at is not None:
            body["end_at"] = format_rfc3339(self.end_at)
        _put(body, "max_concurrency", self.max_concurrency)
        _put(body, "cluster", self.cluster)
        return body


@dataclass
class CodePackage:
    """Registration data for a code package (image plus invocation command)."""

    name: str
    image: str = ""
    command: str = ""
    zip_path: str | None = None
    max_concurrency: int | None = None
    retries: int | None = None
    retries_delay: int | None = None
    config: str | None = None
    host: str | None = None

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name}
        _put(body, "image", self.image)
        _put(body, "command", self.command)
        _put(body, "max_concurrency", self.max_concurrency)
        _put(body, "retries", self.retries)
        _put(body, "retries_delay", self.retries_delay)
        _put(body, "config", self.config)
        _put(body, "host", self.host)
        return body


@dataclass
class DockerCredentials:
    """Registry credentials forwarded to the service; never holds a password."""

    url: str
    auth: str = ""
    email: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"auth": self.auth, "email": self.email, "url": self.url}


@dataclass
class TaskInfo:
    """Subset of the task resource returned by the service."""

    id: str
    status: str
    code_name: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskInfo":
        return cls(
            id=str(data.get("id", "")),
            status=str(data.get("status", "")),
            code_name=data.get("code_name"),
            raw=dict(data),
        )


@dataclass
class CodeInfo:
    """Identifier (and optional hosted address) of an uploaded code package."""

    id: str
    host: str | None = None
