"""Command-line client for uploading, queueing and scheduling worker tasks."""

from .builder import DescriptorBuilder, credentials_combination_valid, resolve_payload
from .client import WorkerClient
from .commands import COMMANDS, Command, GlobalOptions
from .config import ConnectionProfile, load_connection_profile, resolve_connection_profile
from .errors import (
    ConfigurationError,
    CredentialProbeError,
    HelpRequested,
    ParseError,
    RemoteServiceError,
    ValidationError,
    WorkerCLIError,
)
from .models import CodeInfo, CodePackage, DockerCredentials, Schedule, Task, TaskInfo

__all__ = [
    "COMMANDS",
    "Command",
    "GlobalOptions",
    "CodeInfo",
    "CodePackage",
    "ConfigurationError",
    "ConnectionProfile",
    "CredentialProbeError",
    "DescriptorBuilder",
    "DockerCredentials",
    "HelpRequested",
    "ParseError",
    "RemoteServiceError",
    "Schedule",
    "Task",
    "TaskInfo",
    "ValidationError",
    "WorkerCLIError",
    "WorkerClient",
    "credentials_combination_valid",
    "load_connection_profile",
    "resolve_connection_profile",
    "resolve_payload",
]
