from __future__ import annotations

"""Error taxonomy shared by every command phase."""


class WorkerCLIError(RuntimeError):
    """Base class for errors reported by the command dispatcher."""


class ParseError(WorkerCLIError):
    """Raised when a flag is unknown, malformed, or fails validation."""


class HelpRequested(ParseError):
    """Raised when `-h/--help` is given to a command."""


class ValidationError(WorkerCLIError, ValueError):
    """Raised when positional arguments or cross-field constraints are invalid."""


class ConfigurationError(WorkerCLIError):
    """Raised when the connection profile cannot be established."""


class RemoteServiceError(WorkerCLIError):
    """Raised when a call against the task-queue service fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CredentialProbeError(WorkerCLIError):
    """Raised when the docker registry rejects the supplied credentials."""
