from __future__ import annotations

"""Descriptor builders translating parsed flag values into typed requests."""

import os
from collections.abc import Sequence
from datetime import datetime

from .auth import DEFAULT_REGISTRY_URL, derive_docker_auth
from .errors import ValidationError
from .models import EMPTY_PAYLOAD, CodePackage, DockerCredentials, Schedule, Task
from .utils import parse_rfc3339, read_text_file

ZIP_EXTENSION = ".zip"


def _positive(value: int | None) -> int | None:
    """Return `value` when the user set it, `None` to let the service decide."""
    if value is None or value <= 0:
        return None
    return value


def _non_empty(value: str | None) -> str | None:
    if not value:
        return None
    return value


def _read_file(path: str, what: str) -> str:
    try:
        return read_text_file(path)
    except OSError as exc:
        raise ValidationError("could not read %s %s: %s" % (what, path, exc)) from exc


def _timestamp(option: str, value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_rfc3339(value)
    except ValueError as exc:
        raise ValidationError(
            "%s must be an RFC3339 timestamp, got: %s" % (option, value)
        ) from exc


def resolve_payload(payload: str | None, payload_file: str | None) -> str:
    """Pick the payload source: file first, then inline, then the empty object."""
    if payload_file:
        text = _read_file(payload_file, "payload file")
    else:
        text = payload or ""
    if not text:
        # The service rejects an empty body.
        return EMPTY_PAYLOAD
    return text


class DescriptorBuilder:
    """Builds task, schedule, code package and credential descriptors."""

    @staticmethod
    def build_task(
        code_name: str,
        *,
        payload: str | None = None,
        payload_file: str | None = None,
        priority: int | None = None,
        timeout: int | None = None,
        delay: int | None = None,
        cluster: str | None = None,
    ) -> Task:
        if not code_name.strip():
            raise ValidationError("queue takes one argument, a code name")
        return Task(
            code_name=code_name,
            payload=resolve_payload(payload, payload_file),
            priority=_positive(priority),
            timeout=_positive(timeout),
            delay=_positive(delay),
            cluster=_non_empty(cluster),
        )

    @staticmethod
    def build_schedule(
        code_name: str,
        *,
        payload: str | None = None,
        payload_file: str | None = None,
        priority: int | None = None,
        timeout: int | None = None,
        delay: int | None = None,
        max_concurrency: int | None = None,
        run_every: int | None = None,
        run_times: int | None = None,
        start_at: str | None = None,
        end_at: str | None = None,
        cluster: str | None = None,
    ) -> Schedule:
        if not code_name.strip():
            raise ValidationError("schedule takes one argument, a code name")
        return Schedule(
            code_name=code_name,
            payload=resolve_payload(payload, payload_file),
            priority=_positive(priority),
            timeout=_positive(timeout),
            run_times=_positive(run_times),
            run_every=_positive(run_every),
            delay=_positive(delay),
            start_at=_timestamp("-start-at", start_at),
            end_at=_timestamp("-end-at", end_at),
            max_concurrency=_positive(max_concurrency),
            cluster=_non_empty(cluster),
        )

    @staticmethod
    def build_code_package(
        name: str | None,
        positionals: Sequence[str],
        *,
        zip_path: str | None = None,
        config: str | None = None,
        config_file: str | None = None,
        max_concurrency: int | None = None,
        retries: int | None = None,
        retries_delay: int | None = None,
        host: str | None = None,
    ) -> CodePackage:
        """Build an upload descriptor from `IMAGE [COMMAND...]` positionals."""
        if not positionals:
            raise ValidationError(
                "upload takes at least one argument. see iron-worker upload -h"
            )
        if not name:
            raise ValidationError("must specify -name for your worker")

        if zip_path:
            if not zip_path.endswith(ZIP_EXTENSION):
                raise ValidationError(
                    "file extension must be %s, got: %s" % (ZIP_EXTENSION, zip_path)
                )
            try:
                os.stat(zip_path)
            except OSError as exc:
                raise ValidationError("could not stat %s: %s" % (zip_path, exc)) from exc

        package_config = _non_empty(config)
        if config_file:
            package_config = _read_file(config_file, "config file")

        return CodePackage(
            name=name,
            image=positionals[0],
            command=" ".join(positionals[1:]).strip(),
            zip_path=_non_empty(zip_path),
            max_concurrency=_positive(max_concurrency),
            retries=_positive(retries),
            retries_delay=_positive(retries_delay),
            config=package_config,
            host=_non_empty(host),
        )

    @staticmethod
    def build_docker_credentials(
        *,
        email: str | None = None,
        auth: str | None = None,
        url: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> DockerCredentials:
        """Apply the credential combination rule and derive the auth token."""
        if not credentials_combination_valid(
            email=email, auth=auth, url=url, username=username, password=password
        ):
            raise ValidationError(
                "you should set both email and auth, or email and username/password"
            )

        if username and password:
            auth = derive_docker_auth(username, password)

        return DockerCredentials(
            url=url or DEFAULT_REGISTRY_URL,
            auth=auth or "",
            email=email or "",
        )


def credentials_combination_valid(
    *,
    email: str | None = None,
    auth: str | None = None,
    url: str | None = None,
    username: str | None = None,
    password: str | None = None,
) -> bool:
    """Return whether a set of registry flags forms a usable credential."""
    if not any([email, auth, url, username, password]):
        return True
    if not email:
        return False
    return bool(auth) or bool(username and password)
