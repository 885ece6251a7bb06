from __future__ import annotations

"""Docker registry credential helpers.

Credentials are checked against the registry itself before they are handed to
the task-queue service, so a typo in a password fails fast instead of
surfacing later as an image pull error on the workers.
"""

import base64
from typing import TYPE_CHECKING

import httpx

from .errors import CredentialProbeError

if TYPE_CHECKING:
    from .models import DockerCredentials

DEFAULT_REGISTRY_URL = "https://index.docker.io/v1/"


def derive_docker_auth(username: str, password: str) -> str:
    """Return the basic-auth token for `username:password`."""
    return base64.b64encode(("%s:%s" % (username, password)).encode("utf-8")).decode(
        "ascii"
    )


def registry_probe_url(url: str) -> str:
    return url + "users/"


def probe_registry(
    credentials: "DockerCredentials",
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = 10.0,
) -> httpx.Response:
    """Authenticate against the registry user endpoint with the given token."""
    headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip, deflate",
        "Authorization": "Basic " + credentials.auth,
        "Content-Type": "application/json",
    }
    try:
        with httpx.Client(transport=transport, timeout=timeout) as client:
            response = client.get(registry_probe_url(credentials.url), headers=headers)
    except httpx.HTTPError as exc:
        raise CredentialProbeError("Docker repo auth failed: %s" % exc) from exc

    if not response.is_success:
        raise CredentialProbeError(
            "Docker repo auth failed: HTTP %d from %s"
            % (response.status_code, credentials.url)
        )
    return response
