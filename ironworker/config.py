from __future__ import annotations

"""Connection profile resolution from defaults, config files and environment.

Sources are applied in order, later ones winning:

1. product defaults
2. the global file ``~/.iron.json``
3. family environment variables (``IRON_TOKEN``, ``IRON_PROJECT_ID``, ...)
4. product environment variables (``IRON_WORKER_TOKEN``, ...)
5. the local file ``./iron.json``

Command-line overrides for project id and token are applied last by
`resolve_connection_profile`.
"""

import json
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

from .errors import ConfigurationError

DEFAULT_PRODUCT = "iron_worker"
CONFIG_FILE_NAME = "iron.json"
GLOBAL_CONFIG_FILE_NAME = ".iron.json"
DASHBOARD_BASE_URL = "https://hud.iron.io/tq/projects/"

_PRESETS: dict[str, dict[str, Any]] = {
    "iron_worker": {
        "scheme": "https",
        "host": "worker-aws-us-east-1.iron.io",
        "port": 443,
        "api_version": "2",
    },
}

# Settings keys and the environment variable suffix each one is read from.
_SETTING_KEYS = {
    "token": "TOKEN",
    "project_id": "PROJECT_ID",
    "host": "HOST",
    "scheme": "SCHEME",
    "port": "PORT",
    "api_version": "API_VERSION",
}


@dataclass(frozen=True)
class ConnectionProfile:
    """Endpoint and identity used to address the task-queue service."""

    scheme: str = "https"
    host: str = ""
    port: int = 443
    api_version: str = "2"
    project_id: str = ""
    token: str = ""
    user_agent: str = "iron-worker-cli"

    @property
    def base_url(self) -> str:
        return "%s://%s:%d/%s" % (self.scheme, self.host, self.port, self.api_version)

    @property
    def dashboard_url(self) -> str:
        return DASHBOARD_BASE_URL + self.project_id + "/"


def _coerce_port(value: Any, source: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("invalid port %r in %s" % (value, source)) from exc


def _apply(settings: dict[str, Any], values: Mapping[str, Any], source: str) -> None:
    """Copy known, non-empty settings from `values` into `settings`."""
    for key in _SETTING_KEYS:
        value = values.get(key)
        if value is None or value == "":
            continue
        if key == "port":
            settings[key] = _coerce_port(value, source)
        else:
            settings[key] = str(value)


def _read_config_file(path: str) -> dict[str, Any]:
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fp:
            data = json.load(fp)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigurationError("could not read config file %s: %s" % (path, exc)) from exc
    if not isinstance(data, dict):
        raise ConfigurationError("config file %s must contain a JSON object" % path)
    return data


def _apply_file(
    settings: dict[str, Any], path: str, product: str, env: str | None
) -> None:
    """Apply a config file: top level, product section, then named env section."""
    data = _read_config_file(path)
    if not data:
        return

    _apply(settings, data, path)
    product_section = data.get(product)
    if isinstance(product_section, dict):
        _apply(settings, product_section, path)

    if env:
        env_section = data.get(env)
        if isinstance(env_section, dict):
            _apply(settings, env_section, path)
            env_product_section = env_section.get(product)
            if isinstance(env_product_section, dict):
                _apply(settings, env_product_section, path)


def _apply_environment(
    settings: dict[str, Any], environ: Mapping[str, str], prefix: str
) -> None:
    values = {
        key: environ.get(prefix + "_" + suffix) for key, suffix in _SETTING_KEYS.items()
    }
    _apply(settings, values, "environment")


def load_connection_profile(
    product: str = DEFAULT_PRODUCT,
    env: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    cwd: str | None = None,
    home: str | None = None,
) -> ConnectionProfile:
    """Discover a base connection profile without command-line overrides."""
    if environ is None:
        environ = os.environ
    if cwd is None:
        cwd = os.getcwd()
    if home is None:
        home = os.path.expanduser("~")

    family = product.split("_", 1)[0].upper()
    settings: dict[str, Any] = dict(_PRESETS.get(product, {}))

    _apply_file(settings, os.path.join(home, GLOBAL_CONFIG_FILE_NAME), product, env)
    _apply_environment(settings, environ, family)
    _apply_environment(settings, environ, product.upper())
    _apply_file(settings, os.path.join(cwd, CONFIG_FILE_NAME), product, env)

    return ConnectionProfile(**settings)


def resolve_connection_profile(
    *,
    project_id: str | None = None,
    token: str | None = None,
    env: str | None = None,
    product: str = DEFAULT_PRODUCT,
    environ: Mapping[str, str] | None = None,
    cwd: str | None = None,
    home: str | None = None,
) -> ConnectionProfile:
    """Merge discovered settings with flag overrides and require an identity."""
    profile = load_connection_profile(
        product, env, environ=environ, cwd=cwd, home=home
    )
    if project_id:
        profile = replace(profile, project_id=project_id)
    if token:
        profile = replace(profile, token=token)

    if not profile.project_id:
        raise ConfigurationError(
            "did not find project id in any config files or env variables"
        )
    if not profile.token:
        raise ConfigurationError("did not find token in any config files or env variables")
    return profile
