from __future__ import annotations

"""HTTP client for the task-queue service (API v2).

This module contains:
- request helpers mapping HTTP failures to `RemoteServiceError`
- the `WorkerClient` API for code packages, tasks, schedules and credentials
- the background wait-for-log helper used by `queue -wait`
"""

import json
import os
import sys
import time
from concurrent.futures import Future, ThreadPoolExecutor
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Any, Sequence, TextIO

import httpx

from .config import ConnectionProfile
from .errors import RemoteServiceError
from .models import CodeInfo, CodePackage, DockerCredentials, Schedule, Task, TaskInfo

RUNNING_STATES = {"queued", "preparing", "running"}


def _resolve_client_version() -> str:
    """Resolve installed package version for the User-Agent header."""
    try:
        return package_version("ironworker")
    except PackageNotFoundError:
        return "0.0.0"


def _error_message(response: httpx.Response) -> str:
    """Prefer the service's `msg` field over the bare status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("msg"):
        return "%s (HTTP %d)" % (body["msg"], response.status_code)
    return "HTTP %d %s" % (response.status_code, response.reason_phrase)


def _ids(body: Any, key: str) -> list[str]:
    """Extract resource ids from `{"<key>": [{"id": ...}, ...]}`."""
    if not isinstance(body, dict):
        raise RemoteServiceError("unexpected response body: %r" % (body,))
    entries = body.get(key)
    if not isinstance(entries, list):
        raise RemoteServiceError("response did not contain any %s" % key)
    ids = [str(entry["id"]) for entry in entries if isinstance(entry, dict) and entry.get("id")]
    if not ids:
        raise RemoteServiceError("response did not contain any %s" % key)
    return ids


class WorkerClient:
    """Synchronous client bound to one resolved connection profile."""

    def __init__(
        self,
        profile: ConnectionProfile,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 60.0,
        poll_interval: float = 1.0,
        log_retries: int = 10,
        verbose: bool = False,
        verbose_stream: TextIO | None = None,
    ) -> None:
        self.profile = profile
        self.poll_interval = poll_interval
        self.log_retries = max(1, log_retries)
        self.verbose = verbose
        self.verbose_stream = verbose_stream
        self.client_version = _resolve_client_version()
        self._http = httpx.Client(
            base_url=profile.base_url,
            transport=transport,
            timeout=httpx.Timeout(timeout),
            headers={
                "Authorization": "OAuth " + profile.token,
                "Accept": "application/json",
                "User-Agent": "%s/%s" % (profile.user_agent, self.client_version),
            },
        )
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> "WorkerClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        self._http.close()

    def _verbose_log(self, message: str) -> None:
        """Emit verbose diagnostic lines when `verbose=True`."""
        if not self.verbose:
            return
        stream = self.verbose_stream if self.verbose_stream is not None else sys.stderr
        try:
            stream.write(f"[ironworker] {message}\n")
            stream.flush()
        except Exception:
            pass

    def _project_path(self, suffix: str = "") -> str:
        return "/projects/%s%s" % (self.profile.project_id, suffix)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        self._verbose_log("-> %s %s" % (method, path))
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            self._verbose_log("<- %s %s failed: %s" % (method, path, exc))
            raise RemoteServiceError("request to %s failed: %s" % (path, exc)) from exc

        self._verbose_log("<- %s %s (status=%d)" % (method, path, response.status_code))
        if response.status_code >= 400:
            raise RemoteServiceError(
                _error_message(response), status_code=response.status_code
            )
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError("could not decode service response") from exc

    def project_name(self) -> str:
        """Fetch the human-readable project name; doubles as a credential check."""
        body = self._json(self._request("GET", self._project_path()))
        if not isinstance(body, dict):
            raise RemoteServiceError("unexpected project response: %r" % (body,))
        return str(body.get("name", ""))

    def queue_tasks(self, tasks: Sequence[Task]) -> list[str]:
        """Queue tasks and return the assigned ids in submission order."""
        body = {"tasks": [task.to_payload() for task in tasks]}
        response = self._request("POST", self._project_path("/tasks"), json=body)
        return _ids(self._json(response), "tasks")

    def schedule(self, schedules: Sequence[Schedule]) -> list[str]:
        """Create schedules and return the assigned ids in submission order."""
        body = {"schedules": [sched.to_payload() for sched in schedules]}
        response = self._request("POST", self._project_path("/schedules"), json=body)
        return _ids(self._json(response), "schedules")

    def task_info(self, task_id: str) -> TaskInfo:
        body = self._json(self._request("GET", self._project_path("/tasks/" + task_id)))
        if not isinstance(body, dict):
            raise RemoteServiceError("unexpected task response: %r" % (body,))
        return TaskInfo.from_dict(body)

    def task_log(self, task_id: str) -> bytes:
        response = self._request(
            "GET",
            self._project_path("/tasks/%s/log" % task_id),
            headers={"Accept": "text/plain"},
        )
        return response.content

    def upload_code(self, code: CodePackage) -> CodeInfo:
        """Register a code package, attaching the zip archive when one is given."""
        data = {"data": json.dumps(code.to_payload())}
        path = self._project_path("/codes")
        if code.zip_path:
            try:
                fp = open(code.zip_path, "rb")
            except OSError as exc:
                raise RemoteServiceError(
                    "could not open %s: %s" % (code.zip_path, exc)
                ) from exc
            with fp:
                files = {
                    "file": (os.path.basename(code.zip_path), fp, "application/zip")
                }
                response = self._request("POST", path, data=data, files=files)
        else:
            response = self._request("POST", path, data=data)

        body = self._json(response)
        if not isinstance(body, dict) or not body.get("id"):
            raise RemoteServiceError("upload response did not contain a code id")
        return CodeInfo(id=str(body["id"]), host=body.get("host") or None)

    def add_docker_credentials(self, credentials: DockerCredentials) -> str:
        """Store registry credentials for the project and return the service message."""
        response = self._request(
            "POST", self._project_path("/credentials"), json=credentials.to_payload()
        )
        body = self._json(response)
        if isinstance(body, dict):
            return str(body.get("msg", ""))
        return ""

    def wait_for_task(self, task_id: str) -> TaskInfo:
        """Poll task status until it leaves the queued/running states."""
        while True:
            info = self.task_info(task_id)
            if info.status not in RUNNING_STATES:
                self._verbose_log("task %s finished with status=%s" % (task_id, info.status))
                return info
            time.sleep(self.poll_interval)

    def _wait_and_fetch_log(self, task_id: str) -> bytes:
        self.wait_for_task(task_id)
        attempt = 0
        while True:
            attempt += 1
            try:
                return self.task_log(task_id)
            except RemoteServiceError as exc:
                # Logs are stored asynchronously after the task completes.
                if exc.status_code != 404 or attempt >= self.log_retries:
                    raise
                self._verbose_log(
                    "log for task %s not ready (attempt %d)" % (task_id, attempt)
                )
                time.sleep(self.poll_interval)

    def wait_for_task_log(self, task_id: str) -> "Future[bytes]":
        """Start waiting for a task in the background and return a one-shot future.

        The future resolves to the task log once the task has finished, or
        carries the `RemoteServiceError` that stopped the wait. Callers that
        need a deadline pass one to `Future.result(timeout=...)`.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="ironworker-wait"
            )
        return self._executor.submit(self._wait_and_fetch_log, task_id)
