from __future__ import annotations

import base64
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ironworker.builder import (
    DescriptorBuilder,
    credentials_combination_valid,
    resolve_payload,
)
from ironworker.errors import ValidationError


def test_resolve_payload_file_wins(tmp_path: Path) -> None:
    payload_file = tmp_path / "payload.json"
    payload_file.write_text('{"from": "file"}', encoding="utf-8")
    assert resolve_payload('{"from": "flag"}', str(payload_file)) == '{"from": "file"}'


def test_resolve_payload_inline_and_empty_sentinel() -> None:
    assert resolve_payload('{"from": "flag"}', "") == '{"from": "flag"}'
    assert resolve_payload("", "") == "{}"
    assert resolve_payload(None, None) == "{}"


def test_resolve_payload_empty_file_uses_sentinel(tmp_path: Path) -> None:
    payload_file = tmp_path / "empty.json"
    payload_file.write_text("", encoding="utf-8")
    assert resolve_payload('{"ignored": true}', str(payload_file)) == "{}"


def test_resolve_payload_missing_file_aborts(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="could not read payload file"):
        resolve_payload("{}", str(tmp_path / "missing.json"))


def test_build_task_omits_unset_values() -> None:
    task = DescriptorBuilder.build_task(
        "mytask", payload="", priority=0, timeout=0, delay=0, cluster=""
    )
    assert task.to_payload() == {"code_name": "mytask", "payload": "{}"}


def test_build_task_keeps_supplied_values() -> None:
    task = DescriptorBuilder.build_task(
        "mytask", payload='{"a": 1}', priority=2, timeout=60, delay=5, cluster="mem1"
    )
    assert task.to_payload() == {
        "code_name": "mytask",
        "payload": '{"a": 1}',
        "priority": 2,
        "timeout": 60,
        "delay": 5,
        "cluster": "mem1",
    }


def test_build_schedule_omits_zero_and_empty_fields() -> None:
    sched = DescriptorBuilder.build_schedule(
        "mytask",
        priority=0,
        timeout=0,
        delay=0,
        max_concurrency=0,
        run_every=0,
        run_times=0,
        start_at="",
        end_at="",
        cluster="",
    )
    assert sched.to_payload() == {"code_name": "mytask", "payload": "{}"}
    assert sched.start_at is None
    assert sched.max_concurrency is None


def test_build_schedule_keeps_positive_values_verbatim() -> None:
    sched = DescriptorBuilder.build_schedule(
        "mytask",
        payload='{"x": 1}',
        priority=1,
        delay=30,
        max_concurrency=4,
        run_every=3600,
        run_times=10,
        start_at="2030-01-01T00:00:00Z",
        end_at="2030-02-01T00:00:00+01:00",
        cluster="default",
    )
    assert sched.start_at == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert sched.to_payload() == {
        "code_name": "mytask",
        "payload": '{"x": 1}',
        "priority": 1,
        "run_times": 10,
        "run_every": 3600,
        "delay": 30,
        "start_at": "2030-01-01T00:00:00Z",
        "end_at": "2030-02-01T00:00:00+01:00",
        "max_concurrency": 4,
        "cluster": "default",
    }


def test_build_schedule_surfaces_malformed_timestamp() -> None:
    with pytest.raises(ValidationError, match="-end-at must be an RFC3339 timestamp"):
        DescriptorBuilder.build_schedule("mytask", end_at="next tuesday")


def test_build_code_package_full(tmp_path: Path) -> None:
    archive = tmp_path / "worker.zip"
    archive.write_bytes(b"PK")
    config_file = tmp_path / "config.json"
    config_file.write_text('{"db": "file"}', encoding="utf-8")

    code = DescriptorBuilder.build_code_package(
        "hello",
        ["iron/python:3", "python", "hello.py", " "],
        zip_path=str(archive),
        config='{"db": "inline"}',
        config_file=str(config_file),
        max_concurrency=2,
        retries=3,
        retries_delay=0,
        host="",
    )

    assert code.image == "iron/python:3"
    assert code.command == "python hello.py"
    assert code.zip_path == str(archive)
    assert code.to_payload() == {
        "name": "hello",
        "image": "iron/python:3",
        "command": "python hello.py",
        "max_concurrency": 2,
        "retries": 3,
        "config": '{"db": "file"}',
    }


def test_build_code_package_requires_image_and_name() -> None:
    with pytest.raises(ValidationError, match="at least one argument"):
        DescriptorBuilder.build_code_package("hello", [])
    with pytest.raises(ValidationError, match="must specify -name"):
        DescriptorBuilder.build_code_package("", ["iron/python"])


def test_zip_extension_checked_before_filesystem(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail_stat(path: str) -> None:
        raise AssertionError("stat should not be called for %s" % path)

    monkeypatch.setattr("ironworker.builder.os.stat", _fail_stat)
    with pytest.raises(ValidationError, match="file extension must be .zip"):
        DescriptorBuilder.build_code_package("hello", ["img"], zip_path="worker.tar.gz")


def test_missing_zip_rejected_with_filesystem_error(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="could not stat") as excinfo:
        DescriptorBuilder.build_code_package(
            "hello", ["img"], zip_path=str(tmp_path / "missing.zip")
        )
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


@pytest.mark.parametrize(
    "flags, valid",
    [
        ({}, True),
        ({"email": "a@b.com", "auth": "dG9rZW4="}, True),
        ({"email": "a@b.com", "username": "bob", "password": "secret"}, True),
        ({"email": "a@b.com", "auth": "x", "url": "https://r.example/v1/"}, True),
        ({"email": "a@b.com"}, False),
        ({"auth": "x"}, False),
        ({"url": "https://r.example/v1/"}, False),
        ({"username": "bob", "password": "secret"}, False),
        ({"email": "a@b.com", "username": "bob"}, False),
        ({"email": "a@b.com", "password": "secret"}, False),
    ],
)
def test_credentials_combination_gate(flags: dict[str, str], valid: bool) -> None:
    assert credentials_combination_valid(**flags) is valid


def test_build_docker_credentials_derives_auth_and_defaults_url() -> None:
    creds = DescriptorBuilder.build_docker_credentials(
        email="a@b.com", username="bob", password="secret"
    )
    assert creds.auth == base64.b64encode(b"bob:secret").decode("ascii")
    assert creds.url == "https://index.docker.io/v1/"
    assert creds.to_payload() == {
        "auth": creds.auth,
        "email": "a@b.com",
        "url": "https://index.docker.io/v1/",
    }


def test_build_docker_credentials_rejects_incomplete_flags() -> None:
    with pytest.raises(ValidationError, match="email and auth"):
        DescriptorBuilder.build_docker_credentials(username="bob", password="secret")


@pytest.mark.parametrize("build", [DescriptorBuilder.build_task, DescriptorBuilder.build_schedule])
def test_blank_code_name_rejected(build) -> None:  # noqa: ANN001
    with pytest.raises(ValidationError, match="takes one argument, a code name"):
        build("   ")
