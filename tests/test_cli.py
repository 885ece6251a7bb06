from __future__ import annotations

from pathlib import Path

import pytest

from ironworker import cli
from ironworker.cli import build_parser, main
from ironworker.commands import QueueCommand


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for key in ("TOKEN", "PROJECT_ID"):
        monkeypatch.delenv("IRON_" + key, raising=False)
        monkeypatch.delenv("IRON_WORKER_" + key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)


def test_global_flags_before_command() -> None:
    parser = build_parser()
    ns = parser.parse_args(
        ["--verbose", "-project-id", "p1", "--token", "tok", "queue", "-wait", "mytask"]
    )
    assert ns.verbose is True
    assert ns.project_id == "p1"
    assert ns.token == "tok"
    assert ns.command == "queue"
    assert ns.args == ["-wait", "mytask"]


def test_unknown_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["frobnicate"]) == 2
    err = capsys.readouterr().err
    assert "unknown command 'frobnicate'" in err
    assert "schedule" in err


def test_parse_error_prints_usage(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["queue", "-bogus", "mytask"]) == 2
    err = capsys.readouterr().err
    assert err.startswith("error: ")
    assert "usage: iron-worker queue" in err


def test_validation_error_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["status"]) == 1
    assert "status takes one argument, a task_id" in capsys.readouterr().err


def test_missing_identity_reported(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["status", "t1"]) == 1
    assert "did not find project id" in capsys.readouterr().err


def test_global_options_reach_command(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def _fake_run_command(command, args):  # noqa: ANN001
        seen["command"] = command
        seen["args"] = args
        return 0

    monkeypatch.setattr(cli, "run_command", _fake_run_command)
    assert main(["--token", "tok", "--env", "staging", "queue", "mytask"]) == 0
    assert isinstance(seen["command"], QueueCommand)
    assert seen["command"].options.token == "tok"
    assert seen["command"].options.env == "staging"
    assert seen["args"] == ["mytask"]
