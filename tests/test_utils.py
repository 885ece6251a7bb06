from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ironworker.config import ConnectionProfile
from ironworker.utils import dashboard_link, format_rfc3339, parse_rfc3339, read_text_file


def test_parse_rfc3339_utc() -> None:
    assert parse_rfc3339("2030-01-01T00:00:00Z") == datetime(
        2030, 1, 1, tzinfo=timezone.utc
    )


def test_parse_rfc3339_offset_and_fraction() -> None:
    parsed = parse_rfc3339("2030-06-15T12:30:45.123456789+02:00")
    assert parsed.microsecond == 123456
    assert parsed.utcoffset() == timedelta(hours=2)
    assert parsed == datetime(2030, 6, 15, 10, 30, 45, 123456, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "text",
    [
        "2030-01-01",
        "2030-01-01T00:00:00",
        "2030-01-01 00:00:00Z",
        "2030-13-01T00:00:00Z",
        "tomorrow",
        "",
    ],
)
def test_parse_rfc3339_rejects_malformed(text: str) -> None:
    with pytest.raises(ValueError):
        parse_rfc3339(text)


def test_format_rfc3339_uses_z_for_utc() -> None:
    assert format_rfc3339(datetime(2030, 1, 1, tzinfo=timezone.utc)) == "2030-01-01T00:00:00Z"
    offset = timezone(timedelta(hours=-5))
    assert format_rfc3339(datetime(2030, 1, 1, 8, tzinfo=offset)) == "2030-01-01T08:00:00-05:00"


def test_format_rfc3339_rejects_naive_datetime() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        format_rfc3339(datetime(2030, 1, 1))


def test_read_text_file(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "payload.json"
    path.write_text('{"a": 1}', encoding="utf-8")
    assert read_text_file(str(path)) == '{"a": 1}'


def test_dashboard_link() -> None:
    profile = ConnectionProfile(host="example.com", project_id="p1", token="t")
    assert (
        dashboard_link(profile, "jobs", "abc")
        == "Check https://hud.iron.io/tq/projects/p1/jobs/abc for more info"
    )


def test_read_text_file_replaces_undecodable_bytes(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "payload.bin"
    path.write_bytes(b"\xff\xfe\x00bad")
    assert read_text_file(str(path)) == "\ufffd\ufffd\x00bad"
