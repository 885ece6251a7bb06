from __future__ import annotations

"""Small helpers shared by flag validation, descriptor building and output."""

import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ConnectionProfile

LINES = "----->"
BLANKS = "      "
INFO = " for more info"

_RFC3339_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?"
    r"([Zz]|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(text: str) -> datetime:
    """Parse a strict RFC3339 timestamp into a timezone-aware datetime."""
    match = _RFC3339_RE.match(text.strip())
    if not match:
        raise ValueError("not an RFC3339 timestamp: %r" % text)

    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    fraction, offset = match.group(7), match.group(8)

    microsecond = 0
    if fraction:
        # Sub-microsecond digits are truncated.
        microsecond = int(fraction[1:7].ljust(6, "0"))

    if offset in ("Z", "z"):
        tzinfo = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError("invalid RFC3339 offset: %r" % text)
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))

    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tzinfo)


def format_rfc3339(value: datetime) -> str:
    """Render a timezone-aware datetime as RFC3339, using `Z` for UTC."""
    if value.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def read_text_file(path: str) -> str:
    """Read a file fully as UTF-8; undecodable bytes become U+FFFD."""
    with open(path, "r", encoding="utf-8", errors="replace") as fp:
        return fp.read()


def dashboard_link(profile: "ConnectionProfile", resource: str, identifier: str) -> str:
    """Build the dashboard line for a task, schedule or code package."""
    return "Check %s%s/%s%s" % (profile.dashboard_url, resource, identifier, INFO)
