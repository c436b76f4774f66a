"""
Parsing of Slurm timestamps and durations.

Slurm prints timestamps as ``2019-03-27T12:05:41`` and durations in one of
``minutes``, ``minutes:seconds``, ``hours:minutes:seconds``, ``days-hours``,
``days-hours:minutes`` or ``days-hours:minutes:seconds``. Limits that are not
bounded are printed as ``UNLIMITED`` (or ``INFINITE`` for some fields).
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Optional

from .errors import DurationUnlimited, ParseError

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

UNLIMITED_TOKENS = frozenset({"UNLIMITED", "INFINITE"})

# Values Slurm prints for timestamps that have not happened yet.
UNSET_TOKENS = frozenset({"", "Unknown", "None", "N/A", "(null)"})

_DAYS_RE = re.compile(r"^(?P<days>\d+)-(?P<rest>[\d:]+)$")


def parse_time(value: str) -> datetime:
    """Parse a Slurm timestamp.

    Raises:
        ParseError: If ``value`` does not match ``TIME_FORMAT``.
    """
    try:
        return datetime.strptime(value, TIME_FORMAT)
    except ValueError as e:
        raise ParseError(f"could not parse time: {value}", literal=value) from e


def parse_optional_time(value: str) -> Optional[datetime]:
    """Parse a Slurm timestamp, returning None for unset values."""
    if value.strip() in UNSET_TOKENS:
        return None
    return parse_time(value)


def parse_duration(value: str) -> timedelta:
    """Parse a Slurm duration string into a timedelta.

    Raises:
        DurationUnlimited: If the value is Slurm's "no limit" token.
        ParseError: If the value is not a recognised duration format.
    """
    text = value.strip()
    if text.upper() in UNLIMITED_TOKENS:
        raise DurationUnlimited(f"duration is unlimited: {value}")

    days = 0
    match = _DAYS_RE.match(text)
    if match:
        days = int(match.group("days"))
        parts = match.group("rest").split(":")
        # after "days-" the first component is always hours
        if len(parts) > 3 or not all(p.isdigit() for p in parts):
            raise ParseError(f"could not parse duration: {value}", literal=value)
        parts += ["0"] * (3 - len(parts))
        hours, minutes, seconds = (int(p) for p in parts)
    else:
        parts = text.split(":")
        if not text or len(parts) > 3 or not all(p.isdigit() for p in parts):
            raise ParseError(f"could not parse duration: {value}", literal=value)
        if len(parts) == 1:
            hours, minutes, seconds = 0, int(parts[0]), 0
        elif len(parts) == 2:
            hours, minutes, seconds = 0, int(parts[0]), int(parts[1])
        else:
            hours, minutes, seconds = (int(p) for p in parts)

    return timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds)


def format_duration(value: Optional[timedelta]) -> str:
    """Render a duration the way Slurm prints it (``D-HH:MM:SS``)."""
    if value is None:
        return "UNLIMITED"
    total = int(value.total_seconds())
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    if days:
        return f"{days}-{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
