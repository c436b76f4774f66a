"""Tests for Slurm time and duration parsing."""

from datetime import datetime, timedelta

import pytest

from slurm_bridge.errors import DurationUnlimited, ParseError
from slurm_bridge.timeparse import (
    format_duration,
    parse_duration,
    parse_optional_time,
    parse_time,
)


def test_parse_time():
    assert parse_time("2019-03-27T12:05:41") == datetime(2019, 3, 27, 12, 5, 41)


def test_parse_time_error_names_literal():
    with pytest.raises(ParseError) as exc_info:
        parse_time("27/03/2019")
    assert "27/03/2019" in str(exc_info.value)
    assert exc_info.value.literal == "27/03/2019"


@pytest.mark.parametrize("value", ["Unknown", "None", "N/A", ""])
def test_parse_optional_time_unset(value):
    assert parse_optional_time(value) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("5", timedelta(minutes=5)),
        ("05:30", timedelta(minutes=5, seconds=30)),
        ("01:02:03", timedelta(hours=1, minutes=2, seconds=3)),
        ("2-03", timedelta(days=2, hours=3)),
        ("2-03:04", timedelta(days=2, hours=3, minutes=4)),
        ("1-00:00:01", timedelta(days=1, seconds=1)),
        ("00:00:00", timedelta(0)),
    ],
)
def test_parse_duration_formats(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["UNLIMITED", "INFINITE", "unlimited"])
def test_parse_duration_unlimited_is_a_signal(value):
    with pytest.raises(DurationUnlimited):
        parse_duration(value)


@pytest.mark.parametrize("value", ["", "abc", "1:2:3:4", "1-2:3:4:5", "-5", "1-"])
def test_parse_duration_invalid(value):
    with pytest.raises(ParseError):
        parse_duration(value)


def test_unlimited_is_not_a_parse_error():
    assert not issubclass(DurationUnlimited, ParseError)


def test_format_duration():
    assert format_duration(None) == "UNLIMITED"
    assert format_duration(timedelta(minutes=90)) == "01:30:00"
    assert format_duration(timedelta(days=1, seconds=5)) == "1-00:00:05"
