from __future__ import annotations

import pytest

from api.params import parse_bool, parse_time_ms, parse_version


@pytest.mark.parametrize(
    "value, expected",
    [
        ("250", 250),
        ("500ms", 500),
        ("10s", 10_000),
        ("1.5s", 1_500),
        ("5m", 300_000),
        ("1h", 3_600_000),
        ("2d", 172_800_000),
        ("1w", 604_800_000),
        ("0", 0),
    ],
)
def test_parse_time_ms(value, expected):
    assert parse_time_ms(value) == expected


def test_parse_time_ms_missing_and_invalid():
    assert parse_time_ms(None) is None
    with pytest.raises(ValueError, match="ttl"):
        parse_time_ms("soon", "ttl")


def test_parse_bool():
    assert parse_bool(None) is None
    assert parse_bool(None, default=True) is True
    assert parse_bool("") is True
    assert parse_bool("true") is True
    assert parse_bool("false") is False
    assert parse_bool("off") is False
    assert parse_bool("0") is False


def test_parse_version():
    assert parse_version(None) is None
    assert parse_version("3") == 3
    with pytest.raises(ValueError):
        parse_version("three")


def test_parse_version_zero_means_no_version():
    assert parse_version("0") is None
