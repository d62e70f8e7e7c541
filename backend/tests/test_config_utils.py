from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from config import Settings
from rpc.dispatcher import flat_method_to_tool
from rpc.envelope import request_id_of
from utils.datetime_utils import parse_calendar_date


def test_development_settings_skip_security_gate():
    Settings(
        ENVIRONMENT="development",
        CORS_ORIGINS=["*"],
        SECURITY_HEADERS_ENABLED=False,
    ).validate_security_configuration()


def test_production_rejects_wildcard_cors():
    settings = Settings(ENVIRONMENT="production", CORS_ORIGINS=["*"])
    with pytest.raises(RuntimeError, match="CORS_ORIGINS"):
        settings.validate_security_configuration()


def test_staging_requires_security_headers():
    settings = Settings(
        ENVIRONMENT="staging",
        CORS_ORIGINS=["https://leanlog.example"],
        SECURITY_HEADERS_ENABLED=False,
    )
    with pytest.raises(RuntimeError, match="SECURITY_HEADERS_ENABLED"):
        settings.validate_security_configuration()


def test_production_accepts_hardened_settings():
    Settings(
        ENVIRONMENT="production",
        CORS_ORIGINS=["https://leanlog.example"],
    ).validate_security_configuration()


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-03-05", date(2024, 3, 5)),
        (" 2024-03-05 ", date(2024, 3, 5)),
        ("2024-03-05T08:15:00Z", date(2024, 3, 5)),
        ("2024-03-05T23:30:00-05:00", date(2024, 3, 6)),
        ("2024-03-05T23:30:00", date(2024, 3, 5)),
        (date(2024, 3, 5), date(2024, 3, 5)),
        (datetime(2024, 3, 5, 1, 0, tzinfo=timezone(timedelta(hours=3))), date(2024, 3, 4)),
    ],
)
def test_parse_calendar_date_accepts_dates_and_iso_datetimes(value, expected):
    assert parse_calendar_date(value) == expected


@pytest.mark.parametrize("value", [None, "", "tomorrow", "2024-02-30", "05/03/2024", 20240305])
def test_parse_calendar_date_rejects_other_values(value):
    with pytest.raises(ValueError):
        parse_calendar_date(value)


@pytest.mark.parametrize(
    "method,expected",
    [
        ("entries.update", "entries_update"),
        ("entries.bulkAdd", "entries_bulkAdd"),
        ("weight.get_latest", "weight_get_latest"),
        ("tools/call", None),
        ("entries", None),
        (".update", None),
        ("entries.", None),
    ],
)
def test_flat_method_to_tool(method, expected):
    assert flat_method_to_tool(method) == expected


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"id": 7}, 7),
        ({"id": "abc"}, "abc"),
        ({"id": True}, None),
        ({"id": [1]}, None),
        ({}, None),
        ([{"id": 1}], None),
    ],
)
def test_request_id_of(payload, expected):
    assert request_id_of(payload) == expected
