from datetime import date, datetime, time, timedelta, timezone

import pytest

from cureveda.scheduling.errors import ValidationError
from cureveda.scheduling.validators import (
    parse_date,
    parse_datetime_string,
    parse_time,
    require_valid_slot,
    to_local_naive,
    validate_date_string,
    validate_slot_range,
    validate_time_string,
)


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('2025-09-25', True),
        ('2024-02-29', True),
        ('2025-02-30', False),
        ('2025-13-01', False),
        ('2025-9-25', False),
        ('25-09-2025', False),
        ('2025-09-25 10:00', False),
        ('', False),
        (None, False),
    ],
)
def test_validate_date_string(value, expected: bool) -> None:
    assert validate_date_string(value) is expected


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('00:00', True),
        ('09:30', True),
        ('23:59', True),
        ('24:00', False),
        ('9:30', False),
        ('09:60', False),
        ('09:30:00', False),
        (None, False),
    ],
)
def test_validate_time_string(value, expected: bool) -> None:
    assert validate_time_string(value) is expected


@pytest.mark.parametrize(
    ('start_time', 'end_time', 'expected'),
    [
        ('09:00', '10:00', True),
        ('10:00', '09:00', False),
        ('09:00', '09:00', False),
        ('23:00', '01:00', False),
        ('9:00', '10:00', False),
        ('09:00', None, False),
    ],
)
def test_validate_slot_range(start_time, end_time, expected: bool) -> None:
    assert validate_slot_range(start_time, end_time) is expected


def test_parse_date_accepts_date_objects_and_strings() -> None:
    assert parse_date('2025-09-25') == date(2025, 9, 25)
    assert parse_date(date(2025, 9, 25)) == date(2025, 9, 25)
    assert parse_date(datetime(2025, 9, 25, 11, 0)) == date(2025, 9, 25)


def test_parse_date_rejects_impossible_calendar_date() -> None:
    with pytest.raises(ValidationError) as exception_info:
        parse_date('2025-02-30')

    assert exception_info.value.details == {'value': '2025-02-30'}


def test_parse_time_drops_seconds() -> None:
    assert parse_time(time(9, 15, 42)) == time(9, 15)
    assert parse_time('09:15') == time(9, 15)


@pytest.mark.parametrize('value', ['2025-09-26 14:30', '2025-09-26T14:30', ' 2025-09-26 14:30 '])
def test_parse_datetime_string_accepts_supported_formats(value: str) -> None:
    assert parse_datetime_string(value) == datetime(2025, 9, 26, 14, 30)


@pytest.mark.parametrize('value', [None, '', '   ', 'tomorrow', '2025-09-26', '2025-02-30 10:00', '2025-09-26 25:00'])
def test_parse_datetime_string_rejects_missing_or_malformed_values(value) -> None:
    with pytest.raises(ValidationError):
        parse_datetime_string(value)


def test_require_valid_slot_returns_parsed_values() -> None:
    assert require_valid_slot('2025-09-25', '09:00', '10:00') == (date(2025, 9, 25), time(9, 0), time(10, 0))


def test_require_valid_slot_rejects_zero_length_slot() -> None:
    with pytest.raises(ValidationError) as exception_info:
        require_valid_slot('2025-09-25', '09:00', '09:00')

    assert exception_info.value.message == 'End time must be after start time on the same day.'


def test_to_local_naive_strips_timezone_after_conversion() -> None:
    aware = datetime(2025, 9, 25, 11, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))

    converted = to_local_naive(aware)

    assert converted.tzinfo is None
    assert converted == aware.astimezone().replace(tzinfo=None)
