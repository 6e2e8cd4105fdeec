"""Time-slot validation.

Pure functions with no I/O, meant to run before any store call so that
format mistakes are reported without a round trip.
"""

import re
from datetime import date, datetime, time

from cureveda.scheduling.errors import ValidationError

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
DATETIME_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}$')

DATE_FORMAT = '%Y-%m-%d'
TIME_FORMAT = '%H:%M'
DATETIME_FORMAT = '%Y-%m-%d %H:%M'


def validate_date_string(value: str | None) -> bool:
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False
    return True


def validate_time_string(value: str | None) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def validate_slot_range(start_time: str | None, end_time: str | None) -> bool:
    if not validate_time_string(start_time) or not validate_time_string(end_time):
        return False
    # Zero-padded HH:MM strings order the same way as the times they name.
    return end_time > start_time


def parse_date(value: date | str | None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not validate_date_string(value):
        raise ValidationError(f'Invalid date {value!r}; expected a real calendar date as YYYY-MM-DD.', value=value)
    return datetime.strptime(value, DATE_FORMAT).date()


def parse_time(value: time | str | None) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not validate_time_string(value):
        raise ValidationError(f'Invalid time {value!r}; expected 24-hour HH:MM.', value=value)
    return datetime.strptime(value, TIME_FORMAT).time()


def parse_datetime_string(value: datetime | str | None) -> datetime:
    """Parse a ``YYYY-MM-DD HH:MM`` wall-clock value into a naive local datetime."""
    if isinstance(value, datetime):
        return to_local_naive(value).replace(second=0, microsecond=0)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('A new time is required (YYYY-MM-DD HH:MM).', value=value)

    normalized = value.strip()
    if not DATETIME_PATTERN.match(normalized):
        raise ValidationError(f'Invalid time {value!r}; expected YYYY-MM-DD HH:MM.', value=value)
    try:
        return datetime.strptime(normalized.replace('T', ' '), DATETIME_FORMAT)
    except ValueError as exc:
        raise ValidationError(f'Invalid time {value!r}; not a real date and time.', value=value) from exc


def require_valid_slot(slot_date: date | str, start_time: time | str, end_time: time | str) -> tuple[date, time, time]:
    parsed_date = parse_date(slot_date)
    parsed_start = parse_time(start_time)
    parsed_end = parse_time(end_time)

    if parsed_end <= parsed_start:
        raise ValidationError(
            'End time must be after start time on the same day.',
            start_time=parsed_start.strftime(TIME_FORMAT),
            end_time=parsed_end.strftime(TIME_FORMAT),
        )

    return parsed_date, parsed_start, parsed_end


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
