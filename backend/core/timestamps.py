from datetime import date, datetime, time, timezone

from django.utils import timezone as django_timezone
from django.utils.dateparse import parse_date, parse_datetime

_FALLBACK_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%d/%b/%Y:%H:%M:%S %z",
]


def format_iso_timestamp(value: datetime) -> str:
    """Render as UTC ISO-8601 with millisecond precision and a ``Z`` suffix.

    Stored timestamps are compared as strings, so every value written or used
    in a range filter has to go through the same fixed-width format.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_iso_now() -> str:
    return format_iso_timestamp(django_timezone.now())


def parse_timestamp_value(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    candidate = str(value).strip()
    try:
        parsed = parse_datetime(candidate)
    except ValueError:
        parsed = None
    if parsed is not None:
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    try:
        parsed_date = parse_date(candidate)
    except ValueError:
        parsed_date = None
    if parsed_date is not None:
        return datetime.combine(parsed_date, time.min, tzinfo=timezone.utc)

    for fmt in _FALLBACK_FORMATS:
        try:
            dt = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    return None


def to_iso_timestamp(value) -> str:
    parsed = parse_timestamp_value(value)
    if parsed is None:
        raise ValueError(f"Unrecognized timestamp value: {value!r}")
    return format_iso_timestamp(parsed)
