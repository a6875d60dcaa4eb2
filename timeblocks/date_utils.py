from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser
from tzlocal import get_localzone_name


logger = logging.getLogger(__name__)

DateValue = datetime | date


def system_timezone_name() -> str:
    try:
        name = get_localzone_name()
    except LookupError as exc:
        logger.warning("Could not detect the system timezone (%s). Using UTC.", exc)
        return "UTC"
    return name or "UTC"


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or system_timezone_name())
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '%s'. Falling back to UTC.", name)
        return ZoneInfo("UTC")


def timezone_label(tz: tzinfo) -> str:
    key = getattr(tz, "key", None)
    if isinstance(key, str) and key:
        return key
    return str(tz)


def today(tz: tzinfo) -> date:
    return datetime.now(tz).date()


def parse_target_date(raw: str | None, *, tz: tzinfo) -> date:
    if raw is None or not raw.strip():
        return today(tz)
    try:
        parsed = date_parser.isoparse(raw.strip())
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid date format: {raw}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed.date()


def is_date_only(raw: str) -> bool:
    text = raw.strip()
    return "T" not in text and len(text) <= 10


def parse_date_value(raw: object, *, tz: tzinfo) -> DateValue:
    """Parse a Notion date string.

    Date-only values (``2024-01-01``) come back as ``date``; anything with a
    time component comes back as an aware ``datetime`` in ``tz``. Naive
    datetimes are read as wall-clock time in ``tz``.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"Invalid date value: {raw!r}")
    try:
        parsed = date_parser.isoparse(raw.strip())
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid date value: {raw!r}") from exc
    if is_date_only(raw):
        return parsed.date()
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def as_local_datetime(value: DateValue, tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        return value.astimezone(tz)
    return datetime.combine(value, time.min, tzinfo=tz)


def local_day(value: DateValue, tz: tzinfo) -> date:
    if isinstance(value, datetime):
        return value.astimezone(tz).date()
    return value


def day_offset(value: DateValue, reference_date: date, tz: tzinfo) -> int:
    return (local_day(value, tz) - reference_date).days


def recalculate_instant(
    instant: datetime,
    reference_date: date,
    target_date: date,
    tz: tzinfo,
) -> datetime:
    local = instant.astimezone(tz)
    new_day = target_date + timedelta(days=day_offset(local, reference_date, tz))
    return datetime.combine(new_day, local.time(), tzinfo=tz)


def recalculate_date_value(
    value: DateValue,
    reference_date: date,
    target_date: date,
    tz: tzinfo,
) -> DateValue:
    if isinstance(value, datetime):
        return recalculate_instant(value, reference_date, target_date, tz)
    return target_date + timedelta(days=day_offset(value, reference_date, tz))


def serialize_date_value(value: DateValue, tz: tzinfo) -> str:
    # Notion reads offset-free wall time together with the time_zone label.
    if isinstance(value, datetime):
        return value.astimezone(tz).replace(tzinfo=None).isoformat()
    return value.isoformat()


def format_date(value: date) -> str:
    return value.isoformat()


def format_datetime(value: DateValue, tz: tzinfo) -> str:
    if isinstance(value, datetime):
        return value.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")
    return value.isoformat()
