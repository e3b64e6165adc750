from __future__ import annotations
import calendar
from datetime import datetime, timezone
from typing import Optional


# Ordered: the first pattern that parses wins.
DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%m/%d/%Y",
]

TRUE_FLAGS = {"true", "t", "yes", "y", "1"}
FALSE_FLAGS = {"false", "f", "no", "n", "0"}


def parse_record_date(value) -> Optional[datetime]:
    if value is None or not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    for fmt in DATE_FORMATS:
        try:
            dt = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return dt.replace(tzinfo=timezone.utc)
    return None


def ensure_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def coerce_flag(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_FLAGS:
            return True
        if normalized in FALSE_FLAGS:
            return False
    return None


def safe_str(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def safe_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None
