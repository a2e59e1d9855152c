import re
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings

_HHMM = re.compile(r"([01]?[0-9]|2[0-3]):([0-5][0-9])")


def civil_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().civil_timezone)


def civil_now() -> datetime:
    """Current wall-clock time in the service's civil time zone (not UTC)."""
    return datetime.now(timezone.utc).astimezone(civil_zone())


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_hhmm(value: str) -> bool:
    return bool(_HHMM.fullmatch(value or ""))


def hhmm_to_minutes(value: str) -> int:
    """Convert a 24-hour "HH:MM" string to minutes after midnight."""
    match = _HHMM.fullmatch(value or "")
    if match is None:
        raise ValueError(f"invalid time of day: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute
