"""Per-field value transforms applied while mapping counter rows."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import re


KIBIBYTE = 1024

# WMI DMTF datetime: yyyymmddHHMMSS.ffffff followed by a signed UTC offset in minutes
DMTF_PATTERN = re.compile(r'^(\d{14})\.(\d{6})([+-])(\d{3})$')


def as_number(value: Any) -> float:
    """
    Pass a count, percentage or page count through unchanged.

    WMI serializes 64-bit unsigned counters as decimal strings, so strings of
    digits are accepted as well.

    Raises:
        ValueError: If the value is not numeric
        TypeError: If the value is of an unsupported type
    """
    if isinstance(value, bool):
        raise TypeError(f"Boolean is not a counter value: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(int(value.strip()))
    raise TypeError(f"Unsupported counter value: {value!r}")


def kibibytes_to_bytes(value: Any) -> float:
    """Convert a quantity reported in kibibytes to bytes."""
    return as_number(value) * KIBIBYTE


def to_epoch_seconds(value: Any) -> float:
    """
    Convert an absolute wall-clock value to POSIX epoch seconds.

    Raises:
        ValueError: If a string cannot be parsed as a DMTF datetime
        TypeError: If the value is not a timezone-aware datetime
    """
    moment = _as_datetime(value)
    return moment.timestamp()


def info_value(value: Any) -> float:
    """Constant value of an info-style metric that only carries labels."""
    return 1.0


def zone_abbreviation(value: Any) -> str:
    """
    Name of the time zone a wall-clock value was reported in.

    WMI only reports a numeric UTC offset, so the abbreviation is the offset
    name, e.g. ``UTC``, ``UTC+02:00`` or ``UTC-05:30``.
    """
    moment = _as_datetime(value)
    return moment.tzname() or "UTC"


def parse_dmtf_datetime(text: str) -> Optional[datetime]:
    """
    Parse a WMI DMTF datetime string.

    Args:
        text: String such as ``20230101020000.000000+120``

    Returns:
        Timezone-aware datetime, or None if the text is not a DMTF datetime
    """
    match = DMTF_PATTERN.match(text)
    if not match:
        return None

    stamp, micros, sign, offset_minutes = match.groups()
    offset = timedelta(minutes=int(offset_minutes))
    if sign == '-':
        offset = -offset

    try:
        naive = datetime.strptime(stamp, '%Y%m%d%H%M%S')
    except ValueError:
        return None

    return naive.replace(microsecond=int(micros), tzinfo=timezone(offset))


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        parsed = parse_dmtf_datetime(value)
        if parsed is None:
            raise ValueError(f"Not a DMTF datetime: {value!r}")
        return parsed
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise TypeError(f"Naive datetime has no time zone: {value!r}")
        return value
    raise TypeError(f"Unsupported datetime value: {value!r}")
