"""
Browser timestamp conversion.

Each browser stores "date added" in its own unit and epoch. Everything is
converted to timezone-aware UTC datetimes; values that cannot be converted
come back as None so callers can decide whether the record survives.
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional

from bdimport.constants import MICROSECONDS_PER_SECOND, WINDOWS_EPOCH_OFFSET_SECONDS


def _to_number(value: Any) -> Optional[float]:
    """Coerce an int, float or numeric string; reject bool, bytes, NaN, infinities and junk."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
            return number if math.isfinite(number) else None
    return None


def _from_posix(seconds: float) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _from_micros(micros: float, offset_seconds: int = 0) -> Optional[datetime]:
    # very large integers overflow the float division
    try:
        seconds = micros / MICROSECONDS_PER_SECOND - offset_seconds
    except OverflowError:
        return None
    return _from_posix(seconds)


def posix_seconds_to_datetime(value: Any) -> Optional[datetime]:
    """Convert POSIX seconds (int, float or numeric string)."""
    seconds = _to_number(value)
    if seconds is None:
        return None
    return _from_posix(seconds)


def firefox_timestamp_to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert a Firefox PRTime value (microseconds since the Unix epoch).
    """
    micros = _to_number(value)
    if micros is None:
        return None
    return _from_micros(micros)


def chrome_timestamp_to_datetime(value: Any, epoch_shift: bool = True) -> Optional[datetime]:
    """
    Convert a Chrome-family timestamp (microseconds since 1601-01-01).

    Chrome writes ``date_added`` as a decimal string. A zero or missing value
    means "not recorded".

    Args:
        value: Timestamp as string or integer
        epoch_shift: Subtract the 1601 to 1970 offset. With False the value is
            only divided by 1,000,000, reproducing the unshifted conversion
            some older importers used.
    """
    micros = _to_number(value)
    if micros is None or micros <= 0:
        return None
    offset = WINDOWS_EPOCH_OFFSET_SECONDS if epoch_shift else 0
    return _from_micros(int(micros), offset)
