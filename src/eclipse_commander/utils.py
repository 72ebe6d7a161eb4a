"""
Shared utility functions for eclipse planning.

Consolidates the distance, date-parsing and formatting helpers so that
every component uses the same implementation.
"""

from datetime import date, datetime, timezone
from typing import Union

import numpy as np

from .constants import EARTH_MEAN_RADIUS_KM
from .errors import DataError


def haversine_distance_km(
    lat1: Union[float, np.ndarray],
    lon1: Union[float, np.ndarray],
    lat2: Union[float, np.ndarray],
    lon2: Union[float, np.ndarray],
) -> Union[float, np.ndarray]:
    """
    Calculate great-circle distance using Haversine formula.

    Fully vectorized - works with scalars or arrays of any compatible shape.
    This is the single distance primitive of the package.

    Parameters
    ----------
    lat1, lon1 : float or array
        First point(s) latitude and longitude in degrees.
    lat2, lon2 : float or array
        Second point(s) latitude and longitude in degrees.

    Returns
    -------
    float or array
        Distance(s) in kilometers.

    Examples
    --------
    >>> round(float(haversine_distance_km(0, 0, 0, 1)), 2)  # ~111 km at equator
    111.19
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = np.radians(lon2) - np.radians(lon1)

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    result = EARTH_MEAN_RADIUS_KM * c
    if np.ndim(result) == 0:
        return float(result)
    return result


def normalize_degrees(angle: float) -> float:
    """
    Normalize an angle to the [0, 360) range.

    Guards against ``-tiny % 360 == 360.0`` in floating point.
    """
    result = angle % 360.0
    if result >= 360.0:
        result -= 360.0
    return float(result)


def normalize_signed_degrees(angle: float) -> float:
    """Normalize an angle to the [-180, 180) range."""
    return normalize_degrees(angle + 180.0) - 180.0


def ensure_utc(instant: datetime) -> datetime:
    """
    Return ``instant`` as a timezone-aware UTC datetime.

    Naive datetimes are interpreted as UTC.
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def parse_calendar_date(value: Union[str, date, datetime]) -> date:
    """
    Parse an eclipse catalog date into a calendar date.

    Accepts ``date``/``datetime`` objects and ISO strings, either a plain
    ``YYYY-MM-DD`` date or a full ISO timestamp (only the date part is kept;
    timestamps are taken in UTC).

    Raises
    ------
    DataError
        If the value is neither a date nor a parseable ISO string.
    """
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise DataError(f"Eclipse date must be a string or date, got {type(value).__name__}")

    text = value.strip()
    try:
        if len(text) <= 10:
            return date.fromisoformat(text)
        return _parse_iso_timestamp(text)
    except ValueError as e:
        raise DataError(f"Unparseable eclipse date {value!r}: {e}") from e


def _parse_iso_timestamp(text: str) -> date:
    """Parse a full ISO timestamp (``Z`` suffix allowed) and return its UTC date."""
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return ensure_utc(datetime.fromisoformat(text)).date()


def format_countdown(milliseconds: float) -> str:
    """
    Format a countdown for display.

    Returns ``HH:MM:SS`` when at least one hour remains, ``MM:SS`` otherwise,
    and ``00:00:00`` once the target has been reached.

    Examples
    --------
    >>> format_countdown(3_725_000)
    '01:02:05'
    >>> format_countdown(65_000)
    '01:05'
    """
    if milliseconds <= 0:
        return '00:00:00'

    total_seconds = int(milliseconds // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_duration(seconds: float) -> str:
    """Format a duration as ``1h 2m 3s`` / ``2m 3s`` / ``3s``."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_exposure(seconds: float, as_fraction: bool = True) -> str:
    """
    Format an exposure time.

    Sub-second values are shown as ``1/N`` when ``as_fraction`` is set
    (DSLR convention) and as decimal seconds otherwise (CMOS convention).

    Examples
    --------
    >>> format_exposure(0.001)
    '1/1000'
    >>> format_exposure(2.0)
    '2s'
    """
    if seconds <= 0:
        raise ValueError(f"Exposure must be positive, got {seconds}")
    if seconds >= 1:
        return f"{seconds:g}s"
    if as_fraction:
        return f"1/{round(1 / seconds)}"
    return f"{seconds:.6g}s"
