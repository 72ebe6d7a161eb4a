"""
Low-precision solar ephemeris and derived observing geometry.

Sun position follows the almanac approximation (mean longitude plus a
two-term equation of centre, linear obliquity drift). Expect agreement with
rigorous ephemerides to roughly 0.01 deg in declination and a few hundredths
of a degree in altitude; this module is intended for field guidance only.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union

import numpy as np
import pandas as pd

from .constants import (
    J2000_JD,
    SUNRISE_ALTITUDE_DEG,
    SECONDS_PER_DAY,
    SOLAR_PARALLAX_AT_1AU_ARCSEC,
    CULMINATION_COARSE_WINDOW_MIN,
    CULMINATION_COARSE_STEP_MIN,
    CULMINATION_FINE_WINDOW_MIN,
    CULMINATION_FINE_STEP_MIN,
    POLARIS_RA_HOURS,
    POLARIS_DEC_DEG,
    POLARIS_RA_TEXT,
    POLARIS_DEC_TEXT,
    SIGMA_OCTANTIS_RA_HOURS,
    SIGMA_OCTANTIS_DEC_DEG,
    SIGMA_OCTANTIS_RA_TEXT,
    SIGMA_OCTANTIS_DEC_TEXT,
)
from .data_model import (
    GeoCoordinate,
    SolarPosition,
    DaylightInfo,
    Culmination,
    PolarAlignment,
)
from .utils import ensure_utc, normalize_degrees, normalize_signed_degrees


def julian_date(instant: datetime) -> float:
    """
    Julian Date of an instant using the Gregorian-calendar JDN formula.

    Naive datetimes are taken as UTC.

    Examples
    --------
    >>> julian_date(datetime(2000, 1, 1, 12, tzinfo=timezone.utc))
    2451545.0
    """
    t = ensure_utc(instant)
    a = (14 - t.month) // 12
    y = t.year + 4800 - a
    m = t.month + 12 * a - 3
    jdn = t.day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045

    day_fraction = (
        (t.hour - 12) / 24.0
        + t.minute / 1440.0
        + (t.second + t.microsecond / 1e6) / SECONDS_PER_DAY
    )
    return jdn + day_fraction


def _solar_coordinates(n: float):
    """
    Ecliptic/equatorial solar coordinates for ``n`` days since J2000.

    Returns (mean_longitude, right_ascension, declination) in degrees.
    """
    mean_longitude = normalize_degrees(280.460 + 0.9856474 * n)
    mean_anomaly = np.radians(normalize_degrees(357.528 + 0.9856003 * n))

    ecliptic_longitude = np.radians(
        mean_longitude + 1.915 * np.sin(mean_anomaly) + 0.020 * np.sin(2 * mean_anomaly)
    )
    obliquity = np.radians(23.439 - 0.0000004 * n)

    right_ascension = normalize_degrees(np.degrees(np.arctan2(
        np.cos(obliquity) * np.sin(ecliptic_longitude),
        np.cos(ecliptic_longitude),
    )))
    declination = float(np.degrees(np.arcsin(np.sin(obliquity) * np.sin(ecliptic_longitude))))

    return mean_longitude, right_ascension, declination


def _greenwich_mean_sidereal_degrees(n: float) -> float:
    # n already carries the time of day, so no separate UT term is added
    return normalize_degrees(280.46061837 + 360.98564736629 * n)


def sun_position(instant: datetime, coordinate: GeoCoordinate) -> SolarPosition:
    """
    Compute the apparent position of the Sun for an observer.

    Parameters
    ----------
    instant : datetime
        Time of observation (naive values are treated as UTC).
    coordinate : GeoCoordinate
        Observer location.

    Returns
    -------
    SolarPosition
        Altitude in [-90, 90], azimuth from North through East in [0, 360),
        hour angle in [-180, 180), declination and right ascension.
    """
    n = julian_date(instant) - J2000_JD
    _, ra, dec = _solar_coordinates(n)

    lst = _greenwich_mean_sidereal_degrees(n) + coordinate.longitude
    hour_angle = normalize_signed_degrees(lst - ra)

    lat_r = np.radians(coordinate.latitude)
    dec_r = np.radians(dec)
    ha_r = np.radians(hour_angle)

    sin_alt = np.sin(lat_r) * np.sin(dec_r) + np.cos(lat_r) * np.cos(dec_r) * np.cos(ha_r)
    altitude = float(np.degrees(np.arcsin(np.clip(sin_alt, -1.0, 1.0))))

    azimuth = normalize_degrees(np.degrees(np.arctan2(
        -np.cos(dec_r) * np.sin(ha_r),
        np.sin(dec_r) * np.cos(lat_r) - np.cos(dec_r) * np.sin(lat_r) * np.cos(ha_r),
    )))

    return SolarPosition(
        altitude=altitude,
        azimuth=azimuth,
        hour_angle=hour_angle,
        declination=dec,
        right_ascension=ra,
    )


def _as_noon_utc(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = ensure_utc(day).date()
    return datetime.combine(day, time(12, 0), tzinfo=timezone.utc)


def equation_of_time_minutes(day: Union[date, datetime]) -> float:
    """
    Equation of time (apparent minus mean solar time) in minutes.

    Evaluated at 12:00 UTC on the given date; positive when the sundial is
    ahead of the clock (early November, about +16 min).
    """
    n = julian_date(_as_noon_utc(day)) - J2000_JD
    mean_longitude, ra, _ = _solar_coordinates(n)
    return 4.0 * normalize_signed_degrees(mean_longitude - ra)


def solar_parallax_arcsec(distance_au: float = 1.0) -> float:
    """Horizontal parallax of the Sun at a given distance in AU."""
    if distance_au <= 0:
        raise ValueError(f"Sun distance must be positive, got {distance_au}")
    return SOLAR_PARALLAX_AT_1AU_ARCSEC / distance_au


def solar_noon_utc(day: Union[date, datetime], coordinate: GeoCoordinate) -> datetime:
    """Instant of apparent solar noon, corrected by the equation of time."""
    noon = _as_noon_utc(day)
    offset_minutes = -coordinate.longitude * 4.0 - equation_of_time_minutes(day)
    return noon + timedelta(minutes=offset_minutes)


def sunrise_sunset(day: Union[date, datetime], coordinate: GeoCoordinate) -> DaylightInfo:
    """
    Sunrise and sunset for a calendar date.

    Uses the standard -0.833 deg apparent altitude (refraction plus solar
    semi-diameter). When the hour-angle cosine leaves [-1, 1] the Sun never
    rises (polar night) or never sets (polar day) and both times are None.
    """
    noon = solar_noon_utc(day, coordinate)
    declination = sun_position(noon, coordinate).declination

    lat_r = np.radians(coordinate.latitude)
    dec_r = np.radians(declination)
    denominator = np.cos(lat_r) * np.cos(dec_r)

    if abs(denominator) < 1e-12:
        # Exactly at a pole: the Sun circles at constant altitude all day
        if coordinate.latitude * declination > 0:
            return DaylightInfo(None, None, float(SECONDS_PER_DAY), polar_day=True)
        return DaylightInfo(None, None, 0.0, polar_night=True)

    cos_h = (np.sin(np.radians(SUNRISE_ALTITUDE_DEG)) - np.sin(lat_r) * np.sin(dec_r)) / denominator

    if cos_h > 1:
        return DaylightInfo(None, None, 0.0, polar_night=True)
    if cos_h < -1:
        return DaylightInfo(None, None, float(SECONDS_PER_DAY), polar_day=True)

    half_day_hours = float(np.degrees(np.arccos(cos_h))) / 15.0
    half_day = timedelta(hours=half_day_hours)

    return DaylightInfo(
        sunrise=noon - half_day,
        sunset=noon + half_day,
        day_length_seconds=2 * half_day.total_seconds(),
    )


def culmination(day: Union[date, datetime], coordinate: GeoCoordinate) -> Culmination:
    """
    Find the instant of maximum solar altitude on a date.

    A coarse scan of +/-2 h around mean local noon at 5-minute steps is
    followed by a 1-minute scan over a 10-minute window centred on the
    coarse maximum.
    """
    mean_noon = _as_noon_utc(day) - timedelta(minutes=coordinate.longitude * 4.0)

    def altitude_at(offset_min: float) -> float:
        return sun_position(mean_noon + timedelta(minutes=float(offset_min)), coordinate).altitude

    coarse_offsets = np.arange(
        -CULMINATION_COARSE_WINDOW_MIN,
        CULMINATION_COARSE_WINDOW_MIN + CULMINATION_COARSE_STEP_MIN,
        CULMINATION_COARSE_STEP_MIN,
        dtype=float,
    )
    coarse_alts = [altitude_at(o) for o in coarse_offsets]
    best_offset = float(coarse_offsets[int(np.argmax(coarse_alts))])

    half_window = CULMINATION_FINE_WINDOW_MIN / 2
    fine_offsets = np.arange(
        best_offset - half_window,
        best_offset + half_window + CULMINATION_FINE_STEP_MIN,
        CULMINATION_FINE_STEP_MIN,
    )
    fine_alts = [altitude_at(o) for o in fine_offsets]
    idx = int(np.argmax(fine_alts))

    return Culmination(
        time=mean_noon + timedelta(minutes=float(fine_offsets[idx])),
        altitude=float(fine_alts[idx]),
    )


def polar_alignment(coordinate: GeoCoordinate) -> PolarAlignment:
    """
    Polar-axis geometry: the mount axis altitude equals |latitude| and it
    points due north (Polaris) or due south (Sigma Octantis).
    """
    if coordinate.latitude >= 0:
        return PolarAlignment(
            hemisphere='north',
            altitude=abs(coordinate.latitude),
            azimuth=0.0,
            pole_star='Polaris',
            pole_star_ra_hours=POLARIS_RA_HOURS,
            pole_star_dec_deg=POLARIS_DEC_DEG,
            pole_star_ra_text=POLARIS_RA_TEXT,
            pole_star_dec_text=POLARIS_DEC_TEXT,
        )
    return PolarAlignment(
        hemisphere='south',
        altitude=abs(coordinate.latitude),
        azimuth=180.0,
        pole_star='Sigma Octantis',
        pole_star_ra_hours=SIGMA_OCTANTIS_RA_HOURS,
        pole_star_dec_deg=SIGMA_OCTANTIS_DEC_DEG,
        pole_star_ra_text=SIGMA_OCTANTIS_RA_TEXT,
        pole_star_dec_text=SIGMA_OCTANTIS_DEC_TEXT,
    )


def sun_track(
    start: datetime,
    end: datetime,
    coordinate: GeoCoordinate,
    step_minutes: float = 5.0,
) -> pd.DataFrame:
    """
    Tabulate the Sun's position between two instants.

    Returns
    -------
    pd.DataFrame
        Columns: time, altitude, azimuth, is_visible.
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    if end < start:
        raise ValueError("end must not precede start")
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    rows = []
    t = start
    step = timedelta(minutes=step_minutes)
    while t <= end:
        pos = sun_position(t, coordinate)
        rows.append({
            'time': t,
            'altitude': pos.altitude,
            'azimuth': pos.azimuth,
            'is_visible': pos.is_visible,
        })
        t += step

    return pd.DataFrame(rows, columns=['time', 'altitude', 'azimuth', 'is_visible'])
