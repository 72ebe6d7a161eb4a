"""
Contact-time solver.

Contacts are anchored to the reference path point's local noon, shifted by
the observer's longitude difference (4 minutes of time per degree, positive
east). C1/C4 sit at a fixed window around that instant and C2/C3 at half the
totality duration either side. The result is not cross-checked against the
solar ephemeris; treat it as a planning estimate.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, Optional

from .catalog import central_path_threshold_km, find_nearest_path_point
from .constants import (
    CENTRAL_PARTIAL_HALF_WINDOW_MIN,
    PARTIAL_ONLY_HALF_WINDOW_MIN,
    FALLBACK_TOTALITY_DURATION_S,
    SOLAR_SECONDS_PER_DEGREE_LONGITUDE,
)
from .data_model import ContactTimes, EclipseRecord, GeoCoordinate, PathPoint
from .errors import DataError, LocationError
from .utils import parse_calendar_date

logger = logging.getLogger(__name__)


def longitude_offset_seconds(observer_lon: float, reference_lon: float) -> float:
    """
    Solar-time offset of the observer relative to a reference longitude.

    Positive when the observer is east of the reference point.

    Examples
    --------
    >>> longitude_offset_seconds(10.0, 5.0)
    1200.0
    """
    return (observer_lon - reference_lon) * SOLAR_SECONDS_PER_DEGREE_LONGITUDE


def reference_local_noon(eclipse_date, reference_lon: float) -> datetime:
    """Mean local noon (UTC instant) at ``reference_lon`` on the eclipse date."""
    day = parse_calendar_date(eclipse_date)
    noon_utc = datetime.combine(day, time(12, 0), tzinfo=timezone.utc)
    return noon_utc - timedelta(seconds=reference_lon * SOLAR_SECONDS_PER_DEGREE_LONGITUDE)


def calculate_contact_times(record: EclipseRecord, coordinate: Optional[GeoCoordinate]) -> ContactTimes:
    """
    Compute C1-C4 and the time of maximum for an observer.

    Parameters
    ----------
    record : EclipseRecord
        Catalog eclipse.
    coordinate : GeoCoordinate
        Observer location.

    Returns
    -------
    ContactTimes
        Full C1 < C2 < C3 < C4 when the observer is within the central path
        threshold of the nearest path point; otherwise C2/C3 are None and C1/C4
        bracket the maximum at +/-60 minutes.

    Raises
    ------
    LocationError
        If no coordinate is supplied.
    DataError
        If the record date is unusable or a central eclipse has no path.
    """
    if coordinate is None:
        raise LocationError("Observer location is not set")
    if not isinstance(coordinate, GeoCoordinate):
        raise LocationError(f"Expected GeoCoordinate, got {type(coordinate).__name__}")

    eclipse_day = parse_calendar_date(record.date)

    if record.path:
        reference, distance = find_nearest_path_point(record.path, coordinate.latitude, coordinate.longitude)
    elif record.is_central:
        raise DataError(f"Eclipse {record.id} has no central path")
    else:
        reference = PathPoint(lat=coordinate.latitude, lon=coordinate.longitude)
        distance = 0.0

    offset = longitude_offset_seconds(coordinate.longitude, reference.lon)
    base_time = reference_local_noon(eclipse_day, reference.lon) + timedelta(seconds=offset)

    inside_path = record.is_central and distance <= central_path_threshold_km(record)

    if not inside_path:
        half_window = timedelta(minutes=PARTIAL_ONLY_HALF_WINDOW_MIN)
        contacts = ContactTimes(
            c1=base_time - half_window,
            c2=None,
            c3=None,
            c4=base_time + half_window,
            max_time=base_time,
            totality_duration_seconds=0.0,
            is_total=False,
            reference_point=reference,
            distance_km=distance,
            longitude_offset_seconds=offset,
        )
        logger.info(f"{record.id}: partial-only at {distance:.0f} km from path, "
                    f"max {base_time.isoformat()}")
        return contacts

    duration = float(reference.duration_seconds or record.max_duration_seconds or FALLBACK_TOTALITY_DURATION_S)
    half_totality = timedelta(seconds=duration / 2.0)
    half_window = timedelta(minutes=CENTRAL_PARTIAL_HALF_WINDOW_MIN)

    contacts = ContactTimes(
        c1=base_time - half_window,
        c2=base_time - half_totality,
        c3=base_time + half_totality,
        c4=base_time + half_window,
        max_time=base_time,
        totality_duration_seconds=duration,
        is_total=True,
        reference_point=reference,
        distance_km=distance,
        longitude_offset_seconds=offset,
    )
    logger.info(f"{record.id}: central phase {duration:.0f}s near "
                f"{reference.location_name or f'({reference.lat:.2f}, {reference.lon:.2f})'}, "
                f"C2 {contacts.c2.isoformat()}")
    return contacts


def validate_contact_times(contacts: ContactTimes) -> Dict[str, Any]:
    """
    Check contact ordering and internal consistency.

    Returns
    -------
    dict
        ``{'passed', 'errors', 'warnings', 'stats'}``.
    """
    results = {
        'passed': True,
        'errors': [],
        'warnings': [],
        'stats': {},
    }

    if not contacts.c1 < contacts.max_time < contacts.c4:
        results['errors'].append("Maximum is not strictly between C1 and C4")

    if contacts.is_total:
        if contacts.c2 is None or contacts.c3 is None:
            results['errors'].append("Central eclipse without C2/C3")
        else:
            if not contacts.c1 < contacts.c2 < contacts.c3 < contacts.c4:
                results['errors'].append("Contacts are not in order C1 < C2 < C3 < C4")
            measured = (contacts.c3 - contacts.c2).total_seconds()
            if abs(measured - contacts.totality_duration_seconds) > 1.0:
                results['errors'].append(
                    f"C3 - C2 = {measured:.1f}s differs from totality "
                    f"duration {contacts.totality_duration_seconds:.1f}s")
            results['stats']['totality_seconds'] = measured
    else:
        if contacts.c2 is not None or contacts.c3 is not None:
            results['errors'].append("Partial-only eclipse carries C2/C3")

    if contacts.distance_km is not None and contacts.distance_km > 1000:
        results['warnings'].append(
            f"Observer is {contacts.distance_km:.0f} km from the path; timings are rough")

    results['stats']['partial_duration_seconds'] = contacts.partial_duration_seconds
    results['stats']['longitude_offset_seconds'] = contacts.longitude_offset_seconds
    results['passed'] = len(results['errors']) == 0
    return results
