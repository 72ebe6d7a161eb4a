"""
Eclipse catalog: loading, lookup and observer visibility classification.

Records are parsed once into immutable ``EclipseRecord`` values. Visibility
is classified by great-circle distance from the nearest central-line point,
a linear-by-distance approximation rather than an umbral projection.
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import yaml

from .constants import (
    DEFAULT_PATH_WIDTH_KM,
    DEFAULT_TOTALITY_DURATION_S,
    PARTIAL_VISIBILITY_LIMIT_KM,
    CENTRAL_VISIBILITY_LIMIT_KM,
    PARTIAL_COVERAGE_CAP_PERCENT,
    CENTRAL_PATH_MAX_DISTANCE_KM,
)
from .data_model import (
    EclipseRecord,
    EclipseType,
    GeoCoordinate,
    ObserverVisibility,
    PathPoint,
    VisibilityResult,
)
from .eclipse_db import ECLIPSE_DATABASE
from .errors import DataError
from .utils import haversine_distance_km, parse_calendar_date, ensure_utc

logger = logging.getLogger(__name__)

CatalogSource = Union[str, Path, Dict[str, Any], Sequence[Dict[str, Any]]]


def _first_present(entry: Dict[str, Any], *keys, default=None):
    for key in keys:
        if key in entry:
            return entry[key]
    return default


def _optional_float(value, what: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise DataError(f"Bad {what}: {value!r}") from e


def _parse_path_point(raw: Dict[str, Any]) -> PathPoint:
    try:
        lat = float(raw['lat'])
        lon = float(raw['lon'])
    except (KeyError, TypeError, ValueError) as e:
        raise DataError(f"Malformed path point {raw!r}: {e}") from e

    duration = _optional_float(
        _first_present(raw, 'duration', 'duration_seconds', 'durationSeconds'),
        f"path point duration in {raw!r}",
    )
    return PathPoint(
        lat=lat,
        lon=lon,
        duration_seconds=duration,
        location_name=_first_present(raw, 'name', 'location_name', 'locationName'),
    )


def parse_eclipse_record(entry: Dict[str, Any]) -> EclipseRecord:
    """
    Parse one raw catalog entry into an ``EclipseRecord``.

    Accepts both camelCase keys (``pathWidthKm``) as found in the bundled
    data and snake_case keys (``path_width_km``).

    Raises
    ------
    DataError
        If the entry is not a mapping, lacks an id, has an unknown type,
        an unparseable date, non-numeric magnitude, width or duration
        values, or malformed path points.
    """
    if not isinstance(entry, dict):
        raise DataError(f"Catalog entry must be a mapping, got {type(entry).__name__}")
    if not entry.get('id'):
        raise DataError(f"Catalog entry without id: {entry!r}")

    eclipse_id = str(entry['id'])
    try:
        eclipse_type = EclipseType(entry.get('type'))
    except ValueError as e:
        raise DataError(f"Eclipse {eclipse_id}: unknown type {entry.get('type')!r}") from e

    if 'date' not in entry:
        raise DataError(f"Eclipse {eclipse_id}: missing date")
    eclipse_date = parse_calendar_date(entry['date'])

    raw_path = entry.get('path') or []
    if not isinstance(raw_path, (list, tuple)):
        raise DataError(f"Eclipse {eclipse_id}: path must be a list")

    width = _optional_float(
        _first_present(entry, 'pathWidthKm', 'path_width_km'),
        f"path width for eclipse {eclipse_id}",
    )
    max_duration = _optional_float(
        _first_present(entry, 'maxDurationSeconds', 'max_duration_seconds'),
        f"maximum duration for eclipse {eclipse_id}",
    )

    try:
        magnitude = float(entry.get('magnitude', 0.0))
    except (TypeError, ValueError) as e:
        raise DataError(f"Eclipse {eclipse_id}: bad magnitude {entry.get('magnitude')!r}") from e

    return EclipseRecord(
        id=eclipse_id,
        name=entry.get('name', eclipse_id),
        date=eclipse_date,
        type=eclipse_type,
        magnitude=magnitude,
        path_width_km=width,
        max_duration_seconds=max_duration,
        path=tuple(_parse_path_point(p) for p in raw_path),
    )


def load_catalog_file(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read raw catalog entries from a YAML or JSON file.

    The file holds either a list of entries or a mapping with an
    ``eclipses`` list.
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise DataError(f"Cannot read eclipse catalog {path}: {e}") from e

    return _entries_from(data)


def _entries_from(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get('eclipses')
    if not isinstance(data, list):
        raise DataError("Eclipse catalog must be a list of entries or a mapping with 'eclipses'")
    return data


def find_nearest_path_point(
    path: Sequence[PathPoint],
    lat: float,
    lon: float,
) -> Tuple[PathPoint, float]:
    """
    Find the central-line point nearest to a location.

    Linear scan over the (non-uniformly spaced) samples; no interpolation
    along the arc.

    Returns
    -------
    tuple
        (nearest point, distance in km).

    Raises
    ------
    DataError
        If the path is empty.
    """
    if not path:
        raise DataError("Eclipse path is empty")

    lats = np.array([p.lat for p in path])
    lons = np.array([p.lon for p in path])
    distances = haversine_distance_km(lat, lon, lats, lons)
    idx = int(np.argmin(distances))
    return path[idx], float(distances[idx])


def central_path_threshold_km(record: EclipseRecord) -> float:
    """
    Maximum distance from the central line at which the central phase is seen.

    Half the path width, never more than the contact model's 500 km limit, so
    classification and contact solving agree on who is inside the path.
    """
    width = record.path_width_km if record.path_width_km else DEFAULT_PATH_WIDTH_KM
    return min(CENTRAL_PATH_MAX_DISTANCE_KM, width / 2.0)


def _partial_coverage_percent(distance_km: float, magnitude: float) -> float:
    coverage = max(0.0, 100.0 * (1.0 - distance_km / PARTIAL_VISIBILITY_LIMIT_KM)) * magnitude
    return min(coverage, PARTIAL_COVERAGE_CAP_PERCENT)


class EclipseCatalog:
    """
    In-memory, read-only collection of eclipse records.

    Construct with parsed records, or use ``load`` / ``from_builtin``. A
    catalog may be shared freely between sessions once built.
    """

    def __init__(self, records: Iterable[EclipseRecord] = ()):
        self._records: List[EclipseRecord] = []
        self._by_id: Dict[str, EclipseRecord] = {}
        for record in records:
            if record.id in self._by_id:
                raise DataError(f"Duplicate eclipse id {record.id!r}")
            self._records.append(record)
            self._by_id[record.id] = record

    @classmethod
    def load(cls, source: CatalogSource) -> 'EclipseCatalog':
        """
        Build a catalog from raw entries, a ``{'eclipses': [...]}`` mapping
        or a YAML/JSON file path.

        Raises
        ------
        DataError
            If the source or any entry is malformed.
        """
        if isinstance(source, (str, Path)):
            entries = load_catalog_file(source)
        else:
            entries = _entries_from(source if isinstance(source, dict) else list(source))

        catalog = cls(parse_eclipse_record(e) for e in entries)
        logger.info(f"Loaded {len(catalog)} eclipses into catalog")
        return catalog

    @classmethod
    def from_builtin(cls) -> 'EclipseCatalog':
        """Catalog of the bundled eclipse data."""
        return cls.load(ECLIPSE_DATABASE)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def all(self) -> List[EclipseRecord]:
        return list(self._records)

    def find_by_id(self, eclipse_id: str) -> Optional[EclipseRecord]:
        return self._by_id.get(eclipse_id)

    def filter_by_type(self, eclipse_type: Union[str, EclipseType]) -> List[EclipseRecord]:
        eclipse_type = EclipseType(eclipse_type)
        return [r for r in self._records if r.type == eclipse_type]

    def nearest_future(self, from_instant: Union[datetime, date, None] = None) -> Optional[EclipseRecord]:
        """
        First eclipse (chronologically) dated on or after ``from_instant``.

        Dates are calendar days, so an eclipse later today still counts.
        """
        if from_instant is None:
            from_instant = datetime.now().astimezone()
        if isinstance(from_instant, datetime):
            from_day = ensure_utc(from_instant).date()
        else:
            from_day = from_instant

        upcoming = sorted((r for r in self._records if r.date >= from_day), key=lambda r: r.date)
        return upcoming[0] if upcoming else None

    def classify_for_observer(self, record: EclipseRecord, coordinate: GeoCoordinate) -> VisibilityResult:
        """
        Classify what an observer sees of an eclipse.

        Within the central-path threshold of the nearest path point the
        observer sees totality (or annularity) with that point's duration;
        within 2000 km a partial eclipse whose coverage falls linearly with
        distance and scales with magnitude; beyond that nothing.

        Parameters
        ----------
        record : EclipseRecord
            Eclipse to classify.
        coordinate : GeoCoordinate
            Observer location.

        Returns
        -------
        VisibilityResult
        """
        if not record.path:
            if record.is_central:
                raise DataError(f"Eclipse {record.id} has no central path")
            # Without a greatest-eclipse point the observer is the reference
            coverage = _partial_coverage_percent(0.0, record.magnitude)
            return VisibilityResult(
                type=ObserverVisibility.PARTIAL,
                coverage_percent=coverage,
                distance_km=0.0,
                magnitude=record.magnitude * coverage / 100.0,
            )

        nearest, distance = find_nearest_path_point(record.path, coordinate.latitude, coordinate.longitude)

        if record.is_central and distance <= central_path_threshold_km(record):
            duration = nearest.duration_seconds or record.max_duration_seconds or DEFAULT_TOTALITY_DURATION_S
            if record.type == EclipseType.ANNULAR:
                kind = ObserverVisibility.ANNULAR
                coverage = min(100.0 * record.magnitude, PARTIAL_COVERAGE_CAP_PERCENT)
            else:
                kind = ObserverVisibility.TOTAL
                coverage = 100.0
            return VisibilityResult(
                type=kind,
                coverage_percent=coverage,
                distance_km=distance,
                magnitude=record.magnitude,
                totality_duration_seconds=float(duration),
                nearest_point=nearest,
            )

        if distance < PARTIAL_VISIBILITY_LIMIT_KM:
            coverage = _partial_coverage_percent(distance, record.magnitude)
            return VisibilityResult(
                type=ObserverVisibility.PARTIAL,
                coverage_percent=coverage,
                distance_km=distance,
                magnitude=record.magnitude * coverage / 100.0,
                nearest_point=nearest,
            )

        return VisibilityResult(
            type=ObserverVisibility.NONE,
            coverage_percent=0.0,
            distance_km=distance,
            magnitude=0.0,
            nearest_point=nearest,
        )

    def find_visible_from(
        self,
        coordinate: GeoCoordinate,
        start: Union[date, datetime, None] = None,
        end: Union[date, datetime, None] = None,
    ) -> List[EclipseRecord]:
        """
        Eclipses in [start, end] worth travelling for from a location.

        Total and annular eclipses must pass within 1500 km of a path point;
        partial eclipses are always included.
        """
        start_day = parse_calendar_date(start) if start is not None else None
        end_day = parse_calendar_date(end) if end is not None else None

        visible = []
        for record in self._records:
            if start_day and record.date < start_day:
                continue
            if end_day and record.date > end_day:
                continue
            if record.is_central:
                if not record.path:
                    continue
                _, distance = find_nearest_path_point(record.path, coordinate.latitude, coordinate.longitude)
                if distance >= CENTRAL_VISIBILITY_LIMIT_KM:
                    continue
            visible.append(record)

        return sorted(visible, key=lambda r: r.date)

    def to_dataframe(self) -> pd.DataFrame:
        """Summary table of the catalog, one row per eclipse."""
        rows = [{
            'id': r.id,
            'name': r.name,
            'date': pd.Timestamp(r.date),
            'type': r.type.value,
            'magnitude': r.magnitude,
            'path_width_km': r.path_width_km,
            'max_duration_seconds': r.max_duration_seconds,
            'n_path_points': len(r.path),
        } for r in self._records]
        columns = ['id', 'name', 'date', 'type', 'magnitude',
                   'path_width_km', 'max_duration_seconds', 'n_path_points']
        return pd.DataFrame(rows, columns=columns)
