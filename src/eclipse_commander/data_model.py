"""
Core data model for eclipse planning.

Value types flowing between the catalog, contact-time solver, optics model,
sequence planner and countdown engine.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .constants import DEFAULT_BIT_DEPTH
from .errors import LocationError


class EclipseType(str, Enum):
    """Catalog classification of an eclipse."""
    TOTAL = 'total'
    ANNULAR = 'annular'
    PARTIAL = 'partial'


class ObserverVisibility(str, Enum):
    """What an observer at a given location will see."""
    TOTAL = 'total'
    ANNULAR = 'annular'
    PARTIAL = 'partial'
    NONE = 'none'


class PhaseTag(str, Enum):
    """Capture phase a sequence step belongs to."""
    PARTIAL = 'partial'
    BAILY = 'baily'
    CHROMOSPHERE = 'chromosphere'
    INNER_CORONA = 'innerCorona'
    MID_CORONA = 'midCorona'
    OUTER_CORONA = 'outerCorona'
    PROMINENCE = 'prominence'
    TOTALITY_GENERIC = 'totalityGeneric'
    FILTER_WARNING = 'filterWarning'


class Priority(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class CameraKind(str, Enum):
    CMOS = 'cmos'
    DSLR = 'dslr'
    GENERIC = 'generic'


class EclipsePhase(str, Enum):
    """Phase of the eclipse at a given instant, as seen by the observer."""
    PRE = 'pre'
    PARTIAL_BEFORE = 'partial-before'
    TOTALITY = 'totality'
    PARTIAL_AFTER = 'partial-after'
    PARTIAL = 'partial'  # Partial-only eclipses: between C1 and C4
    POST = 'post'


class SamplingStatus(str, Enum):
    """Ordered from finest to coarsest sampling."""
    HEAVY_OVERSAMPLING = 'heavyOversampling'
    OVERSAMPLING = 'oversampling'
    OPTIMAL = 'optimal'
    UNDERSAMPLING = 'undersampling'
    CRITICAL_UNDERSAMPLING = 'criticalUndersampling'


class AlertKind(str, Enum):
    LEAD_TIME_WARNING = 'lead-time-warning'
    BOUNDARY_REACHED = 'boundary-reached'


@dataclass(frozen=True)
class GeoCoordinate:
    """Observer location in decimal degrees. Out-of-range values are rejected."""
    latitude: float
    longitude: float
    altitude_m: Optional[float] = None

    def __post_init__(self):
        if self.latitude is None or self.longitude is None:
            raise LocationError("Observer latitude and longitude are required")
        if not -90.0 <= self.latitude <= 90.0:
            raise LocationError(f"Latitude {self.latitude} outside [-90, 90]")
        if not -180.0 <= self.longitude <= 180.0:
            raise LocationError(f"Longitude {self.longitude} outside [-180, 180]")


@dataclass(frozen=True)
class SolarPosition:
    """Sun position for one instant and location. All angles in degrees."""
    altitude: float
    azimuth: float       # From North through East, [0, 360)
    hour_angle: float    # [-180, 180)
    declination: float
    right_ascension: float  # [0, 360)

    @property
    def is_visible(self) -> bool:
        return self.altitude > 0


@dataclass(frozen=True)
class DaylightInfo:
    """Sunrise/sunset for a date. Times are None on polar day/night."""
    sunrise: Optional[datetime]
    sunset: Optional[datetime]
    day_length_seconds: float
    polar_day: bool = False
    polar_night: bool = False


@dataclass(frozen=True)
class Culmination:
    time: datetime
    altitude: float


@dataclass(frozen=True)
class PolarAlignment:
    """Mount polar-axis geometry for an observer."""
    hemisphere: str  # 'north' or 'south'
    altitude: float  # Equals |latitude|
    azimuth: float   # 0 (north) or 180 (south)
    pole_star: str
    pole_star_ra_hours: float
    pole_star_dec_deg: float
    pole_star_ra_text: str
    pole_star_dec_text: str

    @property
    def instructions(self) -> str:
        direction = 'North' if self.hemisphere == 'north' else 'South'
        return f"Point the mount polar axis {direction} and tilt it to {self.altitude:.1f}° altitude"


@dataclass(frozen=True)
class PathPoint:
    """One sample of the central line of an eclipse path."""
    lat: float
    lon: float
    duration_seconds: Optional[float] = None
    location_name: Optional[str] = None


@dataclass(frozen=True)
class EclipseRecord:
    """A catalog eclipse. Read-only once loaded."""
    id: str
    name: str
    date: date
    type: EclipseType
    magnitude: float
    path_width_km: Optional[float]
    max_duration_seconds: Optional[float]
    path: Tuple[PathPoint, ...] = ()

    @property
    def is_central(self) -> bool:
        return self.type in (EclipseType.TOTAL, EclipseType.ANNULAR)


@dataclass(frozen=True)
class VisibilityResult:
    """Outcome of classifying an eclipse for one observer."""
    type: ObserverVisibility
    coverage_percent: float
    distance_km: float
    magnitude: float
    totality_duration_seconds: Optional[float] = None
    nearest_point: Optional[PathPoint] = None

    @property
    def is_central(self) -> bool:
        return self.type in (ObserverVisibility.TOTAL, ObserverVisibility.ANNULAR)


@dataclass(frozen=True)
class ContactTimes:
    """
    Contact instants for one (eclipse, observer) pair.

    ``c2``/``c3`` are None when the observer is outside the central path.
    ``is_total`` means the observer sees the central phase (totality or
    annularity).
    """
    c1: datetime
    c2: Optional[datetime]
    c3: Optional[datetime]
    c4: datetime
    max_time: datetime
    totality_duration_seconds: float
    is_total: bool
    reference_point: Optional[PathPoint] = None
    distance_km: Optional[float] = None
    longitude_offset_seconds: float = 0.0

    @property
    def partial_duration_seconds(self) -> float:
        return (self.c4 - self.c1).total_seconds()

    def boundaries(self) -> List[Tuple[str, datetime]]:
        """Ordered contact boundaries: C1..C4 when total, C1/MAX/C4 otherwise."""
        if self.is_total and self.c2 is not None and self.c3 is not None:
            return [('C1', self.c1), ('C2', self.c2), ('C3', self.c3), ('C4', self.c4)]
        return [('C1', self.c1), ('MAX', self.max_time), ('C4', self.c4)]


@dataclass
class OpticalSystem:
    """
    Telescope + camera geometry and the derived figures of merit.

    Built by ``optics.compute_optical_system``; derived fields are recomputed
    there, never updated in place.
    """
    aperture_mm: float
    focal_length_mm: float
    sensor_width_mm: float
    sensor_height_mm: float
    pixel_size_um: float
    focal_ratio: float
    fov_width_deg: float
    fov_height_deg: float
    fov_diagonal_deg: float
    sampling_arcsec_per_pixel: float
    dawes_limit_arcsec: float
    rayleigh_limit_arcsec: float
    sampling_ratio: float
    sampling_status: SamplingStatus
    speed_class: str
    sensor_format: str
    sensor_diagonal_mm: float
    light_gathering_power: float


@dataclass(frozen=True)
class EquipmentProfile:
    """Equipment as supplied by the configuration collaborator."""
    aperture_mm: float
    focal_length_mm: float
    pixel_size_um: float
    sensor_width_mm: float
    sensor_height_mm: float
    camera_kind: CameraKind = CameraKind.GENERIC
    unity_gain: Optional[int] = None
    name: str = 'Custom'
    bit_depth: int = DEFAULT_BIT_DEPTH

    def to_optical_system(self) -> OpticalSystem:
        from .optics import compute_optical_system
        return compute_optical_system(
            self.aperture_mm,
            self.focal_length_mm,
            self.sensor_width_mm,
            self.sensor_height_mm,
            self.pixel_size_um,
        )


@dataclass
class SequencePreferences:
    """
    User preferences for sequence generation.

    ``iso``/``gain`` override the camera defaults; ``ladder_overrides`` maps a
    phase tag value (e.g. ``'midCorona'``) to an exposure ladder in seconds.
    """
    camera_kind: CameraKind = CameraKind.GENERIC
    unity_gain: Optional[int] = None
    iso: Optional[int] = None
    gain: Optional[int] = None
    shots_per_exposure: int = 3
    ladder_overrides: Dict[str, List[float]] = field(default_factory=dict)


@dataclass
class ExposureSequenceStep:
    """One scheduled capture (or alert-only) step of the plan."""
    id: str
    display_name: str
    phase_tag: PhaseTag
    start_time: datetime
    duration_seconds: float
    requires_solar_filter: bool
    exposure_ladder: List[float]
    shots_per_exposure: int
    priority: Priority
    description: str
    iso: Optional[int] = None
    gain: Optional[int] = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration_seconds)

    @property
    def is_alert_only(self) -> bool:
        return not self.exposure_ladder

    @property
    def total_frames(self) -> int:
        return len(self.exposure_ladder) * self.shots_per_exposure

    def contains(self, instant: datetime) -> bool:
        return self.start_time <= instant < self.end_time


@dataclass(frozen=True)
class AlertEvent:
    """A single countdown alert, fired at most once per (target, lead time)."""
    kind: AlertKind
    lead_seconds: int
    target_id: str
    target_time: datetime
    message: str
    boundary: Optional[str] = None
    step: Optional[ExposureSequenceStep] = None


@dataclass
class CountdownState:
    """Projection of the session onto one tick."""
    now: datetime
    current_phase: EclipsePhase
    active_step: Optional[ExposureSequenceStep]
    next_step: Optional[ExposureSequenceStep]
    next_boundary: Optional[str]
    next_boundary_time: Optional[datetime]
    time_remaining_ms: int
    filter_required: bool
    at_maximum: bool = False

    @property
    def countdown_text(self) -> str:
        from .utils import format_countdown
        return format_countdown(self.time_remaining_ms)

    @property
    def next_step_countdown_text(self) -> str:
        from .utils import format_countdown
        if self.next_step is None:
            return format_countdown(0)
        return format_countdown((self.next_step.start_time - self.now).total_seconds() * 1000)
