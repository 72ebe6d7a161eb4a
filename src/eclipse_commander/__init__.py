"""
Eclipse Commander

A Python package for planning solar eclipse photography: solar geometry,
contact times for an observer, optics-driven exposure sequences and a
clock-driven countdown with lead-time alerts.
"""

__version__ = "0.1.0"

# Core utilities and constants
from .constants import (
    EARTH_MEAN_RADIUS_KM,
    ALERT_LEAD_TIMES_S,
    DOWNLOAD_OVERHEAD_S,
)
from .errors import (
    EclipseCommanderError,
    DataError,
    LocationError,
    EquipmentNotConfiguredError,
)
from .utils import (
    haversine_distance_km,
    parse_calendar_date,
    format_countdown,
    format_exposure,
)
from .data_model import (
    GeoCoordinate,
    SolarPosition,
    EclipseRecord,
    EclipseType,
    PathPoint,
    ContactTimes,
    OpticalSystem,
    EquipmentProfile,
    SequencePreferences,
    ExposureSequenceStep,
    CountdownState,
    AlertEvent,
    AlertKind,
    PhaseTag,
    Priority,
    CameraKind,
    EclipsePhase,
    SamplingStatus,
    ObserverVisibility,
)
from .astronomy import (
    julian_date,
    sun_position,
    sunrise_sunset,
    culmination,
    polar_alignment,
    equation_of_time_minutes,
    solar_parallax_arcsec,
)
from .catalog import (
    EclipseCatalog,
    find_nearest_path_point,
)
from .contacts import (
    calculate_contact_times,
    longitude_offset_seconds,
    validate_contact_times,
)
from .optics import (
    compute_optical_system,
    assess_suitability,
    sampling_status,
)
from .sequences import (
    generate_sequence,
    optimize_shot_counts,
    estimate_data_size,
    recommend_solar_exposure,
    sequence_to_dataframe,
    validate_sequence,
)
from .countdown import (
    CountdownEngine,
    eclipse_phase_at,
)
from .config import (
    SessionConfig,
    load_config,
)
from .session import EclipseSession

__all__ = [
    # Constants
    'EARTH_MEAN_RADIUS_KM',
    'ALERT_LEAD_TIMES_S',
    'DOWNLOAD_OVERHEAD_S',
    # Errors
    'EclipseCommanderError',
    'DataError',
    'LocationError',
    'EquipmentNotConfiguredError',
    # Utils
    'haversine_distance_km',
    'parse_calendar_date',
    'format_countdown',
    'format_exposure',
    # Data model
    'GeoCoordinate',
    'SolarPosition',
    'EclipseRecord',
    'EclipseType',
    'PathPoint',
    'ContactTimes',
    'OpticalSystem',
    'EquipmentProfile',
    'SequencePreferences',
    'ExposureSequenceStep',
    'CountdownState',
    'AlertEvent',
    'AlertKind',
    'PhaseTag',
    'Priority',
    'CameraKind',
    'EclipsePhase',
    'SamplingStatus',
    'ObserverVisibility',
    # Astronomy
    'julian_date',
    'sun_position',
    'sunrise_sunset',
    'culmination',
    'polar_alignment',
    'equation_of_time_minutes',
    'solar_parallax_arcsec',
    # Catalog
    'EclipseCatalog',
    'find_nearest_path_point',
    # Contacts
    'calculate_contact_times',
    'longitude_offset_seconds',
    'validate_contact_times',
    # Optics
    'compute_optical_system',
    'assess_suitability',
    'sampling_status',
    # Sequences
    'generate_sequence',
    'optimize_shot_counts',
    'estimate_data_size',
    'recommend_solar_exposure',
    'sequence_to_dataframe',
    'validate_sequence',
    # Countdown
    'CountdownEngine',
    'eclipse_phase_at',
    # Config / session
    'SessionConfig',
    'load_config',
    'EclipseSession',
]
