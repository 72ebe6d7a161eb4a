"""
Observing session controller.

Wires catalog, contact solver, optics, planner and countdown together for
one (eclipse, observer, equipment) combination. Components are passed in
explicitly; nothing here is global. Contact times and the sequence are
computed once per session and cached.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .astronomy import polar_alignment, sun_position, sunrise_sunset
from .catalog import EclipseCatalog
from .config import SessionConfig
from .contacts import calculate_contact_times
from .countdown import CountdownEngine
from .data_model import (
    ContactTimes,
    DaylightInfo,
    EclipseRecord,
    EquipmentProfile,
    ExposureSequenceStep,
    GeoCoordinate,
    OpticalSystem,
    PolarAlignment,
    SequencePreferences,
    SolarPosition,
    VisibilityResult,
)
from .errors import DataError
from .sequences import (
    estimate_data_size,
    generate_sequence,
    optimize_shot_counts,
    recommend_solar_exposure,
    resolve_exposure_settings,
)

logger = logging.getLogger(__name__)


class EclipseSession:
    """
    One observing session.

    Parameters
    ----------
    record : EclipseRecord
        Eclipse being observed.
    coordinate : GeoCoordinate
        Observer location.
    catalog : EclipseCatalog
        Catalog the record came from, used for visibility classification.
    equipment : EquipmentProfile, optional
        Telescope and camera; None gives the generic fallback sequence.
    preferences : SequencePreferences, optional
        Planner preferences; camera kind and unity gain default to the
        equipment's.
    optimize_shots : bool
        Fit shot counts to step durations after generating the sequence.
    """

    def __init__(
        self,
        record: EclipseRecord,
        coordinate: GeoCoordinate,
        catalog: EclipseCatalog,
        equipment: Optional[EquipmentProfile] = None,
        preferences: Optional[SequencePreferences] = None,
        optimize_shots: bool = True,
        countdown_options: Optional[Dict[str, Any]] = None,
    ):
        self.record = record
        self.coordinate = coordinate
        self.catalog = catalog
        self.equipment = equipment
        self.preferences = self._merge_preferences(preferences, equipment)
        self.optimize_shots = optimize_shots
        self.countdown_options = countdown_options or {}

        self._contact_times: Optional[ContactTimes] = None
        self._sequence: Optional[List[ExposureSequenceStep]] = None
        self._optical_system: Optional[OpticalSystem] = None

    @staticmethod
    def _merge_preferences(
        preferences: Optional[SequencePreferences],
        equipment: Optional[EquipmentProfile],
    ) -> SequencePreferences:
        if preferences is None:
            preferences = SequencePreferences()
        if equipment is None:
            return preferences
        if preferences.unity_gain is None and equipment.unity_gain is not None:
            preferences = replace(preferences, unity_gain=equipment.unity_gain)
        if preferences.camera_kind != equipment.camera_kind:
            preferences = replace(preferences, camera_kind=equipment.camera_kind)
        return preferences

    @classmethod
    def from_config(cls, config: SessionConfig, catalog: Optional[EclipseCatalog] = None) -> 'EclipseSession':
        """
        Build a session from a loaded configuration.

        Raises
        ------
        DataError
            If the configured eclipse id is not in the catalog.
        LocationError
            If the observer coordinate is out of range.
        """
        if catalog is None:
            if config.catalog_path:
                catalog = EclipseCatalog.load(config.catalog_path)
            else:
                catalog = EclipseCatalog.from_builtin()

        record = catalog.find_by_id(config.eclipse_id)
        if record is None:
            raise DataError(f"Eclipse {config.eclipse_id!r} not found in catalog")

        equipment = config.equipment.to_profile() if config.equipment else None
        return cls(
            record=record,
            coordinate=config.observer.to_coordinate(),
            catalog=catalog,
            equipment=equipment,
            preferences=config.sequence_preferences(),
            optimize_shots=config.preferences.optimize_shots,
            countdown_options={
                'lead_times_s': config.countdown.lead_times_s,
                'stale_tolerance_s': config.countdown.stale_tolerance_s,
            },
        )

    @property
    def optical_system(self) -> Optional[OpticalSystem]:
        if self.equipment is None:
            return None
        if self._optical_system is None:
            self._optical_system = self.equipment.to_optical_system()
        return self._optical_system

    @property
    def visibility(self) -> VisibilityResult:
        return self.catalog.classify_for_observer(self.record, self.coordinate)

    @property
    def contact_times(self) -> ContactTimes:
        if self._contact_times is None:
            self._contact_times = calculate_contact_times(self.record, self.coordinate)
        return self._contact_times

    @property
    def sequence(self) -> List[ExposureSequenceStep]:
        if self._sequence is None:
            steps = generate_sequence(self.contact_times, self.optical_system, self.preferences)
            if self.optimize_shots:
                optimize_shot_counts(steps)
            self._sequence = steps
        return self._sequence

    @property
    def exposure_settings(self) -> Dict[str, Optional[int]]:
        return resolve_exposure_settings(self.preferences)

    def regenerate(self):
        """Drop cached results, e.g. after changing equipment or preferences."""
        self._contact_times = None
        self._sequence = None
        self._optical_system = None
        self.preferences = self._merge_preferences(self.preferences, self.equipment)

    def sun_at_maximum(self) -> SolarPosition:
        return sun_position(self.contact_times.max_time, self.coordinate)

    def daylight(self) -> DaylightInfo:
        return sunrise_sunset(self.record.date, self.coordinate)

    def polar_alignment(self) -> PolarAlignment:
        return polar_alignment(self.coordinate)

    def data_size(self) -> Optional[Dict[str, Any]]:
        """Storage estimate for the capture plan; None without equipment."""
        if self.equipment is None:
            return None
        width_px = round(self.equipment.sensor_width_mm * 1000 / self.equipment.pixel_size_um)
        height_px = round(self.equipment.sensor_height_mm * 1000 / self.equipment.pixel_size_um)
        return estimate_data_size(self.sequence, width_px, height_px,
                                  self.equipment.bit_depth, self.preferences.camera_kind)

    def solar_exposure(self, filter_type: str = 'nd5') -> Dict[str, Any]:
        return recommend_solar_exposure(self.optical_system, self.preferences, filter_type)

    def create_countdown(self) -> CountdownEngine:
        """New, stopped countdown engine for this session's contacts and plan."""
        return CountdownEngine(self.contact_times, self.sequence, **self.countdown_options)

    def summary(self) -> Dict[str, Any]:
        """Key facts about the session for display."""
        contacts = self.contact_times
        visibility = self.visibility
        sun = self.sun_at_maximum()
        if not sun.is_visible:
            logger.warning(f"Sun is below the horizon at maximum ({sun.altitude:.1f} deg)")
        return {
            'eclipse': self.record.name,
            'visibility': visibility.type.value,
            'coverage_percent': round(visibility.coverage_percent, 1),
            'distance_km': round(visibility.distance_km, 1),
            'is_total': contacts.is_total,
            'totality_seconds': contacts.totality_duration_seconds,
            'sun_altitude_at_max': round(sun.altitude, 1),
            'sun_azimuth_at_max': round(sun.azimuth, 1),
            'equipment': self.equipment.name if self.equipment else None,
            'n_steps': len(self.sequence),
        }
