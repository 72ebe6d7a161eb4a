"""
Configuration dataclasses and loading utilities.

A session is described by a YAML file: which eclipse, where the observer
stands, what equipment is on the mount and how the countdown behaves.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Any, Tuple
import yaml

from .constants import (
    ALERT_LEAD_TIMES_S,
    ALERT_STALE_TOLERANCE_S,
    DEFAULT_BIT_DEPTH,
    DEFAULT_SHOTS_PER_EXPOSURE,
    DEFAULT_TICK_INTERVAL_S,
)
from .data_model import CameraKind, EquipmentProfile, GeoCoordinate, SequencePreferences
from .optics import sensor_size_mm


@dataclass
class ObserverConfig:
    """Observing site."""
    lat: float
    lon: float
    altitude_m: Optional[float] = None
    name: str = ""

    def to_coordinate(self) -> GeoCoordinate:
        """Validated coordinate (raises LocationError when out of range)."""
        return GeoCoordinate(latitude=self.lat, longitude=self.lon, altitude_m=self.altitude_m)


@dataclass
class EquipmentConfig:
    """Telescope and camera on the mount."""
    aperture_mm: float
    focal_length_mm: float
    pixel_size_um: float
    sensor_width_mm: float
    sensor_height_mm: float
    camera_kind: str = 'generic'  # 'cmos', 'dslr' or 'generic'
    # CMOS gain at which read noise and dynamic range balance
    unity_gain: Optional[int] = None
    name: str = "Custom"
    bit_depth: int = DEFAULT_BIT_DEPTH

    def to_profile(self) -> EquipmentProfile:
        return EquipmentProfile(
            aperture_mm=self.aperture_mm,
            focal_length_mm=self.focal_length_mm,
            pixel_size_um=self.pixel_size_um,
            sensor_width_mm=self.sensor_width_mm,
            sensor_height_mm=self.sensor_height_mm,
            camera_kind=CameraKind(self.camera_kind),
            unity_gain=self.unity_gain,
            name=self.name,
            bit_depth=self.bit_depth,
        )


@dataclass
class PreferencesConfig:
    """Sequence generation preferences."""
    iso: Optional[int] = None
    gain: Optional[int] = None
    shots_per_exposure: int = DEFAULT_SHOTS_PER_EXPOSURE
    # Fit shot counts to each step's duration after generation
    optimize_shots: bool = True
    # Per-phase exposure ladders in seconds, keyed by phase tag (e.g. 'midCorona')
    ladder_overrides: Dict[str, List[float]] = field(default_factory=dict)


@dataclass
class CountdownConfig:
    """Live countdown settings."""
    lead_times_s: Tuple[int, ...] = ALERT_LEAD_TIMES_S
    stale_tolerance_s: float = ALERT_STALE_TOLERANCE_S
    tick_interval_s: float = DEFAULT_TICK_INTERVAL_S


@dataclass
class SessionConfig:
    """Top-level session configuration."""
    eclipse_id: str
    observer: ObserverConfig
    equipment: Optional[EquipmentConfig] = None
    preferences: PreferencesConfig = field(default_factory=PreferencesConfig)
    countdown: CountdownConfig = field(default_factory=CountdownConfig)

    # YAML/JSON catalog file; bundled data when None
    catalog_path: Optional[str] = None

    # Output paths
    output_dir: str = "results"
    plots_subdir: str = "plots"

    # Timezone used for printed times (contacts are computed in UTC)
    display_timezone: str = "UTC"

    # Plot settings
    plot_dpi: int = 150
    plot_figsize: tuple = (14, 6)

    raw_config: Dict[str, Any] = field(default_factory=dict)

    @property
    def output_path(self) -> Path:
        """Get output directory path."""
        return Path(self.output_dir)

    @property
    def plots_path(self) -> Path:
        """Get plots subdirectory path."""
        return self.output_path / self.plots_subdir

    def sequence_preferences(self) -> SequencePreferences:
        """Planner preferences combining equipment camera data and user choices."""
        equipment = self.equipment
        return SequencePreferences(
            camera_kind=CameraKind(equipment.camera_kind) if equipment else CameraKind.GENERIC,
            unity_gain=equipment.unity_gain if equipment else None,
            iso=self.preferences.iso,
            gain=self.preferences.gain,
            shots_per_exposure=self.preferences.shots_per_exposure,
            ladder_overrides=dict(self.preferences.ladder_overrides),
        )


def _parse_observer(data: Dict[str, Any]) -> ObserverConfig:
    """Parse observer config from dict."""
    return ObserverConfig(
        lat=data['lat'],
        lon=data['lon'],
        altitude_m=data.get('altitude_m'),
        name=data.get('name', ''),
    )


def _parse_equipment(data: Dict[str, Any]) -> EquipmentConfig:
    """Parse equipment config from dict."""
    # Sensor size may be given directly or as pixel dimensions
    if 'sensor_width_mm' in data:
        width_mm, height_mm = data['sensor_width_mm'], data['sensor_height_mm']
    else:
        width_mm, height_mm = sensor_size_mm(data['width_px'], data['height_px'], data['pixel_size_um'])

    return EquipmentConfig(
        aperture_mm=data['aperture_mm'],
        focal_length_mm=data['focal_length_mm'],
        pixel_size_um=data['pixel_size_um'],
        sensor_width_mm=width_mm,
        sensor_height_mm=height_mm,
        camera_kind=data.get('camera_kind', 'generic'),
        unity_gain=data.get('unity_gain'),
        name=data.get('name', 'Custom'),
        bit_depth=data.get('bit_depth', DEFAULT_BIT_DEPTH),
    )


def _parse_preferences(data: Dict[str, Any]) -> PreferencesConfig:
    """Parse preferences config from dict."""
    overrides = {
        tag: [float(e) for e in ladder]
        for tag, ladder in (data.get('ladder_overrides') or {}).items()
    }
    return PreferencesConfig(
        iso=data.get('iso'),
        gain=data.get('gain'),
        shots_per_exposure=data.get('shots_per_exposure', DEFAULT_SHOTS_PER_EXPOSURE),
        optimize_shots=data.get('optimize_shots', True),
        ladder_overrides=overrides,
    )


def _parse_countdown(data: Dict[str, Any]) -> CountdownConfig:
    """Parse countdown config from dict."""
    return CountdownConfig(
        lead_times_s=tuple(data.get('lead_times_s', ALERT_LEAD_TIMES_S)),
        stale_tolerance_s=data.get('stale_tolerance_s', ALERT_STALE_TOLERANCE_S),
        tick_interval_s=data.get('tick_interval_s', DEFAULT_TICK_INTERVAL_S),
    )


def load_config(config_path: str) -> SessionConfig:
    """
    Load configuration from a YAML file.

    Parameters
    ----------
    config_path : str
        Path to the YAML configuration file.

    Returns
    -------
    SessionConfig
        Parsed configuration. Missing required keys raise ``KeyError``.
    """
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f)

    equipment_data = data.get('equipment')

    config = SessionConfig(
        eclipse_id=data['eclipse_id'],
        observer=_parse_observer(data['observer']),
        equipment=_parse_equipment(equipment_data) if equipment_data else None,
        preferences=_parse_preferences(data.get('preferences') or {}),
        countdown=_parse_countdown(data.get('countdown') or {}),
        catalog_path=data.get('catalog_path'),
        output_dir=data.get('output_dir', 'results'),
        plots_subdir=data.get('plots_subdir', 'plots'),
        display_timezone=data.get('display_timezone', 'UTC'),
        plot_dpi=data.get('plot_dpi', 150),
        plot_figsize=tuple(data.get('plot_figsize', [14, 6])),
        raw_config=data,
    )

    return config


def save_config(config: SessionConfig, config_path: str) -> None:
    """
    Save configuration to a YAML file.

    Parameters
    ----------
    config : SessionConfig
        Configuration to save.
    config_path : str
        Path to write the YAML file.
    """
    data = {
        'eclipse_id': config.eclipse_id,
        'catalog_path': config.catalog_path,
        'observer': {
            'name': config.observer.name,
            'lat': config.observer.lat,
            'lon': config.observer.lon,
            'altitude_m': config.observer.altitude_m,
        },
        'preferences': {
            'iso': config.preferences.iso,
            'gain': config.preferences.gain,
            'shots_per_exposure': config.preferences.shots_per_exposure,
            'optimize_shots': config.preferences.optimize_shots,
            'ladder_overrides': config.preferences.ladder_overrides,
        },
        'countdown': {
            'lead_times_s': list(config.countdown.lead_times_s),
            'stale_tolerance_s': config.countdown.stale_tolerance_s,
            'tick_interval_s': config.countdown.tick_interval_s,
        },
        'output_dir': config.output_dir,
        'plots_subdir': config.plots_subdir,
        'display_timezone': config.display_timezone,
        'plot_dpi': config.plot_dpi,
        'plot_figsize': list(config.plot_figsize),
    }

    if config.equipment is not None:
        data['equipment'] = {
            'name': config.equipment.name,
            'aperture_mm': config.equipment.aperture_mm,
            'focal_length_mm': config.equipment.focal_length_mm,
            'pixel_size_um': config.equipment.pixel_size_um,
            'sensor_width_mm': config.equipment.sensor_width_mm,
            'sensor_height_mm': config.equipment.sensor_height_mm,
            'camera_kind': config.equipment.camera_kind,
            'unity_gain': config.equipment.unity_gain,
            'bit_depth': config.equipment.bit_depth,
        }

    with open(config_path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
