"""Shared fixtures for the eclipse_commander test suite."""

from datetime import date, datetime, timezone

import matplotlib
matplotlib.use('Agg')

import pytest

from eclipse_commander.catalog import EclipseCatalog
from eclipse_commander.contacts import calculate_contact_times
from eclipse_commander.data_model import (
    CameraKind,
    EclipseRecord,
    EclipseType,
    EquipmentProfile,
    GeoCoordinate,
    PathPoint,
    SequencePreferences,
)
from eclipse_commander.optics import compute_optical_system

KM_PER_DEG_LAT = 6371.0 * 3.141592653589793 / 180.0


def point_north_of(lat: float, lon: float, km: float) -> GeoCoordinate:
    """Coordinate ``km`` due north along the meridian."""
    return GeoCoordinate(latitude=lat + km / KM_PER_DEG_LAT, longitude=lon)


@pytest.fixture
def builtin_catalog():
    return EclipseCatalog.from_builtin()


@pytest.fixture
def reference_record():
    """Total eclipse with a single path point at 30N 5.8E and 291 s of totality."""
    return EclipseRecord(
        id='test-total',
        name='Test Total Eclipse',
        date=date(2027, 8, 2),
        type=EclipseType.TOTAL,
        magnitude=1.079,
        path_width_km=258.0,
        max_duration_seconds=383.0,
        path=(
            PathPoint(lat=30.0, lon=5.8, duration_seconds=291.0, location_name='Reference'),
            PathPoint(lat=28.0, lon=15.0, duration_seconds=320.0),
        ),
    )


@pytest.fixture
def reference_observer():
    return GeoCoordinate(latitude=30.0, longitude=5.8)


@pytest.fixture
def total_contacts(reference_record, reference_observer):
    return calculate_contact_times(reference_record, reference_observer)


@pytest.fixture
def partial_contacts(reference_record):
    return calculate_contact_times(reference_record, point_north_of(30.0, 5.8, 1000.0))


@pytest.fixture
def refractor_system():
    """80 mm f/7.5 refractor with a 2.4 um CMOS sensor."""
    return compute_optical_system(80.0, 600.0, 13.2, 8.8, 2.4)


@pytest.fixture
def cmos_profile():
    return EquipmentProfile(
        aperture_mm=80.0,
        focal_length_mm=600.0,
        pixel_size_um=2.4,
        sensor_width_mm=13.2,
        sensor_height_mm=8.8,
        camera_kind=CameraKind.CMOS,
        unity_gain=139,
        name='80ED + ASI183MM',
    )


@pytest.fixture
def cmos_preferences():
    return SequencePreferences(camera_kind=CameraKind.CMOS, unity_gain=139)


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def session_yaml(tmp_path):
    path = tmp_path / 'session.yaml'
    path.write_text(
        "eclipse_id: 2027-08-02-total\n"
        "observer:\n"
        "  name: Luxor\n"
        "  lat: 25.69\n"
        "  lon: 32.64\n"
        "equipment:\n"
        "  name: 80ED + ASI183MM\n"
        "  aperture_mm: 80\n"
        "  focal_length_mm: 600\n"
        "  pixel_size_um: 2.4\n"
        "  width_px: 5496\n"
        "  height_px: 3672\n"
        "  camera_kind: cmos\n"
        "  unity_gain: 120\n"
        "preferences:\n"
        "  shots_per_exposure: 4\n"
        "  ladder_overrides:\n"
        "    outerCorona: [0.5, 1.0, 2.0]\n"
        "countdown:\n"
        "  lead_times_s: [30, 10, 0]\n"
        f"output_dir: {tmp_path / 'results'}\n"
        "display_timezone: Africa/Cairo\n"
    )
    return path
