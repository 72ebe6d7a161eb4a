from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from eclipse_commander.catalog import EclipseCatalog
from eclipse_commander.contacts import (
    calculate_contact_times,
    longitude_offset_seconds,
    reference_local_noon,
    validate_contact_times,
)
from eclipse_commander.data_model import EclipseType, GeoCoordinate, PathPoint
from eclipse_commander.errors import DataError, LocationError

from conftest import point_north_of


class TestCentralObserver:
    def test_totality_duration_from_path_point(self, total_contacts):
        assert total_contacts.is_total
        assert total_contacts.totality_duration_seconds == 291.0
        assert (total_contacts.c3 - total_contacts.c2).total_seconds() == pytest.approx(291.0)

    def test_strict_ordering(self, total_contacts):
        c = total_contacts
        assert c.c1 < c.c2 < c.max_time < c.c3 < c.c4

    def test_maximum_at_reference_local_noon(self, total_contacts):
        assert total_contacts.max_time == datetime(2027, 8, 2, 11, 36, 48, tzinfo=timezone.utc)
        assert total_contacts.longitude_offset_seconds == 0.0

    def test_partial_window_is_three_hours(self, total_contacts):
        assert total_contacts.partial_duration_seconds == 3 * 3600

    def test_boundaries(self, total_contacts):
        labels = [label for label, _ in total_contacts.boundaries()]
        assert labels == ['C1', 'C2', 'C3', 'C4']

    def test_validation_passes(self, total_contacts):
        result = validate_contact_times(total_contacts)
        assert result['passed']
        assert result['errors'] == []
        assert result['stats']['totality_seconds'] == pytest.approx(291.0)

    def test_luxor_builtin(self):
        catalog = EclipseCatalog.from_builtin()
        record = catalog.find_by_id('2027-08-02-total')
        contacts = calculate_contact_times(record, GeoCoordinate(25.69, 32.64))
        assert contacts.is_total
        assert contacts.totality_duration_seconds == 383.0
        assert contacts.reference_point.location_name == 'Luxor'


class TestLongitudeOffset:
    def test_east_is_positive(self):
        assert longitude_offset_seconds(10.0, 5.0) == 1200.0
        assert longitude_offset_seconds(5.0, 10.0) == -1200.0

    @pytest.mark.parametrize('delta_lon, expected_shift', [(0.5, 120.0), (-0.5, -120.0)])
    def test_observer_offset_shifts_contacts(self, reference_record, total_contacts, delta_lon, expected_shift):
        observer = GeoCoordinate(latitude=30.0, longitude=5.8 + delta_lon)
        contacts = calculate_contact_times(reference_record, observer)
        assert contacts.is_total
        assert contacts.longitude_offset_seconds == pytest.approx(expected_shift)
        shift = (contacts.max_time - total_contacts.max_time).total_seconds()
        assert shift == pytest.approx(expected_shift)
        assert (contacts.c2 - total_contacts.c2).total_seconds() == pytest.approx(expected_shift)

    def test_reference_local_noon(self):
        noon = reference_local_noon(date(2027, 8, 2), -15.0)
        assert noon == datetime(2027, 8, 2, 13, 0, tzinfo=timezone.utc)


class TestPartialObserver:
    def test_no_second_or_third_contact(self, partial_contacts):
        assert not partial_contacts.is_total
        assert partial_contacts.c2 is None
        assert partial_contacts.c3 is None
        assert partial_contacts.totality_duration_seconds == 0.0

    def test_two_hour_window(self, partial_contacts):
        c = partial_contacts
        assert (c.c4 - c.c1).total_seconds() == 7200
        assert c.c1 < c.max_time < c.c4
        assert [label for label, _ in c.boundaries()] == ['C1', 'MAX', 'C4']

    def test_validation_warns_when_far(self, reference_record):
        contacts = calculate_contact_times(reference_record, point_north_of(30.0, 5.8, 1500.0))
        result = validate_contact_times(contacts)
        assert result['passed']
        assert len(result['warnings']) == 1

    @pytest.mark.parametrize('distance_km', [0.0, 50.0, 128.0, 130.0, 400.0, 1000.0, 1900.0])
    def test_agrees_with_classification(self, reference_record, distance_km):
        observer = point_north_of(30.0, 5.8, distance_km)
        visibility = EclipseCatalog([reference_record]).classify_for_observer(reference_record, observer)
        contacts = calculate_contact_times(reference_record, observer)
        assert visibility.is_central == contacts.is_total

    def test_partial_type_record(self, builtin_catalog):
        record = builtin_catalog.find_by_id('2029-01-14-partial')
        contacts = calculate_contact_times(record, GeoCoordinate(63.7, -114.2))
        assert not contacts.is_total

    def test_partial_record_without_path_uses_observer(self, reference_record):
        record = replace(reference_record, type=EclipseType.PARTIAL, path=())
        contacts = calculate_contact_times(record, GeoCoordinate(10.0, 20.0))
        assert contacts.distance_km == 0.0
        assert contacts.longitude_offset_seconds == 0.0
        assert contacts.max_time == datetime(2027, 8, 2, 10, 40, tzinfo=timezone.utc)


class TestFallbacks:
    def test_record_max_duration_when_point_has_none(self, reference_record, reference_observer):
        record = replace(reference_record, path=(PathPoint(lat=30.0, lon=5.8),))
        contacts = calculate_contact_times(record, reference_observer)
        assert contacts.totality_duration_seconds == 383.0

    def test_fixed_duration_when_nothing_known(self, reference_record, reference_observer):
        record = replace(reference_record, path=(PathPoint(lat=30.0, lon=5.8),), max_duration_seconds=None)
        contacts = calculate_contact_times(record, reference_observer)
        assert contacts.totality_duration_seconds == 120.0
        assert (contacts.c3 - contacts.c2).total_seconds() == pytest.approx(120.0)


class TestErrors:
    def test_missing_location(self, reference_record):
        with pytest.raises(LocationError):
            calculate_contact_times(reference_record, None)

    def test_wrong_location_type(self, reference_record):
        with pytest.raises(LocationError):
            calculate_contact_times(reference_record, (30.0, 5.8))

    @pytest.mark.parametrize('lat, lon', [(91.0, 0.0), (-90.5, 0.0), (0.0, 180.5), (None, 0.0)])
    def test_out_of_range_coordinate(self, lat, lon):
        with pytest.raises(LocationError):
            GeoCoordinate(latitude=lat, longitude=lon)

    def test_bad_record_date(self, reference_record, reference_observer):
        record = replace(reference_record, date='second of August')
        with pytest.raises(DataError):
            calculate_contact_times(record, reference_observer)

    def test_central_record_without_path(self, reference_record, reference_observer):
        with pytest.raises(DataError):
            calculate_contact_times(replace(reference_record, path=()), reference_observer)

    def test_validation_catches_disorder(self, total_contacts):
        broken = replace(total_contacts, c2=total_contacts.c3 + timedelta(seconds=1))
        result = validate_contact_times(broken)
        assert not result['passed']
        assert result['errors']
