import warnings
from dataclasses import replace
from datetime import timedelta

import pytest

from eclipse_commander.constants import (
    CHROMOSPHERE_LADDER_S,
    OUTER_CORONA_LADDER_S,
    PARTIAL_LADDER_S,
)
from eclipse_commander.contacts import calculate_contact_times
from eclipse_commander.data_model import (
    CameraKind,
    ExposureSequenceStep,
    PathPoint,
    PhaseTag,
    Priority,
    SequencePreferences,
)
from eclipse_commander.errors import EquipmentNotConfiguredError
from eclipse_commander.sequences import (
    estimate_data_size,
    estimate_total_frames,
    exposure_factor,
    generate_sequence,
    optimize_shot_counts,
    recommend_solar_exposure,
    resolve_exposure_settings,
    scale_ladder,
    sequence_to_dataframe,
    snap_to_shutter_stop,
    validate_sequence,
)

TOTAL_STEP_IDS = [
    'c1-partial', 'partial-mid', 'c2-filter-off', 'c2-baily',
    'chromosphere', 'inner-corona', 'mid-corona', 'outer-corona', 'prominences',
    'c3-baily', 'c3-filter-on', 'c4-partial',
]


@pytest.fixture
def total_sequence(total_contacts, refractor_system, cmos_preferences):
    return generate_sequence(total_contacts, refractor_system, cmos_preferences)


def by_id(sequence):
    return {step.id: step for step in sequence}


def make_step(duration, ladder, step_id='custom'):
    return ExposureSequenceStep(
        id=step_id,
        display_name='Custom',
        phase_tag=PhaseTag.PARTIAL,
        start_time=None,
        duration_seconds=duration,
        requires_solar_filter=True,
        exposure_ladder=list(ladder),
        shots_per_exposure=3,
        priority=Priority.LOW,
        description='',
    )


class TestTotalSequence:
    def test_step_ids_in_order(self, total_sequence):
        assert [s.id for s in total_sequence] == TOTAL_STEP_IDS

    def test_chronological(self, total_sequence):
        starts = [s.start_time for s in total_sequence]
        assert starts == sorted(starts)

    def test_validates(self, total_sequence, total_contacts):
        result = validate_sequence(total_sequence, total_contacts)
        assert result['passed'], result['errors']
        assert result['stats']['n_steps'] == 12
        assert result['stats']['n_alert_steps'] == 2

    def test_filter_removal_warning(self, total_sequence, total_contacts):
        step = by_id(total_sequence)['c2-filter-off']
        assert step.phase_tag == PhaseTag.FILTER_WARNING
        assert step.priority == Priority.CRITICAL
        assert step.requires_solar_filter
        assert step.is_alert_only
        assert step.shots_per_exposure == 0
        assert step.start_time == total_contacts.c2 - timedelta(seconds=30)

    def test_baily_step_before_second_contact(self, total_sequence, total_contacts):
        step = by_id(total_sequence)['c2-baily']
        assert not step.requires_solar_filter
        assert step.start_time == total_contacts.c2 - timedelta(seconds=5)
        assert step.contains(total_contacts.c2)
        assert step.shots_per_exposure == 5

    def test_totality_segments_span(self, total_sequence, total_contacts):
        steps = by_id(total_sequence)
        segments = [steps[i] for i in ('chromosphere', 'inner-corona', 'mid-corona',
                                        'outer-corona', 'prominences')]
        assert segments[0].start_time == total_contacts.c2 + timedelta(seconds=5)
        last_end = segments[-1].end_time
        assert abs((last_end - (total_contacts.c3 - timedelta(seconds=5))).total_seconds()) < 1e-3
        for segment in segments:
            assert segment.duration_seconds == pytest.approx((291 - 10) / 5)
            assert not segment.requires_solar_filter

    def test_filter_reapplied_after_third_contact(self, total_sequence, total_contacts):
        step = by_id(total_sequence)['c3-filter-on']
        assert step.requires_solar_filter
        assert step.start_time == total_contacts.c3 + timedelta(seconds=5)

    def test_chromosphere_is_fast(self, total_sequence):
        ladder = by_id(total_sequence)['chromosphere'].exposure_ladder
        assert ladder
        assert max(ladder) < 0.001

    def test_ladders_distinct_and_ascending(self, total_sequence):
        steps = by_id(total_sequence)
        assert steps['chromosphere'].exposure_ladder != steps['outer-corona'].exposure_ladder
        assert max(steps['outer-corona'].exposure_ladder) > max(steps['inner-corona'].exposure_ladder)
        for step in total_sequence:
            assert step.exposure_ladder == sorted(step.exposure_ladder)

    def test_cmos_gain_applied(self, total_sequence):
        for step in total_sequence:
            if step.is_alert_only:
                assert step.gain is None
            else:
                assert step.gain == 139
                assert step.iso is None

    def test_short_totality_single_step(self, total_contacts, refractor_system):
        c3 = total_contacts.c2 + timedelta(seconds=12)
        contacts = replace(total_contacts, c3=c3, totality_duration_seconds=12.0)
        sequence = generate_sequence(contacts, refractor_system)
        ids = [s.id for s in sequence]
        assert 'totality' in ids
        assert 'chromosphere' not in ids
        step = by_id(sequence)['totality']
        assert step.phase_tag == PhaseTag.TOTALITY_GENERIC
        assert step.start_time == contacts.c2
        assert step.duration_seconds == pytest.approx(12.0)
        starts = [s.start_time for s in sequence]
        assert starts == sorted(starts)


class TestPartialSequence:
    def test_three_steps(self, partial_contacts, refractor_system):
        sequence = generate_sequence(partial_contacts, refractor_system)
        assert [s.id for s in sequence] == ['partial-start', 'partial-max', 'partial-end']
        assert all(s.requires_solar_filter for s in sequence)
        assert all(s.phase_tag == PhaseTag.PARTIAL for s in sequence)

    def test_anchored_to_contacts(self, partial_contacts, refractor_system):
        start, peak, end = generate_sequence(partial_contacts, refractor_system)
        assert start.start_time == partial_contacts.c1
        assert peak.contains(partial_contacts.max_time)
        assert peak.priority == Priority.HIGH
        assert end.end_time == partial_contacts.c4


class TestFallbackSequence:
    def test_warns_without_equipment(self, total_contacts):
        with pytest.warns(EquipmentNotConfiguredError):
            sequence = generate_sequence(total_contacts)
        assert [s.id for s in sequence] == TOTAL_STEP_IDS

    def test_canonical_ladders(self, total_contacts):
        with pytest.warns(EquipmentNotConfiguredError):
            steps = by_id(generate_sequence(total_contacts))
        assert steps['c1-partial'].exposure_ladder == PARTIAL_LADDER_S
        assert steps['chromosphere'].exposure_ladder == CHROMOSPHERE_LADDER_S
        assert steps['outer-corona'].exposure_ladder == OUTER_CORONA_LADDER_S

    def test_can_escalate_to_error(self, total_contacts):
        with warnings.catch_warnings():
            warnings.simplefilter('error', EquipmentNotConfiguredError)
            with pytest.raises(EquipmentNotConfiguredError):
                generate_sequence(total_contacts)

    def test_four_minute_totality(self, reference_record, reference_observer):
        record = replace(reference_record, path=(PathPoint(lat=30.0, lon=5.8, duration_seconds=240.0),))
        contacts = calculate_contact_times(record, reference_observer)
        assert contacts.totality_duration_seconds == 240.0

        with pytest.warns(EquipmentNotConfiguredError):
            steps = by_id(generate_sequence(contacts))
        for step_id in ('chromosphere', 'inner-corona', 'mid-corona', 'outer-corona', 'prominences'):
            assert steps[step_id].exposure_ladder
            assert steps[step_id].duration_seconds == pytest.approx(46.0)
        assert steps['chromosphere'].start_time == contacts.c2 + timedelta(seconds=5)


class TestPreferences:
    def test_ladder_override(self, total_contacts, refractor_system):
        preferences = SequencePreferences(ladder_overrides={'outerCorona': [2.0, 0.5, 1.0]})
        steps = by_id(generate_sequence(total_contacts, refractor_system, preferences))
        assert steps['outer-corona'].exposure_ladder == [0.5, 1.0, 2.0]

    def test_non_positive_override_rejected(self, total_contacts, refractor_system):
        preferences = SequencePreferences(ladder_overrides={'midCorona': [0.5, 0.0]})
        with pytest.raises(ValueError):
            generate_sequence(total_contacts, refractor_system, preferences)

    @pytest.mark.parametrize('requested, expected', [(500, 100), (0, 1), (7, 7)])
    def test_shots_clamped(self, partial_contacts, refractor_system, requested, expected):
        preferences = SequencePreferences(shots_per_exposure=requested)
        sequence = generate_sequence(partial_contacts, refractor_system, preferences)
        assert all(s.shots_per_exposure == expected for s in sequence)

    def test_cmos_defaults_to_unity_gain(self, cmos_preferences):
        assert resolve_exposure_settings(cmos_preferences) == {'iso': None, 'gain': 139}

    def test_cmos_without_unity_gain(self):
        preferences = SequencePreferences(camera_kind=CameraKind.CMOS)
        assert resolve_exposure_settings(preferences)['gain'] == 120

    def test_explicit_gain_wins(self):
        preferences = SequencePreferences(camera_kind=CameraKind.CMOS, unity_gain=139, gain=200)
        assert resolve_exposure_settings(preferences)['gain'] == 200

    def test_dslr_iso(self):
        assert resolve_exposure_settings(SequencePreferences(camera_kind=CameraKind.DSLR))['iso'] == 400
        preferences = SequencePreferences(camera_kind=CameraKind.DSLR, iso=800)
        assert resolve_exposure_settings(preferences) == {'iso': 800, 'gain': None}

    def test_generic_leaves_settings_unset(self):
        assert resolve_exposure_settings(SequencePreferences()) == {'iso': None, 'gain': None}


class TestLadderScaling:
    def test_exposure_factor(self):
        assert exposure_factor(8.0) == 1.0
        assert exposure_factor(16.0) == 4.0
        assert exposure_factor(8.0, CameraKind.DSLR) == pytest.approx(1.2)
        assert exposure_factor(4.0, 'cmos') == pytest.approx(0.2)

    def test_snap_in_stops(self):
        assert snap_to_shutter_stop(1 / 1000) == 1 / 1000
        assert snap_to_shutter_stop(0.9) == 1.0
        assert snap_to_shutter_stop(1e-6) == 1 / 8000
        assert snap_to_shutter_stop(100.0) == 30.0

    def test_slow_optics_lengthen_partial(self):
        scaled = scale_ladder(PARTIAL_LADDER_S, PhaseTag.PARTIAL, 16.0)
        assert scaled == [1 / 500, 1 / 250, 1 / 125]

    def test_clamped_and_deduplicated(self):
        scaled = scale_ladder(CHROMOSPHERE_LADDER_S, PhaseTag.CHROMOSPHERE, 16.0)
        assert scaled == [1 / 2000, 1 / 1250]

    def test_rejects_bad_focal_ratio(self):
        with pytest.raises(ValueError):
            scale_ladder(PARTIAL_LADDER_S, PhaseTag.PARTIAL, 0.0)


class TestShotOptimization:
    def test_fits_step_duration(self):
        step = make_step(120.0, PARTIAL_LADDER_S)
        optimize_shot_counts([step])
        assert step.shots_per_exposure == 63

    def test_short_baily_step(self):
        step = make_step(10.0, [1 / 4000, 1 / 2000, 1 / 1000])
        optimize_shot_counts([step])
        assert step.shots_per_exposure == 5

    def test_clamped(self):
        long_step = make_step(1000.0, [1 / 1000], 'long')
        short_step = make_step(1.0, [2.0, 4.0], 'short')
        optimize_shot_counts([long_step, short_step])
        assert long_step.shots_per_exposure == 100
        assert short_step.shots_per_exposure == 1

    def test_alert_steps_untouched(self, total_sequence):
        optimize_shot_counts(total_sequence)
        assert by_id(total_sequence)['c2-filter-off'].shots_per_exposure == 0

    def test_fits_within_budget(self, total_sequence):
        for step in optimize_shot_counts(total_sequence):
            if step.is_alert_only or step.shots_per_exposure == 1:
                continue
            pass_time = sum(step.exposure_ladder) + 0.5 * len(step.exposure_ladder)
            assert step.shots_per_exposure * pass_time <= step.duration_seconds * 0.8


class TestExport:
    def test_dataframe(self, total_sequence):
        df = sequence_to_dataframe(total_sequence)
        assert len(df) == len(total_sequence)
        assert list(df['id']) == TOTAL_STEP_IDS
        assert df['frames'].sum() == estimate_total_frames(total_sequence)
        assert df.loc[df['id'] == 'c2-filter-off', 'phase_tag'].item() == 'filterWarning'


class TestValidation:
    def test_empty(self):
        assert not validate_sequence([])['passed']

    def test_out_of_order(self, total_sequence):
        swapped = [total_sequence[1], total_sequence[0]] + total_sequence[2:]
        result = validate_sequence(swapped)
        assert not result['passed']

    def test_duplicate_ids(self, total_sequence):
        result = validate_sequence(total_sequence + [total_sequence[-1]])
        assert 'Duplicate step ids' in result['errors']

    def test_filter_during_totality(self, total_sequence, total_contacts):
        by_id(total_sequence)['mid-corona'].requires_solar_filter = True
        result = validate_sequence(total_sequence, total_contacts)
        assert not result['passed']


class TestDataSize:
    def test_cmos_frames(self, total_sequence):
        frames = estimate_total_frames(total_sequence)
        result = estimate_data_size(total_sequence, 5496, 3672, 16, CameraKind.CMOS)
        frame_bytes = 5496 * 3672 * 2
        assert result['frames'] == frames
        assert result['frame_mb'] == 38.5
        assert result['total_mb'] == pytest.approx(frames * frame_bytes / 1024 ** 2)
        assert result['recommended_card_gb'] >= 2 * result['total_gb']
        assert result['recommended_card_gb'] - 2 * result['total_gb'] < 1

    def test_bit_depth_scales_size(self, total_sequence):
        sixteen = estimate_data_size(total_sequence, 4144, 2822, 16)
        eight = estimate_data_size(total_sequence, 4144, 2822, 8)
        assert eight['total_mb'] == pytest.approx(sixteen['total_mb'] / 2)

    def test_dslr_raw_size(self, total_sequence):
        result = estimate_data_size(total_sequence, camera_kind=CameraKind.DSLR)
        assert result['frame_mb'] == 30.0
        assert result['total_mb'] == pytest.approx(30.0 * result['frames'])

    def test_text_units(self):
        assert estimate_data_size([], 1000, 1000)['total_text'] == '0 MB'
        assert estimate_data_size([], 1000, 1000)['recommended_card_gb'] == 0

    def test_large_plan_in_gigabytes(self, total_sequence):
        result = estimate_data_size(total_sequence, camera_kind=CameraKind.DSLR)
        assert result['total_gb'] > 1
        assert result['total_text'].endswith(' GB')

    @pytest.mark.parametrize('width, height, bits', [(None, 3672, 16), (5496, 0, 16), (5496, 3672, 0)])
    def test_missing_dimensions(self, total_sequence, width, height, bits):
        with pytest.raises(ValueError):
            estimate_data_size(total_sequence, width, height, bits, CameraKind.CMOS)


class TestSolarExposure:
    def test_scaled_for_focal_ratio(self, refractor_system, cmos_preferences):
        result = recommend_solar_exposure(refractor_system, cmos_preferences)
        assert result['optimal_s'] == pytest.approx(0.001 * 0.75 ** 2)
        assert result['min_s'] == pytest.approx(result['optimal_s'] / 4)
        assert result['max_s'] == pytest.approx(result['optimal_s'] * 4)
        assert result['shutter_s'] == 1 / 2000
        assert result['gain'] == 139
        assert result['offset'] == 10
        assert result['format'] == 'FITS'

    def test_dslr(self, refractor_system):
        preferences = SequencePreferences(camera_kind=CameraKind.DSLR)
        result = recommend_solar_exposure(refractor_system, preferences)
        assert result['optimal_s'] == pytest.approx(0.001 * 0.75 ** 2 * 1.5)
        assert result['iso'] == 400
        assert result['format'] == 'RAW'

    def test_narrowband_filter(self, refractor_system):
        result = recommend_solar_exposure(refractor_system, filter_type='halpha')
        assert result['filter_factor'] == 1000
        assert result['filter_type'] == 'halpha'

    def test_without_equipment(self):
        with pytest.warns(EquipmentNotConfiguredError):
            result = recommend_solar_exposure()
        assert result['optimal_s'] == 0.001
        assert result['shutter_s'] == 1 / 1000
        assert result['filter_factor'] == 100000

    def test_unknown_filter(self, refractor_system):
        with pytest.raises(ValueError):
            recommend_solar_exposure(refractor_system, filter_type='welding-glass')
