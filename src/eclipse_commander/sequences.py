"""
Exposure sequence planner.

Builds the capture plan for an eclipse as a chronologically ordered list of
``ExposureSequenceStep`` anchored to the contact times. Exposure ladders
start from hand-tuned tables (see ``constants``) and are scaled for the
focal ratio and camera kind, then snapped to standard shutter stops.
"""

import logging
import math
import warnings
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .constants import (
    REFERENCE_FOCAL_RATIO,
    CAMERA_EXPOSURE_FACTORS,
    CARD_SIZE_SAFETY_FACTOR,
    DEFAULT_BIT_DEPTH,
    DSLR_RAW_FRAME_BYTES,
    SOLAR_BASE_EXPOSURE_S,
    SOLAR_CAMERA_FACTORS,
    SOLAR_CMOS_OFFSET,
    SOLAR_EXPOSURE_RANGE_STOPS,
    SOLAR_FILTER_FACTORS,
    SOLAR_REFERENCE_FOCAL_RATIO,
    DEFAULT_DSLR_ISO,
    DEFAULT_CMOS_GAIN,
    BAILY_SHOTS_PER_EXPOSURE,
    DOWNLOAD_OVERHEAD_S,
    SHOT_TIME_BUDGET_FRACTION,
    MIN_SHOTS_PER_EXPOSURE,
    MAX_SHOTS_PER_EXPOSURE,
    FILTER_REMOVAL_LEAD_S,
    BAILY_LEAD_S,
    BAILY_DURATION_S,
    TOTALITY_EDGE_MARGIN_S,
    FILTER_REAPPLY_DELAY_S,
    FILTER_REAPPLY_DURATION_S,
    PARTIAL_STEP_DURATION_S,
    MID_PARTIAL_DURATION_S,
    PARTIAL_MAX_DURATION_S,
    C4_STEP_LEAD_S,
    TOTALITY_SEGMENTS,
    MIN_TOTALITY_SEGMENT_S,
    STANDARD_SHUTTER_SPEEDS_S,
    PARTIAL_LADDER_S,
    BAILY_LADDER_S,
    CHROMOSPHERE_LADDER_S,
    INNER_CORONA_LADDER_S,
    MID_CORONA_LADDER_S,
    OUTER_CORONA_LADDER_S,
    PROMINENCE_LADDER_S,
    TOTALITY_GENERIC_LADDER_S,
    LADDER_BOUNDS_S,
)
from .data_model import (
    CameraKind,
    ContactTimes,
    ExposureSequenceStep,
    OpticalSystem,
    PhaseTag,
    Priority,
    SequencePreferences,
)
from .errors import EquipmentNotConfiguredError

logger = logging.getLogger(__name__)

BASE_LADDERS: Dict[PhaseTag, List[float]] = {
    PhaseTag.PARTIAL: PARTIAL_LADDER_S,
    PhaseTag.BAILY: BAILY_LADDER_S,
    PhaseTag.CHROMOSPHERE: CHROMOSPHERE_LADDER_S,
    PhaseTag.INNER_CORONA: INNER_CORONA_LADDER_S,
    PhaseTag.MID_CORONA: MID_CORONA_LADDER_S,
    PhaseTag.OUTER_CORONA: OUTER_CORONA_LADDER_S,
    PhaseTag.PROMINENCE: PROMINENCE_LADDER_S,
    PhaseTag.TOTALITY_GENERIC: TOTALITY_GENERIC_LADDER_S,
}

# Totality sub-phases in order of increasing distance from the limb
TOTALITY_PHASES: List[Tuple[str, str, PhaseTag, Priority, str]] = [
    ('chromosphere', 'Chromosphere', PhaseTag.CHROMOSPHERE, Priority.HIGH,
     "Pink chromosphere and flash spectrum just after second contact"),
    ('inner-corona', 'Inner Corona', PhaseTag.INNER_CORONA, Priority.HIGH,
     "Bright inner corona close to the limb"),
    ('mid-corona', 'Mid Corona', PhaseTag.MID_CORONA, Priority.HIGH,
     "Coronal streamers out to two solar radii"),
    ('outer-corona', 'Outer Corona', PhaseTag.OUTER_CORONA, Priority.MEDIUM,
     "Faint outer corona; longest exposures of the plan"),
    ('prominences', 'Prominences', PhaseTag.PROMINENCE, Priority.MEDIUM,
     "Prominences on the western limb before third contact"),
]


def exposure_factor(focal_ratio: float, camera_kind: CameraKind = CameraKind.GENERIC) -> float:
    """
    Exposure multiplier relative to the reference tables.

    Required exposure scales with the square of the focal ratio; the camera
    factor accounts for typical sensor sensitivity.
    """
    camera = CameraKind(camera_kind).value
    return (focal_ratio / REFERENCE_FOCAL_RATIO) ** 2 * CAMERA_EXPOSURE_FACTORS[camera]


def snap_to_shutter_stop(exposure_s: float) -> float:
    """Nearest standard shutter speed, measured in stops (log space)."""
    stops = np.log2(np.asarray(STANDARD_SHUTTER_SPEEDS_S))
    idx = int(np.argmin(np.abs(stops - np.log2(exposure_s))))
    return STANDARD_SHUTTER_SPEEDS_S[idx]


def scale_ladder(
    ladder: Sequence[float],
    phase_tag: PhaseTag,
    focal_ratio: float,
    camera_kind: CameraKind = CameraKind.GENERIC,
) -> List[float]:
    """
    Scale a base ladder for the optics and camera in use.

    Each exposure is multiplied by ``exposure_factor``, snapped to a standard
    shutter stop and clamped to the phase's bounds; duplicates created by
    clamping are dropped. The result stays ascending and non-empty.
    """
    if focal_ratio <= 0:
        raise ValueError(f"focal_ratio must be positive, got {focal_ratio}")

    factor = exposure_factor(focal_ratio, camera_kind)
    low, high = LADDER_BOUNDS_S[PhaseTag(phase_tag).value]

    scaled = []
    for exposure in ladder:
        value = min(max(snap_to_shutter_stop(exposure * factor), low), high)
        if not any(math.isclose(value, s, rel_tol=1e-9) for s in scaled):
            scaled.append(value)
    return sorted(scaled)


def resolve_exposure_settings(preferences: SequencePreferences) -> Dict[str, Optional[int]]:
    """
    Resolve ISO/gain from preferences and camera kind.

    CMOS cameras default to their unity gain (or 120 when unknown); DSLRs
    default to ISO 400. Explicit preference values always win.
    """
    kind = CameraKind(preferences.camera_kind)
    if kind == CameraKind.CMOS:
        gain = preferences.gain
        if gain is None:
            gain = preferences.unity_gain if preferences.unity_gain is not None else DEFAULT_CMOS_GAIN
        return {'iso': preferences.iso, 'gain': gain}
    if kind == CameraKind.DSLR:
        iso = preferences.iso if preferences.iso is not None else DEFAULT_DSLR_ISO
        return {'iso': iso, 'gain': preferences.gain}
    return {'iso': preferences.iso, 'gain': preferences.gain}


class _LadderSource:
    """Per-phase ladders for one plan: overrides, scaled tables or canonical fallback."""

    def __init__(self, optical_system: Optional[OpticalSystem], preferences: SequencePreferences):
        self.optical_system = optical_system
        self.preferences = preferences

    def __call__(self, tag: PhaseTag) -> List[float]:
        override = self.preferences.ladder_overrides.get(tag.value)
        if override:
            if any(e <= 0 for e in override):
                raise ValueError(f"Ladder override for {tag.value} has non-positive exposures")
            return sorted(float(e) for e in override)

        base = BASE_LADDERS[tag]
        if self.optical_system is None:
            return list(base)
        return scale_ladder(base, tag, self.optical_system.focal_ratio, self.preferences.camera_kind)


def _step(
    step_id: str,
    name: str,
    tag: PhaseTag,
    start: datetime,
    duration: float,
    filter_on: bool,
    ladder: List[float],
    shots: int,
    priority: Priority,
    description: str,
    settings: Dict[str, Optional[int]],
) -> ExposureSequenceStep:
    return ExposureSequenceStep(
        id=step_id,
        display_name=name,
        phase_tag=tag,
        start_time=start,
        duration_seconds=float(duration),
        requires_solar_filter=filter_on,
        exposure_ladder=ladder,
        shots_per_exposure=shots if ladder else 0,
        priority=priority,
        description=description,
        iso=settings['iso'] if ladder else None,
        gain=settings['gain'] if ladder else None,
    )


def _partial_only_steps(contacts: ContactTimes, ladders: _LadderSource, shots: int, settings) -> List[ExposureSequenceStep]:
    partial = ladders(PhaseTag.PARTIAL)
    max_start = contacts.max_time - timedelta(seconds=PARTIAL_MAX_DURATION_S / 2)
    return [
        _step('partial-start', 'Partial Eclipse Start', PhaseTag.PARTIAL, contacts.c1,
              PARTIAL_STEP_DURATION_S, True, list(partial), shots, Priority.MEDIUM,
              "First contact: the Moon starts to cover the Sun", settings),
        _step('partial-max', 'Maximum Eclipse', PhaseTag.PARTIAL, max_start,
              PARTIAL_MAX_DURATION_S, True, list(partial), shots, Priority.HIGH,
              "Greatest obscuration; keep the solar filter on", settings),
        _step('partial-end', 'Partial Eclipse End', PhaseTag.PARTIAL,
              contacts.c4 - timedelta(seconds=PARTIAL_STEP_DURATION_S),
              PARTIAL_STEP_DURATION_S, True, list(partial), shots, Priority.MEDIUM,
              "Last contact: the Moon leaves the solar disk", settings),
    ]


def _totality_steps(contacts: ContactTimes, ladders: _LadderSource, shots: int, settings) -> List[ExposureSequenceStep]:
    c2, c3 = contacts.c2, contacts.c3
    duration = (c3 - c2).total_seconds()
    usable = duration - 2 * TOTALITY_EDGE_MARGIN_S

    if usable < TOTALITY_SEGMENTS * MIN_TOTALITY_SEGMENT_S:
        logger.info(f"Totality of {duration:.0f}s too short to split; using a single generic step")
        return [
            _step('totality', 'Totality', PhaseTag.TOTALITY_GENERIC, c2, max(duration, 0.0),
                  False, ladders(PhaseTag.TOTALITY_GENERIC), shots, Priority.CRITICAL,
                  "Short totality: shoot the full bracket", settings),
        ]

    segment = usable / TOTALITY_SEGMENTS
    start = c2 + timedelta(seconds=TOTALITY_EDGE_MARGIN_S)
    steps = []
    for i, (step_id, name, tag, priority, description) in enumerate(TOTALITY_PHASES):
        steps.append(_step(
            step_id, name, tag, start + timedelta(seconds=i * segment), segment,
            False, ladders(tag), shots, priority, description, settings,
        ))
    return steps


def _total_steps(contacts: ContactTimes, ladders: _LadderSource, shots: int, settings) -> List[ExposureSequenceStep]:
    c1, c2, c3, c4 = contacts.c1, contacts.c2, contacts.c3, contacts.c4
    partial = ladders(PhaseTag.PARTIAL)
    baily = ladders(PhaseTag.BAILY)
    baily_shots = max(BAILY_SHOTS_PER_EXPOSURE, shots)

    steps = [
        _step('c1-partial', 'C1 - Partial Phase Begins', PhaseTag.PARTIAL, c1,
              PARTIAL_STEP_DURATION_S, True, list(partial), shots, Priority.MEDIUM,
              "First contact: start partial-phase captures", settings),
        _step('partial-mid', 'Mid Partial Phase', PhaseTag.PARTIAL, c1 + (c2 - c1) / 2,
              MID_PARTIAL_DURATION_S, True, list(partial), shots, Priority.LOW,
              "Crescent Sun halfway to totality", settings),
        _step('c2-filter-off', 'Remove Solar Filter', PhaseTag.FILTER_WARNING,
              c2 - timedelta(seconds=FILTER_REMOVAL_LEAD_S),
              FILTER_REMOVAL_LEAD_S - BAILY_LEAD_S, True, [], 0, Priority.CRITICAL,
              "Get ready to remove the solar filter for second contact", settings),
        _step('c2-baily', "C2 - Baily's Beads", PhaseTag.BAILY,
              c2 - timedelta(seconds=BAILY_LEAD_S), BAILY_DURATION_S, False,
              list(baily), baily_shots, Priority.CRITICAL,
              "Filter off: Baily's beads and diamond ring", settings),
    ]

    steps.extend(_totality_steps(contacts, ladders, shots, settings))

    steps.extend([
        _step('c3-baily', "C3 - Baily's Beads", PhaseTag.BAILY, c3,
              FILTER_REAPPLY_DELAY_S, False, list(baily), baily_shots, Priority.CRITICAL,
              "Third contact: diamond ring and Baily's beads", settings),
        _step('c3-filter-on', 'Reapply Solar Filter', PhaseTag.FILTER_WARNING,
              c3 + timedelta(seconds=FILTER_REAPPLY_DELAY_S), FILTER_REAPPLY_DURATION_S,
              True, [], 0, Priority.CRITICAL,
              "Put the solar filter back on now", settings),
        _step('c4-partial', 'C4 - Partial Phase Ends', PhaseTag.PARTIAL,
              c4 - timedelta(seconds=C4_STEP_LEAD_S), PARTIAL_STEP_DURATION_S, True,
              list(partial), shots, Priority.MEDIUM,
              "Fourth contact: last partial-phase captures", settings),
    ])
    return steps


def generate_sequence(
    contact_times: ContactTimes,
    optical_system: Optional[OpticalSystem] = None,
    preferences: Optional[SequencePreferences] = None,
) -> List[ExposureSequenceStep]:
    """
    Generate the capture plan for an eclipse.

    Parameters
    ----------
    contact_times : ContactTimes
        Contacts for the observer.
    optical_system : OpticalSystem, optional
        Telescope + camera. When missing, an ``EquipmentNotConfiguredError``
        warning is issued and the canonical (unscaled) ladders are used.
    preferences : SequencePreferences, optional
        Camera kind, ISO/gain and shot preferences.

    Returns
    -------
    list of ExposureSequenceStep
        Steps in non-decreasing start-time order.
    """
    preferences = preferences or SequencePreferences()
    if optical_system is None:
        warnings.warn(
            EquipmentNotConfiguredError("No equipment configured; using the generic exposure sequence"),
            stacklevel=2,
        )
        logger.warning("No optical system supplied, generating generic fallback sequence")

    ladders = _LadderSource(optical_system, preferences)
    settings = resolve_exposure_settings(preferences)
    shots = min(max(int(preferences.shots_per_exposure), MIN_SHOTS_PER_EXPOSURE), MAX_SHOTS_PER_EXPOSURE)

    if contact_times.is_total and contact_times.c2 is not None and contact_times.c3 is not None:
        steps = _total_steps(contact_times, ladders, shots, settings)
    else:
        steps = _partial_only_steps(contact_times, ladders, shots, settings)

    if any(a.start_time > b.start_time for a, b in zip(steps, steps[1:])):
        # Only reachable with degenerate contact times; the engine relies on ordering
        logger.warning("Generated sequence was out of order; sorting by start time")
        steps.sort(key=lambda s: s.start_time)

    logger.info(f"Generated {len(steps)} sequence steps, {estimate_total_frames(steps)} frames")
    return steps


def optimize_shot_counts(
    sequence: List[ExposureSequenceStep],
    download_overhead_s: float = DOWNLOAD_OVERHEAD_S,
    budget_fraction: float = SHOT_TIME_BUDGET_FRACTION,
) -> List[ExposureSequenceStep]:
    """
    Fit shot counts to each step's allotted time (in place).

    One pass through a ladder costs the sum of its exposures plus a download
    overhead per exposure. Each step uses at most ``budget_fraction`` of its
    duration, and every exposure in the ladder gets the same shot count,
    clamped to [1, 100]. Alert-only steps are left untouched.

    Returns
    -------
    list of ExposureSequenceStep
        The same list, for chaining.
    """
    for step in sequence:
        if not step.exposure_ladder:
            continue
        pass_time = sum(step.exposure_ladder) + download_overhead_s * len(step.exposure_ladder)
        available = step.duration_seconds * budget_fraction
        shots = math.floor(available / pass_time) if pass_time > 0 else MAX_SHOTS_PER_EXPOSURE
        step.shots_per_exposure = min(max(shots, MIN_SHOTS_PER_EXPOSURE), MAX_SHOTS_PER_EXPOSURE)
        logger.debug(f"{step.id}: {step.shots_per_exposure} shots x {len(step.exposure_ladder)} exposures")
    return sequence


def estimate_total_frames(sequence: Sequence[ExposureSequenceStep]) -> int:
    return sum(step.total_frames for step in sequence)


def estimate_data_size(
    sequence: Sequence[ExposureSequenceStep],
    width_px: Optional[int] = None,
    height_px: Optional[int] = None,
    bit_depth: int = DEFAULT_BIT_DEPTH,
    camera_kind: CameraKind = CameraKind.CMOS,
) -> Dict[str, Any]:
    """
    Storage needed for a capture plan.

    Astronomy cameras write uncompressed frames of width x height x bit
    depth; DSLR RAW files are taken at a typical fixed size.

    Parameters
    ----------
    sequence : list of ExposureSequenceStep
        Plan to size.
    width_px, height_px : int, optional
        Sensor dimensions; required unless ``camera_kind`` is DSLR.
    bit_depth : int
        Bits per pixel as written to disk.
    camera_kind : CameraKind

    Returns
    -------
    dict
        frames, frame_mb, total_mb, total_gb, total_text and
        recommended_card_gb (twice the plan, rounded up).
    """
    kind = CameraKind(camera_kind)
    if kind == CameraKind.DSLR:
        frame_bytes = DSLR_RAW_FRAME_BYTES
    else:
        if not width_px or not height_px or width_px <= 0 or height_px <= 0:
            raise ValueError(f"Sensor pixel dimensions required for {kind.value} frames")
        if bit_depth <= 0:
            raise ValueError(f"bit_depth must be positive, got {bit_depth}")
        frame_bytes = width_px * height_px * bit_depth / 8

    frames = estimate_total_frames(sequence)
    total_mb = frame_bytes * frames / (1024 * 1024)
    total_gb = total_mb / 1024
    total_text = f"{total_gb:.2f} GB" if total_gb > 1 else f"{total_mb:.0f} MB"

    return {
        'frames': frames,
        'frame_mb': round(frame_bytes / (1024 * 1024), 1),
        'total_mb': total_mb,
        'total_gb': total_gb,
        'total_text': total_text,
        'recommended_card_gb': math.ceil(total_gb * CARD_SIZE_SAFETY_FACTOR),
    }


def recommend_solar_exposure(
    optical_system: Optional[OpticalSystem] = None,
    preferences: Optional[SequencePreferences] = None,
    filter_type: str = 'nd5',
) -> Dict[str, Any]:
    """
    White-light (or narrowband) solar exposure behind a full-aperture filter.

    The 1 ms reference exposure at f/10 behind ND5 scales with the square of
    the focal ratio, with a bracket of two stops either side. Without
    optics the reference values are returned and the equipment warning is
    issued, as for ``generate_sequence``.

    Raises
    ------
    ValueError
        For an unknown filter type.
    """
    if filter_type not in SOLAR_FILTER_FACTORS:
        raise ValueError(f"Unknown solar filter {filter_type!r}, "
                         f"expected one of {sorted(SOLAR_FILTER_FACTORS)}")
    if preferences is None:
        preferences = SequencePreferences()
    kind = CameraKind(preferences.camera_kind)

    if optical_system is None:
        warnings.warn(
            "No optical system configured; using reference solar exposure for f/10",
            EquipmentNotConfiguredError,
            stacklevel=2,
        )
        optimal = SOLAR_BASE_EXPOSURE_S
    else:
        optimal = (SOLAR_BASE_EXPOSURE_S
                   * (optical_system.focal_ratio / SOLAR_REFERENCE_FOCAL_RATIO) ** 2
                   * SOLAR_CAMERA_FACTORS[kind.value])

    bracket = 2 ** SOLAR_EXPOSURE_RANGE_STOPS
    result = {
        'filter_type': filter_type,
        'filter_factor': SOLAR_FILTER_FACTORS[filter_type],
        'optimal_s': optimal,
        'min_s': optimal / bracket,
        'max_s': optimal * bracket,
        'shutter_s': snap_to_shutter_stop(optimal),
    }
    result.update(resolve_exposure_settings(preferences))
    if kind == CameraKind.CMOS:
        result.update({'offset': SOLAR_CMOS_OFFSET, 'binning': 1, 'format': 'FITS'})
    elif kind == CameraKind.DSLR:
        result.update({'format': 'RAW'})
    return result


def sequence_to_dataframe(sequence: Sequence[ExposureSequenceStep]) -> pd.DataFrame:
    """
    Convert a sequence to a DataFrame, one row per step.

    Field-for-field mapping of ``ExposureSequenceStep`` plus ``end_time`` and
    ``frames`` for convenience.
    """
    columns = [
        'id', 'display_name', 'phase_tag', 'start_time', 'end_time', 'duration_seconds',
        'requires_solar_filter', 'exposure_ladder', 'shots_per_exposure', 'priority',
        'description', 'iso', 'gain', 'frames',
    ]
    rows = []
    for step in sequence:
        rows.append({
            'id': step.id,
            'display_name': step.display_name,
            'phase_tag': step.phase_tag.value,
            'start_time': step.start_time,
            'end_time': step.end_time,
            'duration_seconds': step.duration_seconds,
            'requires_solar_filter': step.requires_solar_filter,
            'exposure_ladder': list(step.exposure_ladder),
            'shots_per_exposure': step.shots_per_exposure,
            'priority': step.priority.value,
            'description': step.description,
            'iso': step.iso,
            'gain': step.gain,
            'frames': step.total_frames,
        })
    return pd.DataFrame(rows, columns=columns)


def validate_sequence(
    sequence: Sequence[ExposureSequenceStep],
    contact_times: Optional[ContactTimes] = None,
) -> Dict[str, Any]:
    """
    Validate a generated sequence.

    Checks chronological order, unique ids, and (when contacts are given)
    that no capture step inside totality asks for the solar filter and no
    step outside totality goes without it.

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

    if not sequence:
        results['errors'].append("Sequence is empty")
        results['passed'] = False
        return results

    for prev, curr in zip(sequence, sequence[1:]):
        if curr.start_time < prev.start_time:
            results['errors'].append(f"Step {curr.id} starts before {prev.id}")

    ids = [s.id for s in sequence]
    if len(set(ids)) != len(ids):
        results['errors'].append("Duplicate step ids")

    for step in sequence:
        if step.exposure_ladder and list(step.exposure_ladder) != sorted(step.exposure_ladder):
            results['warnings'].append(f"Step {step.id} ladder is not ascending")

    if contact_times is not None and contact_times.is_total and contact_times.c2 and contact_times.c3:
        for step in sequence:
            if step.is_alert_only:
                continue
            inside = contact_times.c2 <= step.start_time < contact_times.c3
            if inside and step.requires_solar_filter:
                results['errors'].append(f"Step {step.id} keeps the filter on during totality")
            if not inside and not step.requires_solar_filter and step.phase_tag != PhaseTag.BAILY:
                results['errors'].append(f"Step {step.id} removes the filter outside totality")

    results['stats'] = {
        'n_steps': len(sequence),
        'n_alert_steps': sum(1 for s in sequence if s.is_alert_only),
        'total_frames': estimate_total_frames(sequence),
        'span_seconds': (sequence[-1].end_time - sequence[0].start_time).total_seconds(),
    }
    results['passed'] = len(results['errors']) == 0
    return results
