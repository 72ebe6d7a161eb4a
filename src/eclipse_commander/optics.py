"""
Telescope and camera optics model.

Derives field of view, angular sampling and diffraction limits from
aperture, focal length and sensor geometry, and turns the sampling ratio
into binning and focal-reducer/Barlow recommendations.

All lengths are in millimetres except pixel size (microns). Non-positive
inputs are programming errors and raise ``ValueError`` immediately.
"""

import logging
from typing import Any, Dict, Tuple

import numpy as np

from .constants import (
    ARCSEC_PER_RADIAN_PER_1000,
    DAWES_CONSTANT_ARCSEC_MM,
    RAYLEIGH_CONSTANT_ARCSEC_MM,
    HUMAN_PUPIL_MM,
    SPEED_BAND_ULTRA_FAST,
    SPEED_BAND_FAST,
    SPEED_BAND_MEDIUM,
    FORMAT_FULL_FRAME_MM,
    FORMAT_APS_C_MM,
    FORMAT_FOUR_THIRDS_MM,
    FORMAT_ONE_INCH_MM,
    SAMPLING_HEAVY_OVERSAMPLING,
    SAMPLING_OVERSAMPLING,
    SAMPLING_OPTIMAL_MAX,
    SAMPLING_UNDERSAMPLING_MAX,
    SUITABILITY_ECLIPSE_SAMPLING_MAX,
    SUITABILITY_SOLAR_SAMPLING_FINE,
    SUITABILITY_SOLAR_SAMPLING_GOOD,
    SUITABILITY_WIDEFIELD_FOV_ARCMIN,
    SUN_ANGULAR_DIAMETER_DEG,
)
from .data_model import OpticalSystem, SamplingStatus

logger = logging.getLogger(__name__)

# Fraction of the sensor width the solar disk may fill and still "fit"
SUN_FRAME_FILL_LIMIT_PERCENT = 90.0


def _require_positive(**values):
    for name, value in values.items():
        if value is None or value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")


def field_of_view_deg(sensor_dimension_mm: float, focal_length_mm: float) -> float:
    """Angular field of view along one sensor dimension."""
    return float(np.degrees(2 * np.arctan(sensor_dimension_mm / (2 * focal_length_mm))))


def sampling_arcsec_per_pixel(pixel_size_um: float, focal_length_mm: float) -> float:
    """Sky angle subtended by one pixel."""
    return pixel_size_um / focal_length_mm * ARCSEC_PER_RADIAN_PER_1000


def speed_class(focal_ratio: float) -> str:
    if focal_ratio < SPEED_BAND_ULTRA_FAST:
        return 'Ultra Fast'
    if focal_ratio < SPEED_BAND_FAST:
        return 'Fast'
    if focal_ratio < SPEED_BAND_MEDIUM:
        return 'Medium'
    return 'Slow'


def sensor_format(diagonal_mm: float) -> str:
    if diagonal_mm > FORMAT_FULL_FRAME_MM:
        return 'Full Frame'
    if diagonal_mm > FORMAT_APS_C_MM:
        return 'APS-C'
    if diagonal_mm > FORMAT_FOUR_THIRDS_MM:
        return '4/3"'
    if diagonal_mm > FORMAT_ONE_INCH_MM:
        return '1"'
    return 'Small'


def sampling_status(ratio: float) -> SamplingStatus:
    """
    Classify a sampling ratio (sampling / (Dawes limit / 2)).

    Thresholds are monotonic: a larger ratio never maps to a finer status.
    """
    if ratio < SAMPLING_HEAVY_OVERSAMPLING:
        return SamplingStatus.HEAVY_OVERSAMPLING
    if ratio < SAMPLING_OVERSAMPLING:
        return SamplingStatus.OVERSAMPLING
    if ratio <= SAMPLING_OPTIMAL_MAX:
        return SamplingStatus.OPTIMAL
    if ratio <= SAMPLING_UNDERSAMPLING_MAX:
        return SamplingStatus.UNDERSAMPLING
    return SamplingStatus.CRITICAL_UNDERSAMPLING


def compute_optical_system(
    aperture_mm: float,
    focal_length_mm: float,
    sensor_width_mm: float,
    sensor_height_mm: float,
    pixel_size_um: float,
) -> OpticalSystem:
    """
    Compute the optical figures of merit for a telescope + camera pair.

    Parameters
    ----------
    aperture_mm : float
        Clear aperture.
    focal_length_mm : float
        Effective focal length (including any reducer/Barlow).
    sensor_width_mm, sensor_height_mm : float
        Active sensor area.
    pixel_size_um : float
        Pixel pitch in microns.

    Returns
    -------
    OpticalSystem

    Raises
    ------
    ValueError
        If any input is zero or negative.

    Examples
    --------
    >>> system = compute_optical_system(200, 1000, 19.1, 13.0, 4.63)
    >>> round(system.sampling_arcsec_per_pixel, 2)
    0.95
    """
    _require_positive(
        aperture_mm=aperture_mm,
        focal_length_mm=focal_length_mm,
        sensor_width_mm=sensor_width_mm,
        sensor_height_mm=sensor_height_mm,
        pixel_size_um=pixel_size_um,
    )

    focal_ratio = focal_length_mm / aperture_mm
    diagonal_mm = float(np.hypot(sensor_width_mm, sensor_height_mm))
    sampling = sampling_arcsec_per_pixel(pixel_size_um, focal_length_mm)
    dawes = DAWES_CONSTANT_ARCSEC_MM / aperture_mm
    ratio = sampling / (dawes / 2)
    logger.debug(f"Optics: f/{focal_ratio:.1f}, {sampling:.2f}\"/px, sampling ratio {ratio:.2f}")

    return OpticalSystem(
        aperture_mm=aperture_mm,
        focal_length_mm=focal_length_mm,
        sensor_width_mm=sensor_width_mm,
        sensor_height_mm=sensor_height_mm,
        pixel_size_um=pixel_size_um,
        focal_ratio=focal_ratio,
        fov_width_deg=field_of_view_deg(sensor_width_mm, focal_length_mm),
        fov_height_deg=field_of_view_deg(sensor_height_mm, focal_length_mm),
        fov_diagonal_deg=field_of_view_deg(diagonal_mm, focal_length_mm),
        sampling_arcsec_per_pixel=sampling,
        dawes_limit_arcsec=dawes,
        rayleigh_limit_arcsec=RAYLEIGH_CONSTANT_ARCSEC_MM / aperture_mm,
        sampling_ratio=ratio,
        sampling_status=sampling_status(ratio),
        speed_class=speed_class(focal_ratio),
        sensor_format=sensor_format(diagonal_mm),
        sensor_diagonal_mm=diagonal_mm,
        light_gathering_power=(aperture_mm / HUMAN_PUPIL_MM) ** 2,
    )


def sensor_size_mm(width_px: int, height_px: int, pixel_size_um: float) -> Tuple[float, float]:
    """Sensor (width, height) in mm from its pixel dimensions."""
    _require_positive(width_px=width_px, height_px=height_px, pixel_size_um=pixel_size_um)
    return width_px * pixel_size_um / 1000.0, height_px * pixel_size_um / 1000.0


_SAMPLING_ADVICE = {
    SamplingStatus.HEAVY_OVERSAMPLING:
        "Heavy oversampling. Bin 3x3 or 4x4 to shrink files without losing detail.",
    SamplingStatus.OVERSAMPLING:
        "Slight oversampling. Tolerant of poor seeing; bin 2x2 to shrink files.",
    SamplingStatus.OPTIMAL:
        "Optimal sampling. Good balance between resolution and file size.",
    SamplingStatus.UNDERSAMPLING:
        "Moderate undersampling. Fine for wide-field work but fine detail is lost.",
    SamplingStatus.CRITICAL_UNDERSAMPLING:
        "Critical undersampling. Increase focal length or use smaller pixels.",
}


def sampling_recommendation(system: OpticalSystem) -> str:
    return _SAMPLING_ADVICE[system.sampling_status]


def recommend_binning(system: OpticalSystem) -> Dict[str, Any]:
    """
    Binning recommendation from the sampling ratio.

    Returns
    -------
    dict
        ``{'recommended', 'alternative', 'reason'}``.
    """
    status = system.sampling_status
    if status == SamplingStatus.HEAVY_OVERSAMPLING:
        return {'recommended': 4, 'alternative': 3,
                'reason': "Strong oversampling: 4x4 keeps the useful resolution"}
    if status == SamplingStatus.OVERSAMPLING:
        return {'recommended': 2, 'alternative': 1,
                'reason': "Oversampling: 2x2 optimises without losing detail"}
    if status == SamplingStatus.OPTIMAL:
        return {'recommended': 1, 'alternative': None,
                'reason': "Sampling already optimal: use 1x1"}
    return {'recommended': 1, 'alternative': None,
            'reason': "Undersampling: binning would make it worse, use 1x1"}


def focal_modifier_for_sampling(system: OpticalSystem, target_sampling_arcsec: float) -> Dict[str, Any]:
    """
    Reducer or Barlow factor needed to reach a target sampling.

    Sampling scales inversely with focal length, so a coarser target needs
    a reducer (factor < 1) and a finer one a Barlow (factor > 1).
    """
    _require_positive(target_sampling_arcsec=target_sampling_arcsec)

    factor = system.sampling_arcsec_per_pixel / target_sampling_arcsec
    if np.isclose(factor, 1.0, atol=0.005):
        advice = "No reducer or Barlow needed"
    elif factor < 1:
        advice = f"Reducer {factor:.2f}x (e.g. 0.8x, 0.63x)"
    else:
        advice = f"Barlow {factor:.2f}x (e.g. 2x, 3x)"

    return {
        'current_focal_mm': system.focal_length_mm,
        'target_focal_mm': round(system.focal_length_mm * factor),
        'modifier': round(factor, 2),
        'recommendation': advice,
    }


def sun_in_frame(system: OpticalSystem) -> Dict[str, Any]:
    """
    Size of the solar disk on the sensor.

    Returns
    -------
    dict
        ``{'diameter_pixels', 'diameter_mm', 'coverage_percent', 'fits_in_frame'}``
        where coverage is the disk diameter as a share of sensor width.
    """
    diameter_px = SUN_ANGULAR_DIAMETER_DEG * 3600 / system.sampling_arcsec_per_pixel
    diameter_mm = diameter_px * system.pixel_size_um / 1000.0
    coverage = diameter_mm / system.sensor_width_mm * 100.0

    return {
        'diameter_pixels': int(round(diameter_px)),
        'diameter_mm': round(diameter_mm, 2),
        'coverage_percent': coverage,
        'fits_in_frame': coverage < SUN_FRAME_FILL_LIMIT_PERCENT,
    }


def assess_suitability(system: OpticalSystem) -> Dict[str, Dict[str, Any]]:
    """
    Score the setup from 1 (poor) to 5 (excellent) for three kinds of work.

    Eclipse work needs the whole solar disk in frame; white-light solar
    detail rewards fine sampling; wide-field work rewards a large field.

    Returns
    -------
    dict
        ``{'eclipse', 'solar', 'widefield'}``, each ``{'score', 'notes'}``.
    """
    sampling = system.sampling_arcsec_per_pixel
    fov_arcmin = system.fov_width_deg * 60.0
    sun_fits = sun_in_frame(system)['fits_in_frame']

    if sun_fits:
        eclipse_score = 5 if sampling < SUITABILITY_ECLIPSE_SAMPLING_MAX else 3
        eclipse_notes = "Well suited to eclipses: the whole disk fits in frame"
    else:
        eclipse_score = 1
        eclipse_notes = "Focal length too long: the Sun does not fit in frame"

    if sampling < SUITABILITY_SOLAR_SAMPLING_FINE and sun_fits:
        solar_score = 5
    elif sampling < SUITABILITY_SOLAR_SAMPLING_GOOD:
        solar_score = 4
    else:
        solar_score = 3
    if sampling < SUITABILITY_SOLAR_SAMPLING_FINE:
        solar_notes = "Excellent resolution for solar surface detail"
    else:
        solar_notes = "Good resolution for full-disk solar imaging"

    excellent, good, adequate = SUITABILITY_WIDEFIELD_FOV_ARCMIN
    if fov_arcmin > excellent:
        widefield_score, widefield_notes = 5, "Wide field, excellent for panoramas and the Milky Way"
    elif fov_arcmin > good:
        widefield_score, widefield_notes = 4, "Field adequate for extended objects"
    elif fov_arcmin > adequate:
        widefield_score, widefield_notes = 3, "Field adequate for extended objects"
    else:
        widefield_score, widefield_notes = 2, "Field too narrow for wide-field work"

    return {
        'eclipse': {'score': eclipse_score, 'notes': eclipse_notes},
        'solar': {'score': solar_score, 'notes': solar_notes},
        'widefield': {'score': widefield_score, 'notes': widefield_notes},
    }


def optical_report(system: OpticalSystem) -> Dict[str, Any]:
    """Flat summary of the system for display or logging."""
    sun = sun_in_frame(system)
    return {
        'focal_ratio': round(system.focal_ratio, 1),
        'speed_class': system.speed_class,
        'sensor_format': system.sensor_format,
        'fov_deg': (round(system.fov_width_deg, 2), round(system.fov_height_deg, 2)),
        'sampling_arcsec_px': round(system.sampling_arcsec_per_pixel, 2),
        'dawes_arcsec': round(system.dawes_limit_arcsec, 2),
        'rayleigh_arcsec': round(system.rayleigh_limit_arcsec, 2),
        'sampling_status': system.sampling_status.value,
        'sampling_advice': sampling_recommendation(system),
        'binning': recommend_binning(system)['recommended'],
        'sun_diameter_px': sun['diameter_pixels'],
        'sun_fits': sun['fits_in_frame'],
        'light_gathering': round(system.light_gathering_power),
        'eclipse_suitability': assess_suitability(system)['eclipse']['score'],
    }
