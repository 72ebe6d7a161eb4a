"""
Physical, geometric and photographic constants used throughout the package.

Centralizes magic numbers to ensure consistency and easy updates.
"""

# =============================================================================
# Earth / Sun Parameters
# =============================================================================
EARTH_MEAN_RADIUS_KM = 6371.0  # Mean radius used by the Haversine primitive
SUN_ANGULAR_DIAMETER_DEG = 0.53
MOON_ANGULAR_DIAMETER_DEG = 0.52
SOLAR_PARALLAX_AT_1AU_ARCSEC = 8.794
J2000_JD = 2451545.0

# Standard apparent altitude of the Sun's upper limb at rise/set (refraction + semi-diameter)
SUNRISE_ALTITUDE_DEG = -0.833

# Pole stars (RA in hours, Dec in degrees)
POLARIS_RA_HOURS = 2.530
POLARIS_DEC_DEG = 89.264
SIGMA_OCTANTIS_RA_HOURS = 21.079
SIGMA_OCTANTIS_DEC_DEG = -88.957

# Catalogue coordinates of the pole stars as printed in star atlases
POLARIS_RA_TEXT = '2h 31m 49s'
POLARIS_DEC_TEXT = "+89° 15' 51\""
SIGMA_OCTANTIS_RA_TEXT = '21h 4m 43s'
SIGMA_OCTANTIS_DEC_TEXT = "-88° 57' 23\""

# =============================================================================
# Time Constants
# =============================================================================
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SOLAR_SECONDS_PER_DEGREE_LONGITUDE = 240.0  # 4 minutes of time per degree

# =============================================================================
# Culmination Search
# =============================================================================
CULMINATION_COARSE_WINDOW_MIN = 120
CULMINATION_COARSE_STEP_MIN = 5
CULMINATION_FINE_WINDOW_MIN = 10
CULMINATION_FINE_STEP_MIN = 1

# =============================================================================
# Catalog / Path Geometry
# =============================================================================
DEFAULT_PATH_WIDTH_KM = 200.0
DEFAULT_TOTALITY_DURATION_S = 240.0
PARTIAL_VISIBILITY_LIMIT_KM = 2000.0
CENTRAL_VISIBILITY_LIMIT_KM = 1500.0
PARTIAL_COVERAGE_CAP_PERCENT = 99.9

# =============================================================================
# Contact Time Model
# =============================================================================
CENTRAL_PATH_MAX_DISTANCE_KM = 500.0
CENTRAL_PARTIAL_HALF_WINDOW_MIN = 90
PARTIAL_ONLY_HALF_WINDOW_MIN = 60
FALLBACK_TOTALITY_DURATION_S = 120.0

# =============================================================================
# Optics
# =============================================================================
ARCSEC_PER_RADIAN_PER_1000 = 206.265  # arcsec per (micron / mm)
DAWES_CONSTANT_ARCSEC_MM = 120.0
RAYLEIGH_CONSTANT_ARCSEC_MM = 138.0
HUMAN_PUPIL_MM = 7.0

# Focal ratio speed bands (upper bounds, exclusive)
SPEED_BAND_ULTRA_FAST = 4.0
SPEED_BAND_FAST = 6.0
SPEED_BAND_MEDIUM = 9.0

# Sensor diagonal format bands in mm (lower bounds, exclusive)
FORMAT_FULL_FRAME_MM = 42.0
FORMAT_APS_C_MM = 30.0
FORMAT_FOUR_THIRDS_MM = 20.0
FORMAT_ONE_INCH_MM = 13.0

# Sampling ratio thresholds (sampling / (Dawes / 2))
SAMPLING_HEAVY_OVERSAMPLING = 0.5
SAMPLING_OVERSAMPLING = 0.8
SAMPLING_OPTIMAL_MAX = 1.5
SAMPLING_UNDERSAMPLING_MAX = 2.5

# Suitability scoring (1-5) thresholds
SUITABILITY_ECLIPSE_SAMPLING_MAX = 10.0   # arcsec/px
SUITABILITY_SOLAR_SAMPLING_FINE = 2.0     # arcsec/px
SUITABILITY_SOLAR_SAMPLING_GOOD = 3.0     # arcsec/px
SUITABILITY_WIDEFIELD_FOV_ARCMIN = (180.0, 120.0, 60.0)

# =============================================================================
# Exposure Sequencing
# =============================================================================
REFERENCE_FOCAL_RATIO = 8.0  # Focal ratio the exposure tables below are tuned for
CAMERA_EXPOSURE_FACTORS = {
    'cmos': 0.8,
    'dslr': 1.2,
    'generic': 1.0,
}
DEFAULT_DSLR_ISO = 400
DEFAULT_CMOS_GAIN = 120
DEFAULT_SHOTS_PER_EXPOSURE = 3
BAILY_SHOTS_PER_EXPOSURE = 5
DOWNLOAD_OVERHEAD_S = 0.5
SHOT_TIME_BUDGET_FRACTION = 0.8
MIN_SHOTS_PER_EXPOSURE = 1
MAX_SHOTS_PER_EXPOSURE = 100

# Storage estimate
DEFAULT_BIT_DEPTH = 16
DSLR_RAW_FRAME_BYTES = 30 * 1024 * 1024  # Typical 24-36 MP RAW file
CARD_SIZE_SAFETY_FACTOR = 2.0

# White-light solar imaging behind a full-aperture filter
SOLAR_BASE_EXPOSURE_S = 0.001  # f/10 behind an ND5 filter
SOLAR_REFERENCE_FOCAL_RATIO = 10.0
SOLAR_CAMERA_FACTORS = {
    'cmos': 1.0,
    'dslr': 1.5,
    'generic': 1.0,
}
# Light reduction factor per filter type
SOLAR_FILTER_FACTORS = {
    'nd5': 100000,
    'mylar': 100000,
    'halpha': 1000,
    'cak': 1000,
}
SOLAR_EXPOSURE_RANGE_STOPS = 2
SOLAR_CMOS_OFFSET = 10

# Step placement relative to contacts (seconds)
FILTER_REMOVAL_LEAD_S = 30.0
BAILY_LEAD_S = 5.0
BAILY_DURATION_S = 10.0
TOTALITY_EDGE_MARGIN_S = 5.0
FILTER_REAPPLY_DELAY_S = 5.0
FILTER_REAPPLY_DURATION_S = 10.0
PARTIAL_STEP_DURATION_S = 120.0
MID_PARTIAL_DURATION_S = 60.0
PARTIAL_MAX_DURATION_S = 300.0
C4_STEP_LEAD_S = 60.0
TOTALITY_SEGMENTS = 5
MIN_TOTALITY_SEGMENT_S = 1.0

# Standard shutter stops in seconds (1/8000 s to 30 s)
STANDARD_SHUTTER_SPEEDS_S = [
    1 / 8000, 1 / 4000, 1 / 2000, 1 / 1250, 1 / 1000, 1 / 500, 1 / 250,
    1 / 125, 1 / 60, 1 / 30, 1 / 15, 1 / 8, 1 / 4, 1 / 2,
    1.0, 2.0, 4.0, 8.0, 15.0, 30.0,
]

# Hand-tuned exposure ladders (seconds) reflecting coronal brightness falloff.
# Keyed by phase tag value; ladders are ascending.
PARTIAL_LADDER_S = [1 / 2000, 1 / 1000, 1 / 500]
BAILY_LADDER_S = [1 / 4000, 1 / 2000, 1 / 1000]
CHROMOSPHERE_LADDER_S = [1 / 8000, 1 / 4000, 1 / 2000, 1 / 1250]
INNER_CORONA_LADDER_S = [1 / 1000, 1 / 500, 1 / 250, 1 / 125, 1 / 60, 1 / 30]
MID_CORONA_LADDER_S = [1 / 60, 1 / 30, 1 / 15, 1 / 8, 1 / 4, 1 / 2]
OUTER_CORONA_LADDER_S = [1 / 4, 1 / 2, 1.0, 2.0, 4.0]
PROMINENCE_LADDER_S = [1 / 1000, 1 / 500, 1 / 250, 1 / 125, 1 / 60]
TOTALITY_GENERIC_LADDER_S = [
    1 / 4000, 1 / 2000, 1 / 1000, 1 / 500, 1 / 250, 1 / 125, 1 / 60,
    1 / 30, 1 / 15, 1 / 8, 1 / 4, 1 / 2, 1.0, 2.0,
]

# Bounds each scaled ladder is clamped into (min_s, max_s)
LADDER_BOUNDS_S = {
    'partial': (1 / 8000, 1 / 60),
    'baily': (1 / 8000, 1 / 250),
    'chromosphere': (1 / 8000, 1 / 1250),
    'innerCorona': (1 / 4000, 1 / 8),
    'midCorona': (1 / 500, 2.0),
    'outerCorona': (1 / 30, 8.0),
    'prominence': (1 / 4000, 1 / 30),
    'totalityGeneric': (1 / 8000, 4.0),
}

# =============================================================================
# Countdown / Alerts
# =============================================================================
ALERT_LEAD_TIMES_S = (60, 30, 10, 5, 0)
ALERT_STALE_TOLERANCE_S = 2.0
AT_MAXIMUM_WINDOW_S = 60.0
DEFAULT_TICK_INTERVAL_S = 1.0
