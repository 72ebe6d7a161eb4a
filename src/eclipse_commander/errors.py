"""
Error taxonomy for eclipse planning.

Each condition the presentation layer must message differently has its own
type: malformed data, a bad observer location, and missing equipment (which
is a warning that the generic sequence is being used, not a failure).
"""


class EclipseCommanderError(Exception):
    """Base class for all package errors."""


class DataError(EclipseCommanderError, ValueError):
    """Malformed or missing catalog/record data."""


class LocationError(EclipseCommanderError, ValueError):
    """Missing or out-of-range observer coordinate."""


class EquipmentNotConfiguredError(EclipseCommanderError, UserWarning):
    """
    No optical system was supplied; a generic fallback sequence is used.

    Emitted through ``warnings.warn`` rather than raised. Callers who need a
    hard failure can escalate it with
    ``warnings.simplefilter('error', EquipmentNotConfiguredError)``.
    """
