# Exception types shared by the clock services.
#
# Business outcomes (already clocked in, outside perimeter, ...) are NOT
# exceptions; they come back as result values from services.clock_engine.


class ClockServiceError(Exception):
    """Base class for failures raised by the clock services."""


class ValidationError(ClockServiceError):
    """Input rejected before any state was read or written."""


class TransientStoreError(ClockServiceError):
    """Storage unavailable or contended. Safe for the caller to retry."""


class ActiveShiftConflict(TransientStoreError):
    """
    The storage layer refused a write because the worker's ACTIVE shift
    changed underneath us (unique index hit, or the shift already left ACTIVE).
    """


class InternalError(ClockServiceError):
    """Stored state is inconsistent. Nothing was modified."""
