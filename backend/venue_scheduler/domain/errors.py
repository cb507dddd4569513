class SchedulingError(Exception):
    """Base class for errors raised by the scheduling domain."""


class ValidationError(SchedulingError):
    """Malformed or out-of-range request; raised before any side effect."""


class ClosedDayError(ValidationError):
    """The venue is closed on the requested date."""


class CapacityError(SchedulingError):
    """The active inventory can never satisfy the request."""


class ConflictError(SchedulingError):
    """The chosen time is taken (existing claim or blackout)."""


class ConfigurationError(SchedulingError):
    """Rules or resources could not be loaded."""


class BookingNotFoundError(SchedulingError):
    pass


class VersionConflictError(SchedulingError):
    pass
