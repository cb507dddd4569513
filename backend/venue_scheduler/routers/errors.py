import logging

from fastapi import HTTPException, status

from ..domain.errors import (
    BookingNotFoundError,
    CapacityError,
    ConfigurationError,
    ConflictError,
    SchedulingError,
    ValidationError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc) or "invalid request")
    if isinstance(exc, CapacityError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="not enough resources available")
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="selected time is unavailable")
    if isinstance(exc, BookingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    if isinstance(exc, VersionConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="version mismatch")
    if isinstance(exc, ConfigurationError):
        logger.error("scheduling configuration unavailable: %s", exc)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="scheduling configuration unavailable",
        )
    logger.error("unmapped scheduling error: %r", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")
