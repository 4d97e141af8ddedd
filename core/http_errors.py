import logging

from fastapi import HTTPException, status

from core.errors import (
    ClockServiceError,
    InternalError,
    TransientStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "1"


def http_error_for(error: ClockServiceError) -> HTTPException:
    """Translate a clock service failure into the HTTP error the client sees."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    if isinstance(error, TransientStoreError):
        logger.warning(f"Transient clock service failure: {error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable. Please try again.",
            headers={"Retry-After": RETRY_AFTER_SECONDS},
        )

    if isinstance(error, InternalError):
        logger.error(f"Inconsistent shift state: {error}")
    else:
        logger.error(f"Unexpected clock service error: {error!r}", exc_info=error)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal error. No changes were made.",
    )
