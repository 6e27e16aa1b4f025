"""Translation of data-access exceptions into HTTP errors."""

from __future__ import annotations

import structlog
from fastapi import HTTPException, status
from pydantic import ValidationError

logger = structlog.get_logger(__name__)

# Subclasses of mapped types that only come from bugs or malformed stored
# documents, never from a deliberate check in `libs`.
_SERVER_FAULTS = (KeyError, IndexError, ValidationError)

_STATUS_BY_TYPE = (
    (LookupError, status.HTTP_404_NOT_FOUND),
    (PermissionError, status.HTTP_403_FORBIDDEN),
    (ValueError, status.HTTP_400_BAD_REQUEST),
    (RuntimeError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(error: Exception, action: str) -> HTTPException:
    """Build the HTTPException for a failure raised by a `libs` function.

    Args:
        error: The exception caught in the router.
        action: Short description of what was attempted, used in logs and
            in the 500 detail.

    Returns:
        HTTPException to raise (404, 403, 400, 503, or 500 for anything else,
        including KeyError, IndexError and pydantic ValidationError).
    """
    if isinstance(error, HTTPException):
        return error

    for error_type, status_code in _STATUS_BY_TYPE:
        if isinstance(error, error_type) and not isinstance(error, _SERVER_FAULTS):
            logger.warning(action, error=str(error), status_code=status_code)
            return HTTPException(status_code=status_code, detail=str(error))

    logger.error(action, error=str(error), error_type=type(error).__name__, exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action}. Please try again later.",
    )
