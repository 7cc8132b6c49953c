from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler
import structlog

from ..domain.errors import (
    ConcurrentUpdateError,
    InvalidGrade,
    ReviewNotFound,
    StoreUnavailable,
)

logger = structlog.get_logger()

# Most specific first: ConcurrentUpdateError is a StoreUnavailable
ERROR_STATUS = [
    (ReviewNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidGrade, status.HTTP_400_BAD_REQUEST),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def srs_exception_handler(exc, context):
    """DRF exception handler that also knows the scheduler's errors."""
    response = exception_handler(exc, context)
    if response is not None:
        return response

    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            logger.warning("request_failed",
                error=type(exc).__name__,
                detail=str(exc),
                status=status_code,
            )
            return Response({"error": str(exc)}, status=status_code)
    return None
