import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from ..domain import errors

logger = structlog.get_logger()

STATUS_BY_ERROR = (
    (errors.ValidationError, status.HTTP_400_BAD_REQUEST),
    (errors.NotFoundError, status.HTTP_404_NOT_FOUND),
    (errors.ConflictError, status.HTTP_409_CONFLICT),
    (errors.TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
)
RETRY_AFTER_SECONDS = 1


def exception_handler(exc, context):
    """Map the study error taxonomy onto HTTP; defer everything else to DRF."""
    if not isinstance(exc, errors.StudyError):
        return drf_exception_handler(exc, context)

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    view = context.get("view")
    logger.warning(
        "study_error",
        error=exc.code,
        message=exc.message,
        status=status_code,
        view=type(view).__name__ if view is not None else None,
        details=exc.details,
    )

    body = {"error": exc.code, "message": exc.message}
    if isinstance(exc, errors.ValidationError) and "field" in exc.details:
        body["field"] = exc.details["field"]

    response = Response(body, status=status_code)
    if isinstance(exc, errors.TransientError):
        response["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response
