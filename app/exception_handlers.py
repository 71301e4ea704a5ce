"""
Exception handlers that turn service-layer failures into the API error envelope.

Every error leaves the API as:

    {
        "error": {
            "status_code": 404,
            "error_code": "RESOURCE_GALLERY_NOT_FOUND",
            "message": "Gallery not found",
            "type": "Not Found",
            "details": {"resource_type": "Gallery", "resource_id": "..."},
            "path": "/api/v1/dashboard/galleries/...",
            "request_id": "5f0c..."
        }
    }

`details`, `path` and `request_id` are omitted when empty. Public gallery
routes rely on NOT_FOUND never revealing whether a code exists in another
studio, so handlers never add tenant information to the envelope.
"""

import logging
from typing import Any, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.exceptions import ErrorCode, RateLimitExceededError, StudioError
from app.middleware.logging import get_request_id

logger = logging.getLogger(__name__)

# status code -> (human readable type, fallback error code for bare HTTPExceptions)
STATUS_TABLE: dict[int, tuple[str, ErrorCode]] = {
    400: ("Bad Request", ErrorCode.VALIDATION_FAILED),
    401: ("Unauthorized", ErrorCode.AUTH_REQUIRED),
    403: ("Forbidden", ErrorCode.AUTH_PERMISSION_DENIED),
    404: ("Not Found", ErrorCode.RESOURCE_NOT_FOUND),
    409: ("Conflict", ErrorCode.CONFLICT_DUPLICATE_RESOURCE),
    412: ("Precondition Failed", ErrorCode.AUTH_TENANT_MISSING),
    422: ("Validation Error", ErrorCode.VALIDATION_FAILED),
    429: ("Too Many Requests", ErrorCode.RATE_LIMIT_EXCEEDED),
    500: ("Internal Server Error", ErrorCode.INTERNAL_ERROR),
    502: ("Bad Gateway", ErrorCode.SERVICE_UNAVAILABLE),
    503: ("Service Unavailable", ErrorCode.SERVICE_UNAVAILABLE),
}


def error_envelope(
    request: Request,
    status_code: int,
    message: str,
    error_code: ErrorCode | str | None = None,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope for a request."""
    error_type, default_code = STATUS_TABLE.get(status_code, ("Error", ErrorCode.UNKNOWN_ERROR))
    code = error_code or default_code
    body: dict[str, Any] = {
        "status_code": status_code,
        "error_code": code.value if isinstance(code, ErrorCode) else code,
        "message": message,
        "type": error_type,
    }
    if details:
        body["details"] = details
    if request.url.path:
        body["path"] = request.url.path
    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    """
    Render a StudioError raised anywhere below the routes.

    4xx failures are expected traffic (wrong access code, tier limits,
    stale tokens) and logged at WARNING; 5xx ones at ERROR.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s on %s %s: %s",
        exc.error_code.value,
        request.method,
        request.url.path,
        exc.message,
        extra={"status_code": exc.status_code, "details": exc.details},
    )

    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}

    return error_envelope(request, exc.status_code, exc.message, exc.error_code, exc.details, headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPExceptions raised by FastAPI itself (unknown routes, wrong methods)."""
    logger.info("HTTP %s on %s %s", exc.status_code, request.method, request.url.path)
    return error_envelope(
        request,
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    # request validation locations start with "body"/"query"; only the body prefix is noise
    problems = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning("Rejected payload on %s: %d problem(s)", request.url.path, len(problems))

    return error_envelope(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        ErrorCode.VALIDATION_FAILED,
        {"validation_errors": problems},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        ErrorCode.INTERNAL_ERROR,
    )


def register_exception_handlers(app) -> None:
    """Attach the handlers above to the FastAPI app."""
    app.add_exception_handler(StudioError, studio_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PydanticValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
