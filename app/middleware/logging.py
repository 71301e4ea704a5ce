"""
Structured Logging Middleware

JSON request logging with a per-request ID carried through a ContextVar, so
every log line emitted while serving a request can be correlated.
"""

import json
import logging
import re
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.services.rate_limit_service import client_address

# Context variable for request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

EXTRA_FIELDS = (
    "tenant_id",
    "user_id",
    "order_id",
    "gallery_id",
    "method",
    "path",
    "status_code",
    "error_code",
    "duration_ms",
    "client_ip",
)

QUIET_PATHS = frozenset({"/health"})

REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{8,64}")


class RequestIdFilter(logging.Filter):
    """Logging filter to add request ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for log aggregation (Loki, CloudWatch...)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if getattr(record, key, None) is not None:
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access log line per request, with an ``X-Request-ID`` response header.

    A well-formed incoming ``X-Request-ID`` is reused; anything else is
    replaced by a fresh UUID so client input never lands in the logs raw.
    """

    def __init__(self, app: ASGIApp, logger_name: str = "studio.access"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get("X-Request-ID", "")
        request_id = incoming if REQUEST_ID_PATTERN.fullmatch(incoming) else uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            self._access_log(request, status_code, (time.perf_counter() - started) * 1000)
            request_id_var.reset(token)

    def _access_log(self, request: Request, status_code: int, duration_ms: float) -> None:
        if request.url.path in QUIET_PATHS:
            return

        level = logging.INFO
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING

        # set by TenantMiddleware further down the stack
        tenant_slug = getattr(request.state, "tenant_slug", None)
        self.logger.log(
            level,
            "%s %s -> %s in %.1fms%s",
            request.method,
            request.url.path,
            status_code,
            duration_ms,
            f" [{tenant_slug}]" if tenant_slug else "",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_address(request),
                "tenant_id": getattr(request.state, "tenant_id", None),
            },
        )


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use the JSON formatter (production) or a plain text line
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"))
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    for logger_name, logger_level in {
        "studio.access": level,
        "uvicorn.access": "WARNING",
        "sqlalchemy.engine": "WARNING",
    }.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, logger_level.upper()))


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get("")
