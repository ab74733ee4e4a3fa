import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from reztek_service.config import Environment, settings

logger = logging.getLogger("reztek_service")

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Paths that would only add noise to the request log
QUIET_PATHS = {"/health"}


class RequestContext:
    """Per-request context used to correlate log lines of one request."""

    @staticmethod
    def get_request_id() -> Optional[str]:
        return _request_id.get()

    @staticmethod
    def set_request_id(request_id: str):
        return _request_id.set(request_id)

    @staticmethod
    def clear_request_id(token=None) -> None:
        if token is not None:
            _request_id.reset(token)
        else:
            _request_id.set(None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach an X-Request-ID to every request and response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = RequestContext.set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            RequestContext.clear_request_id(token)
        response.headers["X-Request-ID"] = request_id
        return response


class JsonFormatter(logging.Formatter):
    """Structured formatter used in production."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "environment": str(settings.ENVIRONMENT.value),
        }
        if request_id := RequestContext.get_request_id():
            log_record["request_id"] = request_id
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        for key in ("security_event", "request", "response"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)
        return json.dumps(log_record, default=str)


def setup_logging(app: FastAPI) -> None:
    """Configure root logging and install the request id middleware."""
    log_level = getattr(logging, settings.LOGGING_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    if settings.ENVIRONMENT == Environment.PRODUCTION:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    root_logger.setLevel(log_level)

    logging.getLogger("reztek_service").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # supabase pulls in httpx, which logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    app.add_middleware(RequestIdMiddleware)

    logger.info(
        f"Logging configured with level {settings.LOGGING_LEVEL} "
        f"and {'JSON' if settings.is_production() else 'plain text'} format"
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per processed request."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path}: {e}", exc_info=True)
            raise

        # Set by RequestIdMiddleware, which runs inside this middleware
        request_id = response.headers.get("X-Request-ID")

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Request processed",
            extra={
                "request": {
                    "method": request.method,
                    "path": request.url.path,
                    "client_host": request.client.host if request.client else None,
                    "request_id": request_id,
                },
                "response": {
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            },
        )
        return response
