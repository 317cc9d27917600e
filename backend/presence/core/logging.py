from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "session_id",
    "path",
    "method",
    "status_code",
    "latency_ms",
    "error",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying whichever known extras were attached."""

    def __init__(self, service: Optional[str] = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            payload["service"] = self.service

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", service: Optional[str] = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(service=service))
    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )
    # RequestLoggingMiddleware already emits one line per request.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _resolve_user_id(request: Request) -> Optional[str]:
    path_params = request.scope.get("path_params") or {}
    user_id = path_params.get("user_id")
    return str(user_id) if user_id else None


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code == 404:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, logger_name: str = "presence.request") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        def _extra(**fields: Any) -> dict[str, Any]:
            return {
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                "user_id": _resolve_user_id(request),
                **fields,
            }

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception("unhandled_exception", extra=_extra())
            raise

        # 409s are ordinary state conflicts (double check-in and the like).
        self.logger.log(
            _level_for(response.status_code),
            "request",
            extra=_extra(status_code=response.status_code),
        )
        response.headers["X-Request-Id"] = request_id
        return response
