from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from presence.core.logging import RequestLoggingMiddleware, configure_logging
from presence.core.observability import PrometheusMiddleware, metrics_endpoint
from presence.core.settings import settings
from presence.routers.presence import router as presence_router
from presence.services.errors import InvalidTimezoneError, NotFoundError, PresenceError, StateConflictError

configure_logging(level=settings.log_level, service=settings.project_name)

logger = logging.getLogger("presence.api")

GENERIC_FAILURE = "Something went wrong. Please try again."

app = FastAPI(title=settings.project_name, version=settings.project_version)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(presence_router)
app.add_route("/metrics", metrics_endpoint, methods=["GET"])


@app.exception_handler(StateConflictError)
async def state_conflict_handler(request: Request, exc: StateConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": exc.message, "error": type(exc).__name__})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.error("not_found", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=404, content={"detail": exc.message, "error": type(exc).__name__})


@app.exception_handler(InvalidTimezoneError)
async def invalid_timezone_handler(request: Request, exc: InvalidTimezoneError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.message, "error": type(exc).__name__})


@app.exception_handler(PresenceError)
async def presence_error_handler(request: Request, exc: PresenceError) -> JSONResponse:
    logger.error("presence_error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=400, content={"detail": exc.message, "error": type(exc).__name__})


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("persistence_error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"detail": GENERIC_FAILURE})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"detail": GENERIC_FAILURE})


@app.get("/healthz")
def healthz() -> dict:
    return {
        "status": "ok",
        "service": settings.project_name,
        "version": settings.project_version,
        "time": datetime.now(timezone.utc).isoformat(),
    }
