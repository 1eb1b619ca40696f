"""
EHO Pack FastAPI Service

REST API for generating EHO readiness packs.

Endpoints:
    GET  /eho/report  - Generate the report (HTML or JSON)
    GET  /health      - Liveness probe (process alive)
    GET  /version     - Version info
"""
from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import config
from ..exceptions import (
    EhoPackError,
    InvalidRequestError,
    StoreUnavailableError,
)
from ..logging_setup import configure_logging
from .routers import report

logger = logging.getLogger(__name__)
configure_logging(config.EHO_LOG_LEVEL)

# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="EHO Readiness Pack",
    description="Compliance report engine for Environmental Health inspections",
    version=config.EHO_ENGINE_VERSION,
    docs_url="/docs" if config.EHO_DOCS_ENABLED else None,
    redoc_url="/redoc" if config.EHO_DOCS_ENABLED else None,
    openapi_url="/openapi.json" if config.EHO_DOCS_ENABLED else None,
)

app.include_router(report.router)

# =============================================================================
# Request/Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    engine_version: str


class VersionResponse(BaseModel):
    """Version info response."""
    engine_version: str
    fanout_timeout_seconds: float
    expiry_warning_days: int
    table_row_cap: int


class ErrorResponse(BaseModel):
    """Structured error response."""
    error: str
    code: str
    details: Optional[Dict[str, Any]] = None
    request_id: str

# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
    request.state.request_id = request_id
    started = time.time()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s", request.method, request.url.path,
        extra={
            "request_id": request_id,
            "status_code": response.status_code,
            "duration_ms": int((time.time() - started) * 1000),
        },
    )
    return response

# =============================================================================
# Error Handlers
# =============================================================================

def _status_for(exc: EhoPackError) -> int:
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, StoreUnavailableError):
        return 503
    return 500


@app.exception_handler(EhoPackError)
async def eho_error_handler(request: Request, exc: EhoPackError):
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(
            "Report request failed: %s", exc,
            extra={"request_id": request_id, "status_code": status_code},
        )
    else:
        logger.info(
            "Rejected report request: %s", exc,
            extra={"request_id": request_id, "status_code": status_code},
        )
    payload = ErrorResponse(
        error=exc.message,
        code=exc.code,
        details=exc.details or None,
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=payload.model_dump())

# =============================================================================
# Health Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Liveness probe. Always returns quickly."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        engine_version=config.EHO_ENGINE_VERSION,
    )


@app.get("/version", response_model=VersionResponse, tags=["Info"])
async def version_info():
    """Return version and effective settings."""
    return VersionResponse(
        engine_version=config.EHO_ENGINE_VERSION,
        fanout_timeout_seconds=config.EHO_FANOUT_TIMEOUT_SECONDS,
        expiry_warning_days=config.EHO_EXPIRY_WARNING_DAYS,
        table_row_cap=config.EHO_TABLE_ROW_CAP,
    )

# =============================================================================
# Startup
# =============================================================================

@app.on_event("startup")
async def startup_event():
    logger.info("EHO pack service starting", extra={"request_id": "startup"})
    logger.info("Engine: v%s", config.EHO_ENGINE_VERSION)
    logger.info("Docs enabled: %s", config.EHO_DOCS_ENABLED)
