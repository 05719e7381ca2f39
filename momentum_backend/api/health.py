"""
Health and diagnostics API.

Lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import inspect

from momentum_backend.core.database import check_connection, get_database_url, get_engine
from momentum_backend.core.logging import get_request_id, latency_bucket_ms
from momentum_backend.features.ai.service import quota_remaining

logger = logging.getLogger("momentum")

router = APIRouter(prefix="/api/health", tags=["health"])
root_router = APIRouter(tags=["health"])


class DBHealth(BaseModel):
    """Database health status."""
    configured: bool
    connected: bool
    latency_ms: Optional[float] = None  # None for determinism in tests


class HealthResponse(BaseModel):
    ok: bool
    db: DBHealth
    ai_quota_remaining: int
    computed_at: str  # UTC ISO format


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness: in-memory mode is always ready; otherwise the state table must exist."""
    if not get_database_url():
        return {"status": "ok", "persistence": "memory"}
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        if not inspect(engine).has_table("app_state"):
            logger.warning("[readyz] missing table: app_state")
            return JSONResponse(status_code=503, content={"status": "error", "detail": "missing tables: app_state"})
        return {"status": "ok", "persistence": "database"}
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})


@router.get("/db", response_model=HealthResponse)
def health_db(now: Optional[str] = Query(None)):
    """
    Database and AI quota status.

    Args:
        now: Optional ISO timestamp for deterministic testing (overrides system time)
    """
    configured = bool(get_database_url())
    start = time.perf_counter()
    connected = check_connection() if configured else False
    latency_ms = (time.perf_counter() - start) * 1000

    logger.info(
        "health.db",
        extra={
            "request_id": get_request_id(),
            "ok": connected or not configured,
            "latency_bucket": latency_bucket_ms(latency_ms if now is None else None),
        },
    )

    return HealthResponse(
        ok=connected or not configured,
        db=DBHealth(configured=configured, connected=connected, latency_ms=None if now else latency_ms),
        ai_quota_remaining=quota_remaining(),
        computed_at=now or datetime.now(timezone.utc).isoformat(),
    )
