"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the database is unreachable (readiness)
    - An unreachable cache degrades readiness to "degraded" but stays 200: every read
      path falls back to the database

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from gigboard.infrastructure import cache_store as cache_module
from gigboard.infrastructure import database as db_module

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "gigboard-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe — database required, cache optional."""
    manager = db_module.db_manager
    db_ok = await manager.health_check() if manager else False
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    store = cache_module.cache_store
    cache_ok = await store.ping() if store else False
    if not cache_ok:
        logger.warning("Readiness: cache unavailable, serving from database")
    return {
        "status": "ready" if cache_ok else "degraded",
        "checks": {
            "database": "healthy",
            "cache": "healthy" if cache_ok else "unavailable",
        },
    }
