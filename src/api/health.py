"""
Health Check Endpoints
=============================================================================
CONCEPT: Health Checks

  1. /health (Liveness): "Is the process running?"
  2. /ready (Readiness): "Can it handle requests?" (database reachable)

A server can be alive but not ready, e.g. while the database is restarting.
=============================================================================
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import get_db_session
from src.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Liveness probe. Always 200 while the process is alive."""
    return {"status": "ok", "service": "employee-directory"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db_session)):
    """Readiness probe. Runs `SELECT 1` against the database."""
    checks = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning("readiness_database_failed", error=str(e))
        checks["database"] = f"error: {str(e)}"

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ok" if all_ok else "degraded",
        "checks": checks,
    }
