"""Health check endpoint."""

import sqlite3

import structlog
from fastapi import APIRouter

from edugest.db import get_db
from edugest.web.schemas import HealthResponse

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report API status and whether the school database answers."""
    try:
        with get_db() as conn:
            conn.execute("SELECT 1 FROM escolas LIMIT 1")
    except sqlite3.Error as e:
        logger.warning("health.database_unavailable", error=str(e))
        return HealthResponse(status="degraded", database="unavailable")

    return HealthResponse(database="ok")
