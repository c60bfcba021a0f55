"""Health check router."""

import asyncio
import logging

from fastapi import APIRouter, Depends

from config.settings import AdvisorSettings
from ..services.advisor_service import advisor_settings, get_client

logger = logging.getLogger("index_advisor_app.health")

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check(settings: AdvisorSettings = Depends(advisor_settings)):
    """Basic health check: verifies SQL Server connectivity."""
    try:
        if await asyncio.to_thread(get_client(settings).ping):
            return {"status": "healthy", "sql_server": "connected",
                    "target_database": settings.target_database}
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
    return {"status": "degraded", "sql_server": "unreachable",
            "target_database": settings.target_database}
