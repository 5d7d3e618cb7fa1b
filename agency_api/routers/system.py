"""
System router: service and database health.
"""

import time

from fastapi import APIRouter

from agency_api import __version__
from agency_api.config import get_settings
from agency_api.storage import StorageError, get_storage
from agency_api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

_started_at = time.monotonic()


@router.get("/health")
async def system_health():
    """
    Report service health, including a database round trip and the number of
    active clients the agency rollup would cover.

    A failing database degrades the status instead of failing the request.
    """
    settings = get_settings()
    storage = get_storage()

    database = "healthy"
    active_clients = None
    try:
        storage.ping()
        active_clients = len(storage.list_active_entities())
    except StorageError as e:
        logger.warning("system_health_degraded", error=str(e))
        database = f"unhealthy: {e}"

    return {
        "success": True,
        "data": {
            "status": "healthy" if active_clients is not None else "degraded",
            "version": __version__,
            "environment": settings.app_env,
            "uptime_seconds": round(time.monotonic() - _started_at, 1),
            "database": database,
            "active_clients": active_clients,
        },
    }
