from fastapi import APIRouter, Depends
from datetime import datetime, timezone
import logging

from weatherdash.api.deps import get_dashboard
from weatherdash.services.dashboard import WeatherDashboard

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(dashboard: WeatherDashboard = Depends(get_dashboard)):
    """
    Health check endpoint

    Returns API status, scheduler state and number of tracked locations
    """
    scheduler = "running" if dashboard.scheduler.running else "stopped"

    logger.debug(f"Health check: scheduler {scheduler}")

    return {
        "status": "healthy",
        "scheduler": scheduler,
        "tracked_locations": len(dashboard.registry),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
