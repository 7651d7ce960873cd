from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from weatherdash.api.deps import get_dashboard
from weatherdash.models.api import (
    AutoRefreshRequest,
    RefreshResponse,
    SchedulerStatus,
    StatusResponse,
    UnitsRequest,
)
from weatherdash.models.location import UnitSystem
from weatherdash.models.weather import LatestResult
from weatherdash.services.dashboard import WeatherDashboard

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/weather/status", response_model=StatusResponse)
async def get_status(dashboard: WeatherDashboard = Depends(get_dashboard)):
    """
    Global fetch status

    Reflects the most recently started or finished fetch of any location;
    per-location status is part of each weather result.
    """
    state = dashboard.state
    return StatusResponse(
        status=state.status,
        error=state.error,
        error_kind=state.error_kind,
        units=dashboard.units,
        auto_refresh=dashboard.auto_refresh,
        in_flight=dashboard.coordinator.in_flight_count,
    )


@router.get("/weather/scheduler/status", response_model=SchedulerStatus)
async def get_scheduler_status(dashboard: WeatherDashboard = Depends(get_dashboard)):
    """
    Get weather scheduler status

    Returns whether the automatic refresh is running and when it fires next.
    """
    scheduler = dashboard.scheduler
    return SchedulerStatus(
        running=scheduler.running,
        interval_seconds=scheduler.interval_seconds,
        next_run=scheduler.next_run_time,
    )


@router.post("/weather/refresh", response_model=RefreshResponse)
async def refresh_weather(
    location_id: Optional[str] = Query(None, description="Location to refresh, all if omitted"),
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """
    Refresh weather now

    Still served from cache when the cached entry is fresh.
    """
    logger.info(f"Manual weather refresh triggered (location_id={location_id})")

    if location_id is not None and not dashboard.registry.is_tracked(location_id):
        raise HTTPException(status_code=404, detail="Location not tracked")

    results = await dashboard.scheduler.refresh_now(location_id)
    return RefreshResponse(results=results)


@router.put("/settings/units", response_model=RefreshResponse)
async def set_units(
    request: UnitsRequest,
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """Switch unit system; tracked locations are fetched in the new units"""
    results = await dashboard.set_units(request.units)
    return RefreshResponse(results=results)


@router.put("/settings/auto-refresh", response_model=SchedulerStatus)
async def set_auto_refresh(
    request: AutoRefreshRequest,
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """Enable or disable periodic refresh"""
    await dashboard.set_auto_refresh(request.enabled)
    return await get_scheduler_status(dashboard)


@router.get("/weather/{location_id}", response_model=LatestResult)
async def get_weather(
    location_id: str,
    units: Optional[UnitSystem] = Query(None, description="Unit system, current setting if omitted"),
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """
    Latest weather for a tracked location

    Returns the last good snapshot together with the status and error of the
    most recent fetch for this location. Never triggers a fetch itself.
    """
    if not dashboard.registry.is_tracked(location_id):
        raise HTTPException(status_code=404, detail="Location not tracked")

    return dashboard.result(location_id, units)
