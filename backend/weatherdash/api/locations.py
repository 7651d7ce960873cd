from fastapi import APIRouter, Depends, HTTPException
import logging

from weatherdash.api.deps import get_dashboard
from weatherdash.models.api import AddLocationRequest, FavoriteRequest, LocationsResponse
from weatherdash.models.location import Location, TrackedLocation
from weatherdash.services.dashboard import WeatherDashboard

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/locations", response_model=LocationsResponse)
async def list_locations(dashboard: WeatherDashboard = Depends(get_dashboard)):
    """
    List tracked locations

    Returns:
        Pinned and favorited locations in the order they were added
    """
    return LocationsResponse(locations=dashboard.registry.list())


@router.post("/locations", response_model=TrackedLocation, status_code=201)
async def add_location(
    request: AddLocationRequest,
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """
    Track a new location

    A location that was not tracked before is fetched immediately. Adding an
    already tracked location does not trigger a fetch.
    """
    location = Location(**request.model_dump(exclude={"favorite"}))
    logger.info(f"Add location request: {location.name} ({location.id})")

    await dashboard.add_location(location, favorite=request.favorite)
    return dashboard.registry.get(location.id)


@router.delete("/locations/{location_id}", status_code=204)
async def remove_location(
    location_id: str,
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """Stop tracking a location"""
    if not await dashboard.remove_location(location_id):
        raise HTTPException(status_code=404, detail="Location not tracked")


@router.put("/locations/{location_id}/favorite", response_model=LocationsResponse)
async def set_favorite(
    location_id: str,
    request: FavoriteRequest,
    dashboard: WeatherDashboard = Depends(get_dashboard)
):
    """
    Favorite or unfavorite a tracked location

    Unfavoriting a location that is not pinned stops tracking it.
    """
    if not await dashboard.set_favorite(location_id, request.is_favorite):
        raise HTTPException(status_code=404, detail="Location not tracked")
    return LocationsResponse(locations=dashboard.registry.list())
