from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime

from weatherdash.models.location import TrackedLocation, UnitSystem
from weatherdash.models.weather import FetchStatus


class AddLocationRequest(BaseModel):
    """City picked by the user"""

    id: Optional[str] = Field(None, description="Location id, derived from coordinates if omitted")
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    country: str = ""
    region: Optional[str] = None
    favorite: bool = Field(False, description="Also add to favorites")


class FavoriteRequest(BaseModel):
    is_favorite: bool


class UnitsRequest(BaseModel):
    units: UnitSystem


class AutoRefreshRequest(BaseModel):
    enabled: bool


class LocationsResponse(BaseModel):
    locations: List[TrackedLocation]


class StatusResponse(BaseModel):
    """Global fetch status as shown by the UI"""

    status: FetchStatus
    error: Optional[str] = None
    error_kind: Optional[str] = None
    units: UnitSystem
    auto_refresh: bool
    in_flight: int = Field(..., description="Fetches currently in progress")


class RefreshResponse(BaseModel):
    results: Dict[str, bool] = Field(..., description="Success per location id")


class SchedulerStatus(BaseModel):
    running: bool
    interval_seconds: int
    next_run: Optional[datetime] = None
