from pydantic import AwareDatetime, BaseModel, Field, model_validator
from typing import List, NamedTuple, Optional
from datetime import date, datetime
from enum import Enum

from weatherdash.models.location import UnitSystem


class FetchStatus(str, Enum):
    """Lifecycle of a fetch request"""

    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def state_key(location_id: str, units: UnitSystem) -> str:
    """Key of a State Store cell, e.g. ``nyc_metric``"""
    return f"{location_id}_{UnitSystem(units).value}"


class CacheKey(NamedTuple):
    """Identity of a cached weather payload and of an in-flight fetch"""

    location_id: str
    units: UnitSystem
    data_kind: str = "forecast"

    def __str__(self) -> str:
        return f"{self.data_kind}_{self.location_id}_{UnitSystem(self.units).value}"

    @property
    def state_key(self) -> str:
        return state_key(self.location_id, self.units)


class CurrentConditions(BaseModel):
    """Current observation"""

    temp: float = Field(..., description="Air temperature")
    humidity: float = Field(0, description="Relative humidity in percent")
    pressure_hpa: float = Field(0, description="Sea level pressure in hPa")
    wind_speed: float = Field(0, description="Wind speed")
    observed_at: datetime = Field(..., description="Observation time (UTC)")


class HourlyPoint(BaseModel):
    at: datetime
    temp: Optional[float] = None
    precipitation_probability: float = Field(0, ge=0, le=1)
    wind_speed: float = 0


class DailyPoint(BaseModel):
    date: date
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    precipitation_probability: float = Field(0, ge=0, le=1)


class WeatherSnapshot(BaseModel):
    """Normalized weather data for one location and unit system"""

    location_id: str
    units: UnitSystem
    timezone: Optional[str] = None
    current: CurrentConditions
    hourly: List[HourlyPoint] = Field(default_factory=list)
    daily: List[DailyPoint] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_chronological(self):
        for name, points, attr in (("hourly", self.hourly, "at"), ("daily", self.daily, "date")):
            for prev, nxt in zip(points, points[1:]):
                if getattr(prev, attr) >= getattr(nxt, attr):
                    raise ValueError(
                        f"{name} series is not strictly ascending at {getattr(nxt, attr)}"
                    )
        return self


class CacheEntry(BaseModel):
    """Cached snapshot with the time it was stored"""

    stored_at: AwareDatetime
    value: WeatherSnapshot


class LatestResult(BaseModel):
    """Latest fetch outcome for one (location, units) key"""

    status: FetchStatus = FetchStatus.IDLE
    snapshot: Optional[WeatherSnapshot] = Field(None, description="Last good snapshot")
    error: Optional[str] = None
    error_kind: Optional[str] = None
    updated_at: Optional[datetime] = None
