from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UnitSystem(str, Enum):
    """Unit system used for displayed magnitudes"""

    METRIC = "metric"
    IMPERIAL = "imperial"


def location_id_for(lat: float, lon: float) -> str:
    """Stable location id derived from coordinates"""
    return f"{lat}_{lon}"


class Location(BaseModel):
    """Geographic location, compared by id"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable location id")
    name: str = Field(..., description="Display name")
    lat: float = Field(..., description="Latitude", ge=-90, le=90)
    lon: float = Field(..., description="Longitude", ge=-180, le=180)
    country: str = Field("", description="Country name or code")
    region: Optional[str] = Field(None, description="State or region")

    @model_validator(mode="before")
    @classmethod
    def _derive_id(cls, data):
        if isinstance(data, dict) and not data.get("id"):
            if "lat" in data and "lon" in data:
                data = {**data, "id": location_id_for(data["lat"], data["lon"])}
        return data

    def __eq__(self, other):
        if isinstance(other, Location):
            return self.id == other.id
        return NotImplemented

    def __hash__(self):
        return hash(self.id)


class TrackedLocation(BaseModel):
    """A location subject to periodic refresh"""

    location: Location
    is_favorite: bool = False
    is_pinned: bool = True
