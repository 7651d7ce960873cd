from pydantic import BaseModel
from typing import Dict, List, Optional, Union

# Open-Meteo returns ISO strings by default and unix seconds with timeformat=unixtime
RawTime = Union[int, str]


class RawCurrent(BaseModel):
    time: RawTime
    temperature_2m: float
    relative_humidity_2m: Optional[float] = None
    pressure_msl: Optional[float] = None
    wind_speed_10m: Optional[float] = None


class RawHourly(BaseModel):
    time: List[RawTime]
    temperature_2m: List[Optional[float]]
    wind_speed_10m: List[Optional[float]]
    precipitation_probability: Optional[List[Optional[float]]] = None


class RawDaily(BaseModel):
    time: List[RawTime]
    temperature_2m_max: List[Optional[float]]
    temperature_2m_min: List[Optional[float]]
    precipitation_probability_max: Optional[List[Optional[float]]] = None


class OpenMeteoResponse(BaseModel):
    """Forecast document returned by the Open-Meteo forecast endpoint"""

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    utc_offset_seconds: int = 0
    current_units: Dict[str, str] = {}
    hourly_units: Dict[str, str] = {}
    daily_units: Dict[str, str] = {}
    current: RawCurrent
    hourly: RawHourly
    daily: RawDaily
