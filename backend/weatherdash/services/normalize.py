from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from weatherdash.errors import MalformedResponseError
from weatherdash.models.location import Location, UnitSystem
from weatherdash.models.openmeteo import OpenMeteoResponse, RawTime
from weatherdash.models.weather import (
    CurrentConditions,
    DailyPoint,
    HourlyPoint,
    WeatherSnapshot,
)

# Open-Meteo defaults when the response carries no *_units block
DEFAULT_TEMPERATURE_UNIT = "°C"
DEFAULT_WIND_UNIT = "km/h"

# Factors to metres per second
_WIND_TO_MS = {
    "km/h": 1 / 3.6,
    "m/s": 1.0,
    "mph": 0.44704,
    "kn": 0.514444,
}


def _convert_temperature(value: Optional[float], source: str, units: UnitSystem) -> Optional[float]:
    if value is None:
        return None
    celsius = (value - 32) * 5 / 9 if source == "°F" else value
    if units == UnitSystem.IMPERIAL:
        return round(celsius * 9 / 5 + 32, 2)
    return round(celsius, 2) if source == "°F" else value


def _convert_wind(value: Optional[float], source: str, units: UnitSystem) -> float:
    if value is None:
        return 0
    factor = _WIND_TO_MS.get(source)
    if factor is None:
        raise MalformedResponseError(f"Unsupported wind speed unit: {source}")
    metres_per_second = value * factor
    if units == UnitSystem.IMPERIAL:
        return round(metres_per_second / _WIND_TO_MS["mph"], 2)
    return round(metres_per_second, 2)


def _probability(values: Optional[List[Optional[float]]], i: int) -> float:
    """Percent to [0, 1]; missing values count as 0"""
    if values is None or values[i] is None:
        return 0
    return min(max(values[i] / 100, 0.0), 1.0)


def _local_offset(offset_seconds: int) -> timezone:
    return timezone(timedelta(seconds=offset_seconds))


def _from_timestamp(value: int, tz: timezone) -> datetime:
    try:
        return datetime.fromtimestamp(value, tz=tz)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedResponseError(f"Invalid timestamp {value!r}: {e}")


def to_utc(value: RawTime, offset_seconds: int) -> datetime:
    """Convert an upstream time value to an aware UTC datetime.

    ISO strings without an offset are local times of the forecast location.
    """
    if isinstance(value, int):
        return _from_timestamp(value, timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise MalformedResponseError(f"Invalid timestamp {value!r}: {e}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_local_offset(offset_seconds))
    return parsed.astimezone(timezone.utc)


def to_local_date(value: RawTime, offset_seconds: int) -> date:
    if isinstance(value, int):
        return _from_timestamp(value, _local_offset(offset_seconds)).date()
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise MalformedResponseError(f"Invalid date {value!r}: {e}")


def _check_aligned(section: str, times: Sequence, arrays: Dict[str, Optional[Sequence]]):
    for name, values in arrays.items():
        if values is not None and len(values) != len(times):
            raise MalformedResponseError(
                f"{section}.{name} has {len(values)} values for {len(times)} timestamps"
            )


def normalize(raw: dict, location: Location, units: UnitSystem) -> WeatherSnapshot:
    """
    Map an Open-Meteo forecast document to a WeatherSnapshot

    Args:
        raw: Decoded JSON document from the forecast endpoint
        location: Location the document was requested for
        units: Unit system of the returned snapshot

    Returns:
        Normalized snapshot; hourly/daily keep the upstream order

    Raises:
        MalformedResponseError: if required fields are missing, parallel
            arrays differ in length or a series is not ascending
    """
    units = UnitSystem(units)
    try:
        data = OpenMeteoResponse.model_validate(raw)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid forecast payload: {e.error_count()} validation errors") from e

    offset = data.utc_offset_seconds
    current_temp_unit = data.current_units.get("temperature_2m", DEFAULT_TEMPERATURE_UNIT)
    current_wind_unit = data.current_units.get("wind_speed_10m", DEFAULT_WIND_UNIT)
    hourly_temp_unit = data.hourly_units.get("temperature_2m", DEFAULT_TEMPERATURE_UNIT)
    hourly_wind_unit = data.hourly_units.get("wind_speed_10m", DEFAULT_WIND_UNIT)
    daily_temp_unit = data.daily_units.get("temperature_2m_max", DEFAULT_TEMPERATURE_UNIT)

    hourly = data.hourly
    _check_aligned("hourly", hourly.time, {
        "temperature_2m": hourly.temperature_2m,
        "wind_speed_10m": hourly.wind_speed_10m,
        "precipitation_probability": hourly.precipitation_probability,
    })
    daily = data.daily
    _check_aligned("daily", daily.time, {
        "temperature_2m_max": daily.temperature_2m_max,
        "temperature_2m_min": daily.temperature_2m_min,
        "precipitation_probability_max": daily.precipitation_probability_max,
    })

    current = CurrentConditions(
        temp=_convert_temperature(data.current.temperature_2m, current_temp_unit, units),
        humidity=data.current.relative_humidity_2m or 0,
        pressure_hpa=data.current.pressure_msl or 0,
        wind_speed=_convert_wind(data.current.wind_speed_10m, current_wind_unit, units),
        observed_at=to_utc(data.current.time, offset),
    )

    hourly_points = [
        HourlyPoint(
            at=to_utc(t, offset),
            temp=_convert_temperature(hourly.temperature_2m[i], hourly_temp_unit, units),
            precipitation_probability=_probability(hourly.precipitation_probability, i),
            wind_speed=_convert_wind(hourly.wind_speed_10m[i], hourly_wind_unit, units),
        )
        for i, t in enumerate(hourly.time)
    ]

    daily_points = [
        DailyPoint(
            date=to_local_date(t, offset),
            temp_min=_convert_temperature(daily.temperature_2m_min[i], daily_temp_unit, units),
            temp_max=_convert_temperature(daily.temperature_2m_max[i], daily_temp_unit, units),
            precipitation_probability=_probability(daily.precipitation_probability_max, i),
        )
        for i, t in enumerate(daily.time)
    ]

    try:
        return WeatherSnapshot(
            location_id=location.id,
            units=units,
            timezone=data.timezone,
            current=current,
            hourly=hourly_points,
            daily=daily_points,
        )
    except ValidationError as e:
        raise MalformedResponseError(f"Inconsistent forecast for {location.id}: {e}") from e
