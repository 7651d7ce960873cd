import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from weatherdash.models.location import Location
from weatherdash.services.cache import CacheStore, MemoryBackend
from weatherdash.services.coordinator import FetchCoordinator
from weatherdash.services.state import StateStore
from weatherdash.services.weather_openmeteo import WeatherProvider

NYC = Location(id="nyc", name="New York", lat=40.7128, lon=-74.006, country="US")
LONDON = Location(name="London", lat=51.5074, lon=-0.1278, country="United Kingdom", region="England")


def create_openmeteo_response(
    temperature: float = 21.5,
    hours: int = 3,
    days: int = 2,
    with_precipitation: bool = True,
    utc_offset_seconds: int = -14400,
):
    """Forecast document shaped like Open-Meteo's timezone=auto response"""
    response = {
        "latitude": 40.710335,
        "longitude": -73.99307,
        "timezone": "America/New_York",
        "utc_offset_seconds": utc_offset_seconds,
        "current_units": {"temperature_2m": "°C", "wind_speed_10m": "km/h"},
        "current": {
            "time": "2026-10-19T08:00",
            "temperature_2m": temperature,
            "relative_humidity_2m": 64,
            "pressure_msl": 1016.2,
            "wind_speed_10m": 18.0,
        },
        "hourly_units": {"temperature_2m": "°C", "wind_speed_10m": "km/h"},
        "hourly": {
            "time": [f"2026-10-19T{h:02d}:00" for h in range(hours)],
            "temperature_2m": [15.0 + h for h in range(hours)],
            "wind_speed_10m": [36.0 for _ in range(hours)],
        },
        "daily_units": {"temperature_2m_max": "°C"},
        "daily": {
            "time": [f"2026-10-{19 + d}" for d in range(days)],
            "temperature_2m_max": [22.0 + d for d in range(days)],
            "temperature_2m_min": [11.0 + d for d in range(days)],
        },
    }
    if with_precipitation:
        response["hourly"]["precipitation_probability"] = [10 * h for h in range(hours)]
        response["daily"]["precipitation_probability_max"] = [40 for _ in range(days)]
    return response


class FakeClock:
    """Controllable replacement for the UTC clock"""

    def __init__(self, start=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakeProvider(WeatherProvider):
    """Records upstream calls; can hold them on a gate or fail per coordinate"""

    def __init__(self, payload=None, errors=None):
        self.payload = payload or create_openmeteo_response()
        self.errors = errors or {}
        self.calls = []
        self.gate = None

    async def fetch_forecast(self, lat, lon):
        self.calls.append((lat, lon))
        if self.gate is not None:
            await self.gate.wait()
        error = self.errors.get((lat, lon))
        if error is not None:
            raise error
        return self.payload


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def cache(backend, clock):
    return CacheStore(backend, clock=clock)


@pytest.fixture
def state(clock):
    return StateStore(clock=clock)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def coordinator(cache, state, provider):
    return FetchCoordinator(cache, state, provider, ttl=60)


async def settle():
    """Let scheduled tasks run up to their next suspension point"""
    for _ in range(5):
        await asyncio.sleep(0)
