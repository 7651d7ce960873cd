import asyncio
import logging
from abc import ABC, abstractmethod

import aiohttp

from weatherdash.errors import MalformedResponseError, NetworkError

logger = logging.getLogger(__name__)

OPENMETEO_BASE_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_FIELDS = ["temperature_2m", "relative_humidity_2m", "pressure_msl", "wind_speed_10m"]
HOURLY_FIELDS = ["temperature_2m", "precipitation_probability", "wind_speed_10m"]
DAILY_FIELDS = ["temperature_2m_max", "temperature_2m_min", "precipitation_probability_max"]


class WeatherProvider(ABC):
    """Upstream source of raw forecast documents"""

    @abstractmethod
    async def fetch_forecast(self, lat: float, lon: float) -> dict:
        """
        Fetch the raw forecast document for a coordinate

        Raises:
            NetworkError: if the upstream call fails or times out
            MalformedResponseError: if the body is not a JSON document
        """


class OpenMeteoClient(WeatherProvider):
    """Open-Meteo forecast API client"""

    def __init__(self, base_url: str = OPENMETEO_BASE_URL, timeout: float = 10.0):
        self.base_url = base_url
        self.timeout = timeout

    def build_params(self, lat: float, lon: float) -> dict:
        return {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(CURRENT_FIELDS),
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
        }

    async def fetch_forecast(self, lat: float, lon: float) -> dict:
        params = self.build_params(lat, lon)
        logger.info(f"Fetching weather forecast from Open-Meteo: lat={lat}, lon={lon}")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self.base_url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"Open-Meteo API error {response.status}: {error_text}")
                        raise NetworkError(f"Open-Meteo API returned status {response.status}")

                    try:
                        data = await response.json()
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        raise MalformedResponseError(f"Open-Meteo returned a non-JSON body: {e}") from e

        except asyncio.TimeoutError as e:
            logger.error("Open-Meteo API request timed out")
            raise NetworkError(f"Open-Meteo request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching Open-Meteo forecast: {e}")
            raise NetworkError(f"Open-Meteo request failed: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError("Open-Meteo response is not a JSON object")
        return data
