import asyncio
import logging
from typing import Dict

from weatherdash.models.location import Location, UnitSystem
from weatherdash.models.weather import CacheKey, WeatherSnapshot
from weatherdash.services.cache import DEFAULT_TTL_SECONDS, CacheStore
from weatherdash.services.normalize import normalize
from weatherdash.services.state import StateStore
from weatherdash.services.weather_openmeteo import WeatherProvider

logger = logging.getLogger(__name__)


class FetchCoordinator:
    """
    Resolves snapshots through the cache, deduplicating concurrent requests.

    At most one operation runs per cache key. Callers asking for a key that is
    already being resolved wait on the same task, so the scheduler, manual
    refreshes and newly added locations never cause duplicate upstream calls.
    """

    def __init__(
        self,
        cache: CacheStore,
        state: StateStore,
        provider: WeatherProvider,
        ttl: float = DEFAULT_TTL_SECONDS,
    ):
        self.cache = cache
        self.state = state
        self.provider = provider
        self.ttl = ttl
        self._in_flight: Dict[CacheKey, asyncio.Task] = {}

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, location_id: str, units: UnitSystem) -> bool:
        return CacheKey(location_id, UnitSystem(units)) in self._in_flight

    async def fetch_snapshot(self, location: Location, units: UnitSystem) -> WeatherSnapshot:
        """
        Get the snapshot for a location, from cache when fresh

        Args:
            location: Location to resolve
            units: Unit system of the snapshot

        Returns:
            Normalized snapshot

        Raises:
            WeatherError: if the upstream call or normalization failed
        """
        key = CacheKey(location.id, UnitSystem(units))

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve(key, location))
            self._in_flight[key] = task
        else:
            logger.debug(f"Attaching to in-flight fetch for {key}")

        # Cancelling one caller must not cancel the fetch shared with others
        return await asyncio.shield(task)

    async def _resolve(self, key: CacheKey, location: Location) -> WeatherSnapshot:
        state_key = key.state_key
        self.state.set_pending(state_key)
        try:
            cached = await self.cache.get(key, self.ttl)
            if cached is not None:
                self.state.set_succeeded(state_key, cached)
                return cached

            raw = await self.provider.fetch_forecast(location.lat, location.lon)
            snapshot = normalize(raw, location, key.units)
            await self.cache.set(key, snapshot)

            logger.info(f"Fetched weather for {location.name} ({key})")
            self.state.set_succeeded(state_key, snapshot)
            return snapshot

        except Exception as e:
            logger.error(f"Failed to fetch weather for {location.name} ({key}): {e}")
            self.state.set_failed(state_key, e)
            raise

        finally:
            self._in_flight.pop(key, None)

    async def drain(self):
        """Wait for every in-flight fetch to finish"""
        tasks = list(self._in_flight.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} in-flight fetches")
            await asyncio.gather(*tasks, return_exceptions=True)
