import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from weatherdash.config import Settings
from weatherdash.models.location import Location, UnitSystem
from weatherdash.models.weather import LatestResult, state_key
from weatherdash.services.cache import CacheBackend, CacheStore, create_backend, utcnow
from weatherdash.services.coordinator import FetchCoordinator
from weatherdash.services.preferences import PreferencesStore
from weatherdash.services.registry import LocationRegistry
from weatherdash.services.scheduler import RefreshScheduler
from weatherdash.services.state import StateStore
from weatherdash.services.weather_openmeteo import OpenMeteoClient, WeatherProvider

logger = logging.getLogger(__name__)

# Shown when nothing has been favorited yet
DEFAULT_LOCATION = Location(id="nyc", name="New York", lat=40.7128, lon=-74.006, country="US")


class WeatherDashboard:
    """
    Session context owning the cache, state, registry and scheduler.

    One instance is created per session and handed to its consumers; the
    components never reach for module-level state.
    """

    def __init__(
        self,
        settings: Settings,
        provider: Optional[WeatherProvider] = None,
        backend: Optional[CacheBackend] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.backend = backend or create_backend(
            settings.cache_backend, settings.cache_dir, settings.database_url
        )
        self.provider = provider or OpenMeteoClient(
            settings.openmeteo_base_url, settings.request_timeout
        )
        self.units = UnitSystem.METRIC
        self.auto_refresh = True

        self.cache = CacheStore(self.backend, clock=clock)
        self.state = StateStore(clock=clock)
        self.preferences = PreferencesStore(self.backend)
        self.registry = LocationRegistry()
        self.coordinator = FetchCoordinator(
            self.cache, self.state, self.provider, ttl=settings.cache_ttl
        )
        self.scheduler = RefreshScheduler(
            self.coordinator,
            self.registry,
            units=lambda: self.units,
            interval_seconds=settings.refresh_interval,
        )

    async def start(self):
        """Load preferences, fetch every tracked location and start refreshing"""
        await self.backend.open()

        self.units = await self.preferences.load_units()
        self.auto_refresh = await self.preferences.load_auto_refresh()

        favorites = await self.preferences.load_favorites()
        for location in favorites:
            self.registry.add(location, is_favorite=True, is_pinned=False)
        if not favorites:
            self.registry.add(DEFAULT_LOCATION)

        logger.info(f"Dashboard started with {len(self.registry)} locations ({self.units.value})")
        await self.scheduler.refresh_now()

        if self.auto_refresh:
            self.scheduler.start()

    async def stop(self):
        self.scheduler.stop()
        await self.coordinator.drain()
        await self.backend.close()
        logger.info("Dashboard stopped")

    async def add_location(self, location: Location, favorite: bool = False) -> bool:
        """
        Track a location; a new one is fetched right away

        Returns:
            True if the location was not tracked before
        """
        added = self.registry.add(location, is_favorite=favorite)
        if favorite:
            await self.preferences.save_favorites(self.registry.favorites())
        if added:
            await self.scheduler.refresh_now(location.id)
        return added

    async def remove_location(self, location_id: str) -> bool:
        tracked = self.registry.get(location_id)
        removed = self.registry.remove(location_id)
        if removed and tracked.is_favorite:
            await self.preferences.save_favorites(self.registry.favorites())
        return removed

    async def set_favorite(self, location_id: str, is_favorite: bool) -> bool:
        changed = self.registry.set_favorite(location_id, is_favorite)
        if changed:
            await self.preferences.save_favorites(self.registry.favorites())
        return changed

    async def set_units(self, units: UnitSystem) -> Dict[str, bool]:
        """Switch unit system and fetch every tracked location in it"""
        self.units = UnitSystem(units)
        await self.preferences.save_units(self.units)
        return await self.scheduler.refresh_now()

    async def set_auto_refresh(self, enabled: bool):
        self.auto_refresh = enabled
        await self.preferences.save_auto_refresh(enabled)
        if enabled:
            self.scheduler.start()
        else:
            self.scheduler.stop()

    def result(self, location_id: str, units: Optional[UnitSystem] = None) -> LatestResult:
        return self.state.get(state_key(location_id, units or self.units))
