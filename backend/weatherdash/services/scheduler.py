import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from weatherdash.models.location import UnitSystem
from weatherdash.services.coordinator import FetchCoordinator
from weatherdash.services.registry import LocationRegistry

logger = logging.getLogger(__name__)

JOB_ID = "weather_refresh"


class RefreshScheduler:
    """Periodic and manual refresh of every tracked location."""

    def __init__(
        self,
        coordinator: FetchCoordinator,
        registry: LocationRegistry,
        units: Callable[[], UnitSystem],
        interval_seconds: int = 60,
    ):
        self.coordinator = coordinator
        self.registry = registry
        self.units = units
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_run_time(self) -> Optional[datetime]:
        if not self.running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    async def refresh_job(self):
        """Scheduled tick: refresh all tracked locations."""
        results = await self.refresh_now()
        failed = [location_id for location_id, ok in results.items() if not ok]
        logger.info(f"Weather refresh complete: {len(results) - len(failed)}/{len(results)} locations")
        if failed:
            logger.warning(f"Weather refresh failed for: {', '.join(failed)}")

    async def refresh_now(self, location_id: Optional[str] = None) -> Dict[str, bool]:
        """
        Refresh one tracked location, or all of them

        Goes through the coordinator, so a fresh cache entry or an in-flight
        fetch for the same key is reused.

        Args:
            location_id: Location to refresh; all tracked locations if omitted

        Returns:
            Mapping of location id to whether its fetch succeeded
        """
        if location_id is None:
            locations = self.registry.locations()
        else:
            tracked = self.registry.get(location_id)
            if tracked is None:
                logger.warning(f"Refresh requested for untracked location {location_id}")
                return {}
            locations = [tracked.location]

        units = self.units()
        outcomes = await asyncio.gather(
            *(self.coordinator.fetch_snapshot(location, units) for location in locations),
            return_exceptions=True,
        )

        results = {}
        for location, outcome in zip(locations, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Refresh of {location.name} failed: {outcome}")
                results[location.id] = False
            else:
                results[location.id] = True
        return results

    def start(self):
        """Start the periodic refresh; must be called with a running event loop."""
        if self.running:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.refresh_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Refresh tracked locations",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Weather scheduler started (interval: {self.interval_seconds} seconds)")

    def stop(self):
        """Cancel pending ticks; fetches already dispatched run to completion."""
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Weather scheduler stopped")
