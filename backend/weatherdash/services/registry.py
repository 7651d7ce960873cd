import logging
from typing import Dict, List, Optional

from weatherdash.models.location import Location, TrackedLocation

logger = logging.getLogger(__name__)


class LocationRegistry:
    """Ordered set of locations subject to periodic refresh"""

    def __init__(self):
        self._tracked: Dict[str, TrackedLocation] = {}

    def add(self, location: Location, is_favorite: bool = False, is_pinned: bool = True) -> bool:
        """
        Track a location

        Adding an already tracked id keeps the existing entry, only merging
        the favorite/pinned flags in.

        Returns:
            True if the location was not tracked before
        """
        existing = self._tracked.get(location.id)
        if existing is not None:
            self._tracked[location.id] = existing.model_copy(update={
                "is_favorite": existing.is_favorite or is_favorite,
                "is_pinned": existing.is_pinned or is_pinned,
            })
            return False

        self._tracked[location.id] = TrackedLocation(
            location=location, is_favorite=is_favorite, is_pinned=is_pinned
        )
        logger.info(f"Tracking {location.name} ({location.id})")
        return True

    def remove(self, location_id: str) -> bool:
        if self._tracked.pop(location_id, None) is None:
            return False
        logger.info(f"Stopped tracking {location_id}")
        return True

    def set_favorite(self, location_id: str, is_favorite: bool) -> bool:
        """
        Mark or unmark a tracked location as favorite

        Unfavoriting a location that is not pinned stops tracking it.

        Returns:
            False if the location is not tracked
        """
        tracked = self._tracked.get(location_id)
        if tracked is None:
            return False
        if not is_favorite and not tracked.is_pinned:
            return self.remove(location_id)
        self._tracked[location_id] = tracked.model_copy(update={"is_favorite": is_favorite})
        return True

    def get(self, location_id: str) -> Optional[TrackedLocation]:
        return self._tracked.get(location_id)

    def is_tracked(self, location_id: str) -> bool:
        return location_id in self._tracked

    def list(self) -> List[TrackedLocation]:
        return list(self._tracked.values())

    def locations(self) -> List[Location]:
        return [t.location for t in self._tracked.values()]

    def favorites(self) -> List[Location]:
        return [t.location for t in self._tracked.values() if t.is_favorite]

    def __len__(self):
        return len(self._tracked)
