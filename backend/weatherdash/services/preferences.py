import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from weatherdash.errors import StorageError
from weatherdash.models.location import Location, UnitSystem
from weatherdash.services.cache import CacheBackend

logger = logging.getLogger(__name__)

FAVORITES_KEY = "wad_favorites"
UNITS_KEY = "wad_units"
AUTO_REFRESH_KEY = "wad_autoRefresh"

_locations = TypeAdapter(List[Location])


class PreferencesStore:
    """Best effort persistence of favorites, unit system and auto refresh"""

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.backend.read(key)
        except StorageError as e:
            logger.warning(f"Could not read preference {key}: {e}")
            return None

    async def _write(self, key: str, value: str):
        try:
            await self.backend.write(key, value)
        except StorageError as e:
            logger.warning(f"Could not save preference {key}: {e}")

    async def load_favorites(self) -> List[Location]:
        raw = await self._read(FAVORITES_KEY)
        if not raw:
            return []
        try:
            return _locations.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable favorites: {e}")
            return []

    async def save_favorites(self, favorites: List[Location]):
        await self._write(FAVORITES_KEY, _locations.dump_json(favorites).decode("utf-8"))

    async def load_units(self) -> UnitSystem:
        raw = await self._read(UNITS_KEY)
        try:
            return UnitSystem(raw) if raw else UnitSystem.METRIC
        except ValueError:
            logger.warning(f"Ignoring unknown unit system {raw!r}")
            return UnitSystem.METRIC

    async def save_units(self, units: UnitSystem):
        await self._write(UNITS_KEY, UnitSystem(units).value)

    async def load_auto_refresh(self) -> bool:
        raw = await self._read(AUTO_REFRESH_KEY)
        if raw is None:
            return True
        try:
            return bool(json.loads(raw))
        except ValueError:
            return True

    async def save_auto_refresh(self, enabled: bool):
        await self._write(AUTO_REFRESH_KEY, json.dumps(enabled))
