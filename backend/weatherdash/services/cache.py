import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional
from urllib.parse import quote

import asyncpg

from weatherdash.db.connection import close_db, init_db
from weatherdash.errors import StorageError
from weatherdash.models.weather import CacheEntry, CacheKey, WeatherSnapshot

logger = logging.getLogger(__name__)

CACHE_PREFIX = "wad_cache_v1_"

DEFAULT_TTL_SECONDS = 60


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheBackend(ABC):
    """Async string key/value storage behind the cache and preferences"""

    async def open(self):
        pass

    async def close(self):
        pass

    @abstractmethod
    async def read(self, key: str) -> Optional[str]:
        """
        Read a value

        Returns:
            Stored string, or None if the key is absent

        Raises:
            StorageError: if the store cannot be read
        """

    @abstractmethod
    async def write(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one

        Raises:
            StorageError: if the value could not be persisted
        """


class MemoryBackend(CacheBackend):
    def __init__(self):
        self._data: Dict[str, str] = {}

    async def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def write(self, key: str, value: str) -> None:
        self._data[key] = value


class FileBackend(CacheBackend):
    """One file per key; writes are atomic replaces"""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        # Percent-encoded, so distinct keys map to distinct files
        return self.directory / f"{quote(key, safe='')}.json"

    def _read_file(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def _write_file(self, path: Path, value: str):
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp, path)
            except BaseException:
                os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    async def read(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read_file, self._path(key))

    async def write(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write_file, self._path(key), value)


class PostgresBackend(CacheBackend):
    """Key/value rows in the kv_store table"""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._pool: Optional[asyncpg.Pool] = None

    async def open(self):
        if self._pool is None:
            self._pool = await init_db(self.database_url)

    async def close(self):
        if self._pool is not None:
            await close_db(self._pool)
            self._pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StorageError("Database pool not initialized")
        return self._pool

    async def read(self, key: str) -> Optional[str]:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                return await conn.fetchval("SELECT value FROM kv_store WHERE key = $1", key)
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Cannot read {key}: {e}") from e

    async def write(self, key: str, value: str) -> None:
        pool = self._require_pool()
        query = """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES ($1, $2, NOW())
            ON CONFLICT (key)
            DO UPDATE SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
        """
        try:
            async with pool.acquire() as conn:
                await conn.execute(query, key, value)
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Cannot write {key}: {e}") from e


def create_backend(kind: str, cache_dir: str = ".weatherdash", database_url: Optional[str] = None) -> CacheBackend:
    """Build the configured backend"""
    if kind == "memory":
        return MemoryBackend()
    if kind == "file":
        return FileBackend(cache_dir)
    if kind == "postgres":
        if not database_url:
            raise ValueError("database_url is required for the postgres cache backend")
        return PostgresBackend(database_url)
    raise ValueError(f"Unknown cache backend: {kind}")


class CacheStore:
    """
    TTL cache of weather snapshots on top of a CacheBackend.

    The cache is an optimization: read failures are reported as misses and
    write failures are dropped, both only logged.
    """

    def __init__(
        self,
        backend: CacheBackend,
        clock: Callable[[], datetime] = utcnow,
        prefix: str = CACHE_PREFIX,
    ):
        self.backend = backend
        self.clock = clock
        self.prefix = prefix

    def _storage_key(self, key: CacheKey) -> str:
        return f"{self.prefix}{key}"

    async def get_entry(self, key: CacheKey) -> Optional[CacheEntry]:
        """Stored entry regardless of its age, or None"""
        try:
            raw = await self.backend.read(self._storage_key(key))
            if raw is None:
                return None
            return CacheEntry.model_validate_json(raw)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    async def get(self, key: CacheKey, ttl: float = DEFAULT_TTL_SECONDS) -> Optional[WeatherSnapshot]:
        """
        Get a cached snapshot if it is still fresh

        Args:
            key: Cache key
            ttl: Maximum age in seconds

        Returns:
            The snapshot if stored less than ttl seconds ago, otherwise None
        """
        entry = await self.get_entry(key)
        if entry is None:
            return None

        age = (self.clock() - entry.stored_at).total_seconds()
        if age < ttl:
            logger.debug(f"Cache hit for {key} (age: {age:.1f}s)")
            return entry.value

        logger.debug(f"Cache entry for {key} is stale (age: {age:.1f}s, TTL: {ttl}s)")
        return None

    async def set(self, key: CacheKey, value: WeatherSnapshot) -> None:
        """Store a snapshot with the current time"""
        entry = CacheEntry(stored_at=self.clock(), value=value)
        try:
            await self.backend.write(self._storage_key(key), entry.model_dump_json())
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
