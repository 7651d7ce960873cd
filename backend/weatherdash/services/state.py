import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from weatherdash.models.weather import FetchStatus, LatestResult, WeatherSnapshot
from weatherdash.services.cache import utcnow

logger = logging.getLogger(__name__)


class StateStore:
    """
    Latest fetch outcome per (location, units) key plus a global status.

    Cells are independent, so concurrent fetches for different keys never
    overwrite each other. The global status/error follow the most recent
    transition of any key.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self._results: Dict[str, LatestResult] = {}
        self.status: FetchStatus = FetchStatus.IDLE
        self.error: Optional[str] = None
        self.error_kind: Optional[str] = None

    def get(self, key: str) -> LatestResult:
        return self._results.get(key, LatestResult())

    def snapshot(self, key: str) -> Optional[WeatherSnapshot]:
        return self.get(key).snapshot

    def set_pending(self, key: str):
        previous = self.get(key)
        self._results[key] = previous.model_copy(update={
            "status": FetchStatus.LOADING,
            "error": None,
            "error_kind": None,
            "updated_at": self.clock(),
        })
        self.status = FetchStatus.LOADING
        self.error = None
        self.error_kind = None

    def set_succeeded(self, key: str, snapshot: WeatherSnapshot):
        self._results[key] = LatestResult(
            status=FetchStatus.SUCCEEDED,
            snapshot=snapshot,
            updated_at=self.clock(),
        )
        self.status = FetchStatus.SUCCEEDED

    def set_failed(self, key: str, error: Exception):
        kind = getattr(error, "kind", "error")
        # Last good snapshot stays available for display
        previous = self.get(key)
        self._results[key] = previous.model_copy(update={
            "status": FetchStatus.FAILED,
            "error": str(error),
            "error_kind": kind,
            "updated_at": self.clock(),
        })
        self.status = FetchStatus.FAILED
        self.error = str(error)
        self.error_kind = kind
        logger.debug(f"State {key} failed ({kind}): {error}")
