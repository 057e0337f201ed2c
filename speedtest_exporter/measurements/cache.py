"""Cached speedtest result with scrape-driven background refresh.

Scrapes must answer quickly while a speedtest takes tens of seconds, so only
the very first measurement blocks a caller. Afterwards a stale result is
served immediately and a single background refresh replaces it once the
new measurement lands.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import SpeedtestError
from .models import MeasurementResult

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    result: MeasurementResult
    stored_at: float


class ResultCache:
    """Holds the latest MeasurementResult and coordinates refreshes.

    ``measure`` is called with no arguments and either returns a result or
    raises a SpeedtestError. At most one call to it is active at a time.
    """

    def __init__(
        self,
        measure: Callable[[], MeasurementResult],
        refresh_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._measure = measure
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._cold_lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None
        self._refreshing = False
        self._pending: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speedtest-refresh")

    @property
    def entry(self) -> Optional[CacheEntry]:
        with self._lock:
            return self._entry

    @property
    def refreshing(self) -> bool:
        with self._lock:
            return self._refreshing

    def get_or_refresh(self) -> MeasurementResult:
        with self._lock:
            entry = self._entry
            if entry is not None:
                self._maybe_refresh(entry)
        if entry is None:
            return self._measure_cold()

        LOGGER.debug("returning results from cache")
        return entry.result

    def _measure_cold(self) -> MeasurementResult:
        # _lock stays free for health checks while the first speedtest runs
        with self._cold_lock:
            with self._lock:
                entry = self._entry
            if entry is not None:
                return entry.result

            LOGGER.debug("cache is empty, running speedtest")
            result = self._measure()
            with self._lock:
                self._entry = CacheEntry(result=result, stored_at=self._clock())
            return result

    def _maybe_refresh(self, entry: CacheEntry) -> None:
        age = self._clock() - entry.stored_at
        if age > self.refresh_interval and not self._refreshing:
            self._refreshing = True
            LOGGER.debug("cached result is %.0fs old, refreshing in background", age)
            self._pending = self._executor.submit(self._refresh)

    def _refresh(self) -> None:
        try:
            result = self._measure()
        except SpeedtestError as exc:
            LOGGER.error("failed to update cache in background: %s", exc)
            return
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("unexpected error while updating cache in background")
            return
        else:
            self._commit(result)
        finally:
            with self._lock:
                self._refreshing = False

    def _commit(self, result: MeasurementResult) -> None:
        # refreshes are serialized, so the latest completion is the newest measurement
        with self._lock:
            self._entry = CacheEntry(result=result, stored_at=self._clock())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the in-flight background refresh, if any, has finished."""

        with self._lock:
            pending = self._pending
        if pending is None:
            return True
        done, _ = wait_futures([pending], timeout=timeout)
        return bool(done)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
