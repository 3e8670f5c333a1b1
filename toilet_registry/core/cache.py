"""In-process snapshot cache with single-flight refresh."""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from toilet_registry.models import CanonicalRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    captured_at: float
    records: Tuple[CanonicalRecord, ...]


@dataclass(frozen=True)
class CacheResult:
    records: Tuple[CanonicalRecord, ...]
    captured_at: float
    cached: bool


class SnapshotCache:
    """Holds the latest aggregate and refreshes it at most once at a time.

    Callers arriving while a refresh is running attach to that refresh and
    receive its outcome, success or failure. A failed refresh leaves the
    previous entry in place.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[Future] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def get(self, ttl: float, refresh_fn: Callable[[], Iterable[CanonicalRecord]]) -> CacheResult:
        with self._lock:
            now = self._clock()
            entry = self._entry
            if entry is not None and now - entry.captured_at < ttl:
                return CacheResult(records=entry.records, captured_at=entry.captured_at, cached=True)

            future = self._inflight
            leader = future is None
            if leader:
                future = Future()
                self._inflight = future

        if leader:
            self._refresh(future, refresh_fn, started_at=now)
        else:
            logger.debug("Joining in-flight cache refresh")

        entry = future.result()
        return CacheResult(records=entry.records, captured_at=entry.captured_at, cached=False)

    def _refresh(self, future: Future, refresh_fn: Callable[[], Iterable[CanonicalRecord]], started_at: float) -> None:
        logger.info("Refreshing cached snapshot")
        try:
            records = tuple(refresh_fn())
        except BaseException as exc:
            with self._lock:
                self._inflight = None
            logger.error("Cache refresh failed; keeping previous snapshot: %s", exc)
            future.set_exception(exc)
            return

        entry = CacheEntry(captured_at=started_at, records=records)
        with self._lock:
            if self._entry is None or entry.captured_at >= self._entry.captured_at:
                self._entry = entry
            else:
                entry = self._entry
            self._inflight = None
        logger.info("Cached snapshot with %d records", len(entry.records))
        future.set_result(entry)
