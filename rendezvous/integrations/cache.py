"""
In-process TTL cache with retry for outbound integration calls.

Entries live in a plain dict keyed by request key; staleness is checked on
read only. Clock and sleep are injectable so tests can run without waiting.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from rendezvous.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IntegrationError(RuntimeError):
    """A third-party API answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class IntegrationCache:
    def __init__(
        self,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if retry_attempts is None:
            retry_attempts = settings.integration_retry_attempts
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = settings.integration_retry_delay_seconds if retry_delay is None else retry_delay
        self._clock = clock
        self._sleep = sleep
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            return entry
        return None

    def make_request(self, key: str, request_fn: Callable[[], T], ttl: Optional[float] = None) -> T:
        """
        Return the cached value for ``key`` or call ``request_fn``.

        On a miss ``request_fn`` is attempted up to ``retry_attempts`` times,
        sleeping ``retry_delay * attempt`` between attempts. The last
        exception is re-raised when every attempt fails; failures are never
        cached.
        """
        ttl = settings.integration_default_ttl_seconds if ttl is None else ttl

        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached.data

        logger.debug("Cache miss for %s", key)
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                data = request_fn()
            except Exception as exc:
                last_error = exc
                if attempt < self.retry_attempts:
                    delay = self.retry_delay * attempt
                    logger.warning(
                        "Request %s failed (attempt %d/%d): %s; retrying in %.1fs",
                        key, attempt, self.retry_attempts, exc, delay,
                    )
                    self._sleep(delay)
                continue

            with self._lock:
                self._entries[key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
            return data

        logger.error("Request %s failed after %d attempts: %s", key, self.retry_attempts, last_error)
        raise last_error

    def clear_cache(self, pattern: Optional[str] = None) -> int:
        """Drop entries whose key contains ``pattern`` (all entries when omitted)."""
        with self._lock:
            if pattern:
                keys = [key for key in self._entries if pattern in key]
            else:
                keys = list(self._entries)
            for key in keys:
                del self._entries[key]
        logger.info("Cleared %d cache entries%s", len(keys), f" matching '{pattern}'" if pattern else "")
        return len(keys)

    def get_cache_stats(self) -> Dict[str, Any]:
        now = self._clock()
        with self._lock:
            entries = list(self._entries.values())
        valid = sum(1 for entry in entries if entry.is_fresh(now))
        expired = len(entries) - valid
        return {
            "total_entries": len(entries),
            "valid_entries": valid,
            "expired_entries": expired,
            "hit_rate": valid / len(entries) if entries else 0,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
