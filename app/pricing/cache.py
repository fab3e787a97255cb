from decimal import Decimal
from typing import Callable, Dict, Optional
import threading
import time

from app.pricing.models import CacheEntry, CacheKey


DEFAULT_TTL_SECONDS = 300


class PriceCache:
    """In-memory, time-bounded price cache.

    Entries are never evicted. Freshness is checked lazily on read: an entry
    older than the TTL is reported as absent but stays in place until the
    next successful resolution for the same key overwrites it. The key space
    is bounded by the number of distinct holdings, so there is no capacity
    limit.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the entry for key if it is still fresh"""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.as_of >= self.ttl_seconds:
            return None
        return entry

    def put(self, key: CacheKey, price: Decimal, quote_date: Optional[str] = None) -> CacheEntry:
        """Store a price for key, replacing whatever was there"""
        entry = CacheEntry(price=price, as_of=self._clock(), quote_date=quote_date)
        with self._lock:
            self._entries[key] = entry
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
