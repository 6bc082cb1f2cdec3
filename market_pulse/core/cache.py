"""In-memory, time-expiring result cache keyed by normalized ticker."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from market_pulse.core.logger import logger
from market_pulse.models.datatypes import MarketPulseResult

DEFAULT_TTL_SECONDS = 600
DEFAULT_MAX_ENTRIES = 1024


@dataclass(frozen=True)
class CacheEntry:
    """A stored result and the cache-clock instant it was written at."""
    ticker: str
    result: MarketPulseResult
    created_at: float


class ResultCache:
    """TTL + LRU cache of assembled :class:`MarketPulseResult` objects.

    An entry is a hit only while ``clock() - created_at < ttl_seconds``.
    Stale entries are not removed on read; the next successful ``put`` for the
    ticker supersedes them. Beyond ``max_entries`` the least recently used
    entry is evicted.

    Args:
        ttl_seconds: Freshness window (default 600 s).
        max_entries: Capacity bound.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, ticker: str) -> Optional[CacheEntry]:
        """Return the fresh entry for ``ticker``, or None on miss/expiry."""
        entry = self._entries.get(ticker)
        if entry is None:
            logger.info(f"ResultCache: miss for {ticker}")
            return None

        age = self._clock() - entry.created_at
        if age >= self.ttl_seconds:
            logger.info(f"ResultCache: stale entry for {ticker} (age {age:.0f}s)")
            return None

        self._entries.move_to_end(ticker)
        logger.info(f"ResultCache: hit for {ticker} (age {age:.0f}s)")
        return entry

    def put(self, ticker: str, result: MarketPulseResult) -> CacheEntry:
        """Store ``result`` under ``ticker``, replacing any previous entry."""
        entry = CacheEntry(ticker=ticker, result=result, created_at=self._clock())
        self._entries[ticker] = entry
        self._entries.move_to_end(ticker)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.info(f"ResultCache: evicted {evicted} (capacity {self.max_entries})")
        return entry

    def __contains__(self, ticker: object) -> bool:
        return ticker in self._entries

    def __len__(self) -> int:
        return len(self._entries)
