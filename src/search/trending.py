"""
Trending query tracking.

One TrendingQueryRecord per distinct query (trimmed, case preserved as
first seen). Every occurrence increments the lifetime counter and the
24h/7d/30d window counters, then recomputes

    trending_score = 10 * last_24h + 2 * last_7d + 0.5 * last_30d

Two windowing modes:

- ``monotonic`` (default): window counters only ever increment. They are
  labels, not real windows; this matches the behaviour existing clients
  were built against. Records are never evicted.
- ``bucketed``: occurrences land in hourly buckets; window counters are
  recomputed from the buckets relative to "now" (on write and on read)
  and buckets older than 30 days are dropped.

All mutations of a record happen under that query's lock.
"""

import copy
import heapq
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from config.constants import DEFAULT_TRENDING_CONFIG, TrendingConfig
from core.errors import ValidationError
from core.logging import get_logger
from core.utils import KeyedLocks, utcnow
from search.tokenizer import normalize_query

logger = get_logger(__name__)

WINDOWING_MODES = ("monotonic", "bucketed")


@dataclass
class TrendingQueryRecord:
    """Counters for one query."""
    query: str
    total_searches: int = 0
    searches_last_24h: int = 0
    searches_last_7d: int = 0
    searches_last_30d: int = 0
    trending_score: float = 0.0
    user_ids: Set[str] = field(default_factory=set)
    average_results: float = 0.0
    results_reported: int = 0
    peak_search_date: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)
    # hour index -> occurrences (bucketed mode only)
    hourly_buckets: Dict[int, int] = field(default_factory=dict)

    @property
    def unique_users(self) -> int:
        return len(self.user_ids)

    def window_count(self, timeframe: str) -> int:
        if timeframe == "24h":
            return self.searches_last_24h
        if timeframe == "7d":
            return self.searches_last_7d
        if timeframe == "30d":
            return self.searches_last_30d
        raise ValidationError(f"Unknown timeframe: {timeframe}")

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "metrics": {
                "totalSearches": self.total_searches,
                "uniqueUsers": self.unique_users,
                "searchesLast24h": self.searches_last_24h,
                "searchesLast7d": self.searches_last_7d,
                "searchesLast30d": self.searches_last_30d,
                "peakSearchDate": self.peak_search_date.isoformat(),
                "trendingScore": self.trending_score,
            },
            "performance": {"averageResults": round(self.average_results, 2)},
            "lastUpdated": self.last_updated.isoformat(),
        }


def _hour_index(ts: datetime) -> int:
    return int(ts.timestamp() // 3600)


class TrendingTracker:
    """
    Owns all TrendingQueryRecords.

    Args:
        config: score coefficients and window sizes
        windowing: "monotonic" or "bucketed"
        clock: returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        config: Optional[TrendingConfig] = None,
        windowing: str = "monotonic",
        clock: Callable[[], datetime] = utcnow,
    ):
        if windowing not in WINDOWING_MODES:
            raise ValueError(f"windowing must be one of {WINDOWING_MODES}, got {windowing!r}")
        self.config = config or DEFAULT_TRENDING_CONFIG
        self.windowing = windowing
        self._clock = clock
        self._records: Dict[str, TrendingQueryRecord] = {}
        self._records_lock = threading.Lock()
        self._locks = KeyedLocks()

    # =========================================================================
    # Scoring
    # =========================================================================

    def compute_score(self, record: TrendingQueryRecord) -> float:
        return (
            self.config.WEIGHT_24H * record.searches_last_24h
            + self.config.WEIGHT_7D * record.searches_last_7d
            + self.config.WEIGHT_30D * record.searches_last_30d
        )

    def _refresh_windows(self, record: TrendingQueryRecord, now: datetime) -> None:
        """Recompute window counters from hourly buckets (bucketed mode)."""
        current = _hour_index(now)
        hours = self.config.WINDOW_HOURS
        oldest_kept = current - hours["30d"] + 1

        for hour in [h for h in record.hourly_buckets if h < oldest_kept]:
            del record.hourly_buckets[hour]

        def count_within(window_hours: int) -> int:
            start = current - window_hours + 1
            return sum(n for h, n in record.hourly_buckets.items() if h >= start)

        record.searches_last_24h = count_within(hours["24h"])
        record.searches_last_7d = count_within(hours["7d"])
        record.searches_last_30d = count_within(hours["30d"])
        record.trending_score = self.compute_score(record)

    # =========================================================================
    # Writes
    # =========================================================================

    def record_occurrence(
        self,
        query: str,
        user_id: Optional[str] = None,
        result_count: Optional[int] = None,
    ) -> Optional[TrendingQueryRecord]:
        """
        Count one occurrence of ``query``.

        Returns a snapshot of the updated record, or None for a blank query.
        """
        key = normalize_query(query)
        if not key:
            return None

        now = self._clock()
        with self._locks.get(key):
            record = self._records.get(key)
            if record is None:
                record = TrendingQueryRecord(query=key, peak_search_date=now, last_updated=now)
                with self._records_lock:
                    self._records[key] = record
                logger.debug("New trending query", query=key)

            record.total_searches += 1
            if user_id:
                record.user_ids.add(user_id)
            if result_count is not None:
                # Running mean over the occurrences that reported a count
                record.results_reported += 1
                record.average_results += (
                    (result_count - record.average_results) / record.results_reported
                )

            if self.windowing == "bucketed":
                hour = _hour_index(now)
                record.hourly_buckets[hour] = record.hourly_buckets.get(hour, 0) + 1
                self._refresh_windows(record, now)
            else:
                record.searches_last_24h += 1
                record.searches_last_7d += 1
                record.searches_last_30d += 1
                record.trending_score = self.compute_score(record)

            record.last_updated = now
            return copy.deepcopy(record)

    # =========================================================================
    # Reads
    # =========================================================================

    def _top_keys(
        self,
        limit: int,
        sort_value: Callable[[TrendingQueryRecord], float],
        keep: Optional[Callable[[TrendingQueryRecord], bool]] = None,
    ) -> List[str]:
        with self._records_lock:
            keys = list(self._records.keys())

        now = self._clock()
        ranked = []
        for key in keys:
            with self._locks.get(key):
                record = self._records[key]
                if self.windowing == "bucketed":
                    self._refresh_windows(record, now)
                if keep is None or keep(record):
                    ranked.append((sort_value(record), key))
        # Stable: ties keep first-seen order
        top = heapq.nlargest(limit, ranked, key=lambda pair: pair[0])
        return [key for _, key in top]

    def _snapshot(self, key: str) -> TrendingQueryRecord:
        with self._locks.get(key):
            return copy.deepcopy(self._records[key])

    def get(self, query: str) -> Optional[TrendingQueryRecord]:
        """Snapshot of one record; None when the query was never seen."""
        key = normalize_query(query)
        record = self._records.get(key)
        if record is None:
            return None
        with self._locks.get(key):
            if self.windowing == "bucketed":
                self._refresh_windows(record, self._clock())
            return copy.deepcopy(record)

    def top_trending(self, limit: int = 10, window: str = "24h") -> List[TrendingQueryRecord]:
        """Records ordered by the ``window`` counter (desc), truncated to ``limit``."""
        if window not in self.config.WINDOW_HOURS:
            raise ValidationError(f"Unknown timeframe: {window}")
        if limit <= 0:
            return []
        keys = self._top_keys(limit, lambda r: r.window_count(window))
        return [self._snapshot(key) for key in keys]

    def top_by_score(
        self,
        limit: int = 10,
        updated_since: Optional[datetime] = None,
    ) -> List[TrendingQueryRecord]:
        """Records ordered by trending score, optionally only recently updated ones."""
        if limit <= 0:
            return []

        def recent(record: TrendingQueryRecord) -> bool:
            return updated_since is None or record.last_updated >= updated_since

        keys = self._top_keys(limit, lambda r: r.trending_score, recent)
        return [self._snapshot(key) for key in keys]

    def __len__(self) -> int:
        return len(self._records)


def window_start(timeframe: str, config: TrendingConfig = DEFAULT_TRENDING_CONFIG,
                 now: Optional[datetime] = None) -> datetime:
    """Start of the ``timeframe`` window ending at ``now``."""
    if timeframe not in config.WINDOW_HOURS:
        raise ValidationError(f"Unknown timeframe: {timeframe}")
    return (now or utcnow()) - timedelta(hours=config.WINDOW_HOURS[timeframe])
