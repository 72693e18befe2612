"""
Correction Cache

Per-user materialized view of active correction records with a TTL.
The clock is injectable so tests can move time without sleeping.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from config.settings import settings
from services.voice.models import CorrectionRecord


@dataclass
class CacheEntry:
    records: List[CorrectionRecord]
    fetched_at: float


class CorrectionCache:
    """
    TTL cache of correction records keyed by user id.

    Only active records are stored or returned, and entries older than the TTL
    are reported as misses.

    Usage:
        cache = CorrectionCache(ttl_ms=30000)
        cache.put("user-1", records)
        records = cache.get("user-1")  # None when missing or expired
    """

    def __init__(
        self,
        ttl_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_ms = settings.CORRECTION_CACHE_TTL_MS if ttl_ms is None else ttl_ms
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, user_id: str) -> Optional[List[CorrectionRecord]]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None

        age_ms = (self._clock() - entry.fetched_at) * 1000
        if age_ms >= self.ttl_ms:
            del self._entries[user_id]
            return None

        return [r for r in entry.records if r.active]

    def put(self, user_id: str, records: List[CorrectionRecord]) -> None:
        self._entries[user_id] = CacheEntry(
            records=[r for r in records if r.active],
            fetched_at=self._clock(),
        )

    def invalidate(self, user_id: str) -> None:
        self._entries.pop(user_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None
