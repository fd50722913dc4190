import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from config import settings
from models.domain import BusinessEntity, Coordinates, MatchType

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def build_cache_key(
    segment: str,
    region: str,
    target_count: int,
    coordinates: Optional[Coordinates] = None,
) -> str:
    parts = [segment.strip().lower(), region.strip().lower(), str(target_count)]
    if coordinates is not None:
        parts.append(f"{coordinates.lat:.4f},{coordinates.lng:.4f}")
    return "-".join(parts)


@dataclass
class CacheEntry:
    timestamp: float
    data: List[BusinessEntity] = field(default_factory=list)
    exact_count: int = 0
    nearby_count: int = 0


class SearchResultCache:
    """In-process store of finished searches with time-based expiry."""

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Clock = time.monotonic):
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _is_stale(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl_seconds

    def get(self, key: str) -> Optional[List[BusinessEntity]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_stale(entry, self._clock()):
            logger.debug(f"Cache entry expired: {key}")
            del self._entries[key]
            return None
        return copy.deepcopy(entry.data)

    def set(self, key: str, entities: List[BusinessEntity]) -> None:
        if not entities:
            return
        self._entries[key] = CacheEntry(
            timestamp=self._clock(),
            data=copy.deepcopy(entities),
            exact_count=sum(1 for e in entities if e.match_type == MatchType.EXACT),
            nearby_count=sum(1 for e in entities if e.match_type == MatchType.NEARBY),
        )

    def entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def prune(self) -> int:
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if self._is_stale(entry, now)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info(f"Pruned {len(stale)} expired search cache entries")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
