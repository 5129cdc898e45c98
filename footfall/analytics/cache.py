"""
Short-lived cache for area analyses.

Provides:
- AnalysisCache port (get / put / stats)
- In-memory adapter with TTL and bounded size (dev, tests)
- SQLAlchemy adapter backed by the area_traffic_analysis table
- create_analysis_cache() to pick one from settings

Keys are (lat, lng rounded to 4 decimals, radius, UTC calendar day).
Expiry is lazy: expires_at is stamped on write and checked on read.
The cache is best-effort; adapters raise CacheReadFailure/CacheWriteFailure
and the engine treats both as a miss / no-op.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from footfall.analytics.exceptions import CacheReadFailure, CacheWriteFailure
from footfall.analytics.models import AreaAnalysis, AreaQuery
from footfall.core.config import Settings, get_settings
from footfall.core.models import AreaTrafficAnalysis

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they were written as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class AreaCacheKey:
    latitude: float
    longitude: float
    radius_meters: int
    analysis_date: date

    def __str__(self) -> str:
        return (
            f"area:{self.latitude:.4f}:{self.longitude:.4f}:"
            f"{self.radius_meters}:{self.analysis_date.isoformat()}"
        )


def area_cache_key(query: AreaQuery, now: datetime) -> AreaCacheKey:
    """Cache key for a query on the UTC calendar day of `now`."""
    return AreaCacheKey(
        latitude=round(query.latitude, 4),
        longitude=round(query.longitude, 4),
        radius_meters=query.radius_meters,
        analysis_date=_as_utc(now).astimezone(timezone.utc).date(),
    )


class AnalysisCache(ABC):
    """Port for analysis caches."""

    def __init__(self, ttl_seconds: float, clock: Optional[Clock] = None):
        self.ttl_seconds = ttl_seconds
        self.clock = clock or utc_now
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
        }

    @abstractmethod
    async def get(self, query: AreaQuery) -> Optional[AreaAnalysis]:
        """Fresh cached analysis flagged cached=True, or None."""
        pass

    @abstractmethod
    async def put(self, query: AreaQuery, analysis: AreaAnalysis) -> None:
        """Store an analysis under the query's key for ttl_seconds."""
        pass

    @abstractmethod
    async def stats(self) -> Dict[str, Any]:
        pass

    def _hit_rate(self) -> float:
        total = self._stats["hits"] + self._stats["misses"]
        return round(self._stats["hits"] / total, 3) if total > 0 else 0.0


# =============================================================================
# IN-MEMORY
# =============================================================================


@dataclass
class CacheEntry:
    """A single cached analysis with its write and expiry timestamps."""
    value: AreaAnalysis
    created_at: datetime
    expires_at: datetime
    hits: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class InMemoryAnalysisCache(AnalysisCache):
    """
    Process-local analysis cache.

    Safe for concurrent coroutines; evicts the oldest entry when full.
    Not shared across workers.
    """

    def __init__(
        self,
        ttl_seconds: float = 4 * 3600,
        max_size: int = 1000,
        clock: Optional[Clock] = None,
    ):
        super().__init__(ttl_seconds, clock)
        self.max_size = max_size
        self._cache: Dict[AreaCacheKey, CacheEntry] = {}
        self._lock: Optional[asyncio.Lock] = None
        self._stats["evictions"] = 0

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.Lock() binds to the current loop on 3.9, so build it inside a coroutine
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def get(self, query: AreaQuery) -> Optional[AreaAnalysis]:
        now = self.clock()
        key = area_cache_key(query, now)

        async with self._get_lock():
            entry = self._cache.get(key)

            if entry is None:
                self._stats["misses"] += 1
                return None

            if entry.is_expired(now):
                del self._cache[key]
                self._stats["misses"] += 1
                return None

            entry.hits += 1
            self._stats["hits"] += 1
            return entry.value.as_cached(entry.created_at)

    async def put(self, query: AreaQuery, analysis: AreaAnalysis) -> None:
        now = self.clock()
        key = area_cache_key(query, now)

        async with self._get_lock():
            # Evict oldest entry if at max size
            if len(self._cache) >= self.max_size and key not in self._cache:
                self._evict_oldest()

            self._cache[key] = CacheEntry(
                value=analysis,
                created_at=now,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
            )
            self._stats["sets"] += 1

    def _evict_oldest(self) -> None:
        if not self._cache:
            return
        oldest_key = min(self._cache, key=lambda k: self._cache[k].created_at)
        del self._cache[oldest_key]
        self._stats["evictions"] += 1
        logger.debug(f"Evicted cached analysis {oldest_key}")

    async def clear(self) -> int:
        """Drop every entry; returns how many were removed."""
        async with self._get_lock():
            count = len(self._cache)
            self._cache.clear()
            return count

    async def stats(self) -> Dict[str, Any]:
        return {
            "backend": "memory",
            "size": len(self._cache),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hit_rate": self._hit_rate(),
            **self._stats,
        }


# =============================================================================
# DATABASE
# =============================================================================


KEY_COLUMNS = ("latitude", "longitude", "radius_meters", "analysis_date")

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _decimal(value: float) -> Decimal:
    return Decimal(f"{value:.4f}")


class DatabaseAnalysisCache(AnalysisCache):
    """
    Analysis cache persisted in the area_traffic_analysis table.

    Session work is blocking, so it runs in a worker thread; one row per
    key, upserted (last write wins).
    """

    def __init__(
        self,
        session_factory,
        ttl_seconds: float = 4 * 3600,
        clock: Optional[Clock] = None,
    ):
        super().__init__(ttl_seconds, clock)
        self.session_factory = session_factory

    def _find_row(self, session, key: AreaCacheKey) -> Optional[AreaTrafficAnalysis]:
        return (
            session.query(AreaTrafficAnalysis)
            .filter(
                AreaTrafficAnalysis.latitude == _decimal(key.latitude),
                AreaTrafficAnalysis.longitude == _decimal(key.longitude),
                AreaTrafficAnalysis.radius_meters == key.radius_meters,
                AreaTrafficAnalysis.analysis_date == key.analysis_date,
            )
            .first()
        )

    def _get_sync(self, key: AreaCacheKey, now: datetime) -> Optional[AreaAnalysis]:
        session = self.session_factory()
        try:
            row = self._find_row(session, key)
            if row is None or now >= _as_utc(row.expires_at):
                return None
            analysis = AreaAnalysis.from_dict(row.venue_data)
            return analysis.as_cached(_as_utc(row.created_at))
        finally:
            session.close()

    async def get(self, query: AreaQuery) -> Optional[AreaAnalysis]:
        now = self.clock()
        key = area_cache_key(query, now)

        try:
            cached = await asyncio.to_thread(self._get_sync, key, now)
        except SQLAlchemyError as e:
            raise CacheReadFailure(f"Database read failed for {key}: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise CacheReadFailure(f"Stored analysis for {key} is unreadable: {e}") from e

        if cached is None:
            self._stats["misses"] += 1
        else:
            self._stats["hits"] += 1
        return cached

    def _put_sync(self, key: AreaCacheKey, analysis: AreaAnalysis, now: datetime) -> None:
        values = {
            "latitude": _decimal(key.latitude),
            "longitude": _decimal(key.longitude),
            "radius_meters": key.radius_meters,
            "analysis_date": key.analysis_date,
            "total_venues": analysis.total_venues,
            "average_daily_visits": analysis.average_daily_visits,
            "peak_hours": list(analysis.peak_hours),
            "demographic_profile": analysis.demographic_profile.to_dict(),
            "competition_density": analysis.competition_density,
            "opportunity_score": analysis.opportunity_score,
            "venue_data": analysis.to_dict(),
            "created_at": now,
            "expires_at": now + timedelta(seconds=self.ttl_seconds),
        }

        session = self.session_factory()
        try:
            insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
            if insert is None:
                self._merge_row(session, key, values)
            else:
                stmt = insert(AreaTrafficAnalysis).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(KEY_COLUMNS),
                    set_={col: stmt.excluded[col] for col in values if col not in KEY_COLUMNS},
                )
                session.execute(stmt)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _merge_row(self, session, key: AreaCacheKey, values: Dict[str, Any]) -> None:
        """Select-then-write for dialects without ON CONFLICT; concurrent writers may collide."""
        row = self._find_row(session, key)
        if row is None:
            session.add(AreaTrafficAnalysis(**values))
            return
        for col, value in values.items():
            setattr(row, col, value)

    async def put(self, query: AreaQuery, analysis: AreaAnalysis) -> None:
        now = self.clock()
        key = area_cache_key(query, now)

        try:
            await asyncio.to_thread(self._put_sync, key, analysis, now)
        except SQLAlchemyError as e:
            raise CacheWriteFailure(f"Database write failed for {key}: {e}") from e
        self._stats["sets"] += 1

    def _count_sync(self, now: datetime) -> Dict[str, int]:
        session = self.session_factory()
        try:
            total = session.query(func.count(AreaTrafficAnalysis.id)).scalar() or 0
            live = (
                session.query(func.count(AreaTrafficAnalysis.id))
                .filter(AreaTrafficAnalysis.expires_at > now)
                .scalar()
                or 0
            )
            return {"size": total, "live": live}
        finally:
            session.close()

    async def stats(self) -> Dict[str, Any]:
        try:
            counts = await asyncio.to_thread(self._count_sync, self.clock())
        except SQLAlchemyError as e:
            raise CacheReadFailure(f"Database stats query failed: {e}") from e
        return {
            "backend": "database",
            "ttl_seconds": self.ttl_seconds,
            "hit_rate": self._hit_rate(),
            **counts,
            **self._stats,
        }


def create_analysis_cache(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> AnalysisCache:
    """
    Build the analysis cache selected by ANALYSIS_CACHE_BACKEND.

    Raises:
        MissingDatabaseURLError: database backend without DATABASE_URL
    """
    settings = settings or get_settings()
    ttl_seconds = settings.analysis_cache_ttl_hours * 3600

    if settings.analysis_cache_backend == "database":
        from footfall.core.database import get_session_factory

        settings.require_database_url()
        logger.info("Using database analysis cache")
        return DatabaseAnalysisCache(get_session_factory(), ttl_seconds=ttl_seconds, clock=clock)

    logger.info("Using in-memory analysis cache")
    return InMemoryAnalysisCache(ttl_seconds=ttl_seconds, clock=clock)
