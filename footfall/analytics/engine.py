"""
Area analysis engine.

analyze_area() runs: cache read -> venue search -> per-venue statistics
(all complete) -> aggregation -> scoring -> cache write.

Only VenueDirectoryUnavailable reaches the caller. Statistics failures
degrade to estimates and cache failures are logged and ignored.
"""
import asyncio
import logging
import time
from typing import List, Optional

from footfall.analytics.aggregator import AreaAggregator, empty_area_analysis
from footfall.analytics.cache import AnalysisCache, Clock, create_analysis_cache, utc_now
from footfall.analytics.exceptions import AnalysisCacheError, VenueDirectoryUnavailable
from footfall.analytics.jitter import Jitter
from footfall.analytics.models import AreaAnalysis, AreaQuery, Venue
from footfall.analytics.scoring import OpportunityScorer
from footfall.analytics.visit_stats import VisitStatsResolver
from footfall.core.api_errors import APIError
from footfall.core.config import Settings, get_settings
from footfall.sources.foot_traffic.metadata import (
    FOURSQUARE_DEFAULT_SORT,
    FOURSQUARE_FOOD_AND_DINING,
    FOURSQUARE_MAX_LIMIT,
)

logger = logging.getLogger(__name__)


class FootTrafficAnalyzer:
    """
    Estimate foot traffic and opportunity for a circular area.

    Collaborators are injected; from_settings() wires the production set
    (Foursquare for venues and statistics, cache chosen by configuration).
    """

    def __init__(
        self,
        directory,
        resolver: VisitStatsResolver,
        cache: Optional[AnalysisCache] = None,
        aggregator: Optional[AreaAggregator] = None,
        scorer: Optional[OpportunityScorer] = None,
        directory_timeout_seconds: float = 10.0,
        cache_timeout_seconds: float = 2.0,
        category_filter: Optional[str] = FOURSQUARE_FOOD_AND_DINING,
        search_limit: int = FOURSQUARE_MAX_LIMIT,
        sort: str = FOURSQUARE_DEFAULT_SORT,
        clock: Optional[Clock] = None,
    ):
        self.directory = directory
        self.resolver = resolver
        self.cache = cache
        self.aggregator = aggregator or AreaAggregator()
        self.scorer = scorer or OpportunityScorer()
        self.directory_timeout_seconds = directory_timeout_seconds
        self.cache_timeout_seconds = cache_timeout_seconds
        self.category_filter = category_filter
        self.search_limit = search_limit
        self.sort = sort
        self.clock = clock or utc_now

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FootTrafficAnalyzer":
        """
        Build the production analyzer.

        Raises:
            MissingFoursquareAPIKeyError: FOURSQUARE_API_KEY not configured
            MissingDatabaseURLError: database cache without DATABASE_URL
        """
        from footfall.sources.foot_traffic.client import FoursquareClient

        settings = settings or get_settings()
        client = FoursquareClient(
            api_key=settings.require_foursquare_api_key(),
            base_url=settings.foursquare_base_url,
            max_retries=settings.max_retries,
            backoff_factor=settings.retry_backoff_factor,
        )

        resolver = VisitStatsResolver(
            provider=client,
            jitter=Jitter(settings.jitter_seed),
            stats_timeout_seconds=settings.stats_timeout_seconds,
            max_concurrency=settings.max_concurrency,
        )

        return cls(
            directory=client,
            resolver=resolver,
            cache=create_analysis_cache(settings),
            directory_timeout_seconds=settings.directory_timeout_seconds,
            cache_timeout_seconds=settings.cache_timeout_seconds,
            category_filter=settings.venue_category_filter,
            search_limit=settings.venue_search_limit,
        )

    async def analyze_area(self, query: AreaQuery) -> AreaAnalysis:
        """
        Analyze foot traffic around a point.

        Args:
            query: Center coordinates and radius

        Returns:
            AreaAnalysis (cached=True when served from cache)

        Raises:
            VenueDirectoryUnavailable: venues could not be listed
        """
        started = time.monotonic()
        logger.info(
            f"Analyzing area ({query.latitude}, {query.longitude}) "
            f"r={query.radius_meters}m"
        )

        cached = await self._read_cache(query)
        if cached is not None:
            logger.info(
                f"Cache hit for ({query.latitude}, {query.longitude}) "
                f"r={query.radius_meters}m from {cached.cache_date}"
            )
            return cached
        logger.debug("Cache miss, computing analysis")

        venues = await self._search_venues(query)
        if not venues:
            logger.info("No venues found in area, returning empty-area analysis")
            return empty_area_analysis(query, self.clock())

        pairs = await self.resolver.resolve_all(venues)
        metrics = self.aggregator.aggregate(query, pairs)
        now = self.clock()

        analysis = AreaAnalysis(
            location=query,
            total_venues=metrics.total_venues,
            average_daily_visits=round(metrics.average_daily_visits),
            total_daily_visits=metrics.total_daily_visits,
            peak_hours=metrics.peak_hours,
            hourly_distribution=metrics.hourly_distribution,
            weekly_pattern=metrics.weekly_pattern,
            demographic_profile=metrics.demographic_profile,
            competition_density=metrics.competition_density,
            opportunity_score=self.scorer.score(metrics),
            trends=metrics.trends,
            insights=self.scorer.insights(metrics),
            confidence_level=metrics.confidence_level,
            estimated_data=metrics.estimated_data,
            analysis_date=now.date(),
            generated_at=now,
        )

        await self._write_cache(query, analysis)

        logger.info(
            f"Analyzed {analysis.total_venues} venues in "
            f"{time.monotonic() - started:.2f}s: score={analysis.opportunity_score}, "
            f"confidence={analysis.confidence_level}"
        )
        return analysis

    async def _search_venues(self, query: AreaQuery) -> List[Venue]:
        try:
            venues = await asyncio.wait_for(
                self.directory.search_venues(
                    latitude=query.latitude,
                    longitude=query.longitude,
                    radius_meters=query.radius_meters,
                    categories=self.category_filter,
                    limit=self.search_limit,
                    sort=self.sort,
                ),
                timeout=self.directory_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Venue search timed out after {self.directory_timeout_seconds}s")
            raise VenueDirectoryUnavailable(
                f"Venue search timed out after {self.directory_timeout_seconds}s"
            ) from e
        except APIError as e:
            logger.error(f"Venue search failed: {e}")
            raise VenueDirectoryUnavailable(
                f"Venue search failed: {e.message}",
                source=e.source,
                status_code=e.status_code,
            ) from e
        except Exception as e:
            logger.error(f"Venue search failed: {e}", exc_info=True)
            raise VenueDirectoryUnavailable(f"Venue search failed: {e}") from e

        logger.info(f"Venue directory returned {len(venues)} venues")
        return list(venues)

    async def _read_cache(self, query: AreaQuery) -> Optional[AreaAnalysis]:
        if self.cache is None:
            return None
        try:
            return await asyncio.wait_for(self.cache.get(query), timeout=self.cache_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Cache read timed out after {self.cache_timeout_seconds}s, treating as miss")
        except AnalysisCacheError as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
        except Exception as e:
            logger.warning(f"Unexpected cache read error, treating as miss: {e}", exc_info=True)
        return None

    async def _write_cache(self, query: AreaQuery, analysis: AreaAnalysis) -> None:
        if self.cache is None:
            return
        try:
            await asyncio.wait_for(
                self.cache.put(query, analysis), timeout=self.cache_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(f"Cache write timed out after {self.cache_timeout_seconds}s, skipped")
        except AnalysisCacheError as e:
            logger.warning(f"Cache write failed, skipped: {e}")
        except Exception as e:
            logger.warning(f"Unexpected cache write error, skipped: {e}", exc_info=True)

    async def close(self) -> None:
        """Release HTTP clients held by the directory and statistics provider."""
        closed = set()
        for client in (self.directory, self.resolver.provider):
            if client is not None and id(client) not in closed and hasattr(client, "close"):
                closed.add(id(client))
                await client.close()
