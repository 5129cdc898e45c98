"""
Per-venue visit statistics: measured when the provider has them,
synthesized from venue attributes otherwise.

The resolver never raises. Any provider failure (no premium entitlement,
timeout, malformed payload, missing provider) degrades to an
EstimatedVisitStats record.
"""
import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from footfall.analytics.demographics import DemographicEstimator
from footfall.analytics.exceptions import VisitStatisticsUnavailable
from footfall.analytics.jitter import Jitter
from footfall.analytics.models import (
    ComparisonDeltas,
    DailyVisits,
    EstimatedVisitStats,
    HourlyVisits,
    Venue,
    VenueCategory,
    VisitStats,
    Weekday,
)
from footfall.sources.foot_traffic.metadata import (
    COMPARISON_DELTA_BOUNDS,
    DEFAULT_POPULARITY,
    DEFAULT_RATING,
    ESTIMATE_BASE_CONFIDENCE,
    ESTIMATE_CONFIDENCE_WEIGHTS,
    ESTIMATE_MAX_CONFIDENCE,
    HOURLY_JITTER,
    MIN_DAILY_VISITS,
    PEAK_HOUR_SHARE,
    VISIT_DURATION_RANGE_MINUTES,
    VISITS_AT_FULL_POPULARITY,
    WEEKDAY_MULTIPLIERS,
    WEEKLY_JITTER,
    hourly_multipliers,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SYNTHESIS
# =============================================================================


def estimate_daily_visits(venue: Venue) -> int:
    """
    Estimate a venue's daily visits from popularity (0-100) and rating (0-5).

    A fully popular, 5-star venue gets 500 visits; nothing gets fewer than 20.
    """
    popularity = venue.popularity or DEFAULT_POPULARITY
    rating = venue.rating or DEFAULT_RATING
    estimate = round((popularity / 100) * VISITS_AT_FULL_POPULARITY * (rating / 5))
    return max(MIN_DAILY_VISITS, estimate)


def _apportion(total: int, weights: Sequence[float]) -> List[int]:
    """Split total across weights with largest-remainder rounding (sum is exact)."""
    weight_sum = sum(weights)
    raw = [total * w / weight_sum for w in weights]
    counts = [int(value) for value in raw]
    leftover = total - sum(counts)
    by_remainder = sorted(range(len(raw)), key=lambda i: (-(raw[i] - counts[i]), i))
    for i in by_remainder[:leftover]:
        counts[i] += 1
    return counts


def build_hourly_distribution(
    category: VenueCategory,
    daily_total: int,
    jitter: Jitter,
) -> Tuple[HourlyVisits, ...]:
    """
    Spread a daily total over 24 hours following the category's curve.

    Args:
        category: Venue traffic shape
        daily_total: Visits to distribute
        jitter: Random source (±20% per hour, ±10% on historical averages)

    Returns:
        24 HourlyVisits, hours 0-23, whose visits sum to daily_total
    """
    weights = [
        multiplier * jitter.factor(HOURLY_JITTER)
        for multiplier in hourly_multipliers(category.value)
    ]
    visits_per_hour = _apportion(daily_total, weights)

    hours = []
    for hour, visits in enumerate(visits_per_hour):
        popularity = (
            min(100, visits / (daily_total * PEAK_HOUR_SHARE) * 100)
            if daily_total else 0
        )
        hours.append(
            HourlyVisits(
                hour=hour,
                visits=visits,
                historical_avg_visits=round(visits * jitter.uniform(0.9, 1.1)),
                popularity_score=round(popularity),
            )
        )
    return tuple(hours)


def build_weekly_pattern(daily_total: int, jitter: Jitter) -> Tuple[DailyVisits, ...]:
    """Monday-Sunday visits from the weekday multipliers, ±10% per day."""
    return tuple(
        DailyVisits(
            weekday=day,
            visits=round(daily_total * WEEKDAY_MULTIPLIERS[day.value] * jitter.factor(WEEKLY_JITTER)),
            avg_visit_duration_minutes=round(jitter.uniform(*VISIT_DURATION_RANGE_MINUTES)),
        )
        for day in Weekday
    )


def synthesize_comparison_deltas(jitter: Jitter) -> ComparisonDeltas:
    """Bounded random growth deltas; a placeholder signal, not a measurement."""
    return ComparisonDeltas(
        vs_last_week=jitter.delta(COMPARISON_DELTA_BOUNDS["week"]),
        vs_last_month=jitter.delta(COMPARISON_DELTA_BOUNDS["month"]),
        vs_last_year=jitter.delta(COMPARISON_DELTA_BOUNDS["year"]),
    )


def estimate_confidence(venue: Venue) -> float:
    """0.5 plus a bonus per attested attribute, capped at 0.9."""
    attested = {
        "popularity": bool(venue.popularity),
        "rating": bool(venue.rating),
        "price_tier": bool(venue.price_tier),
        "verified": venue.verified,
        "category_tags": bool(venue.category_tags),
    }
    confidence = ESTIMATE_BASE_CONFIDENCE + sum(
        weight for name, weight in ESTIMATE_CONFIDENCE_WEIGHTS.items() if attested[name]
    )
    return round(min(ESTIMATE_MAX_CONFIDENCE, confidence), 2)


# =============================================================================
# RESOLVER
# =============================================================================


class VisitStatsResolver:
    """
    Resolve visit statistics for venues, real first and synthesized on failure.

    The provider is anything with an async get_venue_stats(venue_id) that
    returns MeasuredVisitStats or raises; FoursquareClient in production.
    """

    def __init__(
        self,
        provider=None,
        estimator: Optional[DemographicEstimator] = None,
        jitter: Optional[Jitter] = None,
        stats_timeout_seconds: float = 5.0,
        max_concurrency: int = 4,
    ):
        self.provider = provider
        self.jitter = jitter or Jitter()
        self.estimator = estimator or DemographicEstimator(self.jitter)
        self.stats_timeout_seconds = stats_timeout_seconds
        self.max_concurrency = max_concurrency

    def synthesize(self, venue: Venue, jitter: Optional[Jitter] = None) -> EstimatedVisitStats:
        """
        Build estimated statistics from the venue's attributes alone.

        Args:
            venue: Venue to estimate
            jitter: Random source; defaults to the resolver's stream for this venue
        """
        jitter = jitter or self.jitter.for_venue(venue.id)
        daily_total = estimate_daily_visits(venue)

        return EstimatedVisitStats(
            venue_id=venue.id,
            daily_visits_total=daily_total,
            hourly_distribution=build_hourly_distribution(venue.category, daily_total, jitter),
            weekly_pattern=build_weekly_pattern(daily_total, jitter),
            demographics=self.estimator.estimate(venue, jitter),
            comparison_deltas=synthesize_comparison_deltas(jitter),
            confidence=estimate_confidence(venue),
        )

    async def resolve(self, venue: Venue) -> VisitStats:
        """Real statistics if the provider answers in time, else an estimate."""
        if self.provider is None:
            return self.synthesize(venue)

        try:
            return await asyncio.wait_for(
                self.provider.get_venue_stats(venue.id),
                timeout=self.stats_timeout_seconds,
            )
        except VisitStatisticsUnavailable as e:
            if e.status_code == 403:
                logger.debug(f"No stats entitlement for venue {venue.id}, estimating")
            else:
                logger.info(f"Stats unavailable for venue {venue.id}: {e.message}")
        except asyncio.TimeoutError:
            logger.warning(
                f"Stats lookup for venue {venue.id} timed out after "
                f"{self.stats_timeout_seconds}s, estimating"
            )
        except Exception as e:
            logger.warning(f"Stats lookup for venue {venue.id} failed: {e}", exc_info=True)

        return self.synthesize(venue)

    async def _resolve_bounded(
        self, venue: Venue, semaphore: asyncio.Semaphore
    ) -> Tuple[Venue, VisitStats]:
        async with semaphore:
            return venue, await self.resolve(venue)

    async def resolve_all(self, venues: Sequence[Venue]) -> List[Tuple[Venue, VisitStats]]:
        """
        Resolve every venue concurrently, at most max_concurrency at a time.

        Returns (venue, stats) pairs in input order once all have finished.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        pairs = await asyncio.gather(*(self._resolve_bounded(v, semaphore) for v in venues))

        estimated = sum(1 for _, stats in pairs if stats.estimated)
        logger.info(
            f"Resolved stats for {len(pairs)} venues "
            f"({len(pairs) - estimated} measured, {estimated} estimated)"
        )
        return list(pairs)
