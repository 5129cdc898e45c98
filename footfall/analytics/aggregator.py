"""
Area-level aggregation of per-venue visit statistics.

Combines (venue, stats) pairs into AreaMetrics: hourly and weekly totals,
peak hours, a blended demographic profile, competition density, growth
trends and an overall confidence level.
"""
import logging
import math
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from footfall.analytics.models import (
    NEUTRAL_DEMOGRAPHICS,
    AgeGroupShare,
    AreaAnalysis,
    AreaDailyTraffic,
    AreaHourlyTraffic,
    AreaMetrics,
    AreaQuery,
    Demographics,
    GenderSplit,
    TrafficTrend,
    Venue,
    VisitStats,
    Weekday,
)
from footfall.sources.foot_traffic.metadata import (
    AREA_BASE_CONFIDENCE,
    AREA_REAL_DATA_WEIGHT,
    AREA_VOLUME_BONUS_MAX,
    AREA_VOLUME_BONUS_VENUES,
    EMPTY_AREA_CONFIDENCE,
    EMPTY_AREA_INSIGHTS,
    EMPTY_AREA_OPPORTUNITY_SCORE,
    ESTIMATE_MAX_CONFIDENCE,
    TREND_BANDS,
    TREND_FLOOR_BAND,
)

logger = logging.getLogger(__name__)

PEAK_HOUR_COUNT = 3


def aggregate_hourly(stats: Sequence[VisitStats]) -> Tuple[AreaHourlyTraffic, ...]:
    """Sum visits per hour; average popularity over venues that report any."""
    hours = []
    for hour in range(24):
        visits = 0
        popularities = []
        for record in stats:
            entry = record.visits_at(hour)
            if entry is None:
                continue
            visits += entry.visits
            if entry.popularity_score:
                popularities.append(entry.popularity_score)
        avg_popularity = round(sum(popularities) / len(popularities), 1) if popularities else 0.0
        hours.append(AreaHourlyTraffic(hour=hour, total_visits=visits, avg_popularity=avg_popularity))
    return tuple(hours)


def aggregate_weekly(stats: Sequence[VisitStats]) -> Tuple[AreaDailyTraffic, ...]:
    """Sum visits per weekday; average the non-zero visit durations."""
    days = []
    for day in Weekday:
        visits = 0
        durations = []
        for record in stats:
            entry = record.visits_on(day)
            if entry is None:
                continue
            visits += entry.visits
            if entry.avg_visit_duration_minutes:
                durations.append(entry.avg_visit_duration_minutes)
        days.append(
            AreaDailyTraffic(
                weekday=day,
                total_visits=visits,
                avg_visit_duration_minutes=round(sum(durations) / len(durations)) if durations else 0,
            )
        )
    return tuple(days)


def find_peak_hours(
    hourly: Sequence[AreaHourlyTraffic],
    count: int = PEAK_HOUR_COUNT,
) -> Tuple[int, ...]:
    """The busiest hours (earlier hour wins ties), sorted ascending. Empty hours never qualify."""
    busiest = sorted(
        (h for h in hourly if h.total_visits > 0),
        key=lambda h: (-h.total_visits, h.hour),
    )[:count]
    return tuple(sorted(h.hour for h in busiest))


def aggregate_demographics(profiles: Sequence[Demographics]) -> Demographics:
    """
    Blend venue demographic profiles.

    Each age range is averaged over the venues that report it, in first-seen
    order. Gender is averaged and re-normalized to sum to 100.
    """
    if not profiles:
        return NEUTRAL_DEMOGRAPHICS

    by_range: "OrderedDict[str, List[int]]" = OrderedDict()
    for profile in profiles:
        for group in profile.age_groups:
            by_range.setdefault(group.range, []).append(group.percentage)

    age_groups = tuple(
        AgeGroupShare(range=label, percentage=round(sum(values) / len(values)))
        for label, values in by_range.items()
    )

    count = len(profiles)
    male = sum(p.gender.male for p in profiles) / count
    female = sum(p.gender.female for p in profiles) / count
    other = sum(p.gender.other for p in profiles) / count
    total = male + female + other
    if total:
        other_pct = round(other / total * 100)
        male_pct = round(male / total * 100)
        gender = GenderSplit(male=male_pct, female=100 - male_pct - other_pct, other=other_pct)
    else:
        gender = NEUTRAL_DEMOGRAPHICS.gender

    return Demographics(
        age_groups=age_groups,
        gender=gender,
        estimated=any(p.estimated for p in profiles),
    )


def classify_trend(growth_rate: float) -> Tuple[str, str]:
    """Band name and description for a fractional growth rate."""
    pct = growth_rate * 100
    for lower_bound, band, template in TREND_BANDS:
        if growth_rate > lower_bound:
            return band, template.format(pct=pct)
    band, template = TREND_FLOOR_BAND
    return band, template.format(pct=pct)


def identify_trends(stats: Sequence[VisitStats]) -> Tuple[TrafficTrend, ...]:
    """Average growth per period; periods no venue reports are left out."""
    reported: Dict[str, List[float]] = {"week": [], "month": [], "year": []}
    for record in stats:
        if record.comparison_deltas is None:
            continue
        for period, delta in record.comparison_deltas.by_period().items():
            if delta is not None:
                reported[period].append(delta)

    trends = []
    for period, deltas in reported.items():
        if not deltas:
            continue
        growth_rate = sum(deltas) / len(deltas)
        band, description = classify_trend(growth_rate)
        trends.append(
            TrafficTrend(
                period=period,
                growth_rate=round(growth_rate, 4),
                band=band,
                description=description,
            )
        )
    return tuple(trends)


def competition_density(total_venues: int, radius_meters: int) -> float:
    """Venues per square kilometre inside the search circle."""
    area_km2 = math.pi * (radius_meters / 1000) ** 2
    return round(total_venues / area_km2, 2)


def analysis_confidence(total_venues: int, measured_venues: int) -> float:
    """Confidence rises with the share of measured data and with sample size."""
    if total_venues <= 0:
        return EMPTY_AREA_CONFIDENCE
    real_fraction = measured_venues / total_venues
    volume_bonus = min(
        AREA_VOLUME_BONUS_MAX,
        total_venues / AREA_VOLUME_BONUS_VENUES * AREA_VOLUME_BONUS_MAX,
    )
    confidence = AREA_BASE_CONFIDENCE + AREA_REAL_DATA_WEIGHT * real_fraction + volume_bonus
    return round(min(ESTIMATE_MAX_CONFIDENCE, confidence), 2)


def empty_area_analysis(query: AreaQuery, now: datetime) -> AreaAnalysis:
    """
    The analysis returned when the directory finds no venues.

    No competitors is reported as a strong opportunity at low confidence.
    """
    return AreaAnalysis(
        location=query,
        total_venues=0,
        average_daily_visits=0,
        total_daily_visits=0,
        peak_hours=(),
        hourly_distribution=tuple(AreaHourlyTraffic(hour, 0, 0.0) for hour in range(24)),
        weekly_pattern=tuple(AreaDailyTraffic(day, 0, 0) for day in Weekday),
        demographic_profile=NEUTRAL_DEMOGRAPHICS,
        competition_density=0.0,
        opportunity_score=EMPTY_AREA_OPPORTUNITY_SCORE,
        trends=(),
        insights=EMPTY_AREA_INSIGHTS,
        confidence_level=EMPTY_AREA_CONFIDENCE,
        estimated_data=True,
        analysis_date=now.date(),
        generated_at=now,
    )


class AreaAggregator:
    """Aggregate resolved venue statistics into area metrics."""

    def aggregate(
        self,
        query: AreaQuery,
        pairs: Sequence[Tuple[Venue, VisitStats]],
    ) -> AreaMetrics:
        """
        Combine per-venue statistics for one area.

        Args:
            query: The analyzed area
            pairs: (venue, stats) for every venue the directory returned

        Returns:
            AreaMetrics with the unrounded average kept for scoring
        """
        stats = [record for _, record in pairs]
        total_venues = len(stats)
        total_daily_visits = sum(record.daily_visits_total for record in stats)
        measured = sum(1 for record in stats if not record.estimated)

        hourly = aggregate_hourly(stats)
        metrics = AreaMetrics(
            total_venues=total_venues,
            total_daily_visits=total_daily_visits,
            average_daily_visits=total_daily_visits / total_venues if total_venues else 0.0,
            hourly_distribution=hourly,
            weekly_pattern=aggregate_weekly(stats),
            peak_hours=find_peak_hours(hourly),
            demographic_profile=aggregate_demographics(
                [record.demographics for record in stats if record.demographics is not None]
            ),
            competition_density=competition_density(total_venues, query.radius_meters),
            trends=identify_trends(stats),
            confidence_level=analysis_confidence(total_venues, measured),
            estimated_data=any(record.estimated for record in stats),
        )

        logger.debug(
            f"Aggregated {total_venues} venues ({measured} measured): "
            f"{total_daily_visits} daily visits, peaks {list(metrics.peak_hours)}"
        )
        return metrics
