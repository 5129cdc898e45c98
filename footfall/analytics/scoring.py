"""
Opportunity scoring and qualitative insights for an analyzed area.

Score components (max 100):
- Traffic volume: up to 40 points, full marks at 200 average daily visits
- Competition: 40 points minus 5 per venue/km², never negative
- Peak diversity: up to 20 points, full marks when peaks span 12+ hours
"""
import logging
from typing import List, Sequence, Tuple

from footfall.analytics.models import AreaMetrics
from footfall.sources.foot_traffic.metadata import MATURE_AGE_RANGES, YOUNG_AGE_RANGES

logger = logging.getLogger(__name__)

TRAFFIC_POINTS = 40
TRAFFIC_FULL_MARKS_VISITS = 200
COMPETITION_POINTS = 40
COMPETITION_PENALTY_PER_DENSITY = 5
DIVERSITY_POINTS = 20
DIVERSITY_FULL_SPREAD_HOURS = 12

HIGH_TRAFFIC_VISITS = 300
MODERATE_TRAFFIC_VISITS = 150
LOW_COMPETITION_DENSITY = 5
HIGH_COMPETITION_DENSITY = 15
YOUNG_SHARE_THRESHOLD = 60
MATURE_SHARE_THRESHOLD = 40

# Inclusive hour ranges
MORNING_HOURS = (7, 10)
LUNCH_HOURS = (11, 14)
DINNER_HOURS = (17, 20)


def peak_hour_diversity(peak_hours: Sequence[int]) -> float:
    """Points for peaks spread across the day; 0 with fewer than two peaks."""
    if len(peak_hours) < 2:
        return 0.0
    spread = max(peak_hours) - min(peak_hours)
    return DIVERSITY_POINTS * min(1.0, spread / DIVERSITY_FULL_SPREAD_HOURS)


def _has_peak_in(peak_hours: Sequence[int], window: Tuple[int, int]) -> bool:
    first, last = window
    return any(first <= hour <= last for hour in peak_hours)


class OpportunityScorer:
    """Turn aggregated area metrics into a 0-100 score and insight strings."""

    def score(self, metrics: AreaMetrics) -> int:
        """
        Calculate the opportunity score.

        Args:
            metrics: Aggregated area metrics (unrounded average)

        Returns:
            Integer score clamped to 0-100
        """
        traffic = min(
            100.0,
            metrics.average_daily_visits / TRAFFIC_FULL_MARKS_VISITS * TRAFFIC_POINTS,
        )
        competition = max(
            0.0,
            COMPETITION_POINTS - metrics.competition_density * COMPETITION_PENALTY_PER_DENSITY,
        )
        diversity = peak_hour_diversity(metrics.peak_hours)

        score = max(0, min(100, round(traffic + competition + diversity)))
        logger.debug(
            f"Opportunity score {score} (traffic={traffic:.1f}, "
            f"competition={competition:.1f}, diversity={diversity:.1f})"
        )
        return score

    def insights(self, metrics: AreaMetrics) -> Tuple[str, ...]:
        """Every matching insight, in volume, competition, peaks, demographics order."""
        insights: List[str] = []

        # Traffic volume
        if metrics.average_daily_visits > HIGH_TRAFFIC_VISITS:
            insights.append("High-traffic area with strong customer base")
        elif metrics.average_daily_visits > MODERATE_TRAFFIC_VISITS:
            insights.append("Moderate traffic area with good potential")
        else:
            insights.append("Lower traffic area - consider marketing strategies")

        # Competition
        if metrics.competition_density < LOW_COMPETITION_DENSITY:
            insights.append("Low competition density provides market opportunity")
        elif metrics.competition_density > HIGH_COMPETITION_DENSITY:
            insights.append("High competition requires strong differentiation")

        # Peak hours
        morning = _has_peak_in(metrics.peak_hours, MORNING_HOURS)
        lunch = _has_peak_in(metrics.peak_hours, LUNCH_HOURS)
        dinner = _has_peak_in(metrics.peak_hours, DINNER_HOURS)
        if morning and lunch and dinner:
            insights.append("Consistent traffic throughout day - all-day dining opportunity")
        elif lunch and dinner:
            insights.append("Traditional meal-time peaks - standard restaurant hours optimal")
        elif morning:
            insights.append("Morning traffic peak - breakfast/cafe concept may work well")

        # Demographics
        profile = metrics.demographic_profile
        if profile.share_of(YOUNG_AGE_RANGES) > YOUNG_SHARE_THRESHOLD:
            insights.append("Young demographic - consider trendy, social media-friendly concepts")
        if profile.share_of(MATURE_AGE_RANGES) > MATURE_SHARE_THRESHOLD:
            insights.append("Mature demographic - focus on quality, service, and comfort")

        return tuple(insights)
