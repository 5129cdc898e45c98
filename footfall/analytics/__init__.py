"""
Area traffic analysis engine.

Key Components:
- engine: FootTrafficAnalyzer, the analyze_area() entry point
- visit_stats: per-venue statistics, measured or synthesized
- aggregator: area-level metrics and the empty-area analysis
- scoring: opportunity score and insights
- cache: analysis cache port and its memory / database adapters
"""

from footfall.analytics.engine import FootTrafficAnalyzer
from footfall.analytics.exceptions import (
    CacheReadFailure,
    CacheWriteFailure,
    VenueDirectoryUnavailable,
    VisitStatisticsUnavailable,
)
from footfall.analytics.models import AreaAnalysis, AreaQuery, Venue

__all__ = [
    "FootTrafficAnalyzer",
    "AreaAnalysis",
    "AreaQuery",
    "Venue",
    "VenueDirectoryUnavailable",
    "VisitStatisticsUnavailable",
    "CacheReadFailure",
    "CacheWriteFailure",
]
