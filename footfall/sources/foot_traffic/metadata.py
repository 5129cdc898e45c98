"""
Metadata and configuration for foot traffic estimation.

Defines the venue category keywords, the hourly/weekly multiplier tables
used to synthesize visit curves, the demographic templates, the
Foursquare request defaults and the business-policy constants.
"""

from typing import Dict, List, Tuple

# =============================================================================
# VENUE CATEGORIES
# =============================================================================

# Evaluated in order; the first category with a keyword found in any tag wins.
# Venues matching none of them are treated as "restaurant".
CATEGORY_TAG_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("cafe", ("cafe", "coffee")),
    ("fast_food", ("fast", "quick")),
    ("bar", ("bar", "nightlife")),
]

DEFAULT_CATEGORY = "restaurant"


# =============================================================================
# HOURLY MULTIPLIERS
# =============================================================================

BASE_HOURLY_MULTIPLIER = 0.02

# (first_hour, last_hour, multiplier), inclusive; the first matching window wins.
HOURLY_PEAK_WINDOWS: Dict[str, List[Tuple[int, int, float]]] = {
    "cafe": [
        (7, 9, 0.12),  # Morning rush
        (10, 11, 0.08),
        (14, 16, 0.10),  # Afternoon peak
        (12, 13, 0.06),  # Lunch
        (17, 19, 0.04),
        (0, 6, 0.01),
        (21, 23, 0.01),
    ],
    "fast_food": [
        (11, 13, 0.15),  # Lunch rush
        (17, 19, 0.12),  # Dinner rush
        (14, 16, 0.05),
        (20, 21, 0.08),
        (0, 10, 0.01),
        (23, 23, 0.01),
    ],
    "bar": [
        (17, 19, 0.08),  # Happy hour
        (20, 23, 0.15),  # Prime time
        (0, 2, 0.10),  # Late night
        (3, 15, 0.01),
    ],
    "restaurant": [
        (11, 13, 0.12),  # Lunch
        (17, 20, 0.15),  # Dinner
        (14, 16, 0.04),
        (21, 22, 0.06),
        (0, 10, 0.01),
        (23, 23, 0.01),
    ],
}

HOURLY_JITTER = 0.2  # ±20% per hour


def hourly_multipliers(category: str) -> List[float]:
    """Expand a category's peak windows into 24 per-hour multipliers."""
    windows = HOURLY_PEAK_WINDOWS[category]
    multipliers = []
    for hour in range(24):
        multiplier = BASE_HOURLY_MULTIPLIER
        for first, last, value in windows:
            if first <= hour <= last:
                multiplier = value
                break
        multipliers.append(multiplier)
    return multipliers


# =============================================================================
# WEEKLY PATTERN
# =============================================================================

WEEKDAY_MULTIPLIERS: Dict[str, float] = {
    "monday": 0.8,
    "tuesday": 0.9,
    "wednesday": 0.9,
    "thursday": 1.0,
    "friday": 1.2,
    "saturday": 1.3,
    "sunday": 1.1,
}

WEEKLY_JITTER = 0.1  # ±10% per day
VISIT_DURATION_RANGE_MINUTES = (45.0, 75.0)


# =============================================================================
# DAILY VISIT ESTIMATE
# =============================================================================

VISITS_AT_FULL_POPULARITY = 500
MIN_DAILY_VISITS = 20

# Used when the directory did not attest an attribute
DEFAULT_POPULARITY = 50.0
DEFAULT_RATING = 3.0
DEFAULT_PRICE_TIER = 2

# A venue hour at 15% of the day's traffic scores 100
PEAK_HOUR_SHARE = 0.15


# =============================================================================
# DEMOGRAPHICS
# =============================================================================

AGE_GROUP_TEMPLATES: Dict[str, List[Tuple[str, int]]] = {
    # Budget-friendly venues skew younger
    "budget": [
        ("18-24", 35),
        ("25-34", 30),
        ("35-44", 20),
        ("45-54", 10),
        ("55+", 5),
    ],
    "mid_range": [
        ("18-24", 20),
        ("25-34", 30),
        ("35-44", 25),
        ("45-54", 15),
        ("55+", 10),
    ],
    # Higher-end venues skew older
    "upscale": [
        ("18-24", 10),
        ("25-34", 25),
        ("35-44", 30),
        ("45-54", 25),
        ("55+", 10),
    ],
}

GENDER_DRAW_RANGES = {
    "male": (45.0, 55.0),
    "female": (45.0, 55.0),
    "other": (0.0, 2.0),
}

YOUNG_AGE_RANGES = ("18-24", "25-34")
MATURE_AGE_RANGES = ("45-54", "55+")


# =============================================================================
# CONFIDENCE
# =============================================================================

ESTIMATE_BASE_CONFIDENCE = 0.5
ESTIMATE_MAX_CONFIDENCE = 0.9

# Added to the base when the venue attests the attribute
ESTIMATE_CONFIDENCE_WEIGHTS = {
    "popularity": 0.2,
    "rating": 0.15,
    "price_tier": 0.1,
    "verified": 0.1,
    "category_tags": 0.05,
}

MEASURED_CONFIDENCE = 1.0

AREA_BASE_CONFIDENCE = 0.3
AREA_REAL_DATA_WEIGHT = 0.5
AREA_VOLUME_BONUS_MAX = 0.2
AREA_VOLUME_BONUS_VENUES = 50


# =============================================================================
# COMPARISON DELTAS (synthetic)
# =============================================================================

COMPARISON_DELTA_BOUNDS = {
    "week": 0.2,
    "month": 0.3,
    "year": 0.4,
}

# (lower bound exclusive, band, description template)
TREND_BANDS: List[Tuple[float, str, str]] = [
    (0.10, "strong growth", "Strong growth (+{pct:.1f}%)"),
    (0.05, "moderate growth", "Moderate growth (+{pct:.1f}%)"),
    (-0.05, "stable", "Stable traffic patterns"),
    (-0.10, "slight decline", "Slight decline ({pct:.1f}%)"),
]
TREND_FLOOR_BAND = ("declining", "Declining traffic ({pct:.1f}%)")


# =============================================================================
# BUSINESS POLICY
# =============================================================================

# No competitors found is treated as high opportunity with low confidence.
# These are product decisions, not derived from data.
EMPTY_AREA_OPPORTUNITY_SCORE = 95
EMPTY_AREA_CONFIDENCE = 0.2
EMPTY_AREA_INSIGHTS = (
    "No dining establishments found in area",
    "Excellent opportunity for first-mover advantage",
    "Market research recommended to understand demand",
)


# =============================================================================
# FOURSQUARE
# =============================================================================

FOURSQUARE_FOOD_AND_DINING = "13000"
FOURSQUARE_MAX_LIMIT = 50
FOURSQUARE_DEFAULT_SORT = "POPULARITY"

FOURSQUARE_VENUE_FIELDS = [
    "fsq_id",
    "name",
    "categories",
    "popularity",
    "rating",
    "price",
    "verified",
]

FOURSQUARE_STATS_FIELDS = [
    "visits_by_day",
    "visits_by_hour",
    "popularity_by_hour",
    "demographic_breakdown",
]

# Foursquare rates venues 0-10
FOURSQUARE_RATING_SCALE = 10.0


# =============================================================================
# API RATE LIMITS
# =============================================================================

API_RATE_LIMITS = {
    "foursquare": {
        "requests_per_minute": 200,
        "concurrent_requests": 5,
    },
}
