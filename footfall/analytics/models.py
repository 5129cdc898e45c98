"""
Domain types for area traffic analysis.

Visit statistics are a tagged variant: MeasuredVisitStats came from a real
statistics provider, EstimatedVisitStats were synthesized from venue
attributes. Consumers read `estimated` (a class-level tag) instead of
trusting every record as measured.

Everything handed to a caller is frozen; sequences are tuples.
"""
import enum
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, Optional, Tuple

from footfall.sources.foot_traffic.metadata import (
    CATEGORY_TAG_KEYWORDS,
    DEFAULT_CATEGORY,
)


class VenueCategory(str, enum.Enum):
    """Traffic-shape category of a venue."""
    CAFE = "cafe"
    FAST_FOOD = "fast_food"
    BAR = "bar"
    RESTAURANT = "restaurant"

    @classmethod
    def from_tags(cls, tags: Iterable[str]) -> "VenueCategory":
        """Resolve the category by keyword match against the venue's tags."""
        lowered = [tag.lower() for tag in tags]
        for category, keywords in CATEGORY_TAG_KEYWORDS:
            if any(keyword in tag for tag in lowered for keyword in keywords):
                return cls(category)
        return cls(DEFAULT_CATEGORY)


class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


@dataclass(frozen=True)
class AreaQuery:
    """A point and search radius to analyze."""
    latitude: float
    longitude: float
    radius_meters: int

    def __post_init__(self):
        if self.radius_meters <= 0:
            raise ValueError(f"radius_meters must be positive, got {self.radius_meters}")
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius_meters": self.radius_meters,
        }


@dataclass(frozen=True)
class Venue:
    """
    A point of interest returned by the venue directory.

    Attributes the directory did not attest are None.
    """
    id: str
    name: str
    category_tags: FrozenSet[str] = frozenset()
    price_tier: Optional[int] = None  # 1..4
    rating: Optional[float] = None  # 0..5
    popularity: Optional[float] = None  # 0..100
    verified: bool = False

    @property
    def category(self) -> VenueCategory:
        return VenueCategory.from_tags(self.category_tags)


# =============================================================================
# PER-VENUE VISIT STATISTICS
# =============================================================================


@dataclass(frozen=True)
class HourlyVisits:
    hour: int
    visits: int
    historical_avg_visits: int
    popularity_score: int  # 0..100


@dataclass(frozen=True)
class DailyVisits:
    weekday: Weekday
    visits: int
    avg_visit_duration_minutes: int


@dataclass(frozen=True)
class AgeGroupShare:
    range: str
    percentage: int


@dataclass(frozen=True)
class GenderSplit:
    male: int
    female: int
    other: int

    @property
    def total(self) -> int:
        return self.male + self.female + self.other


@dataclass(frozen=True)
class Demographics:
    age_groups: Tuple[AgeGroupShare, ...]
    gender: GenderSplit
    estimated: bool = True

    def share_of(self, ranges: Iterable[str]) -> int:
        """Combined percentage of the age groups whose label contains any of ranges."""
        wanted = tuple(ranges)
        return sum(
            group.percentage
            for group in self.age_groups
            if any(label in group.range for label in wanted)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "age_groups": [
                {"range": g.range, "percentage": g.percentage} for g in self.age_groups
            ],
            "gender": {
                "male": self.gender.male,
                "female": self.gender.female,
                "other": self.gender.other,
            },
            "estimated": self.estimated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Demographics":
        gender = data.get("gender") or {}
        return cls(
            age_groups=tuple(
                AgeGroupShare(range=g["range"], percentage=int(g["percentage"]))
                for g in data.get("age_groups") or []
            ),
            gender=GenderSplit(
                male=int(gender.get("male", 0)),
                female=int(gender.get("female", 0)),
                other=int(gender.get("other", 0)),
            ),
            estimated=bool(data.get("estimated", True)),
        )


NEUTRAL_DEMOGRAPHICS = Demographics(
    age_groups=(),
    gender=GenderSplit(male=50, female=50, other=0),
    estimated=True,
)


@dataclass(frozen=True)
class ComparisonDeltas:
    """Signed fractional change against earlier periods."""
    vs_last_week: Optional[float] = None
    vs_last_month: Optional[float] = None
    vs_last_year: Optional[float] = None

    def by_period(self) -> Dict[str, Optional[float]]:
        return {
            "week": self.vs_last_week,
            "month": self.vs_last_month,
            "year": self.vs_last_year,
        }


@dataclass(frozen=True)
class VisitStats:
    """Visit statistics for one venue; use a concrete variant."""
    venue_id: str
    daily_visits_total: int
    hourly_distribution: Tuple[HourlyVisits, ...]
    weekly_pattern: Tuple[DailyVisits, ...]
    demographics: Optional[Demographics]
    comparison_deltas: Optional[ComparisonDeltas]
    confidence: float

    estimated: ClassVar[bool]

    def visits_at(self, hour: int) -> Optional[HourlyVisits]:
        for entry in self.hourly_distribution:
            if entry.hour == hour:
                return entry
        return None

    def visits_on(self, weekday: Weekday) -> Optional[DailyVisits]:
        for entry in self.weekly_pattern:
            if entry.weekday == weekday:
                return entry
        return None


@dataclass(frozen=True)
class MeasuredVisitStats(VisitStats):
    """Statistics reported by a real visit-analytics provider."""
    source: str = "foursquare"

    estimated: ClassVar[bool] = False


@dataclass(frozen=True)
class EstimatedVisitStats(VisitStats):
    """Statistics synthesized from venue attributes (heuristic fallback)."""

    estimated: ClassVar[bool] = True


def complete_hourly(entries: Iterable[HourlyVisits]) -> Tuple[HourlyVisits, ...]:
    """One entry per hour 0-23; hours a provider left out are zero-filled."""
    by_hour: Dict[int, HourlyVisits] = {}
    for entry in entries:
        if 0 <= entry.hour <= 23 and entry.hour not in by_hour:
            by_hour[entry.hour] = entry
    return tuple(
        by_hour.get(hour, HourlyVisits(hour, 0, 0, 0)) for hour in range(24)
    )


def complete_weekly(entries: Iterable[DailyVisits]) -> Tuple[DailyVisits, ...]:
    """One entry per weekday Monday-Sunday; missing days are zero-filled."""
    by_day: Dict[Weekday, DailyVisits] = {}
    for entry in entries:
        by_day.setdefault(entry.weekday, entry)
    return tuple(by_day.get(day, DailyVisits(day, 0, 0)) for day in Weekday)


# =============================================================================
# AREA ANALYSIS
# =============================================================================


@dataclass(frozen=True)
class AreaHourlyTraffic:
    hour: int
    total_visits: int
    avg_popularity: float


@dataclass(frozen=True)
class AreaDailyTraffic:
    weekday: Weekday
    total_visits: int
    avg_visit_duration_minutes: int


@dataclass(frozen=True)
class TrafficTrend:
    period: str  # week, month, year
    growth_rate: float
    band: str
    description: str


@dataclass(frozen=True)
class AreaMetrics:
    """Aggregated figures for an area, before scoring."""
    total_venues: int
    total_daily_visits: int
    average_daily_visits: float
    hourly_distribution: Tuple[AreaHourlyTraffic, ...]
    weekly_pattern: Tuple[AreaDailyTraffic, ...]
    peak_hours: Tuple[int, ...]
    demographic_profile: Demographics
    competition_density: float
    trends: Tuple[TrafficTrend, ...]
    confidence_level: float
    estimated_data: bool


@dataclass(frozen=True)
class AreaAnalysis:
    """The complete analysis of one area; never mutated once returned."""
    location: AreaQuery
    total_venues: int
    average_daily_visits: int
    total_daily_visits: int
    peak_hours: Tuple[int, ...]
    hourly_distribution: Tuple[AreaHourlyTraffic, ...]
    weekly_pattern: Tuple[AreaDailyTraffic, ...]
    demographic_profile: Demographics
    competition_density: float
    opportunity_score: int
    trends: Tuple[TrafficTrend, ...]
    insights: Tuple[str, ...]
    confidence_level: float
    estimated_data: bool
    analysis_date: date
    generated_at: datetime
    cached: bool = False
    cache_date: Optional[datetime] = None

    def as_cached(self, cache_date: datetime) -> "AreaAnalysis":
        return replace(self, cached=True, cache_date=cache_date)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the snake_case mapping returned by the API and stored by the cache."""
        return {
            "location": self.location.to_dict(),
            "total_venues": self.total_venues,
            "average_daily_visits": self.average_daily_visits,
            "total_daily_visits": self.total_daily_visits,
            "peak_hours": list(self.peak_hours),
            "hourly_distribution": [
                {
                    "hour": h.hour,
                    "total_visits": h.total_visits,
                    "avg_popularity": h.avg_popularity,
                }
                for h in self.hourly_distribution
            ],
            "weekly_pattern": [
                {
                    "weekday": d.weekday.value,
                    "total_visits": d.total_visits,
                    "avg_duration": d.avg_visit_duration_minutes,
                }
                for d in self.weekly_pattern
            ],
            "demographic_profile": self.demographic_profile.to_dict(),
            "competition_density": self.competition_density,
            "opportunity_score": self.opportunity_score,
            "trends": [
                {
                    "period": t.period,
                    "growth_rate": t.growth_rate,
                    "band": t.band,
                    "description": t.description,
                }
                for t in self.trends
            ],
            "insights": list(self.insights),
            "confidence_level": self.confidence_level,
            "estimated_data": self.estimated_data,
            "analysis_date": self.analysis_date.isoformat(),
            "generated_at": self.generated_at.isoformat(),
            "cached": self.cached,
            "cache_date": self.cache_date.isoformat() if self.cache_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AreaAnalysis":
        location = data["location"]
        cache_date = data.get("cache_date")
        return cls(
            location=AreaQuery(
                latitude=float(location["latitude"]),
                longitude=float(location["longitude"]),
                radius_meters=int(location["radius_meters"]),
            ),
            total_venues=int(data["total_venues"]),
            average_daily_visits=int(data["average_daily_visits"]),
            total_daily_visits=int(data["total_daily_visits"]),
            peak_hours=tuple(int(h) for h in data.get("peak_hours") or []),
            hourly_distribution=tuple(
                AreaHourlyTraffic(
                    hour=int(h["hour"]),
                    total_visits=int(h["total_visits"]),
                    avg_popularity=float(h["avg_popularity"]),
                )
                for h in data.get("hourly_distribution") or []
            ),
            weekly_pattern=tuple(
                AreaDailyTraffic(
                    weekday=Weekday(d["weekday"]),
                    total_visits=int(d["total_visits"]),
                    avg_visit_duration_minutes=int(d["avg_duration"]),
                )
                for d in data.get("weekly_pattern") or []
            ),
            demographic_profile=Demographics.from_dict(data["demographic_profile"]),
            competition_density=float(data["competition_density"]),
            opportunity_score=int(data["opportunity_score"]),
            trends=tuple(
                TrafficTrend(
                    period=t["period"],
                    growth_rate=float(t["growth_rate"]),
                    band=t["band"],
                    description=t["description"],
                )
                for t in data.get("trends") or []
            ),
            insights=tuple(data.get("insights") or []),
            confidence_level=float(data["confidence_level"]),
            estimated_data=bool(data["estimated_data"]),
            analysis_date=date.fromisoformat(data["analysis_date"]),
            generated_at=datetime.fromisoformat(data["generated_at"]),
            cached=bool(data.get("cached", False)),
            cache_date=datetime.fromisoformat(cache_date) if cache_date else None,
        )
