"""
HTTP clients for the venue directory and visit statistics providers.

Implements a rate-limited Foursquare Places client that serves both roles:
- search_venues(): venues inside a radius (the venue directory)
- get_venue_stats(): measured visit statistics for one venue (premium,
  frequently unavailable)
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from footfall.analytics.exceptions import VisitStatisticsUnavailable
from footfall.analytics.models import (
    AgeGroupShare,
    DailyVisits,
    Demographics,
    GenderSplit,
    HourlyVisits,
    MeasuredVisitStats,
    Venue,
    Weekday,
    complete_hourly,
    complete_weekly,
)
from footfall.core.api_errors import (
    AccessForbiddenError,
    APIError,
    RetryableError,
    classify_http_error,
)
from footfall.core.config import get_settings
from footfall.sources.foot_traffic.metadata import (
    API_RATE_LIMITS,
    FOURSQUARE_DEFAULT_SORT,
    FOURSQUARE_FOOD_AND_DINING,
    FOURSQUARE_MAX_LIMIT,
    FOURSQUARE_RATING_SCALE,
    FOURSQUARE_STATS_FIELDS,
    FOURSQUARE_VENUE_FIELDS,
    MEASURED_CONFIDENCE,
    PEAK_HOUR_SHARE,
)

logger = logging.getLogger(__name__)

_WEEKDAYS = list(Weekday)


class BaseFootTrafficClient(ABC):
    """Base class for venue directory / visit statistics API clients."""

    source_name: str = "base"
    default_timeout: int = 30

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout or self.default_timeout
        self.max_retries = max(1, max_retries)
        self.backoff_factor = backoff_factor
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._last_request_time: float = 0

        # Get rate limits from metadata
        limits = API_RATE_LIMITS.get(self.source_name, {})
        self.requests_per_minute = limits.get("requests_per_minute", 60)
        self.concurrent_requests = limits.get("concurrent_requests", 5)
        self.min_request_interval = 60.0 / self.requests_per_minute

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.concurrent_requests)
        return self._client

    async def _rate_limited_request(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make a rate-limited HTTP request.

        Retries 429, 5xx and transport errors; every other failure status is
        raised immediately as a classified APIError.
        """
        client = await self._get_client()
        loop = asyncio.get_running_loop()

        async with self._semaphore:
            # Rate limiting
            elapsed = loop.time() - self._last_request_time
            if elapsed < self.min_request_interval:
                await asyncio.sleep(self.min_request_interval - elapsed)

            self._last_request_time = loop.time()

            # Retry logic
            last_error: Optional[Exception] = None
            for attempt in range(self.max_retries):
                try:
                    response = await client.request(method, url, **kwargs)
                    response.raise_for_status()
                    return response
                except httpx.HTTPStatusError as e:
                    status = e.response.status_code
                    last_error = classify_http_error(
                        status, e.response.text,
                        source=self.source_name,
                        headers=e.response.headers,
                    )
                    if not last_error.retryable or attempt == self.max_retries - 1:
                        raise last_error from e
                    if last_error.retry_after is not None:
                        logger.warning(
                            f"HTTP {status} from {self.source_name}, "
                            f"waiting {last_error.retry_after}s as asked"
                        )
                        await asyncio.sleep(last_error.retry_after)
                    else:
                        wait_time = self.backoff_factor ** attempt
                        logger.warning(f"Server error from {self.source_name}, retry in {wait_time:.1f}s")
                        await asyncio.sleep(wait_time)
                except httpx.RequestError as e:
                    last_error = e
                    if attempt == self.max_retries - 1:
                        break
                    wait_time = self.backoff_factor ** attempt
                    logger.warning(f"Request error to {self.source_name}: {e}, retry in {wait_time:.1f}s")
                    await asyncio.sleep(wait_time)

            raise RetryableError(
                f"Failed after {self.max_retries} attempts: {last_error}",
                source=self.source_name,
            )

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    async def search_venues(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        categories: Optional[str] = None,
        limit: int = FOURSQUARE_MAX_LIMIT,
        sort: str = FOURSQUARE_DEFAULT_SORT,
    ) -> List[Venue]:
        """Venues inside the radius around a point."""
        pass

    @abstractmethod
    async def get_venue_stats(self, venue_id: str) -> MeasuredVisitStats:
        """Measured visit statistics for one venue; raises VisitStatisticsUnavailable."""
        pass


class FoursquareClient(BaseFootTrafficClient):
    """
    Foursquare Places API client.

    Venue search is available on every plan; /places/{id}/stats needs
    premium access and answers 403 otherwise.
    API Docs: https://developer.foursquare.com/docs/places-api/
    """

    source_name = "foursquare"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, **kwargs):
        settings = get_settings()
        kwargs.setdefault("max_retries", settings.max_retries)
        kwargs.setdefault("backoff_factor", settings.retry_backoff_factor)
        super().__init__(
            api_key=api_key or settings.get_foursquare_api_key(),
            **kwargs
        )
        self.base_url = (base_url or settings.foursquare_base_url).rstrip("/")

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers with API key."""
        if not self.api_key:
            raise ValueError("Foursquare API key is required")
        return {
            "Authorization": self.api_key,
            "Accept": "application/json",
        }

    async def search_venues(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        categories: Optional[str] = FOURSQUARE_FOOD_AND_DINING,
        limit: int = FOURSQUARE_MAX_LIMIT,
        sort: str = FOURSQUARE_DEFAULT_SORT,
    ) -> List[Venue]:
        """
        Search for venues around a point.

        Args:
            latitude: Center latitude
            longitude: Center longitude
            radius_meters: Search radius in meters
            categories: Comma-separated Foursquare category IDs
            limit: Maximum number of results (Foursquare max is 50)
            sort: Result ordering hint

        Returns:
            List of Venue objects; unparseable places are skipped
        """
        url = f"{self.base_url}/places/search"
        params = {
            "ll": f"{latitude},{longitude}",
            "radius": radius_meters,
            "limit": min(limit, FOURSQUARE_MAX_LIMIT),
            "sort": sort,
            "fields": ",".join(FOURSQUARE_VENUE_FIELDS),
        }
        if categories:
            params["categories"] = categories

        response = await self._rate_limited_request(
            "GET", url,
            headers=self._get_headers(),
            params=params
        )
        data = response.json()

        venues = []
        for place in data.get("results", []):
            try:
                venues.append(parse_venue(place))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping unparseable place {place.get('fsq_id')}: {e}")
                continue

        logger.info(
            f"Foursquare search at ({latitude}, {longitude}) r={radius_meters}m "
            f"returned {len(venues)} venues"
        )
        return venues

    async def get_venue_stats(self, venue_id: str) -> MeasuredVisitStats:
        """
        Get measured visit statistics for a venue.

        Args:
            venue_id: Foursquare place ID

        Raises:
            VisitStatisticsUnavailable: no entitlement, request failure or
                a payload without usable visit data
        """
        if not venue_id:
            raise ValueError("Venue ID is required")

        url = f"{self.base_url}/places/{venue_id}/stats"
        params = {"fields": ",".join(FOURSQUARE_STATS_FIELDS)}

        try:
            response = await self._rate_limited_request(
                "GET", url,
                headers=self._get_headers(),
                params=params
            )
        except AccessForbiddenError as e:
            raise VisitStatisticsUnavailable(
                "Venue stats require premium Foursquare API access",
                venue_id=venue_id,
                source=self.source_name,
                status_code=403,
            ) from e
        except APIError as e:
            raise VisitStatisticsUnavailable(
                f"Stats request failed: {e.message}",
                venue_id=venue_id,
                source=self.source_name,
                status_code=e.status_code,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise VisitStatisticsUnavailable(
                "Stats response is not JSON", venue_id=venue_id, source=self.source_name
            ) from e

        return parse_visit_stats(venue_id, payload, source=self.source_name)


# =============================================================================
# PAYLOAD PARSING
# =============================================================================


def parse_venue(place: Dict[str, Any]) -> Venue:
    """
    Convert a Foursquare place into a Venue.

    Foursquare popularity (0-1) is scaled to 0-100 and rating (0-10) to 0-5.
    """
    venue_id = place["fsq_id"]

    tags = frozenset(
        category["name"]
        for category in place.get("categories") or []
        if category.get("name")
    )

    price = place.get("price")
    price_tier = int(price) if price is not None and 1 <= int(price) <= 4 else None

    rating = place.get("rating")
    if rating is not None:
        rating = min(5.0, max(0.0, float(rating) * 5.0 / FOURSQUARE_RATING_SCALE))

    popularity = place.get("popularity")
    if popularity is not None:
        popularity = float(popularity)
        if popularity <= 1:
            popularity *= 100
        popularity = min(100.0, max(0.0, popularity))

    return Venue(
        id=str(venue_id),
        name=place.get("name") or "",
        category_tags=tags,
        price_tier=price_tier,
        rating=rating,
        popularity=popularity,
        verified=bool(place.get("verified", False)),
    )


def _parse_weekday(value: Any) -> Weekday:
    text = str(value).strip().lower()
    try:
        return Weekday(text)
    except ValueError:
        return _WEEKDAYS[date.fromisoformat(text[:10]).weekday()]


def parse_visit_stats(
    venue_id: str,
    payload: Dict[str, Any],
    source: str = "foursquare",
) -> MeasuredVisitStats:
    """
    Normalize a statistics payload into MeasuredVisitStats.

    Missing hours and weekdays are zero-filled. daily_visits_total is the
    reported total, else the hourly sum, else the mean reported weekday.

    Raises:
        VisitStatisticsUnavailable: payload carries no usable visit data
    """
    if not isinstance(payload, dict):
        raise VisitStatisticsUnavailable(
            "Stats payload is not an object", venue_id=venue_id, source=source
        )

    try:
        popularity_by_hour = {
            int(entry["hour"]): float(entry.get("popularity", entry.get("popularity_score", 0)))
            for entry in payload.get("popularity_by_hour") or []
        }
        raw_hours = [
            (int(entry["hour"]), int(entry.get("visits") or 0), entry)
            for entry in payload.get("visits_by_hour") or []
        ]
        days = [
            DailyVisits(
                weekday=_parse_weekday(entry.get("date", entry.get("day", entry.get("weekday")))),
                visits=int(entry.get("visits") or 0),
                avg_visit_duration_minutes=int(round(float(entry.get("avg_duration") or 0))),
            )
            for entry in payload.get("visits_by_day") or []
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise VisitStatisticsUnavailable(
            f"Malformed stats payload: {e}", venue_id=venue_id, source=source
        ) from e

    if not raw_hours and not days:
        raise VisitStatisticsUnavailable(
            "Stats payload has no visit data", venue_id=venue_id, source=source
        )

    reported_total = payload.get("total_daily_visits")
    if reported_total:
        daily_total = int(reported_total)
    elif raw_hours:
        daily_total = sum(visits for _, visits, _ in raw_hours)
    else:
        daily_total = round(sum(d.visits for d in days) / len(days))

    hours = []
    for hour, visits, entry in raw_hours:
        popularity = entry.get("popularity_score", popularity_by_hour.get(hour))
        if popularity is None:
            popularity = (
                min(100.0, visits / (daily_total * PEAK_HOUR_SHARE) * 100)
                if daily_total else 0
            )
        hours.append(
            HourlyVisits(
                hour=hour,
                visits=visits,
                historical_avg_visits=int(entry.get("avg_visits") or visits),
                popularity_score=int(round(float(popularity))),
            )
        )

    return MeasuredVisitStats(
        venue_id=venue_id,
        daily_visits_total=daily_total,
        hourly_distribution=complete_hourly(hours),
        weekly_pattern=complete_weekly(days),
        demographics=_parse_demographics(payload.get("demographic_breakdown")),
        comparison_deltas=None,
        confidence=min(1.0, max(0.0, float(payload.get("confidence_level") or MEASURED_CONFIDENCE))),
        source=source,
    )


def _parse_demographics(breakdown: Optional[Dict[str, Any]]) -> Optional[Demographics]:
    """Reported demographics, or None when the provider sent nothing usable."""
    if not isinstance(breakdown, dict) or not breakdown.get("age_groups"):
        return None
    try:
        gender = breakdown.get("gender") or {}
        return Demographics(
            age_groups=tuple(
                AgeGroupShare(range=str(g["range"]), percentage=int(round(float(g["percentage"]))))
                for g in breakdown["age_groups"]
            ),
            gender=GenderSplit(
                male=int(round(float(gender.get("male", 50)))),
                female=int(round(float(gender.get("female", 50)))),
                other=int(round(float(gender.get("other", 0)))),
            ),
            estimated=False,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"Ignoring malformed demographic breakdown: {e}")
        return None
