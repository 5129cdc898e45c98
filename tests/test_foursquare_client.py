"""
Tests for the Foursquare client and payload parsing.

HTTP is served by httpx.MockTransport; no network access.
"""
import httpx
import pytest
from unittest.mock import AsyncMock, patch

from footfall.analytics.exceptions import VisitStatisticsUnavailable
from footfall.analytics.models import VenueCategory, Weekday
from footfall.core.api_errors import AuthenticationError, RetryableError
from footfall.sources.foot_traffic.client import (
    FoursquareClient,
    parse_venue,
    parse_visit_stats,
)


SEARCH_RESPONSE = {
    "results": [
        {
            "fsq_id": "4b0588f0f964a520a7d622e3",
            "name": "Khao Gaeng Corner",
            "categories": [{"id": 13303, "name": "Thai Restaurant"}],
            "popularity": 0.92,
            "rating": 8.6,
            "price": 1,
            "verified": True,
        },
        {
            "fsq_id": "5a1b2c3d4e5f",
            "name": "Roastery",
            "categories": [{"id": 13035, "name": "Coffee Shop"}],
        },
        {
            "name": "No id, skipped",
        },
    ]
}


def make_client(handler, **kwargs):
    client = FoursquareClient(
        api_key="fsq_test_key",
        base_url="https://api.foursquare.test/v3",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )
    client.min_request_interval = 0
    return client


class TestParseVenue:

    @pytest.mark.unit
    def test_scales_popularity_and_rating(self):
        venue = parse_venue(SEARCH_RESPONSE["results"][0])

        assert venue.id == "4b0588f0f964a520a7d622e3"
        assert venue.popularity == pytest.approx(92.0)
        assert venue.rating == pytest.approx(4.3)
        assert venue.price_tier == 1
        assert venue.verified is True
        assert venue.category_tags == frozenset({"Thai Restaurant"})
        assert venue.category == VenueCategory.RESTAURANT

    @pytest.mark.unit
    def test_unattested_attributes_are_none(self):
        venue = parse_venue(SEARCH_RESPONSE["results"][1])

        assert venue.popularity is None
        assert venue.rating is None
        assert venue.price_tier is None
        assert venue.verified is False
        assert venue.category == VenueCategory.CAFE

    @pytest.mark.unit
    def test_missing_id_raises(self):
        with pytest.raises(KeyError):
            parse_venue({"name": "nameless"})


class TestParseVisitStats:

    @pytest.mark.unit
    def test_full_payload(self):
        payload = {
            "visits_by_hour": [
                {"hour": 12, "visits": 40, "avg_visits": 35, "popularity_score": 80},
                {"hour": 19, "visits": 60},
            ],
            "popularity_by_hour": [{"hour": 19, "popularity": 95}],
            "visits_by_day": [
                {"date": "friday", "visits": 120, "avg_duration": 52.4},
                {"date": "2026-10-17", "visits": 150, "avg_duration": 61},
            ],
            "demographic_breakdown": {
                "age_groups": [{"range": "18-24", "percentage": 55}, {"range": "25-34", "percentage": 45}],
                "gender": {"male": 48, "female": 51, "other": 1},
            },
        }

        stats = parse_visit_stats("venue-1", payload)

        assert stats.estimated is False
        assert stats.confidence == 1.0
        assert stats.daily_visits_total == 100
        assert len(stats.hourly_distribution) == 24
        assert stats.visits_at(12).popularity_score == 80
        assert stats.visits_at(19).popularity_score == 95
        assert stats.visits_at(3).visits == 0
        assert len(stats.weekly_pattern) == 7
        assert stats.visits_on(Weekday.FRIDAY).avg_visit_duration_minutes == 52
        # 2026-10-17 is a Saturday
        assert stats.visits_on(Weekday.SATURDAY).visits == 150
        assert stats.demographics.estimated is False
        assert stats.demographics.gender.female == 51

    @pytest.mark.unit
    def test_reported_total_wins(self):
        payload = {"total_daily_visits": 500, "visits_by_hour": [{"hour": 9, "visits": 10}]}

        assert parse_visit_stats("v", payload).daily_visits_total == 500

    @pytest.mark.unit
    @pytest.mark.parametrize("reported,expected", [(7, 1.0), (-0.5, 0.0), (0.8, 0.8)])
    def test_reported_confidence_clamped(self, reported, expected):
        payload = {"confidence_level": reported, "visits_by_hour": [{"hour": 9, "visits": 10}]}

        assert parse_visit_stats("v", payload).confidence == expected

    @pytest.mark.unit
    def test_weekday_average_when_no_hours(self):
        payload = {"visits_by_day": [
            {"date": "monday", "visits": 100},
            {"date": "tuesday", "visits": 200},
        ]}

        stats = parse_visit_stats("v", payload)

        assert stats.daily_visits_total == 150
        assert sum(h.visits for h in stats.hourly_distribution) == 0

    @pytest.mark.unit
    def test_derived_popularity(self):
        payload = {"visits_by_hour": [{"hour": 12, "visits": 15}, {"hour": 13, "visits": 85}]}

        stats = parse_visit_stats("v", payload)

        # 15 / (100 * 0.15) * 100 = 100
        assert stats.visits_at(12).popularity_score == 100

    @pytest.mark.unit
    @pytest.mark.parametrize("payload", [
        {},
        {"visits_by_hour": []},
        {"visits_by_hour": [{"visits": 5}]},
        {"visits_by_day": [{"date": "someday", "visits": 5}]},
        ["not", "an", "object"],
    ])
    def test_unusable_payload_raises(self, payload):
        with pytest.raises(VisitStatisticsUnavailable):
            parse_visit_stats("v", payload)


class TestFoursquareClient:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_search_venues(self, clean_env):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=SEARCH_RESPONSE)

        async with make_client(handler) as client:
            venues = await client.search_venues(13.7563, 100.5018, 1000, categories="13000")

        assert [v.name for v in venues] == ["Khao Gaeng Corner", "Roastery"]
        assert seen["path"] == "/v3/places/search"
        assert seen["params"]["ll"] == "13.7563,100.5018"
        assert seen["params"]["radius"] == "1000"
        assert seen["params"]["categories"] == "13000"
        assert seen["params"]["limit"] == "50"
        assert seen["params"]["sort"] == "POPULARITY"
        assert seen["auth"] == "fsq_test_key"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_limit_capped_at_fifty(self, clean_env):
        seen = {}

        def handler(request):
            seen["limit"] = request.url.params["limit"]
            return httpx.Response(200, json={"results": []})

        async with make_client(handler) as client:
            await client.search_venues(13.7563, 100.5018, 1000, limit=200)

        assert seen["limit"] == "50"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_search_auth_failure_not_retried(self, clean_env):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, text="invalid key")

        async with make_client(handler) as client:
            with pytest.raises(AuthenticationError):
                await client.search_venues(13.7563, 100.5018, 1000)

        assert len(calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_server_errors_retried_then_raised(self, clean_env):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        with patch("footfall.sources.foot_traffic.client.asyncio.sleep", new=AsyncMock()):
            async with make_client(handler, max_retries=3) as client:
                with pytest.raises(RetryableError):
                    await client.search_venues(13.7563, 100.5018, 1000)

        assert len(calls) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_recovers_after_transient_error(self, clean_env):
        responses = [httpx.Response(500), httpx.Response(200, json=SEARCH_RESPONSE)]

        def handler(request):
            return responses.pop(0)

        with patch("footfall.sources.foot_traffic.client.asyncio.sleep", new=AsyncMock()):
            async with make_client(handler) as client:
                venues = await client.search_venues(13.7563, 100.5018, 1000)

        assert len(venues) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rate_limit_waits_retry_after(self, clean_env):
        responses = [
            httpx.Response(429, headers={"Retry-After": "7"}),
            httpx.Response(200, json=SEARCH_RESPONSE),
        ]
        sleep = AsyncMock()

        with patch("footfall.sources.foot_traffic.client.asyncio.sleep", new=sleep):
            async with make_client(lambda request: responses.pop(0)) as client:
                venues = await client.search_venues(13.7563, 100.5018, 1000)

        assert len(venues) == 2
        sleep.assert_awaited_once_with(7)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_date_retry_after_still_retried(self, clean_env):
        responses = [
            httpx.Response(503, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}),
            httpx.Response(200, json=SEARCH_RESPONSE),
        ]
        sleep = AsyncMock()

        with patch("footfall.sources.foot_traffic.client.asyncio.sleep", new=sleep):
            async with make_client(lambda request: responses.pop(0)) as client:
                venues = await client.search_venues(13.7563, 100.5018, 1000)

        assert len(venues) == 2
        sleep.assert_awaited_once_with(0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stats_not_found_is_unavailable(self, clean_env):
        async with make_client(lambda request: httpx.Response(404, text="no such venue")) as client:
            with pytest.raises(VisitStatisticsUnavailable) as exc_info:
                await client.get_venue_stats("gone")

        assert exc_info.value.status_code == 404

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stats_forbidden_is_unavailable(self, clean_env):
        def handler(request):
            return httpx.Response(403, text="Premium endpoint")

        async with make_client(handler) as client:
            with pytest.raises(VisitStatisticsUnavailable) as exc_info:
                await client.get_venue_stats("4b0588f0f964a520a7d622e3")

        assert exc_info.value.status_code == 403
        assert exc_info.value.venue_id == "4b0588f0f964a520a7d622e3"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stats_parsed(self, clean_env):
        def handler(request):
            assert request.url.path == "/v3/places/abc/stats"
            return httpx.Response(200, json={"visits_by_hour": [{"hour": 8, "visits": 30}]})

        async with make_client(handler) as client:
            stats = await client.get_venue_stats("abc")

        assert stats.venue_id == "abc"
        assert stats.daily_visits_total == 30

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stats_not_json(self, clean_env):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        async with make_client(handler) as client:
            with pytest.raises(VisitStatisticsUnavailable):
                await client.get_venue_stats("abc")

    @pytest.mark.unit
    def test_requires_api_key_for_requests(self, clean_env):
        client = FoursquareClient()

        with pytest.raises(ValueError):
            client._get_headers()
