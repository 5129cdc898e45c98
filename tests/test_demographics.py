"""
Unit tests for demographic estimation and the seedable jitter source.
"""
import pytest

from footfall.analytics.demographics import DemographicEstimator, price_band
from footfall.analytics.jitter import Jitter
from conftest import make_venue


class TestPriceBand:

    @pytest.mark.unit
    @pytest.mark.parametrize("tier,band", [
        (1, "budget"),
        (2, "mid_range"),
        (3, "upscale"),
        (4, "upscale"),
        (None, "mid_range"),
    ])
    def test_price_band(self, tier, band):
        assert price_band(tier) == band


class TestDemographicEstimator:

    @pytest.mark.unit
    def test_budget_venue_skews_young(self):
        estimator = DemographicEstimator(Jitter(1))

        profile = estimator.estimate(make_venue(price_tier=1))

        assert profile.share_of(("18-24", "25-34")) == 65
        assert profile.estimated is True

    @pytest.mark.unit
    def test_upscale_venue_skews_older(self):
        estimator = DemographicEstimator(Jitter(1))

        profile = estimator.estimate(4)

        assert profile.share_of(("35-44", "45-54", "55+")) == 65

    @pytest.mark.unit
    def test_missing_price_uses_mid_range(self):
        estimator = DemographicEstimator(Jitter(1))

        profile = estimator.estimate(make_venue(price_tier=None))

        assert [g.percentage for g in profile.age_groups] == [20, 30, 25, 15, 10]

    @pytest.mark.unit
    @pytest.mark.parametrize("tier", [1, 2, 3, 4, None])
    def test_age_groups_sum_to_100(self, tier):
        profile = DemographicEstimator(Jitter(3)).estimate(tier)

        assert sum(g.percentage for g in profile.age_groups) == 100

    @pytest.mark.unit
    @pytest.mark.parametrize("seed", range(25))
    def test_gender_split_sums_to_exactly_100(self, seed):
        gender = DemographicEstimator.draw_gender(Jitter(seed))

        assert gender.total == 100
        assert 0 <= gender.other <= 2
        assert 40 <= gender.male <= 60

    @pytest.mark.unit
    def test_explicit_jitter_overrides_estimator_default(self):
        estimator = DemographicEstimator(Jitter(1))

        a = estimator.estimate(2, jitter=Jitter(99))
        b = estimator.estimate(2, jitter=Jitter(99))

        assert a == b


class TestJitter:

    @pytest.mark.unit
    def test_seeded_jitter_is_reproducible(self):
        first = [Jitter(7).factor(0.2) for _ in range(3)]
        second = [Jitter(7).factor(0.2) for _ in range(3)]

        assert first == second

    @pytest.mark.unit
    def test_for_venue_streams_are_independent_of_order(self):
        jitter = Jitter(7)

        a_first = jitter.for_venue("a").uniform(0, 1)
        jitter.for_venue("b").uniform(0, 1)
        a_again = jitter.for_venue("a").uniform(0, 1)

        assert a_first == a_again
        assert jitter.for_venue("a").uniform(0, 1) != jitter.for_venue("b").uniform(0, 1)

    @pytest.mark.unit
    def test_factor_and_delta_bounds(self):
        jitter = Jitter(11)

        for _ in range(200):
            assert 0.8 <= jitter.factor(0.2) <= 1.2
            assert -0.3 <= jitter.delta(0.3) <= 0.3
