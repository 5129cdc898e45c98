"""
Unit tests for footfall/analytics/scoring.py
"""
import pytest

from footfall.analytics.models import (
    NEUTRAL_DEMOGRAPHICS,
    AgeGroupShare,
    AreaMetrics,
    Demographics,
    GenderSplit,
)
from footfall.analytics.scoring import OpportunityScorer, peak_hour_diversity


def metrics(average=100.0, density=2.0, peaks=(12, 18), demographics=NEUTRAL_DEMOGRAPHICS):
    return AreaMetrics(
        total_venues=5,
        total_daily_visits=int(average * 5),
        average_daily_visits=average,
        hourly_distribution=(),
        weekly_pattern=(),
        peak_hours=tuple(peaks),
        demographic_profile=demographics,
        competition_density=density,
        trends=(),
        confidence_level=0.5,
        estimated_data=True,
    )


def ages(*pairs):
    return Demographics(
        age_groups=tuple(AgeGroupShare(r, p) for r, p in pairs),
        gender=GenderSplit(50, 50, 0),
    )


class TestPeakHourDiversity:

    @pytest.mark.unit
    def test_fewer_than_two_peaks(self):
        assert peak_hour_diversity(()) == 0
        assert peak_hour_diversity((12,)) == 0

    @pytest.mark.unit
    def test_spread_scaled(self):
        assert peak_hour_diversity((12, 18)) == pytest.approx(10.0)

    @pytest.mark.unit
    def test_full_marks_at_twelve_hours(self):
        assert peak_hour_diversity((7, 12, 20)) == 20.0


class TestScore:

    @pytest.mark.unit
    def test_components(self):
        # traffic 20 + competition 30 + diversity 10
        assert OpportunityScorer().score(metrics(average=100, density=2.0, peaks=(12, 18))) == 60

    @pytest.mark.unit
    def test_competition_never_negative(self):
        # traffic 20 + competition 0 + diversity 0
        assert OpportunityScorer().score(metrics(average=100, density=30, peaks=())) == 20

    @pytest.mark.unit
    def test_clamped_to_100(self):
        score = OpportunityScorer().score(metrics(average=5000, density=0, peaks=(6, 20)))
        assert score == 100

    @pytest.mark.unit
    def test_fractional_average(self):
        # 101/200*40 = 20.2, +40 competition = 60.2
        assert OpportunityScorer().score(metrics(average=101.0, density=0, peaks=())) == 60

    @pytest.mark.unit
    @pytest.mark.parametrize("average,density,peaks", [
        (0, 0, ()),
        (250, 3.18, (12, 13, 19)),
        (1000, 100, (0, 23)),
    ])
    def test_always_in_range(self, average, density, peaks):
        assert 0 <= OpportunityScorer().score(metrics(average, density, peaks)) <= 100


class TestInsights:

    @pytest.mark.unit
    def test_volume_bands(self):
        scorer = OpportunityScorer()

        assert scorer.insights(metrics(average=301))[0] == "High-traffic area with strong customer base"
        assert scorer.insights(metrics(average=151))[0] == "Moderate traffic area with good potential"
        assert scorer.insights(metrics(average=150))[0] == "Lower traffic area - consider marketing strategies"

    @pytest.mark.unit
    def test_competition(self):
        scorer = OpportunityScorer()

        assert "Low competition density provides market opportunity" in scorer.insights(metrics(density=4.9))
        assert "High competition requires strong differentiation" in scorer.insights(metrics(density=16))
        middle = scorer.insights(metrics(density=10, peaks=()))
        assert len(middle) == 1

    @pytest.mark.unit
    @pytest.mark.parametrize("peaks,expected", [
        ((8, 12, 18), "Consistent traffic throughout day - all-day dining opportunity"),
        ((12, 13, 19), "Traditional meal-time peaks - standard restaurant hours optimal"),
        ((7, 8, 22), "Morning traffic peak - breakfast/cafe concept may work well"),
    ])
    def test_peak_patterns(self, peaks, expected):
        assert expected in OpportunityScorer().insights(metrics(peaks=peaks))

    @pytest.mark.unit
    def test_no_peak_insight_for_late_night(self):
        insights = OpportunityScorer().insights(metrics(density=10, peaks=(21, 22, 23)))
        assert len(insights) == 1

    @pytest.mark.unit
    def test_young_demographic(self):
        young = ages(("18-24", 35), ("25-34", 30), ("35-44", 20), ("45-54", 10), ("55+", 5))

        insights = OpportunityScorer().insights(metrics(demographics=young))

        assert "Young demographic - consider trendy, social media-friendly concepts" in insights

    @pytest.mark.unit
    def test_mature_demographic(self):
        mature = ages(("18-24", 10), ("25-34", 20), ("35-44", 25), ("45-54", 25), ("55+", 20))

        insights = OpportunityScorer().insights(metrics(demographics=mature))

        assert "Mature demographic - focus on quality, service, and comfort" in insights

    @pytest.mark.unit
    def test_order(self):
        young = ages(("18-24", 40), ("25-34", 30))

        insights = OpportunityScorer().insights(
            metrics(average=400, density=1, peaks=(8, 12, 18), demographics=young)
        )

        assert insights == (
            "High-traffic area with strong customer base",
            "Low competition density provides market opportunity",
            "Consistent traffic throughout day - all-day dining opportunity",
            "Young demographic - consider trendy, social media-friendly concepts",
        )
