"""
Demographic estimation for venues without measured visitor data.

Age mix follows affordability: budget venues skew 18-34, upscale venues
skew 35+. The gender split is drawn per venue and normalized to 100.
"""
from typing import Optional, Union

from footfall.analytics.jitter import Jitter
from footfall.analytics.models import AgeGroupShare, Demographics, GenderSplit, Venue
from footfall.sources.foot_traffic.metadata import (
    AGE_GROUP_TEMPLATES,
    DEFAULT_PRICE_TIER,
    GENDER_DRAW_RANGES,
)


def price_band(price_tier: Optional[int]) -> str:
    """Map a 1-4 price tier onto an age-group template name."""
    tier = price_tier or DEFAULT_PRICE_TIER
    if tier <= 1:
        return "budget"
    if tier >= 3:
        return "upscale"
    return "mid_range"


class DemographicEstimator:
    """Estimate a venue's visitor age and gender breakdown."""

    def __init__(self, jitter: Optional[Jitter] = None):
        self.jitter = jitter or Jitter()

    def estimate(
        self,
        venue: Union[Venue, int, None],
        jitter: Optional[Jitter] = None,
    ) -> Demographics:
        """
        Estimate demographics from a venue (or a bare price tier).

        Args:
            venue: The venue, or its price tier
            jitter: Random source for the gender draw (defaults to the estimator's)

        Returns:
            Demographics flagged as estimated
        """
        price_tier = venue.price_tier if isinstance(venue, Venue) else venue
        band = price_band(price_tier)

        age_groups = tuple(
            AgeGroupShare(range=label, percentage=pct)
            for label, pct in AGE_GROUP_TEMPLATES[band]
        )
        gender = self.draw_gender(jitter or self.jitter)

        return Demographics(age_groups=age_groups, gender=gender, estimated=True)

    @staticmethod
    def draw_gender(jitter: Jitter) -> GenderSplit:
        """
        Draw a gender split that sums to exactly 100.

        `other` is rounded on its own; the rounding residue goes to `female`.
        """
        male = jitter.uniform(*GENDER_DRAW_RANGES["male"])
        female = jitter.uniform(*GENDER_DRAW_RANGES["female"])
        other = jitter.uniform(*GENDER_DRAW_RANGES["other"])

        total = male + female + other
        other_pct = round(other / total * 100)
        male_pct = round(male / total * 100)
        female_pct = 100 - male_pct - other_pct

        return GenderSplit(male=male_pct, female=female_pct, other=other_pct)
