"""
Unit tests for the tier policy.
"""

from decimal import Decimal

import pytest

from dj_loyalty.tiers import Tier, TierPolicy


@pytest.fixture()
def policy():
    return TierPolicy()


class TestTierTable:
    def test_order(self, policy):
        assert [level.name for level in policy.levels] == [
            Tier.BRONZE,
            Tier.SILVER,
            Tier.GOLD,
            Tier.PLATINUM,
        ]

    def test_lowest_is_bronze(self, policy):
        assert policy.lowest.name == "bronze"
        assert policy.lowest.multiplier == Decimal("1.0")

    def test_platinum_is_terminal(self, policy):
        assert policy.level("platinum").is_terminal
        assert policy.next_level("platinum") is None

    def test_next_level(self, policy):
        upcoming = policy.next_level("bronze")
        assert upcoming.name == "silver"
        assert upcoming.min_points == Decimal("1000")
        assert upcoming.multiplier == Decimal("1.2")

    def test_rank_is_monotonic(self, policy):
        ranks = [policy.rank(name) for name in ("bronze", "silver", "gold", "platinum")]
        assert ranks == sorted(ranks) == [0, 1, 2, 3]

    def test_unknown_tier(self, policy):
        with pytest.raises(ValueError):
            policy.level("diamond")

    def test_multiplier_override(self):
        policy = TierPolicy(multipliers={"silver": 1.25})
        assert policy.level("silver").multiplier == Decimal("1.25")
        assert policy.level("gold").multiplier == Decimal("1.5")

    def test_custom_table(self):
        policy = TierPolicy(table=(("bronze", 0, 1), ("silver", 10, 2)))
        assert policy.next_level("bronze").min_points == Decimal("10")
        assert policy.next_level("silver") is None


class TestThresholds:
    """Thresholds are inclusive."""

    def test_tier_for_points_boundary(self, policy):
        assert policy.tier_for_points(Decimal("999.99")).name == "bronze"
        assert policy.tier_for_points(Decimal("1000")).name == "silver"
        assert policy.tier_for_points(Decimal("10000")).name == "platinum"

    def test_can_upgrade_at_boundary(self, policy):
        assert policy.can_upgrade("bronze", Decimal("1000"))
        assert not policy.can_upgrade("bronze", Decimal("999"))
        assert not policy.can_upgrade("platinum", Decimal("50000"))

    def test_shortfall(self, policy):
        assert policy.shortfall("silver", Decimal("1000")) == Decimal("4000")
        assert policy.shortfall("silver", Decimal("6000")) == Decimal("0")
        assert policy.shortfall("platinum", Decimal("0")) == Decimal("0")


class TestStatus:
    def test_status_report(self, policy):
        status = policy.status("silver", Decimal("1200"))
        assert status["current_tier"] == "silver"
        assert status["current_multiplier"] == Decimal("1.2")
        assert status["total_points"] == Decimal("1200")
        assert status["next_tier"] == "gold"
        assert status["points_to_next_tier"] == Decimal("3800")
        assert len(status["tiers"]) == 4

    def test_status_at_top(self, policy):
        status = policy.status("platinum", Decimal("12000"))
        assert status["next_tier"] is None
        assert status["points_to_next_tier"] == Decimal("0")
