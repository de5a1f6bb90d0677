"""
Unit tests for tier upgrades.
"""

from decimal import Decimal

import pytest

from dj_loyalty.exceptions import (
    AlreadyMaxTier,
    BalanceNotFound,
    InsufficientPointsForTier,
    OperationForbidden,
)
from dj_loyalty.models import Balance, Transaction
from dj_loyalty.scopes import Scope
from dj_loyalty.signals import tier_upgraded

GLOBAL = Scope.global_scope()


@pytest.mark.django_db()
class TestUpgradeTier:
    """Tests for LedgerOperations.upgrade_tier()."""

    def test_upgrade_at_exact_threshold(self, ledger, customer, funded_balance):
        funded_balance(customer.user_id, 1000)
        upgrade = ledger.upgrade_tier(customer)
        assert upgrade.previous_tier == "bronze"
        assert upgrade.new_tier == "silver"
        assert upgrade.multiplier == Decimal("1.2")
        assert upgrade.transaction is None
        assert upgrade.bonus_awarded == Decimal("0")
        balance = Balance.objects.get_balance(customer.user_id, GLOBAL)
        assert balance.current_tier == "silver"
        assert balance.tier_multiplier == Decimal("1.2")

    def test_one_step_per_call(self, ledger, customer, funded_balance):
        funded_balance(customer.user_id, 6000)
        assert ledger.upgrade_tier(customer).new_tier == "silver"
        assert ledger.upgrade_tier(customer).new_tier == "gold"

    def test_shortfall_reported(self, ledger, customer, funded_balance):
        funded_balance(customer.user_id, 999)
        with pytest.raises(InsufficientPointsForTier) as exc_info:
            ledger.upgrade_tier(customer)
        assert exc_info.value.shortfall == Decimal("1")
        assert exc_info.value.next_tier == "silver"
        assert exc_info.value.required == Decimal("1000")
        assert Balance.objects.get_balance(customer.user_id, GLOBAL).current_tier == "bronze"

    def test_redeemed_points_still_count(self, ledger, customer, funded_balance):
        """Tiers follow cumulative issued points, not the available balance."""
        funded_balance(customer.user_id, 1000)
        ledger.redeem(customer, customer.user_id, 900)
        assert ledger.upgrade_tier(customer).new_tier == "silver"

    def test_already_max_tier(self, ledger, customer):
        Balance.objects.create(
            user_id=customer.user_id,
            current_tier="platinum",
            tier_multiplier=Decimal("2.0"),
            points_issued=Decimal("20000"),
            points_available=Decimal("20000"),
        )
        with pytest.raises(AlreadyMaxTier):
            ledger.upgrade_tier(customer)

    def test_missing_balance(self, ledger, customer):
        with pytest.raises(BalanceNotFound):
            ledger.upgrade_tier(customer)
        assert not Balance.objects.exists()

    def test_scopes_have_independent_tiers(self, ledger, customer, funded_balance):
        scope = Scope.business("shop-1")
        funded_balance(customer.user_id, 1000, scope=scope)
        funded_balance(customer.user_id, 10)
        ledger.upgrade_tier(customer, scope=scope)
        assert Balance.objects.get_balance(customer.user_id, scope).current_tier == "silver"
        assert Balance.objects.get_balance(customer.user_id, GLOBAL).current_tier == "bronze"

    def test_admin_upgrades_for_user(self, ledger, admin_actor, customer, funded_balance):
        funded_balance(customer.user_id, 1000)
        assert ledger.upgrade_tier(admin_actor, customer.user_id).new_tier == "silver"

    def test_customer_cannot_upgrade_others(self, ledger, customer, other_customer, funded_balance):
        funded_balance(other_customer.user_id, 1000)
        with pytest.raises(OperationForbidden):
            ledger.upgrade_tier(customer, other_customer.user_id)

    def test_signal_sent(self, ledger, customer, funded_balance, signal_receiver):
        funded_balance(customer.user_id, 1000)
        tier_upgraded.connect(signal_receiver)
        try:
            ledger.upgrade_tier(customer)
        finally:
            tier_upgraded.disconnect(signal_receiver)
        assert signal_receiver.call_count == 1
        assert signal_receiver.last_kwargs["previous_tier"] == "bronze"
        assert signal_receiver.last_kwargs["new_tier"] == "silver"


@pytest.mark.django_db()
class TestTierBonus:
    """A configured tier bonus is paid once per tier."""

    def test_bonus_awarded(self, ledger, customer, funded_balance, profile_factory):
        funded_balance(customer.user_id, 1000)
        profile_factory(customer.user_id, tier_bonus_points=Decimal("25"))
        upgrade = ledger.upgrade_tier(customer)
        assert upgrade.bonus_awarded == Decimal("25")
        txn = upgrade.transaction
        assert txn.transaction_type == Transaction.TYPE_TIER_BONUS
        assert txn.point_type == Transaction.POINT_TIER
        assert txn.tier_upgraded == "silver"
        assert txn.marker == "silver"
        balance = Balance.objects.get_balance(customer.user_id, GLOBAL)
        assert balance.points_available == Decimal("1025")
        assert balance.points_issued == Decimal("1025")

    def test_bonus_not_paid_twice(self, ledger, customer, funded_balance, profile_factory):
        """A bonus already recorded for the tier is skipped."""
        balance = funded_balance(customer.user_id, 1000)
        profile_factory(customer.user_id, tier_bonus_points=Decimal("25"))
        ledger.ledger.append(
            customer.user_id,
            balance.scope,
            Transaction.TYPE_TIER_BONUS,
            points_amount=Decimal("0"),
            marker="silver",
        )
        upgrade = ledger.upgrade_tier(customer)
        assert upgrade.new_tier == "silver"
        assert upgrade.transaction is None
        assert upgrade.bonus_awarded == Decimal("0")
        assert Transaction.objects.of_type(Transaction.TYPE_TIER_BONUS).count() == 1

    def test_custom_multiplier(self, ledger, customer, funded_balance, profile_factory):
        funded_balance(customer.user_id, 1000)
        profile_factory(customer.user_id, tier_multipliers={"silver": "1.25"})
        assert ledger.upgrade_tier(customer).multiplier == Decimal("1.25")
