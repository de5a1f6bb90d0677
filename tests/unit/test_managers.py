"""
Unit tests for custom model managers.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from dj_loyalty.models import Balance, LoyaltyProfile, Transaction
from dj_loyalty.scopes import Scope


@pytest.mark.django_db()
class TestBalanceManager:
    """Tests for BalanceManager."""

    def test_get_balance_returns_existing(self):
        expected = Balance.objects.create(user_id="u1", pool="town_ticks")
        assert Balance.objects.get_balance("u1", Scope("town_ticks")) == expected

    def test_get_balance_returns_none(self):
        assert Balance.objects.get_balance("u1", Scope.global_scope()) is None

    def test_get_balance_isolates_scopes(self):
        Balance.objects.create(user_id="u1")
        assert Balance.objects.get_balance("u1", Scope.business("3")) is None

    def test_for_business(self):
        Balance.objects.create(user_id="u1", pool="business", business_id="3")
        Balance.objects.create(user_id="u2", pool="individual_business", business_id="3")
        Balance.objects.create(user_id="u3", pool="business", business_id="4")
        assert Balance.objects.for_business("3").count() == 2


@pytest.mark.django_db()
class TestTransactionManager:
    """Tests for TransactionManager."""

    def _create(self, txn_id, **kwargs):
        kwargs.setdefault("user_id", "u1")
        kwargs.setdefault("transaction_type", Transaction.TYPE_ISSUE)
        return Transaction.objects.create(transaction_id=txn_id, **kwargs)

    def test_of_type(self):
        self._create("t1")
        self._create("t2", transaction_type=Transaction.TYPE_REDEEM)
        self._create("t3", transaction_type=Transaction.TYPE_GIFT)
        assert Transaction.objects.of_type(Transaction.TYPE_ISSUE).count() == 1
        assert (
            Transaction.objects.of_type(Transaction.TYPE_REDEEM, Transaction.TYPE_GIFT).count()
            == 2
        )

    def test_completed(self):
        self._create("t1")
        self._create("t2", status=Transaction.STATUS_FAILED)
        assert Transaction.objects.completed().count() == 1

    def test_between(self):
        self._create("t1", points_amount=Decimal("1"))
        now = timezone.now()
        assert Transaction.objects.between(since=now - timedelta(minutes=1)).count() == 1
        assert Transaction.objects.between(since=now + timedelta(minutes=1)).count() == 0
        assert Transaction.objects.between(until=now - timedelta(minutes=1)).count() == 0

    def test_for_user_and_scope(self):
        self._create("t1")
        self._create("t2", pool="business", business_id="9")
        self._create("t3", user_id="u2")
        assert Transaction.objects.for_user("u1").for_scope(Scope.business("9")).count() == 1


@pytest.mark.django_db()
class TestLoyaltyProfileManager:
    def test_for_owner(self):
        profile = LoyaltyProfile.objects.create(owner_type="user", owner_id="u1")
        assert LoyaltyProfile.objects.for_owner("user", "u1") == profile
        assert LoyaltyProfile.objects.for_owner("business", "u1") is None

    def test_inactive_profiles_ignored(self):
        LoyaltyProfile.objects.create(owner_type="user", owner_id="u1", is_active=False)
        assert LoyaltyProfile.objects.for_owner("user", "u1") is None

    def test_empty_owner(self):
        assert LoyaltyProfile.objects.for_owner("business", None) is None
        assert LoyaltyProfile.objects.for_owner("business", "") is None
