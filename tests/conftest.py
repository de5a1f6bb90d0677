"""
Pytest configuration and fixtures for dj_loyalty tests.
"""

import os
import sys
import uuid
from decimal import Decimal

import django
import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


def pytest_configure():
    """Configure Django settings before running tests."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tests.settings")
    django.setup()


# ============================================================================
# Actor Fixtures
# ============================================================================


@pytest.fixture()
def actor_factory():
    """Factory for creating authenticated actors."""
    from dj_loyalty.scopes import Actor

    def create_actor(user_id=None, role="customer", business_id=None):
        if user_id is None:
            user_id = f"user_{uuid.uuid4().hex[:8]}"
        return Actor(user_id=user_id, role=role, business_id=business_id)

    return create_actor


@pytest.fixture()
def customer(actor_factory):
    """A customer acting on their own balances."""
    return actor_factory()


@pytest.fixture()
def other_customer(actor_factory):
    return actor_factory()


@pytest.fixture()
def business_actor(actor_factory):
    """A business user able to issue points, scoped to business 'shop-1'."""
    return actor_factory(user_id="merchant-1", role="business", business_id="shop-1")


@pytest.fixture()
def admin_actor(actor_factory):
    return actor_factory(user_id="admin-1", role="admin")


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture()
def ledger(db):
    """The ledger operations engine."""
    from dj_loyalty.services import LedgerOperations

    return LedgerOperations()


@pytest.fixture()
def gateway(db):
    """The operation boundary returning OperationResult envelopes."""
    from dj_loyalty.services import LoyaltyLedger

    return LoyaltyLedger()


@pytest.fixture()
def reporting(db):
    from dj_loyalty.services import ReportingService

    return ReportingService()


# ============================================================================
# Balance Fixtures
# ============================================================================


@pytest.fixture()
def funded_balance(ledger, admin_actor):
    """Factory issuing points so a (user, scope) balance exists."""

    def create_funded_balance(user_id, amount=Decimal("100.00"), scope=None):
        outcome = ledger.issue(admin_actor, user_id, amount, scope=scope)
        return outcome.balances["balance"]

    return create_funded_balance


@pytest.fixture()
def profile_factory(db):
    """Factory for per-user and per-business loyalty profiles."""
    from dj_loyalty.models import LoyaltyProfile

    def create_profile(owner_id, owner_type=LoyaltyProfile.OWNER_USER, **kwargs):
        return LoyaltyProfile.objects.create(
            owner_type=owner_type, owner_id=owner_id, **kwargs
        )

    return create_profile


# ============================================================================
# Signal Testing Fixtures
# ============================================================================


@pytest.fixture()
def signal_receiver():
    """Helper fixture for testing signals."""

    class SignalReceiver:
        def __init__(self):
            self.calls = []
            self.last_sender = None
            self.last_kwargs = None

        def __call__(self, sender, **kwargs):
            self.calls.append((sender, kwargs))
            self.last_sender = sender
            self.last_kwargs = kwargs

        @property
        def call_count(self):
            return len(self.calls)

        @property
        def was_called(self):
            return len(self.calls) > 0

        def reset(self):
            self.calls = []
            self.last_sender = None
            self.last_kwargs = None

    return SignalReceiver()
