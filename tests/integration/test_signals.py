"""
Integration tests for Django signals.
"""

from decimal import Decimal

import pytest

from dj_loyalty.exceptions import InsufficientBalance
from dj_loyalty.scopes import Scope
from dj_loyalty.signals import (
    balance_created,
    milestone_reached,
    points_changed,
    transaction_recorded,
)


@pytest.mark.django_db()
@pytest.mark.integration()
class TestSignalIntegration:
    """Tests for signal emission during ledger operations."""

    def test_balance_created_on_first_issue(self, ledger, admin_actor, customer, signal_receiver):
        """balance_created fires once when a balance row is created lazily."""
        balance_created.connect(signal_receiver)
        try:
            ledger.issue(admin_actor, customer.user_id, 10)
            ledger.issue(admin_actor, customer.user_id, 10)

            assert signal_receiver.call_count == 1
            assert signal_receiver.last_kwargs["balance"].user_id == customer.user_id
        finally:
            balance_created.disconnect(signal_receiver)

    def test_points_changed_receives_balance_and_transaction(
        self, ledger, admin_actor, customer, signal_receiver
    ):
        points_changed.connect(signal_receiver)
        try:
            outcome = ledger.issue(admin_actor, customer.user_id, Decimal("25"))

            assert signal_receiver.was_called
            assert signal_receiver.last_kwargs["balance"].points_available == Decimal("25")
            assert signal_receiver.last_kwargs["transaction"] == outcome.transaction
        finally:
            points_changed.disconnect(signal_receiver)

    def test_gift_changes_two_balances(
        self, ledger, customer, other_customer, funded_balance, signal_receiver
    ):
        funded_balance(customer.user_id, 50)
        points_changed.connect(signal_receiver)
        try:
            ledger.gift(customer, other_customer.user_id, 20)

            users = {kwargs["balance"].user_id for _sender, kwargs in signal_receiver.calls}
            assert users == {customer.user_id, other_customer.user_id}
        finally:
            points_changed.disconnect(signal_receiver)

    def test_transaction_recorded_once_per_operation(
        self, ledger, customer, other_customer, funded_balance, signal_receiver
    ):
        funded_balance(customer.user_id, 50)
        transaction_recorded.connect(signal_receiver)
        try:
            ledger.transfer(customer, 10, Scope.global_scope(), "town_ticks")

            assert signal_receiver.call_count == 1
        finally:
            transaction_recorded.disconnect(signal_receiver)

    def test_no_signal_for_rejected_operation(self, ledger, customer, signal_receiver):
        points_changed.connect(signal_receiver)
        try:
            with pytest.raises(InsufficientBalance):
                ledger.redeem(customer, customer.user_id, 10)

            assert not signal_receiver.was_called
        finally:
            points_changed.disconnect(signal_receiver)

    def test_milestone_bonus_signals(self, ledger, customer, funded_balance, signal_receiver):
        funded_balance(customer.user_id, 100)
        milestone_reached.connect(signal_receiver)
        points_changed.connect(signal_receiver)
        try:
            ledger.check_milestones(customer)

            # points_changed for the bonus, then milestone_reached
            assert signal_receiver.call_count == 2
            assert signal_receiver.last_kwargs["threshold"] == Decimal("100")
        finally:
            milestone_reached.disconnect(signal_receiver)
            points_changed.disconnect(signal_receiver)
