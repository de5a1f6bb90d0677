"""
Unit tests for ledger exceptions.
"""

from decimal import Decimal

import pytest

from dj_loyalty.exceptions import (
    AlreadyMaxTier,
    AmountInvalid,
    BalanceNotFound,
    ConfigurationInvalid,
    ConflictRetryable,
    InsufficientBalance,
    InsufficientPointsForTier,
    InvalidRequest,
    LedgerImmutable,
    LoyaltyException,
    OperationForbidden,
    TransactionNotFound,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_loyalty_exception_is_base(self):
        """LoyaltyException should be the base class."""
        for exc in (
            InvalidRequest,
            AmountInvalid,
            BalanceNotFound,
            TransactionNotFound,
            InsufficientBalance,
            OperationForbidden,
            AlreadyMaxTier,
            InsufficientPointsForTier,
            ConflictRetryable,
            LedgerImmutable,
            ConfigurationInvalid,
        ):
            assert issubclass(exc, LoyaltyException)

    def test_amount_invalid_is_a_validation_error(self):
        assert issubclass(AmountInvalid, InvalidRequest)

    def test_exceptions_are_catchable_as_loyalty_exception(self):
        with pytest.raises(LoyaltyException):
            raise InsufficientBalance("no points")


class TestErrorCodes:
    """Every error carries a stable code for the operation boundary."""

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (InvalidRequest, "validation_error"),
            (AmountInvalid, "validation_error"),
            (BalanceNotFound, "not_found"),
            (TransactionNotFound, "not_found"),
            (InsufficientBalance, "insufficient_balance"),
            (OperationForbidden, "forbidden"),
            (AlreadyMaxTier, "already_max_tier"),
            (ConflictRetryable, "conflict_retryable"),
            (LedgerImmutable, "ledger_immutable"),
            (ConfigurationInvalid, "configuration_error"),
        ],
    )
    def test_code(self, exc, code):
        assert exc.code == code

    def test_message_and_details_are_kept(self):
        """Keyword arguments become details."""
        exc = InsufficientBalance("Insufficient points.", available=Decimal("5"))
        assert exc.message == "Insufficient points."
        assert str(exc) == "Insufficient points."
        assert exc.details == {"available": Decimal("5")}

    def test_tier_shortfall_is_exposed(self):
        """InsufficientPointsForTier reports what is missing."""
        exc = InsufficientPointsForTier(
            "Need 4000 more points",
            shortfall=Decimal("4000"),
            next_tier="gold",
            required=Decimal("5000"),
        )
        assert exc.code == "insufficient_points_for_tier"
        assert exc.shortfall == Decimal("4000")
        assert exc.next_tier == "gold"
        assert exc.details["required"] == Decimal("5000")
