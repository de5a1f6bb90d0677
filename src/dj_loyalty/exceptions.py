"""
Exceptions raised by the loyalty ledger.

Every exception carries a stable ``code`` so the operation boundary
(``dj_loyalty.services.gateway``) can turn it into an error descriptor.
"""


class LoyaltyException(Exception):
    """Base class for all ledger errors."""

    code = "loyalty_error"

    def __init__(self, message="", **details):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequest(LoyaltyException):
    """Malformed or missing operation parameters, rejected before any store access."""

    code = "validation_error"


class AmountInvalid(InvalidRequest):
    pass


class BalanceNotFound(LoyaltyException):
    code = "not_found"


class TransactionNotFound(LoyaltyException):
    code = "not_found"


class InsufficientBalance(LoyaltyException):
    """The operation would drive an available balance negative."""

    code = "insufficient_balance"


class OperationForbidden(LoyaltyException):
    """The actor lacks the capability or scope flag the operation needs."""

    code = "forbidden"


class AlreadyMaxTier(LoyaltyException):
    code = "already_max_tier"


class InsufficientPointsForTier(LoyaltyException):
    code = "insufficient_points_for_tier"

    def __init__(self, message="", *, shortfall, next_tier, required):
        super().__init__(
            message,
            shortfall=shortfall,
            next_tier=next_tier,
            required=required,
        )
        self.shortfall = shortfall
        self.next_tier = next_tier
        self.required = required


class ConflictRetryable(LoyaltyException):
    """A concurrent mutation kept conflicting; the caller may retry."""

    code = "conflict_retryable"


class LedgerImmutable(LoyaltyException):
    """Stored transactions are never updated or deleted."""

    code = "ledger_immutable"


class ConfigurationInvalid(LoyaltyException):
    """A stored loyalty profile holds overrides that cannot be applied."""

    code = "configuration_error"
