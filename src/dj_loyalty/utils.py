from decimal import ROUND_DOWN, Decimal, InvalidOperation

from django.utils.module_loading import import_string

from .conf import AMOUNT_DECIMAL_PLACES, AMOUNT_MAX_DIGITS, loyalty_settings
from .exceptions import AmountInvalid


def get_ledger_service():
    """
    Returns the configured ledger operations class.
    Override via settings: DJ_LOYALTY['LEDGER_SERVICE_CLASS']
    Example:
        LedgerOperations = get_ledger_service()
        LedgerOperations().issue(actor, "42", 100)
    """
    return import_string(loyalty_settings.LEDGER_SERVICE_CLASS)


def get_reporting_service():
    """
    Returns the configured reporting class.
    Override via settings: DJ_LOYALTY['REPORTING_SERVICE_CLASS']
    """
    return import_string(loyalty_settings.REPORTING_SERVICE_CLASS)


def verify_amount(amount, allow_zero=False):
    """
    Ensures amount is a valid positive decimal within MATH_SCALE places.
    """
    if isinstance(amount, bool):
        raise AmountInvalid("Amount must be a number.")
    try:
        # Convert to string first to avoid float precision issues
        value = Decimal(str(amount))
    except (ValueError, InvalidOperation):
        raise AmountInvalid("Amount must be a number.") from None

    if not value.is_finite():
        raise AmountInvalid("Amount must be finite.")
    if value < 0 or (value == 0 and not allow_zero):
        raise AmountInvalid("Amount must be positive.")

    exponent = value.normalize().as_tuple().exponent
    if exponent < -loyalty_settings.MATH_SCALE:
        raise AmountInvalid(
            f"Amount has more than {loyalty_settings.MATH_SCALE} decimal places."
        )
    if value and value.adjusted() >= AMOUNT_MAX_DIGITS - AMOUNT_DECIMAL_PLACES:
        raise AmountInvalid("Amount is too large.")
    return value


def quantize_points(value):
    """Rounds down to MATH_SCALE places so multipliers never over-award."""
    exponent = Decimal(1).scaleb(-loyalty_settings.MATH_SCALE)
    return Decimal(value).quantize(exponent, rounding=ROUND_DOWN)
