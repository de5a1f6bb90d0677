"""
Configuration settings for dj_loyalty.

Settings can be overridden in your Django settings.py using the DJ_LOYALTY dictionary::

    DJ_LOYALTY = {
        "MILESTONE_THRESHOLDS": {100: 10, 1000: 150},
        "TIER_BONUS_POINTS": 25,
        "GIFT_POOLS": ["town_ticks"],
    }

These values are the platform defaults. Per-user and per-business overrides live
in ``LoyaltyProfile`` rows and are merged by ``dj_loyalty.configuration``.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

TIER_NAMES = ("bronze", "silver", "gold", "platinum")

POOL_NAMES = ("global", "town_ticks", "business", "individual_business")

# Total digits and decimal places stored for every points and cashback amount.
# The shipped migration uses these, so MATH_SCALE may not exceed the stored places.
AMOUNT_MAX_DIGITS = 20
AMOUNT_DECIMAL_PLACES = 2


@dataclass
class LoyaltySettings:
    """Settings container for dj_loyalty configuration."""

    # Number of decimal places for points and cashback amounts
    MATH_SCALE: int = 2

    # (tier, minimum cumulative points issued, earning multiplier), lowest tier first
    TIERS: tuple = (
        ("bronze", 0, "1.0"),
        ("silver", 1000, "1.2"),
        ("gold", 5000, "1.5"),
        ("platinum", 10000, "2.0"),
    )

    # (threshold, bonus points) pairs awarded once per scope
    MILESTONE_THRESHOLDS: tuple = (
        (100, 10),
        (500, 50),
        (1000, 100),
        (5000, 500),
        (10000, 1000),
    )

    MILESTONE_BONUS_MULTIPLIER: Any = "1"
    TIER_BONUS_POINTS: Any = "0"

    ALLOW_ISSUE: bool = True
    ALLOW_CASHBACK: bool = True
    ALLOW_IMPORT: bool = True
    ALLOW_EXPORT: bool = True

    # Pools where points may be gifted between users
    GIFT_POOLS: tuple = ("global", "town_ticks")

    # Attempts for an operation hitting a database lock conflict
    MAX_CONFLICT_RETRIES: int = 3

    # Seconds a signed redemption code stays valid
    REDEMPTION_CODE_MAX_AGE: int = 900

    # Swappable service classes - use dotted path strings
    LEDGER_SERVICE_CLASS: str = "dj_loyalty.services.operations.LedgerOperations"
    REPORTING_SERVICE_CLASS: str = "dj_loyalty.services.reporting.ReportingService"

    def __init__(self, user_settings=None):
        """Initialize settings from Django settings if available."""
        if user_settings is None:
            user_settings = getattr(django_settings, "DJ_LOYALTY", {})

        for key in self.__class__.__dataclass_fields__:
            if key in user_settings:
                setattr(self, key, user_settings[key])
            else:
                setattr(self, key, getattr(self.__class__, key))

        self._validate_settings()

    def _validate_settings(self):
        """
        Validate and normalize settings, raising ImproperlyConfigured for invalid values.
        """
        if (
            not isinstance(self.MATH_SCALE, int)
            or isinstance(self.MATH_SCALE, bool)
            or not 0 <= self.MATH_SCALE <= AMOUNT_DECIMAL_PLACES
        ):
            raise ImproperlyConfigured(
                "DJ_LOYALTY['MATH_SCALE'] must be an integer between 0 and "
                f"{AMOUNT_DECIMAL_PLACES}. "
                f"Got: {self.MATH_SCALE}"
            )

        self.TIERS = _normalize_tiers(self.TIERS)
        self.MILESTONE_THRESHOLDS = normalize_thresholds(
            self.MILESTONE_THRESHOLDS, "MILESTONE_THRESHOLDS"
        )
        self.MILESTONE_BONUS_MULTIPLIER = _to_decimal(
            self.MILESTONE_BONUS_MULTIPLIER, "MILESTONE_BONUS_MULTIPLIER"
        )
        self.TIER_BONUS_POINTS = _to_decimal(self.TIER_BONUS_POINTS, "TIER_BONUS_POINTS")

        pools = tuple(self.GIFT_POOLS)
        unknown = [pool for pool in pools if pool not in POOL_NAMES]
        if unknown:
            raise ImproperlyConfigured(
                f"DJ_LOYALTY['GIFT_POOLS'] contains unknown pools: {unknown}"
            )
        self.GIFT_POOLS = pools

        for name in ("MAX_CONFLICT_RETRIES", "REDEMPTION_CODE_MAX_AGE"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ImproperlyConfigured(
                    f"DJ_LOYALTY['{name}'] must be a positive integer. Got: {value}"
                )

        for name in ("LEDGER_SERVICE_CLASS", "REPORTING_SERVICE_CLASS"):
            value = getattr(self, name)
            if not isinstance(value, str) or "." not in value:
                raise ImproperlyConfigured(
                    f"DJ_LOYALTY['{name}'] must be a valid dotted path string. "
                    f"Got: {value}"
                )

    def __getattr__(self, name: str) -> Any:
        """Fallback for attribute access."""
        raise AttributeError(f"'{type(self).__name__}' has no setting '{name}'")


def _to_decimal(value, name):
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ImproperlyConfigured(
            f"DJ_LOYALTY['{name}'] must be a number. Got: {value}"
        ) from None
    if not result.is_finite():
        raise ImproperlyConfigured(f"DJ_LOYALTY['{name}'] must be finite. Got: {value}")
    if result < 0:
        raise ImproperlyConfigured(f"DJ_LOYALTY['{name}'] must not be negative. Got: {value}")
    return result


def _normalize_tiers(tiers):
    """Accepts a sequence of triples or a mapping of tier -> {min_points, multiplier}."""
    if isinstance(tiers, dict):
        rows = [
            (name, entry.get("min_points"), entry.get("multiplier"))
            for name, entry in tiers.items()
        ]
    else:
        rows = [tuple(row) for row in tiers]

    by_name = {}
    for row in rows:
        if len(row) != 3 or row[0] not in TIER_NAMES:
            raise ImproperlyConfigured(f"DJ_LOYALTY['TIERS'] has an invalid entry: {row}")
        by_name[row[0]] = (
            _to_decimal(row[1], "TIERS"),
            _to_decimal(row[2], "TIERS"),
        )

    missing = [name for name in TIER_NAMES if name not in by_name]
    if missing:
        raise ImproperlyConfigured(f"DJ_LOYALTY['TIERS'] is missing tiers: {missing}")

    normalized = tuple((name, *by_name[name]) for name in TIER_NAMES)
    minimums = [row[1] for row in normalized]
    if any(later <= earlier for earlier, later in zip(minimums, minimums[1:])):
        raise ImproperlyConfigured(
            "DJ_LOYALTY['TIERS'] minimum points must increase from bronze to platinum."
        )
    return normalized


def normalize_thresholds(thresholds, name="MILESTONE_THRESHOLDS"):
    """
    Turns a mapping or pair sequence into sorted ``(Decimal threshold, Decimal bonus)`` pairs.
    JSON-stored schedules arrive with string keys, so keys are parsed as numbers.
    """
    items = thresholds.items() if isinstance(thresholds, dict) else thresholds
    try:
        items = [tuple(item) for item in items]
    except TypeError:
        raise ImproperlyConfigured(
            f"DJ_LOYALTY['{name}'] must map thresholds to bonus points. Got: {thresholds}"
        ) from None
    pairs = {}
    for item in items:
        if len(item) != 2:
            raise ImproperlyConfigured(f"DJ_LOYALTY['{name}'] has an invalid entry: {item}")
        threshold, bonus = item
        threshold = _to_decimal(threshold, name)
        if threshold <= 0:
            raise ImproperlyConfigured(
                f"DJ_LOYALTY['{name}'] thresholds must be positive. Got: {threshold}"
            )
        pairs[threshold] = _to_decimal(bonus, name)
    return tuple(sorted(pairs.items()))


def normalize_multipliers(multipliers, name="TIER_MULTIPLIERS"):
    """Validates a tier -> earning multiplier override mapping."""
    if not isinstance(multipliers, dict):
        raise ImproperlyConfigured(
            f"DJ_LOYALTY['{name}'] must map tier names to multipliers. Got: {multipliers}"
        )
    unknown = [tier for tier in multipliers if tier not in TIER_NAMES]
    if unknown:
        raise ImproperlyConfigured(f"DJ_LOYALTY['{name}'] has unknown tiers: {unknown}")
    return {tier: _to_decimal(value, name) for tier, value in multipliers.items()}


# Singleton instance for import convenience
loyalty_settings = LoyaltySettings()
