# dj_loyalty/abstract_models.py
"""
Abstract base models for dj_loyalty.

These abstract models contain the fields and logic for balances, ledger
transactions and per-tenant loyalty profiles. Extend them to add fields:

    from dj_loyalty.abstract_models import AbstractBalance

    class CustomBalance(AbstractBalance):
        region = models.CharField(max_length=16)

        class Meta(AbstractBalance.Meta):
            abstract = False
"""
from decimal import Decimal

from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from .conf import (
    AMOUNT_DECIMAL_PLACES,
    AMOUNT_MAX_DIGITS,
    normalize_multipliers,
    normalize_thresholds,
)
from .exceptions import LedgerImmutable
from .managers import BalanceManager, LoyaltyProfileManager, TransactionManager
from .scopes import PoolType, Scope
from .tiers import Tier


def _amount_field(**kwargs):
    kwargs.setdefault("default", Decimal("0"))
    return models.DecimalField(
        max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES, **kwargs
    )


class AbstractBalance(models.Model):
    """
    Materialized aggregate of the ledger for one (user, scope) pair.
    Only ``dj_loyalty.services.balances.BalanceStore`` should write these rows.
    """

    POINT_COUNTERS = (
        "points_issued",
        "points_redeemed",
        "points_transferred",
        "points_gifted",
        "points_expired",
    )
    CASHBACK_COUNTERS = ("cashback_issued", "cashback_redeemed")

    user_id = models.CharField(max_length=64, db_index=True)
    pool = models.CharField(
        max_length=32, choices=PoolType.choices, default=PoolType.GLOBAL
    )
    # Empty for scopes that are not tied to a business
    business_id = models.CharField(max_length=64, blank=True, default="")

    points_issued = _amount_field()
    points_redeemed = _amount_field()
    points_transferred = _amount_field()
    points_gifted = _amount_field()
    points_expired = _amount_field()
    points_available = _amount_field()

    cashback_issued = _amount_field()
    cashback_redeemed = _amount_field()
    cashback_available = _amount_field()

    current_tier = models.CharField(
        max_length=16, choices=Tier.choices, default=Tier.BRONZE
    )
    tier_multiplier = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal("1.00")
    )

    last_updated = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BalanceManager()

    class Meta:
        abstract = True
        unique_together = (("user_id", "pool", "business_id"),)
        verbose_name = _("Balance")
        verbose_name_plural = _("Balances")

    def __str__(self):
        return f"{self.user_id}@{self.scope.label} ({self.points_available})"

    @property
    def scope(self):
        return Scope(self.pool, self.business_id)

    @property
    def key(self):
        return (self.user_id, self.pool, self.business_id)

    @property
    def expected_points_available(self):
        return (
            self.points_issued
            - self.points_redeemed
            - self.points_transferred
            - self.points_gifted
            - self.points_expired
        )

    @property
    def is_consistent(self):
        """Available columns equal the net of their counters and are never negative."""
        return (
            self.points_available == self.expected_points_available
            and self.cashback_available == self.cashback_issued - self.cashback_redeemed
            and self.points_available >= 0
            and self.cashback_available >= 0
        )

    def snapshot(self):
        return {
            "user_id": self.user_id,
            "scope": self.scope.label,
            "points_issued": self.points_issued,
            "points_redeemed": self.points_redeemed,
            "points_transferred": self.points_transferred,
            "points_gifted": self.points_gifted,
            "points_expired": self.points_expired,
            "points_available": self.points_available,
            "cashback_issued": self.cashback_issued,
            "cashback_redeemed": self.cashback_redeemed,
            "cashback_available": self.cashback_available,
            "current_tier": self.current_tier,
            "tier_multiplier": self.tier_multiplier,
            "last_updated": self.last_updated,
        }


class AbstractTransaction(models.Model):
    """
    Append-only ledger row. Created once per balance-affecting operation and
    never updated or deleted; a correction is a new transaction.
    """

    TYPE_ISSUE = "issue"
    TYPE_REDEEM = "redeem"
    TYPE_GIFT = "gift"
    TYPE_TRANSFER = "transfer"
    TYPE_IMPORT = "import"
    TYPE_EXPORT = "export"
    TYPE_EXPIRE = "expire"
    TYPE_CASHBACK_ISSUE = "cashback_issue"
    TYPE_CASHBACK_REDEEM = "cashback_redeem"
    TYPE_MILESTONE_BONUS = "milestone_bonus"
    TYPE_TIER_BONUS = "tier_bonus"

    TYPE_CHOICES = (
        (TYPE_ISSUE, _("Issue")),
        (TYPE_REDEEM, _("Redeem")),
        (TYPE_GIFT, _("Gift")),
        (TYPE_TRANSFER, _("Transfer")),
        (TYPE_IMPORT, _("Import")),
        (TYPE_EXPORT, _("Export")),
        (TYPE_EXPIRE, _("Expire")),
        (TYPE_CASHBACK_ISSUE, _("Cashback issue")),
        (TYPE_CASHBACK_REDEEM, _("Cashback redeem")),
        (TYPE_MILESTONE_BONUS, _("Milestone bonus")),
        (TYPE_TIER_BONUS, _("Tier bonus")),
    )

    POINT_REGULAR = "regular"
    POINT_BONUS = "bonus"
    POINT_SPECIAL = "special"
    POINT_WELCOME = "welcome"
    POINT_REFERRAL = "referral"
    POINT_MILESTONE = "milestone"
    POINT_TIER = "tier"

    POINT_TYPE_CHOICES = (
        (POINT_REGULAR, _("Regular")),
        (POINT_BONUS, _("Bonus")),
        (POINT_SPECIAL, _("Special")),
        (POINT_WELCOME, _("Welcome")),
        (POINT_REFERRAL, _("Referral")),
        (POINT_MILESTONE, _("Milestone")),
        (POINT_TIER, _("Tier")),
    )

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = (
        (STATUS_PENDING, _("Pending")),
        (STATUS_COMPLETED, _("Completed")),
        (STATUS_FAILED, _("Failed")),
        (STATUS_CANCELLED, _("Cancelled")),
    )

    transaction_id = models.CharField(max_length=64, unique=True, editable=False)

    user_id = models.CharField(max_length=64, db_index=True)
    pool = models.CharField(
        max_length=32, choices=PoolType.choices, default=PoolType.GLOBAL
    )
    business_id = models.CharField(max_length=64, blank=True, default="")
    business_user_id = models.CharField(max_length=64, blank=True, default="")
    recipient_user_id = models.CharField(max_length=64, blank=True, default="")
    recipient_email = models.EmailField(blank=True, default="")

    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    point_type = models.CharField(
        max_length=16, choices=POINT_TYPE_CHOICES, default=POINT_REGULAR
    )
    points_amount = _amount_field()
    cash_amount = _amount_field()
    cashback_amount = _amount_field()
    tier_multiplier = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal("1.00")
    )
    bonus_points = _amount_field()

    source_pool = models.CharField(max_length=128, blank=True, default="")
    destination_pool = models.CharField(max_length=128, blank=True, default="")

    milestone_reached = models.CharField(max_length=32, blank=True, default="")
    tier_upgraded = models.CharField(max_length=16, blank=True, default="")
    # Idempotency marker, unique per (user, scope, type) when set
    marker = models.CharField(max_length=64, blank=True, default="")

    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED
    )

    qr_code_data = models.TextField(blank=True, default="")
    description = models.TextField(blank=True, default="")
    metadata = models.JSONField(blank=True, default=dict)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = TransactionManager()

    class Meta:
        abstract = True
        ordering = ("-created_at", "-id")
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")

    def __str__(self):
        label = f"{self.transaction_type} {self.points_amount}"
        if self.status != self.STATUS_COMPLETED:
            return f"{label} [{self.status.upper()}]"
        return label

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutable(
                f"Transaction {self.transaction_id} is already recorded."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutable("Ledger transactions cannot be deleted.")

    @property
    def scope(self):
        return Scope(self.pool, self.business_id)

    @property
    def is_completed(self):
        return self.status == self.STATUS_COMPLETED

    def snapshot(self):
        return {
            "transaction_id": self.transaction_id,
            "user_id": self.user_id,
            "scope": self.scope.label,
            "transaction_type": self.transaction_type,
            "point_type": self.point_type,
            "points_amount": self.points_amount,
            "cash_amount": self.cash_amount,
            "cashback_amount": self.cashback_amount,
            "tier_multiplier": self.tier_multiplier,
            "bonus_points": self.bonus_points,
            "recipient_user_id": self.recipient_user_id or None,
            "source_pool": self.source_pool or None,
            "destination_pool": self.destination_pool or None,
            "milestone_reached": self.milestone_reached or None,
            "tier_upgraded": self.tier_upgraded or None,
            "status": self.status,
            "description": self.description,
            "created_at": self.created_at,
        }


class AbstractLoyaltyProfile(models.Model):
    """
    Per-user or per-business overrides of the platform loyalty settings.
    Null fields inherit the next level (business, then DJ_LOYALTY settings).
    """

    OWNER_USER = "user"
    OWNER_BUSINESS = "business"

    OWNER_CHOICES = (
        (OWNER_USER, _("User")),
        (OWNER_BUSINESS, _("Business")),
    )

    owner_type = models.CharField(max_length=16, choices=OWNER_CHOICES)
    owner_id = models.CharField(max_length=64)

    allow_issue = models.BooleanField(null=True, blank=True)
    allow_cashback = models.BooleanField(null=True, blank=True)
    allow_import = models.BooleanField(null=True, blank=True)
    allow_export = models.BooleanField(null=True, blank=True)

    milestone_bonus_multiplier = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    tier_bonus_points = models.DecimalField(
        max_digits=20, decimal_places=2, null=True, blank=True
    )
    # {"100": 10, "500": 50}
    milestone_thresholds = models.JSONField(null=True, blank=True)
    # {"silver": 1.25}
    tier_multipliers = models.JSONField(null=True, blank=True)

    min_redeem_points = models.DecimalField(
        max_digits=20, decimal_places=2, null=True, blank=True
    )
    max_redeem_points = models.DecimalField(
        max_digits=20, decimal_places=2, null=True, blank=True
    )
    min_issue_points = models.DecimalField(
        max_digits=20, decimal_places=2, null=True, blank=True
    )
    max_issue_points = models.DecimalField(
        max_digits=20, decimal_places=2, null=True, blank=True
    )

    is_active = models.BooleanField(default=True)
    preferences = models.JSONField(blank=True, default=dict)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LoyaltyProfileManager()

    class Meta:
        abstract = True
        unique_together = (("owner_type", "owner_id"),)
        verbose_name = _("Loyalty profile")
        verbose_name_plural = _("Loyalty profiles")

    def __str__(self):
        return f"{self.owner_type}:{self.owner_id}"

    def clean(self):
        errors = {}
        if self.milestone_thresholds:
            try:
                normalize_thresholds(self.milestone_thresholds, "milestone_thresholds")
            except ImproperlyConfigured as exc:
                errors["milestone_thresholds"] = str(exc)
        if self.tier_multipliers:
            try:
                normalize_multipliers(self.tier_multipliers, "tier_multipliers")
            except ImproperlyConfigured as exc:
                errors["tier_multipliers"] = str(exc)
        for low, high in (
            ("min_redeem_points", "max_redeem_points"),
            ("min_issue_points", "max_issue_points"),
        ):
            minimum, maximum = getattr(self, low), getattr(self, high)
            if minimum is not None and maximum is not None and minimum > maximum:
                errors[high] = f"{high} must not be below {low}."
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)
