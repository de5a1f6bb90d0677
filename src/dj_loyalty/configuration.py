"""
Per-call ledger configuration.

Platform defaults come from ``DJ_LOYALTY``; a business profile overrides them
and a user profile overrides the business. The result is an immutable
``LedgerConfig`` handed to the policies, so nothing reads process-wide tables
directly.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ImproperlyConfigured

from .conf import loyalty_settings
from .exceptions import ConfigurationInvalid
from .milestones import MilestoneSchedule
from .tiers import TierPolicy


@dataclass(frozen=True)
class LedgerConfig:
    tier_policy: TierPolicy = field(default_factory=TierPolicy)
    milestone_schedule: MilestoneSchedule = field(default_factory=MilestoneSchedule)
    milestone_bonus_multiplier: Decimal = field(
        default_factory=lambda: loyalty_settings.MILESTONE_BONUS_MULTIPLIER
    )
    tier_bonus_points: Decimal = field(default_factory=lambda: loyalty_settings.TIER_BONUS_POINTS)
    allow_issue: bool = field(default_factory=lambda: loyalty_settings.ALLOW_ISSUE)
    allow_cashback: bool = field(default_factory=lambda: loyalty_settings.ALLOW_CASHBACK)
    allow_import: bool = field(default_factory=lambda: loyalty_settings.ALLOW_IMPORT)
    allow_export: bool = field(default_factory=lambda: loyalty_settings.ALLOW_EXPORT)
    gift_pools: tuple = field(default_factory=lambda: loyalty_settings.GIFT_POOLS)
    min_redeem_points: Optional[Decimal] = None
    max_redeem_points: Optional[Decimal] = None
    min_issue_points: Optional[Decimal] = None
    max_issue_points: Optional[Decimal] = None

    def allows_gift(self, scope):
        return scope.pool in self.gift_pools


def apply_profile(config, profile):
    """Returns ``config`` with the non-null fields of ``profile`` layered on top."""
    if profile is None:
        return config

    changes = {}
    for name in (
        "allow_issue",
        "allow_cashback",
        "allow_import",
        "allow_export",
        "milestone_bonus_multiplier",
        "tier_bonus_points",
        "min_redeem_points",
        "max_redeem_points",
        "min_issue_points",
        "max_issue_points",
    ):
        value = getattr(profile, name)
        if value is not None:
            changes[name] = value
    try:
        if profile.milestone_thresholds:
            changes["milestone_schedule"] = MilestoneSchedule(profile.milestone_thresholds)
        if profile.tier_multipliers:
            changes["tier_policy"] = TierPolicy(multipliers=profile.tier_multipliers)
    except ImproperlyConfigured as exc:
        raise ConfigurationInvalid(
            f"Loyalty profile {profile} has invalid overrides.",
            profile=str(profile),
            reason=str(exc),
        ) from exc
    return replace(config, **changes)


def resolve_config(user_id, scope, actor=None):
    """
    Builds the configuration for an operation on ``user_id`` in ``scope``.
    The business comes from the scope, or from the actor when the scope has none.
    """
    from .models import LoyaltyProfile

    business_id = scope.business_id or (actor.business_id if actor else None)
    config = LedgerConfig()
    config = apply_profile(
        config,
        LoyaltyProfile.objects.for_owner(LoyaltyProfile.OWNER_BUSINESS, business_id),
    )
    config = apply_profile(
        config,
        LoyaltyProfile.objects.for_owner(LoyaltyProfile.OWNER_USER, user_id),
    )
    return config
