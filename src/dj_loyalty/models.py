from django.db import models
from django.db.models import Q

from .abstract_models import AbstractBalance, AbstractLoyaltyProfile, AbstractTransaction


class Balance(AbstractBalance):
    """
    Concrete Balance model.
    For custom balance models, extend AbstractBalance instead.
    """

    class Meta(AbstractBalance.Meta):
        indexes = [
            models.Index(fields=["business_id", "pool"], name="balance_business_pool_idx"),
        ]


class Transaction(AbstractTransaction):
    """
    Concrete Transaction model.
    For custom transaction models, extend AbstractTransaction instead.
    """

    class Meta(AbstractTransaction.Meta):
        indexes = [
            models.Index(
                fields=["user_id", "transaction_type", "created_at"],
                name="txn_user_type_created_idx",
            ),
            models.Index(
                fields=["business_id", "created_at"],
                name="txn_business_created_idx",
            ),
        ]
        constraints = [
            # Backstop for the milestone and tier-bonus check-then-append
            models.UniqueConstraint(
                fields=["user_id", "pool", "business_id", "transaction_type", "marker"],
                condition=~Q(marker=""),
                name="txn_unique_award_marker",
            ),
        ]


class LoyaltyProfile(AbstractLoyaltyProfile):
    """
    Concrete LoyaltyProfile model.
    For custom profile models, extend AbstractLoyaltyProfile instead.
    """

    class Meta(AbstractLoyaltyProfile.Meta):
        pass
