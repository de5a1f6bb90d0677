"""
Django app configuration for dj_loyalty.
"""

from django.apps import AppConfig
from django.db.models.signals import post_save


def _emit_balance_created(sender, instance, created, **kwargs):
    """Bridge Django post_save to dj_loyalty.balance_created signal."""
    if not created:
        return
    from .signals import balance_created

    balance_created.send(sender=sender, balance=instance)


class LoyaltyLedgerConfig(AppConfig):
    """Configuration for the loyalty ledger application."""

    name = "dj_loyalty"
    verbose_name = "Loyalty Ledger"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from . import signals  # noqa: F401
        from .models import Balance

        post_save.connect(
            _emit_balance_created,
            sender=Balance,
            dispatch_uid="dj_loyalty.balance_created.post_save",
        )
