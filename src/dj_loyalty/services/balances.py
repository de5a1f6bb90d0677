"""
Balance store: one locked, materialized balance row per (user, scope).
"""
import logging
from dataclasses import dataclass, fields
from decimal import Decimal

from django.db import OperationalError, transaction

from ..conf import loyalty_settings
from ..exceptions import BalanceNotFound, ConflictRetryable, InsufficientBalance, InvalidRequest
from ..models import Balance
from ..tiers import TierPolicy

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class BalanceDelta:
    """
    Signed adjustments to the counters of a balance. The available columns are
    derived from the counters, never set directly.
    """

    points_issued: Decimal = ZERO
    points_redeemed: Decimal = ZERO
    points_transferred: Decimal = ZERO
    points_gifted: Decimal = ZERO
    points_expired: Decimal = ZERO
    cashback_issued: Decimal = ZERO
    cashback_redeemed: Decimal = ZERO

    @property
    def points_available(self):
        return (
            self.points_issued
            - self.points_redeemed
            - self.points_transferred
            - self.points_gifted
            - self.points_expired
        )

    @property
    def cashback_available(self):
        return self.cashback_issued - self.cashback_redeemed

    def __add__(self, other):
        return BalanceDelta(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def changes(self):
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}


def run_with_retry(func, attempts=None):
    """
    Runs ``func`` (which opens its own atomic block) again when the database
    reports a lock conflict such as a deadlock or serialization failure.
    Inside an outer atomic block the conflict cannot be retried and is re-raised.
    """
    attempts = attempts or loyalty_settings.MAX_CONFLICT_RETRIES
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except OperationalError as exc:
            if transaction.get_connection().in_atomic_block:
                raise
            last_error = exc
            logger.warning("Ledger conflict on attempt %s/%s: %s", attempt, attempts, exc)
    raise ConflictRetryable(
        f"Operation kept conflicting after {attempts} attempts."
    ) from last_error


class BalanceStore:
    model = Balance

    def get(self, user_id, scope):
        return self.model.objects.get_balance(user_id, scope)

    def require(self, user_id, scope):
        balance = self.get(user_id, scope)
        if balance is None:
            raise BalanceNotFound(
                f"No balance for user {user_id} in {scope.label}.",
                user_id=str(user_id),
                scope=scope.label,
            )
        return balance

    def _defaults(self, tier_policy=None):
        lowest = (tier_policy or TierPolicy()).lowest
        return {"current_tier": lowest.name, "tier_multiplier": lowest.multiplier}

    def get_or_create(self, user_id, scope, tier_policy=None):
        balance, _created = self.model.objects.get_or_create(
            user_id=str(user_id),
            **scope.as_filter(),
            defaults=self._defaults(tier_policy),
        )
        return balance

    def lock(self, user_id, scope, create=True, tier_policy=None):
        """
        Selects the balance row FOR UPDATE. Must run inside ``transaction.atomic``.
        A missing row is created lazily unless ``create`` is False.
        """
        queryset = self.model.objects.select_for_update().for_user(user_id).for_scope(scope)
        try:
            return queryset.get()
        except self.model.DoesNotExist:
            if not create:
                raise BalanceNotFound(
                    f"No balance for user {user_id} in {scope.label}.",
                    user_id=str(user_id),
                    scope=scope.label,
                ) from None
        # get_or_create resolves a concurrent creation to the same row
        self.get_or_create(user_id, scope, tier_policy=tier_policy)
        return queryset.get()

    def lock_many(self, keys, tier_policy=None):
        """
        Locks several balances in a stable order so two operations touching the
        same pair can never deadlock. ``keys`` are ``(user_id, scope, create)``;
        missing rows that may not be created map to None.
        """
        ordered = sorted(
            {(str(user_id), scope): create for user_id, scope, create in keys}.items(),
            key=lambda item: (item[0][0], item[0][1].pool, item[0][1].business_id),
        )
        locked = {}
        for (user_id, scope), create in ordered:
            try:
                locked[(user_id, scope)] = self.lock(
                    user_id, scope, create=create, tier_policy=tier_policy
                )
            except BalanceNotFound:
                locked[(user_id, scope)] = None
        return locked

    def apply_locked(self, balance, delta):
        """
        Applies ``delta`` to a balance already locked by the caller.
        Rejects, without touching the row, any delta that would make an
        available column negative.
        """
        for name, value in delta.changes().items():
            if getattr(balance, name) + value < 0:
                raise InvalidRequest(f"Balance counter {name} cannot go negative.")

        points_available = balance.points_available + delta.points_available
        if points_available < 0:
            raise InsufficientBalance(
                f"Insufficient points. Available: {balance.points_available}, "
                f"Required: {-delta.points_available}",
                available=balance.points_available,
                required=-delta.points_available,
            )
        cashback_available = balance.cashback_available + delta.cashback_available
        if cashback_available < 0:
            raise InsufficientBalance(
                f"Insufficient cashback. Available: {balance.cashback_available}, "
                f"Required: {-delta.cashback_available}",
                available=balance.cashback_available,
                required=-delta.cashback_available,
            )

        changed = list(delta.changes())
        for name in changed:
            setattr(balance, name, getattr(balance, name) + getattr(delta, name))
        balance.points_available = points_available
        balance.cashback_available = cashback_available
        balance.save(
            update_fields=changed + ["points_available", "cashback_available", "last_updated"]
        )
        return balance

    def apply(self, user_id, scope, delta, create=True):
        """Atomic locked read-modify-write of one balance."""
        with transaction.atomic():
            balance = self.lock(user_id, scope, create=create)
            return self.apply_locked(balance, delta)

    def set_tier(self, balance, tier_level):
        balance.current_tier = tier_level.name
        balance.tier_multiplier = tier_level.multiplier
        balance.save(update_fields=["current_tier", "tier_multiplier", "last_updated"])
        return balance
