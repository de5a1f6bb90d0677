"""
Ledger operations engine.

Every operation validates its parameters before touching the store, resolves
the per-tenant ``LedgerConfig``, then locks the affected balances, checks its
preconditions, applies the balance deltas and appends exactly one transaction
inside a single ``transaction.atomic()`` block. A failed precondition raises
inside that block so nothing is persisted.
"""
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import IntegrityError, transaction

from ..configuration import resolve_config
from ..exceptions import (
    AlreadyMaxTier,
    InsufficientBalance,
    InsufficientPointsForTier,
    InvalidRequest,
    LoyaltyException,
    OperationForbidden,
)
from ..models import Balance, Transaction
from ..redemption import decode_redemption_code, redemption_marker
from ..scopes import Actor, Role, Scope
from ..signals import milestone_reached, points_changed, tier_upgraded
from ..utils import quantize_points, verify_amount
from .balances import BalanceDelta, BalanceStore, run_with_retry
from .ledger import TransactionLedger

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("dj_loyalty.audit")

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass
class OperationOutcome:
    operation: str
    transaction: Transaction
    balances: Dict[str, Balance] = field(default_factory=dict)

    @property
    def transaction_ids(self):
        return [self.transaction.transaction_id]

    def snapshot(self):
        return {
            "operation": self.operation,
            "transaction": self.transaction.snapshot(),
            "balances": {role: b.snapshot() for role, b in self.balances.items()},
        }


@dataclass
class TierUpgrade:
    previous_tier: str
    new_tier: str
    multiplier: Decimal
    bonus_awarded: Decimal
    balance: Balance
    transaction: Optional[Transaction] = None

    @property
    def transaction_ids(self):
        return [self.transaction.transaction_id] if self.transaction else []

    def snapshot(self):
        return {
            "previous_tier": self.previous_tier,
            "new_tier": self.new_tier,
            "multiplier": self.multiplier,
            "bonus_awarded": self.bonus_awarded,
            "balance": self.balance.snapshot(),
            "transaction": self.transaction.snapshot() if self.transaction else None,
        }


@dataclass
class MilestoneAward:
    threshold: Decimal
    bonus: Decimal
    transaction: Transaction


@dataclass
class MilestoneCheck:
    reached: List[MilestoneAward]
    total_bonus: Decimal
    points_issued: Decimal
    balance: Balance

    @property
    def transaction_ids(self):
        return [award.transaction.transaction_id for award in self.reached]

    def snapshot(self):
        return {
            "milestones_reached": [
                {
                    "threshold": award.threshold,
                    "bonus": award.bonus,
                    "transaction_id": award.transaction.transaction_id,
                }
                for award in self.reached
            ],
            "total_bonus": self.total_bonus,
            "points_issued": self.points_issued,
        }


class LedgerOperations:
    """
    Balance-affecting operations. Swap the implementation through
    ``DJ_LOYALTY['LEDGER_SERVICE_CLASS']``.
    """

    # Roles that may move points on someone else's balance
    STAFF_ROLES = (Role.BUSINESS.value, Role.ADMIN.value)

    def __init__(self, store=None, ledger=None, config_resolver=None):
        self.store = store or BalanceStore()
        self.ledger = ledger or TransactionLedger()
        self.resolve_config = config_resolver or resolve_config

    # Validation

    @staticmethod
    def _verify_actor(actor):
        if not isinstance(actor, Actor):
            raise InvalidRequest("An authenticated actor is required.")
        return actor

    @staticmethod
    def _verify_user(user_id, name="user_id"):
        if user_id in (None, ""):
            raise InvalidRequest(f"{name} is required.")
        user_id = str(user_id)
        if len(user_id) > 64:
            raise InvalidRequest(f"{name} is too long.")
        return user_id

    @staticmethod
    def _verify_point_type(point_type):
        if point_type not in dict(Transaction.POINT_TYPE_CHOICES):
            raise InvalidRequest(f"Unknown point type: {point_type!r}")
        return point_type

    def _require_staff(self, actor, scope, operation):
        """Only businesses and admins credit or expire points."""
        if actor.role not in self.STAFF_ROLES:
            raise OperationForbidden(
                f"Role {actor.role} may not {operation} points.", role=actor.role
            )
        self._require_business_scope(actor, scope, operation)

    def _require_business_scope(self, actor, scope, operation):
        """A business actor never acts inside another business's scope."""
        if (
            actor.role == Role.BUSINESS
            and scope.business_id
            and scope.business_id != actor.business_id
        ):
            raise OperationForbidden(
                f"Business {actor.business_id} may not {operation} points in {scope.label}.",
                scope=scope.label,
            )

    def _require_self_or_staff(self, actor, user_id, scope, operation):
        if actor.user_id == user_id:
            return
        if actor.role not in self.STAFF_ROLES:
            raise OperationForbidden(
                f"Only the balance owner may {operation} these points.", user_id=user_id
            )
        self._require_business_scope(actor, scope, operation)

    # Execution helpers

    def _execute(self, operation, actor, func, **context):
        """Runs ``func`` with conflict retry and writes one audit event."""
        try:
            result = run_with_retry(func)
        except LoyaltyException as exc:
            audit_logger.warning(
                json.dumps(
                    {
                        "event": f"{operation}_rejected",
                        "actor": actor.user_id,
                        "code": exc.code,
                        "reason": exc.message,
                        **context,
                    },
                    default=str,
                )
            )
            raise
        audit_logger.info(
            json.dumps(
                {
                    "event": f"{operation}_committed",
                    "actor": actor.user_id,
                    "transaction_ids": result.transaction_ids,
                    **context,
                },
                default=str,
            )
        )
        return result

    def _lock_for_debit(self, user_id, scope, config):
        """A missing balance has nothing available to debit."""
        balance = self.store.get(user_id, scope)
        if balance is None:
            raise InsufficientBalance(
                "Insufficient points. Available: 0",
                available=ZERO,
                user_id=user_id,
                scope=scope.label,
            )
        return self.store.lock(user_id, scope, create=False, tier_policy=config.tier_policy)

    def _changed(self, balance, txn):
        points_changed.send(sender=self.__class__, balance=balance, transaction=txn)

    def _single(self, operation, user_id, scope, transaction_type, delta, debit, config, **fields):
        with transaction.atomic():
            if debit:
                balance = self._lock_for_debit(user_id, scope, config)
            else:
                balance = self.store.lock(user_id, scope, tier_policy=config.tier_policy)
            balance = self.store.apply_locked(balance, delta)
            txn = self.ledger.append(user_id, scope, transaction_type, **fields)
            self._changed(balance, txn)
            return OperationOutcome(operation, txn, {"balance": balance})

    # Points

    def issue(
        self,
        actor,
        user_id,
        amount,
        scope=None,
        point_type=Transaction.POINT_REGULAR,
        cash_amount=0,
        apply_tier_multiplier=False,
        description="",
        metadata=None,
    ):
        """
        Credits points to ``user_id``. With ``apply_tier_multiplier`` the amount
        is scaled by the balance's tier multiplier and the extra is recorded
        as ``bonus_points``.
        """
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id)
        amount = verify_amount(amount)
        cash_amount = verify_amount(cash_amount, allow_zero=True)
        point_type = self._verify_point_type(point_type)
        scope = Scope.coerce(scope)
        self._require_staff(actor, scope, "issue")
        config = self.resolve_config(user_id, scope, actor)
        if not config.allow_issue:
            raise OperationForbidden("Point issuance is disabled.", scope=scope.label)
        self._check_bounds(amount, config.min_issue_points, config.max_issue_points, "issue")

        def run():
            with transaction.atomic():
                balance = self.store.lock(user_id, scope, tier_policy=config.tier_policy)
                multiplier = balance.tier_multiplier if apply_tier_multiplier else ONE
                awarded = quantize_points(amount * multiplier)
                balance = self.store.apply_locked(balance, BalanceDelta(points_issued=awarded))
                txn = self.ledger.append(
                    user_id,
                    scope,
                    Transaction.TYPE_ISSUE,
                    points_amount=awarded,
                    point_type=point_type,
                    cash_amount=cash_amount,
                    tier_multiplier=multiplier,
                    bonus_points=awarded - amount,
                    business_user_id=self._business_user(actor),
                    description=description,
                    metadata=metadata or {},
                )
                self._changed(balance, txn)
                return OperationOutcome("issue", txn, {"balance": balance})

        return self._execute(
            "issue", actor, run, user_id=user_id, scope=scope.label, amount=amount
        )

    def redeem(self, actor, user_id, amount, scope=None, qr_code_data="", description=""):
        return self._redeem(actor, user_id, amount, scope, qr_code_data, description)

    def redeem_code(self, actor, code, description=""):
        """
        Redeems a signed redemption code, usually scanned by a business.
        A code is spent once; scanning it again raises ``InvalidRequest``.
        """
        actor = self._verify_actor(actor)
        payload = decode_redemption_code(code)
        return self._redeem(
            actor,
            payload.user_id,
            payload.points_amount,
            payload.scope,
            code,
            description,
            marker=redemption_marker(code),
        )

    def _redeem(self, actor, user_id, amount, scope, qr_code_data, description, marker=""):
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id)
        amount = verify_amount(amount)
        scope = Scope.coerce(scope)
        self._require_self_or_staff(actor, user_id, scope, "redeem")
        config = self.resolve_config(user_id, scope, actor)
        self._check_bounds(
            amount, config.min_redeem_points, config.max_redeem_points, "redemption"
        )

        def used():
            return InvalidRequest("Redemption code already used.", user_id=user_id)

        def run():
            if marker and self.ledger.find_existing(
                user_id, Transaction.TYPE_REDEEM, marker, scope
            ):
                raise used()
            try:
                return self._single(
                    "redeem",
                    user_id,
                    scope,
                    Transaction.TYPE_REDEEM,
                    BalanceDelta(points_redeemed=amount),
                    True,
                    config,
                    points_amount=amount,
                    business_user_id=self._business_user(actor),
                    qr_code_data=qr_code_data or "",
                    marker=marker,
                    description=description,
                )
            except IntegrityError:
                # a concurrent scan of the same code won the marker
                if not marker:
                    raise
                raise used() from None

        return self._execute(
            "redeem", actor, run, user_id=user_id, scope=scope.label, amount=amount
        )

    @staticmethod
    def _check_bounds(amount, minimum, maximum, action):
        if minimum is not None and amount < minimum:
            raise InvalidRequest(
                f"Minimum {action} is {minimum} points.", minimum=minimum
            )
        if maximum is not None and amount > maximum:
            raise InvalidRequest(
                f"Maximum {action} is {maximum} points.", maximum=maximum
            )

    def gift(self, actor, recipient_user_id, amount, scope=None, recipient_email="", description=""):
        """Moves points from the actor to another user in the same scope."""
        actor = self._verify_actor(actor)
        sender = actor.user_id
        recipient = self._verify_user(recipient_user_id, "recipient_user_id")
        amount = verify_amount(amount)
        scope = Scope.coerce(scope)
        if recipient == sender:
            raise InvalidRequest("Cannot gift points to yourself.")
        config = self.resolve_config(sender, scope, actor)
        if not config.allows_gift(scope):
            raise OperationForbidden(
                f"Gifting is not allowed in {scope.label}.", scope=scope.label
            )

        def run():
            with transaction.atomic():
                locked = self.store.lock_many(
                    [(sender, scope, False), (recipient, scope, True)],
                    tier_policy=config.tier_policy,
                )
                sender_balance = locked[(sender, scope)]
                if sender_balance is None:
                    raise InsufficientBalance(
                        "Insufficient points. Available: 0", available=ZERO
                    )
                sender_balance = self.store.apply_locked(
                    sender_balance, BalanceDelta(points_gifted=amount)
                )
                recipient_balance = self.store.apply_locked(
                    locked[(recipient, scope)], BalanceDelta(points_issued=amount)
                )
                txn = self.ledger.append(
                    sender,
                    scope,
                    Transaction.TYPE_GIFT,
                    points_amount=amount,
                    recipient_user_id=recipient,
                    recipient_email=recipient_email or "",
                    description=description,
                )
                self._changed(sender_balance, txn)
                self._changed(recipient_balance, txn)
                return OperationOutcome(
                    "gift", txn, {"sender": sender_balance, "recipient": recipient_balance}
                )

        return self._execute(
            "gift",
            actor,
            run,
            user_id=sender,
            recipient=recipient,
            scope=scope.label,
            amount=amount,
        )

    def transfer(self, actor, amount, source, destination, recipient_user_id=None, description=""):
        """
        Moves points between two balances, by default the actor's own balances
        in two scopes.
        """
        actor = self._verify_actor(actor)
        user_id = actor.user_id
        amount = verify_amount(amount)
        if source is None or destination is None:
            raise InvalidRequest("Both source and destination scopes are required.")
        source = Scope.coerce(source)
        destination = Scope.coerce(destination)
        recipient = (
            self._verify_user(recipient_user_id, "recipient_user_id")
            if recipient_user_id not in (None, "")
            else user_id
        )
        if (user_id, source) == (recipient, destination):
            raise InvalidRequest("Source and destination must differ.")
        config = self.resolve_config(user_id, source, actor)

        def run():
            with transaction.atomic():
                locked = self.store.lock_many(
                    [(user_id, source, False), (recipient, destination, True)],
                    tier_policy=config.tier_policy,
                )
                source_balance = locked[(user_id, source)]
                if source_balance is None:
                    raise InsufficientBalance(
                        "Insufficient points. Available: 0", available=ZERO
                    )
                source_balance = self.store.apply_locked(
                    source_balance, BalanceDelta(points_transferred=amount)
                )
                destination_balance = self.store.apply_locked(
                    locked[(recipient, destination)], BalanceDelta(points_issued=amount)
                )
                txn = self.ledger.append(
                    user_id,
                    source,
                    Transaction.TYPE_TRANSFER,
                    points_amount=amount,
                    recipient_user_id="" if recipient == user_id else recipient,
                    source_pool=source.label,
                    destination_pool=destination.label,
                    description=description,
                )
                self._changed(source_balance, txn)
                self._changed(destination_balance, txn)
                return OperationOutcome(
                    "transfer",
                    txn,
                    {"source": source_balance, "destination": destination_balance},
                )

        return self._execute(
            "transfer",
            actor,
            run,
            user_id=user_id,
            recipient=recipient,
            source=source.label,
            destination=destination.label,
            amount=amount,
        )

    def import_points(self, actor, amount, scope=None, source_pool="external", description=""):
        """Brings points from an external program into the actor's balance."""
        actor = self._verify_actor(actor)
        amount = verify_amount(amount)
        scope = Scope.coerce(scope)
        config = self.resolve_config(actor.user_id, scope, actor)
        if not config.allow_import:
            raise OperationForbidden("Point import is disabled.", scope=scope.label)

        def run():
            return self._single(
                "import",
                actor.user_id,
                scope,
                Transaction.TYPE_IMPORT,
                BalanceDelta(points_issued=amount),
                False,
                config,
                points_amount=amount,
                source_pool=str(source_pool or ""),
                destination_pool=scope.label,
                description=description,
            )

        return self._execute(
            "import", actor, run, user_id=actor.user_id, scope=scope.label, amount=amount
        )

    def export_points(self, actor, amount, scope=None, destination_pool="external", description=""):
        """Sends points out of the actor's balance to an external program."""
        actor = self._verify_actor(actor)
        amount = verify_amount(amount)
        scope = Scope.coerce(scope)
        config = self.resolve_config(actor.user_id, scope, actor)
        if not config.allow_export:
            raise OperationForbidden("Point export is disabled.", scope=scope.label)

        def run():
            return self._single(
                "export",
                actor.user_id,
                scope,
                Transaction.TYPE_EXPORT,
                BalanceDelta(points_transferred=amount),
                True,
                config,
                points_amount=amount,
                source_pool=scope.label,
                destination_pool=str(destination_pool or ""),
                description=description,
            )

        return self._execute(
            "export", actor, run, user_id=actor.user_id, scope=scope.label, amount=amount
        )

    def expire(self, actor, user_id, amount, scope=None, description=""):
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id)
        amount = verify_amount(amount)
        scope = Scope.coerce(scope)
        self._require_staff(actor, scope, "expire")
        config = self.resolve_config(user_id, scope, actor)

        def run():
            return self._single(
                "expire",
                user_id,
                scope,
                Transaction.TYPE_EXPIRE,
                BalanceDelta(points_expired=amount),
                True,
                config,
                points_amount=amount,
                business_user_id=self._business_user(actor),
                description=description,
            )

        return self._execute(
            "expire", actor, run, user_id=user_id, scope=scope.label, amount=amount
        )

    # Cashback

    def issue_cashback(self, actor, user_id, amount, scope=None, cash_amount=0, description=""):
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id)
        amount = verify_amount(amount)
        cash_amount = verify_amount(cash_amount, allow_zero=True)
        scope = Scope.coerce(scope)
        self._require_staff(actor, scope, "issue cashback")
        config = self.resolve_config(user_id, scope, actor)
        if not config.allow_cashback:
            raise OperationForbidden("Cashback is disabled.", scope=scope.label)

        def run():
            return self._single(
                "cashback_issue",
                user_id,
                scope,
                Transaction.TYPE_CASHBACK_ISSUE,
                BalanceDelta(cashback_issued=amount),
                False,
                config,
                cashback_amount=amount,
                cash_amount=cash_amount,
                business_user_id=self._business_user(actor),
                description=description,
            )

        return self._execute(
            "cashback_issue", actor, run, user_id=user_id, scope=scope.label, amount=amount
        )

    def redeem_cashback(self, actor, user_id, amount, scope=None, description=""):
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id)
        amount = verify_amount(amount)
        scope = Scope.coerce(scope)
        self._require_self_or_staff(actor, user_id, scope, "redeem")
        config = self.resolve_config(user_id, scope, actor)

        def run():
            with transaction.atomic():
                balance = self.store.get(user_id, scope)
                if balance is None:
                    raise InsufficientBalance(
                        "Insufficient cashback. Available: 0", available=ZERO
                    )
                balance = self.store.lock(
                    user_id, scope, create=False, tier_policy=config.tier_policy
                )
                balance = self.store.apply_locked(
                    balance, BalanceDelta(cashback_redeemed=amount)
                )
                txn = self.ledger.append(
                    user_id,
                    scope,
                    Transaction.TYPE_CASHBACK_REDEEM,
                    cashback_amount=amount,
                    business_user_id=self._business_user(actor),
                    description=description,
                )
                self._changed(balance, txn)
                return OperationOutcome("cashback_redeem", txn, {"balance": balance})

        return self._execute(
            "cashback_redeem", actor, run, user_id=user_id, scope=scope.label, amount=amount
        )

    # Tiers and milestones

    def _award(self, balance, transaction_type, point_type, amount, marker, **fields):
        """
        Issues a one-time bonus guarded by ``marker``. Returns None when the
        marker already exists, including when a concurrent award wins the
        unique constraint.
        """
        scope = balance.scope
        if self.ledger.find_existing(balance.user_id, transaction_type, marker, scope):
            return None
        try:
            with transaction.atomic():
                self.store.apply_locked(balance, BalanceDelta(points_issued=amount))
                txn = self.ledger.append(
                    balance.user_id,
                    scope,
                    transaction_type,
                    points_amount=amount,
                    point_type=point_type,
                    marker=marker,
                    **fields,
                )
        except IntegrityError:
            logger.info(
                "Skipping duplicate %s %s for %s in %s",
                transaction_type,
                marker,
                balance.user_id,
                scope.label,
            )
            balance.refresh_from_db()
            return None
        self._changed(balance, txn)
        return txn

    def upgrade_tier(self, actor, user_id=None, scope=None):
        """
        Moves the balance one tier up once its cumulative issued points reach
        the next threshold.
        """
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id or actor.user_id)
        scope = Scope.coerce(scope)
        self._require_self_or_staff(actor, user_id, scope, "upgrade")
        config = self.resolve_config(user_id, scope, actor)
        policy = config.tier_policy

        def run():
            with transaction.atomic():
                balance = self.store.lock(user_id, scope, create=False)
                previous = balance.current_tier
                upcoming = policy.next_level(previous)
                if upcoming is None:
                    raise AlreadyMaxTier("Already at maximum tier.", tier=previous)
                if balance.points_issued < upcoming.min_points:
                    shortfall = upcoming.min_points - balance.points_issued
                    raise InsufficientPointsForTier(
                        f"Need {shortfall} more points to upgrade to {upcoming.name}.",
                        shortfall=shortfall,
                        next_tier=upcoming.name,
                        required=upcoming.min_points,
                    )

                balance = self.store.set_tier(balance, upcoming)
                tier_upgraded.send(
                    sender=self.__class__,
                    balance=balance,
                    previous_tier=previous,
                    new_tier=upcoming.name,
                )

                txn = None
                bonus = quantize_points(config.tier_bonus_points)
                if bonus > 0:
                    txn = self._award(
                        balance,
                        Transaction.TYPE_TIER_BONUS,
                        Transaction.POINT_TIER,
                        bonus,
                        marker=upcoming.name,
                        tier_upgraded=upcoming.name,
                        tier_multiplier=upcoming.multiplier,
                        description=f"Tier upgrade bonus: {upcoming.name}",
                    )
                return TierUpgrade(
                    previous_tier=previous,
                    new_tier=upcoming.name,
                    multiplier=upcoming.multiplier,
                    bonus_awarded=bonus if txn else ZERO,
                    balance=balance,
                    transaction=txn,
                )

        return self._execute("upgrade_tier", actor, run, user_id=user_id, scope=scope.label)

    def check_milestones(self, actor, user_id=None, scope=None):
        """
        Awards every reached milestone not awarded before. Thresholds are
        visited lowest first against the live issued total, so a bonus that
        crosses a further threshold is paid in the same call.
        """
        actor = self._verify_actor(actor)
        user_id = self._verify_user(user_id or actor.user_id)
        scope = Scope.coerce(scope)
        self._require_self_or_staff(actor, user_id, scope, "check milestones for")
        config = self.resolve_config(user_id, scope, actor)

        def run():
            with transaction.atomic():
                balance = self.store.lock(user_id, scope, create=False)
                reached = []
                for milestone in config.milestone_schedule:
                    if balance.points_issued < milestone.threshold:
                        break
                    bonus = quantize_points(
                        config.milestone_schedule.bonus_for(
                            milestone, config.milestone_bonus_multiplier
                        )
                    )
                    if bonus <= 0:
                        continue
                    txn = self._award(
                        balance,
                        Transaction.TYPE_MILESTONE_BONUS,
                        Transaction.POINT_MILESTONE,
                        bonus,
                        marker=milestone.label,
                        milestone_reached=milestone.label,
                        description=f"Milestone bonus: {milestone.label} points",
                    )
                    if txn is None:
                        continue
                    reached.append(MilestoneAward(milestone.threshold, bonus, txn))
                    milestone_reached.send(
                        sender=self.__class__,
                        balance=balance,
                        threshold=milestone.threshold,
                        bonus=bonus,
                        transaction=txn,
                    )
                return MilestoneCheck(
                    reached=reached,
                    total_bonus=sum((award.bonus for award in reached), ZERO),
                    points_issued=balance.points_issued,
                    balance=balance,
                )

        return self._execute(
            "check_milestones", actor, run, user_id=user_id, scope=scope.label
        )

    # Read-only

    def get_balance(self, user_id, scope=None):
        """Snapshot of the balance; zeros when the user has none yet."""
        user_id = self._verify_user(user_id)
        scope = Scope.coerce(scope)
        balance = self.store.get(user_id, scope)
        if balance is None:
            lowest = self.resolve_config(user_id, scope).tier_policy.lowest
            balance = Balance(
                user_id=user_id,
                current_tier=lowest.name,
                tier_multiplier=lowest.multiplier,
                **scope.as_filter(),
            )
        return balance.snapshot()

    def tier_status(self, user_id, scope=None, actor=None):
        user_id = self._verify_user(user_id)
        scope = Scope.coerce(scope)
        policy = self.resolve_config(user_id, scope, actor).tier_policy
        balance = self.store.get(user_id, scope)
        if balance is None:
            return policy.status(policy.lowest.name, ZERO)
        return policy.status(balance.current_tier, balance.points_issued)

    def milestone_status(self, user_id, scope=None, actor=None):
        user_id = self._verify_user(user_id)
        scope = Scope.coerce(scope)
        schedule = self.resolve_config(user_id, scope, actor).milestone_schedule
        balance = self.store.get(user_id, scope)
        return schedule.progress(balance.points_issued if balance else ZERO)

    def list_transactions(self, user_id, scope=None, **filters):
        user_id = self._verify_user(user_id)
        if scope is not None:
            scope = Scope.coerce(scope)
        return self.ledger.list_for_user(user_id, scope=scope, **filters)

    @staticmethod
    def _business_user(actor):
        return actor.user_id if actor.role == Role.BUSINESS else ""
