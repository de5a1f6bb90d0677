"""
Append-only transaction journal.
"""
import secrets
import time

from django.db.models import Q

from ..exceptions import TransactionNotFound
from ..models import Transaction
from ..scopes import Scope
from ..signals import transaction_recorded
from .balances import BalanceDelta


def generate_transaction_id():
    """``TXN_<epoch millis>_<12 random characters>``"""
    return f"TXN_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


class TransactionLedger:
    model = Transaction

    def append(self, user_id, scope, transaction_type, points_amount=0, status=None, **fields):
        """
        Records a transaction. Must run in the same atomic block as the balance
        mutation it describes.
        """
        txn = self.model.objects.create(
            transaction_id=generate_transaction_id(),
            user_id=str(user_id),
            transaction_type=transaction_type,
            points_amount=points_amount,
            status=status or self.model.STATUS_COMPLETED,
            **scope.as_filter(),
            **fields,
        )
        transaction_recorded.send(sender=self.__class__, transaction=txn)
        return txn

    def find_existing(self, user_id, transaction_type, marker, scope=None):
        queryset = (
            self.model.objects.for_user(user_id)
            .of_type(transaction_type)
            .filter(marker=str(marker))
        )
        if scope is not None:
            queryset = queryset.for_scope(scope)
        return queryset.first()

    def get(self, transaction_id):
        try:
            return self.model.objects.get(transaction_id=transaction_id)
        except self.model.DoesNotExist:
            raise TransactionNotFound(
                f"Transaction {transaction_id} not found.", transaction_id=transaction_id
            ) from None

    def list_for_user(
        self,
        user_id,
        scope=None,
        transaction_type=None,
        status=None,
        since=None,
        until=None,
        limit=None,
    ):
        """Newest first. Includes gifts and transfers the user received."""
        queryset = self.model.objects.filter(
            Q(user_id=str(user_id)) | Q(recipient_user_id=str(user_id))
        )
        if scope is not None:
            queryset = queryset.for_scope(scope)
        if transaction_type:
            queryset = queryset.of_type(transaction_type)
        if status:
            queryset = queryset.filter(status=status)
        queryset = queryset.between(since, until)
        if limit:
            queryset = queryset[:limit]
        return list(queryset)

    def balance_effects(self, txn):
        """
        Maps a transaction to the balance deltas it caused, keyed by
        ``(user_id, scope)``. Only completed transactions move balances.
        """
        if not txn.is_completed:
            return {}

        owner = (txn.user_id, txn.scope)
        amount = txn.points_amount
        kind = txn.transaction_type

        if kind in (
            self.model.TYPE_ISSUE,
            self.model.TYPE_IMPORT,
            self.model.TYPE_MILESTONE_BONUS,
            self.model.TYPE_TIER_BONUS,
        ):
            return {owner: BalanceDelta(points_issued=amount)}
        if kind == self.model.TYPE_REDEEM:
            return {owner: BalanceDelta(points_redeemed=amount)}
        if kind == self.model.TYPE_EXPIRE:
            return {owner: BalanceDelta(points_expired=amount)}
        if kind == self.model.TYPE_EXPORT:
            return {owner: BalanceDelta(points_transferred=amount)}
        if kind == self.model.TYPE_GIFT:
            return {
                owner: BalanceDelta(points_gifted=amount),
                (txn.recipient_user_id, txn.scope): BalanceDelta(points_issued=amount),
            }
        if kind == self.model.TYPE_TRANSFER:
            destination = (
                txn.recipient_user_id or txn.user_id,
                Scope.from_label(txn.destination_pool),
            )
            return {
                owner: BalanceDelta(points_transferred=amount),
                destination: BalanceDelta(points_issued=amount),
            }
        if kind == self.model.TYPE_CASHBACK_ISSUE:
            return {owner: BalanceDelta(cashback_issued=txn.cashback_amount)}
        if kind == self.model.TYPE_CASHBACK_REDEEM:
            return {owner: BalanceDelta(cashback_redeemed=txn.cashback_amount)}
        return {}

    def replay(self, user_id, scope):
        """
        Rebuilds the counters of one balance from the journal. A consistent
        ledger yields exactly the stored balance counters.
        """
        key = (str(user_id), scope)
        total = BalanceDelta()
        queryset = self.model.objects.filter(
            Q(user_id=str(user_id)) | Q(recipient_user_id=str(user_id))
        ).order_by("id")
        for txn in queryset:
            effect = self.balance_effects(txn).get(key)
            if effect is not None:
                total = total + effect
        return total
