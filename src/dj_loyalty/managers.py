from django.db import models

from .exceptions import LedgerImmutable


class BalanceQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=str(user_id))

    def for_scope(self, scope):
        return self.filter(**scope.as_filter())

    def for_business(self, business_id):
        return self.filter(business_id=str(business_id))


class BalanceManager(models.Manager.from_queryset(BalanceQuerySet)):
    def get_balance(self, user_id, scope):
        """Returns the balance for (user, scope) or None."""
        return self.for_user(user_id).for_scope(scope).first()


class TransactionQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=str(user_id))

    def for_scope(self, scope):
        return self.filter(**scope.as_filter())

    def of_type(self, *transaction_types):
        return self.filter(transaction_type__in=transaction_types)

    def completed(self):
        return self.filter(status=self.model.STATUS_COMPLETED)

    def between(self, since=None, until=None):
        queryset = self
        if since is not None:
            queryset = queryset.filter(created_at__gte=since)
        if until is not None:
            queryset = queryset.filter(created_at__lt=until)
        return queryset

    def update(self, **kwargs):
        raise LedgerImmutable("Ledger transactions cannot be updated.")

    def delete(self):
        raise LedgerImmutable("Ledger transactions cannot be deleted.")


class TransactionManager(models.Manager.from_queryset(TransactionQuerySet)):
    pass


class LoyaltyProfileQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class LoyaltyProfileManager(models.Manager.from_queryset(LoyaltyProfileQuerySet)):
    def for_owner(self, owner_type, owner_id):
        if owner_id in (None, ""):
            return None
        return self.active().filter(owner_type=owner_type, owner_id=str(owner_id)).first()
