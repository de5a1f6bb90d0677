"""
Read-only aggregates over the ledger and balances for dashboards.
Nothing here is stored; every figure is derived on request.
"""
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from ..exceptions import InvalidRequest
from ..models import Balance, Transaction
from ..scopes import PoolType

ZERO = Decimal("0")

PERIODS = {
    "all": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def period_start(period, now=None):
    if period not in PERIODS:
        raise InvalidRequest(f"Unknown period: {period!r}", allowed=list(PERIODS))
    delta = PERIODS[period]
    if delta is None:
        return None
    return (now or timezone.now()) - delta


class ReportingService:
    def _transactions(self, user_id=None, business_id=None, period="all", since=None, until=None):
        queryset = Transaction.objects.completed()
        if user_id is not None:
            queryset = queryset.for_user(user_id)
        if business_id is not None:
            queryset = queryset.filter(business_id=str(business_id))
        return queryset.between(since or period_start(period), until)

    def totals(self, user_id=None, business_id=None, period="all", since=None, until=None):
        """Points, cashback and count per transaction type."""
        totals = {
            kind: {"points": ZERO, "cashback": ZERO, "count": 0}
            for kind, _label in Transaction.TYPE_CHOICES
        }
        rows = (
            self._transactions(user_id, business_id, period, since, until)
            .order_by()
            .values("transaction_type")
            .annotate(
                points=Sum("points_amount"),
                cashback=Sum("cashback_amount"),
                count=Count("id"),
            )
        )
        for row in rows:
            totals[row["transaction_type"]] = {
                "points": row["points"] or ZERO,
                "cashback": row["cashback"] or ZERO,
                "count": row["count"],
            }
        return totals

    def pool_totals(self, business_id=None, user_id=None):
        """Issued and available points per pool."""
        pools = {
            pool: {"points_issued": ZERO, "points_available": ZERO, "balances": 0}
            for pool in PoolType.values
        }
        queryset = Balance.objects.all()
        if business_id is not None:
            queryset = queryset.for_business(business_id)
        if user_id is not None:
            queryset = queryset.for_user(user_id)
        rows = (
            queryset.order_by()
            .values("pool")
            .annotate(
                issued=Sum("points_issued"),
                available=Sum("points_available"),
                balances=Count("id"),
            )
        )
        for row in rows:
            pools[row["pool"]] = {
                "points_issued": row["issued"] or ZERO,
                "points_available": row["available"] or ZERO,
                "balances": row["balances"],
            }
        return pools

    def customer_count(self, business_id=None, period="all", since=None, until=None):
        """Distinct users that were issued points."""
        return (
            self._transactions(None, business_id, period, since, until)
            .of_type(Transaction.TYPE_ISSUE)
            .values("user_id")
            .distinct()
            .count()
        )

    def recent_transactions(self, user_id=None, business_id=None, limit=10, period="all"):
        queryset = self._transactions(user_id, business_id, period)
        return [txn.snapshot() for txn in queryset[:limit]]

    def dashboard(self, user_id=None, business_id=None, period="all", limit=10):
        totals = self.totals(user_id=user_id, business_id=business_id, period=period)
        issued = sum(
            (
                totals[kind]["points"]
                for kind in (
                    Transaction.TYPE_ISSUE,
                    Transaction.TYPE_IMPORT,
                    Transaction.TYPE_MILESTONE_BONUS,
                    Transaction.TYPE_TIER_BONUS,
                )
            ),
            ZERO,
        )
        return {
            "period": period,
            "total_points_issued": issued,
            "total_points_redeemed": totals[Transaction.TYPE_REDEEM]["points"],
            "total_cashback_issued": totals[Transaction.TYPE_CASHBACK_ISSUE]["cashback"],
            "total_customers": self.customer_count(business_id=business_id, period=period),
            "by_type": totals,
            "pools": self.pool_totals(business_id=business_id, user_id=user_id),
            "recent_transactions": self.recent_transactions(
                user_id=user_id, business_id=business_id, limit=limit, period=period
            ),
        }
