"""
Operation boundary.

``LedgerOperations`` raises; ``LoyaltyLedger`` wraps every call and returns an
``OperationResult`` so callers (views, tasks, RPC handlers) get a uniform
success/error envelope with a stable error code.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from functools import partial
from typing import Any, Optional

from django.db import DatabaseError

from ..exceptions import LoyaltyException
from ..utils import get_ledger_service, get_reporting_service

logger = logging.getLogger(__name__)


def _plain(value):
    """Converts results into JSON-friendly structures."""
    if hasattr(value, "snapshot"):
        return _plain(value.snapshot())
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    return value


@dataclass(frozen=True)
class ErrorDescriptor:
    code: str
    message: str
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    operation: str
    value: Any = None
    error: Optional[ErrorDescriptor] = None

    def as_dict(self):
        if self.ok:
            return {"ok": True, "operation": self.operation, "data": _plain(self.value)}
        return {
            "ok": False,
            "operation": self.operation,
            "error": {
                "code": self.error.code,
                "message": self.error.message,
                "details": _plain(self.error.details),
            },
        }


class LoyaltyLedger:
    """
    Example:
        ledger = LoyaltyLedger()
        result = ledger.issue(Actor("shop-1", role="business"), "42", 100)
        if not result.ok:
            print(result.error.code)
    """

    OPERATIONS = (
        "issue",
        "redeem",
        "redeem_code",
        "gift",
        "transfer",
        "import_points",
        "export_points",
        "expire",
        "issue_cashback",
        "redeem_cashback",
        "upgrade_tier",
        "check_milestones",
        "get_balance",
        "tier_status",
        "milestone_status",
        "list_transactions",
    )
    REPORTS = ("totals", "pool_totals", "customer_count", "recent_transactions", "dashboard")

    def __init__(self, operations=None, reporting=None):
        self.operations = operations or get_ledger_service()()
        self.reporting = reporting or get_reporting_service()()

    def __getattr__(self, name):
        if name in self.OPERATIONS:
            return partial(self.call, self.operations, name)
        if name in self.REPORTS:
            return partial(self.call, self.reporting, name)
        raise AttributeError(f"'{type(self).__name__}' has no operation '{name}'")

    def call(self, service, name, *args, **kwargs):
        try:
            value = getattr(service, name)(*args, **kwargs)
        except LoyaltyException as exc:
            return OperationResult(
                ok=False,
                operation=name,
                error=ErrorDescriptor(exc.code, exc.message or str(exc), dict(exc.details)),
            )
        except DatabaseError:
            logger.exception("Storage failure during %s", name)
            return OperationResult(
                ok=False,
                operation=name,
                error=ErrorDescriptor(
                    "storage_error", "The ledger could not complete the operation."
                ),
            )
        return OperationResult(ok=True, operation=name, value=value)
