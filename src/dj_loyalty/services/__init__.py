from .balances import BalanceDelta, BalanceStore
from .gateway import ErrorDescriptor, LoyaltyLedger, OperationResult
from .ledger import TransactionLedger
from .operations import LedgerOperations
from .reporting import ReportingService

__all__ = [
    "BalanceDelta",
    "BalanceStore",
    "ErrorDescriptor",
    "LedgerOperations",
    "LoyaltyLedger",
    "OperationResult",
    "ReportingService",
    "TransactionLedger",
]
