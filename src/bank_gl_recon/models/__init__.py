"""Data models for reconciliation."""

from .records import (
    AccountingEntry,
    BankTransaction,
    DateRange,
    DocumentDirection,
    MatchMethod,
    MatchStatus,
    Reconciliation,
    ReconciliationMatch,
    ReconciliationRule,
    RecordStatus,
    TransactionType,
)

__all__ = [
    "AccountingEntry",
    "BankTransaction",
    "DateRange",
    "DocumentDirection",
    "MatchMethod",
    "MatchStatus",
    "Reconciliation",
    "ReconciliationMatch",
    "ReconciliationRule",
    "RecordStatus",
    "TransactionType",
]
