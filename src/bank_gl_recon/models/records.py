"""Data models for bank transactions, ledger entries and reconciliations."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class RecordStatus(Enum):
    """Reconciliation status of a transaction or entry."""

    PENDING = "pending"
    RECONCILED = "reconciled"


class TransactionType(Enum):
    """Bank transaction type as reported by the bank."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    PAYMENT = "payment"
    FEE = "fee"
    OTHER = "other"


class DocumentDirection(Enum):
    """Whether the company issued or received the accounting document."""

    ISSUED = "issued"
    RECEIVED = "received"

    @classmethod
    def _missing_(cls, value):
        # Imports from the legacy system carry Spanish values
        aliases = {"emitida": cls.ISSUED, "recibida": cls.RECEIVED}
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
            return aliases.get(normalized)
        return None


class MatchMethod(Enum):
    """How a match was found."""

    EXACT = "exact"
    AMOUNT_DATE = "amount_date"
    RULE = "rule"
    MANUAL = "manual"


class MatchStatus(Enum):
    """Outcome of a match within a reconciliation run."""

    SUGGESTED = "suggested"  # Below auto-reconcile threshold
    COMMITTED = "committed"
    CONFLICT = "conflict"  # Record no longer pending at commit time


CREDIT_NOTE_TYPES = {"credit_note", "credit note", "nc"}


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class BankTransaction:
    """
    A movement on a bank statement.

    The amount is signed from the bank's perspective: positive for money in,
    negative for money out.
    """

    id: str
    date: date
    amount: Decimal
    description: str = ""
    reference: str = ""
    transaction_type: TransactionType = TransactionType.OTHER
    bank_account_id: Optional[str] = None
    status: RecordStatus = RecordStatus.PENDING
    reconciliation_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.amount = _to_decimal(self.amount)
        self.description = self.description or ""
        self.reference = (self.reference or "").strip()
        if not isinstance(self.transaction_type, TransactionType):
            self.transaction_type = TransactionType(str(self.transaction_type).lower())
        if not isinstance(self.status, RecordStatus):
            self.status = RecordStatus(self.status)

    @property
    def is_pending(self) -> bool:
        return self.status == RecordStatus.PENDING


@dataclass
class AccountingEntry:
    """
    A ledger entry (invoice, credit note, receipt, ...).

    Document type and direction together determine which sign the matching
    bank transaction is expected to carry.
    """

    id: str
    date: date
    amount: Decimal
    description: str = ""
    reference: str = ""
    document_type: str = ""
    document_direction: Optional[DocumentDirection] = None
    company_id: Optional[str] = None
    status: RecordStatus = RecordStatus.PENDING
    reconciliation_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.amount = _to_decimal(self.amount)
        self.description = self.description or ""
        self.reference = (self.reference or "").strip()
        self.document_type = self.document_type or ""
        if self.document_direction is not None and not isinstance(
            self.document_direction, DocumentDirection
        ):
            self.document_direction = DocumentDirection(self.document_direction)
        if not isinstance(self.status, RecordStatus):
            self.status = RecordStatus(self.status)

    @property
    def is_pending(self) -> bool:
        return self.status == RecordStatus.PENDING

    @property
    def is_credit_note(self) -> bool:
        """Check if the entry is a credit note (reverses expected sign)."""
        doc_type = self.document_type.strip().lower()
        return (
            doc_type in CREDIT_NOTE_TYPES
            or "nota de crédito" in doc_type
            or "nota de credito" in doc_type
        )


@dataclass
class ReconciliationRule:
    """
    A company-defined matching rule.

    Patterns are ``|``-delimited. A rule with no pattern fields set matches
    every transaction.
    """

    id: str
    company_id: str
    priority: int = 0
    is_active: bool = True
    name: str = ""
    description_pattern: Optional[str] = None
    amount_pattern: Optional[str] = None
    transaction_type: Optional[str] = None


@dataclass
class ReconciliationMatch:
    """A transaction/entry pair proposed by the engine."""

    transaction_id: str
    entry_id: str
    confidence: int
    method: MatchMethod
    rule_id: Optional[str] = None
    status: MatchStatus = MatchStatus.SUGGESTED
    reconciliation_id: Optional[str] = None

    @property
    def is_committed(self) -> bool:
        return self.status == MatchStatus.COMMITTED


@dataclass
class Reconciliation:
    """Persisted link between one transaction and one entry."""

    id: str
    transaction_id: str
    entry_id: str
    confidence_score: int
    method: MatchMethod
    rule_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date window."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Date range start {self.start} is after end {self.end}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
