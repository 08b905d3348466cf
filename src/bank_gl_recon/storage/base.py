"""Interface of the storage collaborator used by the reconciler."""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..config import ReconciliationConfig
from ..models.records import (
    AccountingEntry,
    BankTransaction,
    DateRange,
    Reconciliation,
    ReconciliationMatch,
    ReconciliationRule,
)


@dataclass
class CommitOutcome:
    """Result of persisting one match."""

    success: bool
    reconciliation_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class RevertOutcome:
    """Result of undoing one reconciliation, step by step."""

    transaction_reset: bool = False
    entry_reset: bool = False
    link_deleted: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.transaction_reset and self.entry_reset and self.link_deleted

    @property
    def failed_steps(self) -> list[str]:
        steps = {
            "reset transaction": self.transaction_reset,
            "reset entry": self.entry_reset,
            "delete reconciliation": self.link_deleted,
        }
        return [name for name, done in steps.items() if not done]


class ReconciliationStore(Protocol):
    """
    Reads and writes needed by the reconciler.

    ``commit_match`` must only move records that are still pending and report
    a refusal through ``CommitOutcome.success`` instead of raising.
    """

    def load_pending_transactions(
        self, bank_account_id: str, date_range: Optional[DateRange]
    ) -> list[BankTransaction]: ...

    def load_pending_entries(
        self, company_id: str, date_range: Optional[DateRange]
    ) -> list[AccountingEntry]: ...

    def load_active_rules(self, company_id: str) -> list[ReconciliationRule]: ...

    def load_config(self, company_id: str) -> Optional[ReconciliationConfig]: ...

    def commit_match(
        self, match: ReconciliationMatch, notes: Optional[str] = None
    ) -> CommitOutcome: ...

    def revert_match(self, reconciliation_id: str) -> RevertOutcome: ...

    def get_reconciliation(self, reconciliation_id: str) -> Optional[Reconciliation]: ...

    def get_transaction(self, transaction_id: str) -> Optional[BankTransaction]: ...

    def get_entry(self, entry_id: str) -> Optional[AccountingEntry]: ...

    def list_reconciliations(
        self, bank_account_id: Optional[str] = None
    ) -> list[Reconciliation]: ...
