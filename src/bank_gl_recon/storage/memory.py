"""In-memory implementation of the reconciliation store."""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional
import logging
import threading
import uuid

from ..config import ReconciliationConfig
from ..models.records import (
    AccountingEntry,
    BankTransaction,
    DateRange,
    Reconciliation,
    ReconciliationMatch,
    ReconciliationRule,
    RecordStatus,
)
from .base import CommitOutcome, RevertOutcome

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Thread-safe store backed by dictionaries.

    Reads hand out copies so callers never share record instances with the
    store or with each other. Every status transition happens under a single
    lock, which makes commit and revert atomic.
    """

    def __init__(
        self,
        transactions: Iterable[BankTransaction] = (),
        entries: Iterable[AccountingEntry] = (),
        rules: Iterable[ReconciliationRule] = (),
        configs: Optional[dict[str, ReconciliationConfig]] = None,
        reconciliations: Iterable[Reconciliation] = (),
    ):
        self._lock = threading.Lock()
        self._transactions: dict[str, BankTransaction] = {}
        self._entries: dict[str, AccountingEntry] = {}
        self._rules: dict[str, ReconciliationRule] = {}
        self._configs: dict[str, ReconciliationConfig] = dict(configs or {})
        self._reconciliations: dict[str, Reconciliation] = {}

        self.add_transactions(transactions)
        self.add_entries(entries)
        self.add_rules(rules)
        for reconciliation in reconciliations:
            self._reconciliations[reconciliation.id] = reconciliation

    def add_transactions(self, transactions: Iterable[BankTransaction]) -> None:
        with self._lock:
            for transaction in transactions:
                self._transactions[transaction.id] = transaction

    def add_entries(self, entries: Iterable[AccountingEntry]) -> None:
        with self._lock:
            for entry in entries:
                self._entries[entry.id] = entry

    def add_rules(self, rules: Iterable[ReconciliationRule]) -> None:
        with self._lock:
            for rule in rules:
                self._rules[rule.id] = rule

    def set_config(self, company_id: str, config: ReconciliationConfig) -> None:
        with self._lock:
            self._configs[company_id] = config

    def load_pending_transactions(
        self, bank_account_id: str, date_range: Optional[DateRange] = None
    ) -> list[BankTransaction]:
        with self._lock:
            return [
                replace(t)
                for t in self._transactions.values()
                if t.bank_account_id == bank_account_id
                and t.status == RecordStatus.PENDING
                and (date_range is None or date_range.contains(t.date))
            ]

    def load_pending_entries(
        self, company_id: str, date_range: Optional[DateRange] = None
    ) -> list[AccountingEntry]:
        with self._lock:
            return [
                replace(e)
                for e in self._entries.values()
                if e.company_id == company_id
                and e.status == RecordStatus.PENDING
                and (date_range is None or date_range.contains(e.date))
            ]

    def load_active_rules(self, company_id: str) -> list[ReconciliationRule]:
        with self._lock:
            rules = [
                replace(r)
                for r in self._rules.values()
                if r.company_id == company_id and r.is_active
            ]
        return sorted(rules, key=lambda r: r.priority)

    def load_config(self, company_id: str) -> Optional[ReconciliationConfig]:
        with self._lock:
            config = self._configs.get(company_id)
            return config.model_copy() if config is not None else None

    def commit_match(
        self, match: ReconciliationMatch, notes: Optional[str] = None
    ) -> CommitOutcome:
        """
        Link a transaction and an entry if both are still pending.

        Returns:
            Outcome with the new reconciliation id, or ``success=False`` when a
            record is missing or already reconciled
        """
        with self._lock:
            transaction = self._transactions.get(match.transaction_id)
            entry = self._entries.get(match.entry_id)

            if transaction is None or entry is None:
                return CommitOutcome(success=False, reason="record not found")
            if transaction.status != RecordStatus.PENDING:
                return CommitOutcome(success=False, reason="transaction is not pending")
            if entry.status != RecordStatus.PENDING:
                return CommitOutcome(success=False, reason="entry is not pending")

            now = datetime.now()
            reconciliation = Reconciliation(
                id=uuid.uuid4().hex,
                transaction_id=transaction.id,
                entry_id=entry.id,
                confidence_score=match.confidence,
                method=match.method,
                rule_id=match.rule_id,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            self._reconciliations[reconciliation.id] = reconciliation

            transaction.status = RecordStatus.RECONCILED
            transaction.reconciliation_id = reconciliation.id
            entry.status = RecordStatus.RECONCILED
            entry.reconciliation_id = reconciliation.id

        logger.debug(
            f"Committed reconciliation {reconciliation.id}: "
            f"{match.transaction_id} <-> {match.entry_id}"
        )
        return CommitOutcome(success=True, reconciliation_id=reconciliation.id)

    def revert_match(self, reconciliation_id: str) -> RevertOutcome:
        """
        Reset both linked records to pending, then delete the reconciliation.

        The link is removed last and only when both resets succeeded, so a
        failed revert can be retried with the same id.
        """
        outcome = RevertOutcome()

        with self._lock:
            reconciliation = self._reconciliations.get(reconciliation_id)
            if reconciliation is None:
                outcome.errors.append("reconciliation not found")
                return outcome

            transaction = self._transactions.get(reconciliation.transaction_id)
            if transaction is None:
                outcome.errors.append(f"transaction {reconciliation.transaction_id} not found")
            else:
                transaction.status = RecordStatus.PENDING
                transaction.reconciliation_id = None
                outcome.transaction_reset = True

            entry = self._entries.get(reconciliation.entry_id)
            if entry is None:
                outcome.errors.append(f"entry {reconciliation.entry_id} not found")
            else:
                entry.status = RecordStatus.PENDING
                entry.reconciliation_id = None
                outcome.entry_reset = True

            if outcome.transaction_reset and outcome.entry_reset:
                del self._reconciliations[reconciliation_id]
                outcome.link_deleted = True

        return outcome

    def get_reconciliation(self, reconciliation_id: str) -> Optional[Reconciliation]:
        with self._lock:
            reconciliation = self._reconciliations.get(reconciliation_id)
            return replace(reconciliation) if reconciliation is not None else None

    def get_transaction(self, transaction_id: str) -> Optional[BankTransaction]:
        with self._lock:
            transaction = self._transactions.get(transaction_id)
            return replace(transaction) if transaction is not None else None

    def get_entry(self, entry_id: str) -> Optional[AccountingEntry]:
        with self._lock:
            entry = self._entries.get(entry_id)
            return replace(entry) if entry is not None else None

    def list_reconciliations(
        self, bank_account_id: Optional[str] = None
    ) -> list[Reconciliation]:
        with self._lock:
            result = []
            for reconciliation in self._reconciliations.values():
                if bank_account_id is not None:
                    transaction = self._transactions.get(reconciliation.transaction_id)
                    if transaction is None or transaction.bank_account_id != bank_account_id:
                        continue
                result.append(replace(reconciliation))
        return sorted(result, key=lambda r: r.created_at)

    def all_transactions(self) -> list[BankTransaction]:
        with self._lock:
            return [replace(t) for t in self._transactions.values()]

    def all_entries(self) -> list[AccountingEntry]:
        with self._lock:
            return [replace(e) for e in self._entries.values()]

    def all_rules(self) -> list[ReconciliationRule]:
        with self._lock:
            return [replace(r) for r in self._rules.values()]
