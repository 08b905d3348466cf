"""
Reconciliation orchestrator.

Loads pending records through the storage collaborator, runs the candidate
matcher, commits matches above the auto-reconcile threshold and leaves the rest
as suggestions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging

from .config import ReconciliationConfig, validate_config
from .matching.engine import CandidateMatcher
from .matching.scoring import ConfidenceScorer, is_direction_compatible
from .models.records import (
    DateRange,
    MatchMethod,
    MatchStatus,
    ReconciliationMatch,
)
from .storage.base import ReconciliationStore
from .utils.exceptions import CommitConflict, UndoIncomplete

logger = logging.getLogger(__name__)


@dataclass
class AutoReconcileResult:
    """Matches found by one run, committed and suggested alike."""

    company_id: str
    bank_account_id: str
    date_range: Optional[DateRange]
    matches: list[ReconciliationMatch] = field(default_factory=list)
    conflicts: list[CommitConflict] = field(default_factory=list)
    transactions_considered: int = 0
    entries_considered: int = 0
    processing_time_seconds: float = 0.0

    @property
    def committed(self) -> list[ReconciliationMatch]:
        return [m for m in self.matches if m.status == MatchStatus.COMMITTED]

    @property
    def suggested(self) -> list[ReconciliationMatch]:
        return [m for m in self.matches if m.status == MatchStatus.SUGGESTED]

    def summary(self) -> dict[str, int]:
        """Count matches by method and by status."""
        counts: dict[str, int] = {
            "transactions": self.transactions_considered,
            "entries": self.entries_considered,
            "matches": len(self.matches),
        }
        for status in MatchStatus:
            counts[status.value] = sum(1 for m in self.matches if m.status == status)
        for method in MatchMethod:
            counts[f"method_{method.value}"] = sum(
                1 for m in self.matches if m.method == method
            )
        return counts


@dataclass
class UndoResult:
    """Outcome of undoing a reconciliation."""

    reconciliation_id: str
    success: bool
    failed_steps: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def raise_for_status(self) -> None:
        """
        Raises:
            UndoIncomplete: If any undo step failed
        """
        if not self.success:
            raise UndoIncomplete(self.reconciliation_id, self.failed_steps)


class Reconciler:
    """
    Entry point for automatic and manual reconciliation.

    The reconciler keeps no state between calls; configuration is loaded per
    company and passed explicitly to the matcher.
    """

    def __init__(self, store: ReconciliationStore):
        """
        Initialize the reconciler.

        Args:
            store: Storage collaborator
        """
        self.store = store

    def load_config(self, company_id: str) -> ReconciliationConfig:
        """Company parameters, or the defaults when none are stored."""
        config = self.store.load_config(company_id)
        if config is None:
            logger.debug(f"No reconciliation config for company {company_id}, using defaults")
            return ReconciliationConfig()
        return config

    def auto_reconcile(
        self,
        company_id: str,
        bank_account_id: str,
        date_range: Optional[DateRange] = None,
        commit: bool = True,
    ) -> AutoReconcileResult:
        """
        Match pending transactions of an account against the company's entries.

        Args:
            company_id: Company owning the entries and rules
            bank_account_id: Account whose transactions are reconciled
            date_range: Inclusive window; None means every pending record
            commit: When False nothing is persisted (dry run)

        Returns:
            Result with every match and its status

        Raises:
            InvalidConfig: If the company parameters are inconsistent
        """
        start_time = datetime.now()

        config = self.load_config(company_id)
        validate_config(config)

        logger.info(
            f"Auto-reconciling account {bank_account_id} of company {company_id}"
            + (f" for {date_range}" if date_range else "")
        )

        transactions = self.store.load_pending_transactions(bank_account_id, date_range)
        entries = self.store.load_pending_entries(company_id, date_range)

        result = AutoReconcileResult(
            company_id=company_id,
            bank_account_id=bank_account_id,
            date_range=date_range,
            transactions_considered=len(transactions),
            entries_considered=len(entries),
        )

        if not transactions or not entries:
            logger.info("Nothing to reconcile")
            return result

        rules = self.store.load_active_rules(company_id)
        matcher = CandidateMatcher(config)
        result.matches = matcher.find_matches(transactions, entries, rules)

        if commit:
            for match in result.matches:
                if match.confidence < config.auto_reconcile_above_threshold:
                    continue
                self._commit(match, result)

        result.processing_time_seconds = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Auto-reconcile complete: {len(result.committed)} committed, "
            f"{len(result.suggested)} suggested, {len(result.conflicts)} conflicts"
        )

        return result

    def _commit(self, match: ReconciliationMatch, result: AutoReconcileResult) -> None:
        outcome = self.store.commit_match(
            match, notes=f"Auto {match.method.value} match with confidence {match.confidence}%"
        )
        if outcome.success:
            match.status = MatchStatus.COMMITTED
            match.reconciliation_id = outcome.reconciliation_id
            return

        match.status = MatchStatus.CONFLICT
        conflict = CommitConflict(match.transaction_id, match.entry_id, outcome.reason)
        result.conflicts.append(conflict)
        logger.warning(str(conflict))

    def undo_reconciliation(self, reconciliation_id: str) -> UndoResult:
        """
        Unlink a reconciliation and return both records to pending.

        Args:
            reconciliation_id: Reconciliation to undo

        Returns:
            Result that is successful only if every undo step completed
        """
        reconciliation = self.store.get_reconciliation(reconciliation_id)
        if reconciliation is None:
            logger.warning(f"Reconciliation {reconciliation_id} not found")
            return UndoResult(
                reconciliation_id=reconciliation_id,
                success=False,
                failed_steps=["fetch reconciliation"],
                errors=["reconciliation not found"],
            )

        outcome = self.store.revert_match(reconciliation_id)
        if not outcome.success:
            logger.error(
                f"Undo of reconciliation {reconciliation_id} incomplete: "
                f"{', '.join(outcome.failed_steps)}"
            )
        else:
            logger.info(
                f"Undid reconciliation {reconciliation_id}: "
                f"{reconciliation.transaction_id} <-> {reconciliation.entry_id}"
            )

        return UndoResult(
            reconciliation_id=reconciliation_id,
            success=outcome.success,
            failed_steps=outcome.failed_steps,
            errors=list(outcome.errors),
        )

    def reconcile_manually(
        self,
        company_id: str,
        transaction_id: str,
        entry_id: str,
        notes: Optional[str] = None,
    ) -> ReconciliationMatch:
        """
        Commit a pair chosen by a user.

        The pair is scored for the record but not gated by any threshold.

        Raises:
            CommitConflict: If a record is missing, not pending, or the pair
                has incompatible direction
        """
        transaction = self.store.get_transaction(transaction_id)
        entry = self.store.get_entry(entry_id)

        if transaction is None or entry is None:
            raise CommitConflict(transaction_id, entry_id, "record not found")
        if not is_direction_compatible(transaction, entry):
            raise CommitConflict(transaction_id, entry_id, "incompatible direction")

        scorer = ConfidenceScorer(self.load_config(company_id))
        match = ReconciliationMatch(
            transaction_id=transaction_id,
            entry_id=entry_id,
            confidence=scorer.score(transaction, entry),
            method=MatchMethod.MANUAL,
        )

        outcome = self.store.commit_match(match, notes=notes or "Manual reconciliation")
        if not outcome.success:
            raise CommitConflict(transaction_id, entry_id, outcome.reason)

        match.status = MatchStatus.COMMITTED
        match.reconciliation_id = outcome.reconciliation_id
        logger.info(f"Manually reconciled {transaction_id} <-> {entry_id}")
        return match
