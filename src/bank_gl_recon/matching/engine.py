"""
Multi-pass candidate matching between bank transactions and ledger entries.
Exact passes run first, then company rules in priority order.
"""

from datetime import datetime
from typing import Optional
import logging

from ..config import ReconciliationConfig
from ..models.records import (
    AccountingEntry,
    BankTransaction,
    MatchMethod,
    ReconciliationMatch,
    ReconciliationRule,
)
from .rules import CompiledRule, compile_rules
from .scoring import ConfidenceScorer, is_direction_compatible

logger = logging.getLogger(__name__)


class _WorkingSet:
    """Unmatched transactions and entries for a single run."""

    def __init__(
        self,
        transactions: list[BankTransaction],
        entries: list[AccountingEntry],
    ):
        self.transactions: dict[str, BankTransaction] = {t.id: t for t in transactions}
        self.entries: dict[str, AccountingEntry] = {e.id: e for e in entries}

    def consume(self, transaction_id: str, entry_id: str) -> None:
        del self.transactions[transaction_id]
        del self.entries[entry_id]


class CandidateMatcher:
    """
    Finds one-to-one matches between transactions and entries.

    Each call works on its own copies of the input collections, so one matcher
    may serve concurrent runs.
    """

    def __init__(self, config: ReconciliationConfig):
        """
        Initialize the matcher.

        Args:
            config: Reconciliation parameters

        Raises:
            InvalidConfig: If the parameters are inconsistent
        """
        self.config = config
        self.scorer = ConfidenceScorer(config)

    def find_matches(
        self,
        transactions: list[BankTransaction],
        entries: list[AccountingEntry],
        rules: Optional[list[ReconciliationRule]] = None,
    ) -> list[ReconciliationMatch]:
        """
        Run every matching pass.

        Args:
            transactions: Unreconciled bank transactions
            entries: Unreconciled accounting entries
            rules: Company rules; inactive ones are ignored

        Returns:
            Matches from the reference, amount+date and rule passes, in that order
        """
        start_time = datetime.now()
        logger.info(
            f"Starting matching: {len(transactions)} transactions, {len(entries)} entries"
        )

        working = _WorkingSet(transactions, entries)

        matches = self._match_by_reference(working)
        logger.debug(f"Reference pass: {len(matches)} matches")

        amount_date = self._match_by_amount_and_date(working)
        logger.debug(f"Amount+date pass: {len(amount_date)} matches")
        matches.extend(amount_date)

        compiled = compile_rules(rules or [])
        rule_matches = self._match_by_rules(working, compiled)
        logger.debug(f"Rule pass: {len(rule_matches)} matches from {len(compiled)} rules")
        matches.extend(rule_matches)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Matching complete in {elapsed:.2f}s: {len(matches)} matches, "
            f"{len(working.transactions)} transactions and {len(working.entries)} "
            f"entries unmatched"
        )

        return matches

    def find_exact_matches(
        self,
        transactions: list[BankTransaction],
        entries: list[AccountingEntry],
    ) -> list[ReconciliationMatch]:
        """Run only the reference and amount+date passes."""
        working = _WorkingSet(transactions, entries)
        matches = self._match_by_reference(working)
        matches.extend(self._match_by_amount_and_date(working))
        return matches

    def apply_rules(
        self,
        transactions: list[BankTransaction],
        entries: list[AccountingEntry],
        rules: list[ReconciliationRule],
    ) -> list[ReconciliationMatch]:
        """Run only the rule pass."""
        working = _WorkingSet(transactions, entries)
        return self._match_by_rules(working, compile_rules(rules))

    def _match_by_reference(self, working: _WorkingSet) -> list[ReconciliationMatch]:
        # References must be identical here; case is only folded when scoring text
        matches: list[ReconciliationMatch] = []

        for transaction in list(working.transactions.values()):
            if not transaction.reference:
                continue

            entry = next(
                (
                    e
                    for e in working.entries.values()
                    if e.reference == transaction.reference
                    and is_direction_compatible(transaction, e)
                ),
                None,
            )
            if entry is None:
                continue

            matches.append(
                ReconciliationMatch(
                    transaction_id=transaction.id,
                    entry_id=entry.id,
                    confidence=self.config.exact_match_confidence,
                    method=MatchMethod.EXACT,
                )
            )
            working.consume(transaction.id, entry.id)

        return matches

    def _match_by_amount_and_date(self, working: _WorkingSet) -> list[ReconciliationMatch]:
        matches: list[ReconciliationMatch] = []

        for transaction in list(working.transactions.values()):
            amount = abs(transaction.amount)
            candidates = [
                e
                for e in working.entries.values()
                if abs(e.amount) == amount
                and e.date == transaction.date
                and is_direction_compatible(transaction, e)
            ]

            if len(candidates) > 1:
                # Ambiguous, left for the rule pass
                logger.debug(
                    f"Transaction {transaction.id}: {len(candidates)} amount+date "
                    f"candidates, deferring"
                )
                continue
            if not candidates:
                continue

            entry = candidates[0]
            matches.append(
                ReconciliationMatch(
                    transaction_id=transaction.id,
                    entry_id=entry.id,
                    confidence=self.config.date_amount_match_confidence,
                    method=MatchMethod.AMOUNT_DATE,
                )
            )
            working.consume(transaction.id, entry.id)

        return matches

    def _match_by_rules(
        self, working: _WorkingSet, rules: list[CompiledRule]
    ) -> list[ReconciliationMatch]:
        matches: list[ReconciliationMatch] = []
        threshold = self.config.min_confidence_threshold

        for rule in rules:
            for transaction in list(working.transactions.values()):
                for entry in list(working.entries.values()):
                    if not rule.matches(transaction, entry):
                        continue

                    confidence = self.scorer.score(transaction, entry)
                    if confidence < threshold:
                        continue

                    matches.append(
                        ReconciliationMatch(
                            transaction_id=transaction.id,
                            entry_id=entry.id,
                            confidence=confidence,
                            method=MatchMethod.RULE,
                            rule_id=rule.id,
                        )
                    )
                    working.consume(transaction.id, entry.id)
                    break

        return matches
