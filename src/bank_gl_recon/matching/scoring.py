"""
Confidence scoring for transaction/entry pairs.

The score is a 0-100 integer built from three weighted factors (amount, date,
text/reference). Direction and amount act as vetoes: a pair that fails either
scores 0 no matter how well the other factors line up.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import re

from ..config import ReconciliationConfig, validate_config
from ..models.records import AccountingEntry, BankTransaction, DocumentDirection

# Share of the description weight for partial reference hits
REFERENCE_CONTAINMENT_RATIO = Decimal("0.75")
NUMERIC_TOKEN_RATIO = Decimal("0.5")

MIN_WORD_LENGTH = 4
NUMERIC_TOKEN_PATTERN = re.compile(r"\d{4,}")


def is_direction_compatible(transaction: BankTransaction, entry: AccountingEntry) -> bool:
    """
    Check that the transaction sign is the one the entry expects.

    Issued documents are paid into the account (positive transaction), received
    documents are paid out (negative). Credit notes invert the expectation.
    Entries without a direction fall back to comparing the signs of both
    amounts.
    """
    transaction_positive = transaction.amount >= 0

    if entry.document_direction is None:
        return transaction_positive == (entry.amount >= 0)

    expected_positive = entry.document_direction == DocumentDirection.ISSUED
    if entry.is_credit_note:
        expected_positive = not expected_positive

    return transaction_positive == expected_positive


def _points(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _words(text: str) -> list[str]:
    return [word for word in text.lower().split() if len(word) >= MIN_WORD_LENGTH]


@dataclass
class ScoreBreakdown:
    """Per-factor points for a scored pair."""

    amount_points: int = 0
    date_points: int = 0
    text_points: int = 0
    vetoed: bool = False
    veto_reason: Optional[str] = None
    amount_difference: Optional[Decimal] = None
    date_difference_days: Optional[int] = None
    text_reason: str = ""

    @property
    def total(self) -> int:
        if self.vetoed:
            return 0
        return max(0, min(100, self.amount_points + self.date_points + self.text_points))


class ConfidenceScorer:
    """
    Scores transaction/entry pairs with a fixed set of parameters.

    The scorer holds no mutable state; one instance can be shared by any
    number of callers.
    """

    def __init__(self, config: ReconciliationConfig):
        """
        Initialize the scorer.

        Args:
            config: Reconciliation parameters

        Raises:
            InvalidConfig: If the parameters are inconsistent
        """
        validate_config(config)
        self.config = config
        self._tolerance = Decimal(str(config.amount_tolerance_fraction))

    def score(self, transaction: BankTransaction, entry: AccountingEntry) -> int:
        """Return the confidence (0-100) that both records are the same movement."""
        return self.breakdown(transaction, entry).total

    def breakdown(
        self, transaction: BankTransaction, entry: AccountingEntry
    ) -> ScoreBreakdown:
        """Score a pair and keep the contribution of each factor."""
        result = ScoreBreakdown()

        if not is_direction_compatible(transaction, entry):
            result.vetoed = True
            result.veto_reason = "incompatible direction"
            return result

        difference = self.amount_difference(transaction, entry)
        result.amount_difference = difference
        if difference > self._tolerance:
            result.vetoed = True
            result.veto_reason = (
                f"amount differs by {difference * 100:.2f}%, "
                f"tolerance is {self.config.amount_tolerance_percent}%"
            )
            return result

        result.amount_points = self._amount_points(difference)

        days = abs((transaction.date - entry.date).days)
        result.date_difference_days = days
        result.date_points = self._date_points(days)

        result.text_points, result.text_reason = self._text_points(transaction, entry)

        return result

    @staticmethod
    def amount_difference(transaction: BankTransaction, entry: AccountingEntry) -> Decimal:
        """Relative difference between absolute amounts, based on the transaction."""
        tx_amount = abs(transaction.amount)
        entry_amount = abs(entry.amount)
        return abs(tx_amount - entry_amount) / max(tx_amount, Decimal("1"))

    def _amount_points(self, difference: Decimal) -> int:
        weight = Decimal(self.config.amount_weight)
        if difference == 0:
            return int(weight)
        return _points(weight * (1 - difference / self._tolerance))

    def _date_points(self, days: int) -> int:
        weight = Decimal(self.config.date_weight)
        tolerance = self.config.date_tolerance

        if days == 0:
            return int(weight)
        if days <= tolerance:
            return _points(weight * (1 - Decimal(days) / Decimal(tolerance)))
        return _points(weight * Decimal(str(self.config.distant_date_floor_ratio)))

    def _text_points(
        self, transaction: BankTransaction, entry: AccountingEntry
    ) -> tuple[int, str]:
        weight = Decimal(self.config.description_weight)

        tx_ref = transaction.reference
        entry_ref = entry.reference
        if tx_ref and entry_ref and self.same_reference(tx_ref, entry_ref):
            return int(weight), "references are equal"

        tx_ref_l = tx_ref.lower()
        entry_ref_l = entry_ref.lower()
        tx_desc_l = transaction.description.lower()
        entry_desc_l = entry.description.lower()

        if (tx_ref_l and (tx_ref_l in entry_ref_l or tx_ref_l in entry_desc_l)) or (
            entry_ref_l and (entry_ref_l in tx_ref_l or entry_ref_l in tx_desc_l)
        ):
            return _points(weight * REFERENCE_CONTAINMENT_RATIO), "reference found in other record"

        best, reason = 0, "no text overlap"

        tx_numbers = set(NUMERIC_TOKEN_PATTERN.findall(f"{tx_desc_l} {tx_ref_l}"))
        entry_numbers = set(NUMERIC_TOKEN_PATTERN.findall(f"{entry_ref_l} {entry_desc_l}"))
        shared = sorted(tx_numbers & entry_numbers)
        if shared:
            best, reason = _points(weight * NUMERIC_TOKEN_RATIO), f"shared number {shared[0]}"

        tx_words = _words(transaction.description)
        entry_words = _words(entry.description)
        if tx_words and entry_words:
            matched = sum(
                1
                for word in tx_words
                if any(word in other or other in word for other in entry_words)
            )
            overlap = _points(weight * matched / len(tx_words))
            if overlap > best:
                best, reason = overlap, f"{matched}/{len(tx_words)} words in common"

        return best, reason

    def same_reference(self, left: str, right: str) -> bool:
        if self.config.case_sensitive_references:
            return left == right
        return left.upper() == right.upper()


def score(
    transaction: BankTransaction,
    entry: AccountingEntry,
    config: ReconciliationConfig,
) -> int:
    """Score one pair with the given parameters."""
    return ConfidenceScorer(config).score(transaction, entry)


def score_breakdown(
    transaction: BankTransaction,
    entry: AccountingEntry,
    config: ReconciliationConfig,
) -> ScoreBreakdown:
    """Score one pair and return the points of each factor."""
    return ConfidenceScorer(config).breakdown(transaction, entry)
