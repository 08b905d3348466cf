"""
Evaluation of company-defined reconciliation rules.

A rule pattern is a ``|``-delimited list. Description patterns are plain
substrings; amount patterns are ``=N``, ``>N``, ``<N`` or a bare token that is
looked up inside the absolute amount. Patterns are compiled once per rule so
matching never re-parses text.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
import logging

from ..models.records import AccountingEntry, BankTransaction, ReconciliationRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Equals:
    value: Decimal

    def test(self, amount: Decimal) -> bool:
        return amount == self.value


@dataclass(frozen=True)
class GreaterThan:
    value: Decimal

    def test(self, amount: Decimal) -> bool:
        return amount > self.value


@dataclass(frozen=True)
class LessThan:
    value: Decimal

    def test(self, amount: Decimal) -> bool:
        return amount < self.value


@dataclass(frozen=True)
class Contains:
    text: str

    def test(self, amount: Decimal) -> bool:
        return self.text in format_amount(amount)


AmountPredicate = Union[Equals, GreaterThan, LessThan, Contains]

_OPERATORS = {"=": Equals, ">": GreaterThan, "<": LessThan}


def format_amount(amount: Decimal) -> str:
    """Render an amount in plain notation without trailing zeros (119000, 12.5)."""
    text = format(amount.normalize(), "f")
    return "0" if text in ("-0", "") else text


def split_pattern(pattern: Optional[str]) -> list[str]:
    """Split a ``|`` pattern into trimmed, non-empty tokens."""
    if not pattern:
        return []
    return [token.strip() for token in pattern.split("|") if token.strip()]


def parse_amount_pattern(pattern: Optional[str]) -> tuple[AmountPredicate, ...]:
    """
    Parse an amount pattern into predicates.

    Tokens with an unparseable number are dropped; they can never match.

    Args:
        pattern: Raw pattern text, e.g. ``">1000|<50|=99.90|4521"``

    Returns:
        Tuple of predicates in pattern order
    """
    predicates: list[AmountPredicate] = []

    for token in split_pattern(pattern):
        operator = _OPERATORS.get(token[0])
        if operator is None:
            predicates.append(Contains(token))
            continue

        try:
            value = Decimal(token[1:].strip())
        except InvalidOperation:
            logger.debug(f"Ignoring unparseable amount predicate: {token!r}")
            continue

        if not value.is_finite():
            logger.debug(f"Ignoring non-finite amount predicate: {token!r}")
            continue

        predicates.append(operator(value))

    return tuple(predicates)


@dataclass(frozen=True)
class CompiledRule:
    """A reconciliation rule with its patterns parsed."""

    rule: ReconciliationRule
    description_tokens: tuple[str, ...]
    amount_predicates: tuple[AmountPredicate, ...]
    has_amount_constraint: bool
    transaction_type: Optional[str]

    @classmethod
    def from_rule(cls, rule: ReconciliationRule) -> "CompiledRule":
        amount_tokens = split_pattern(rule.amount_pattern)
        transaction_type = (rule.transaction_type or "").strip().lower() or None

        return cls(
            rule=rule,
            description_tokens=tuple(
                token.lower() for token in split_pattern(rule.description_pattern)
            ),
            amount_predicates=parse_amount_pattern(rule.amount_pattern),
            has_amount_constraint=bool(amount_tokens),
            transaction_type=transaction_type,
        )

    @property
    def id(self) -> str:
        return self.rule.id

    @property
    def priority(self) -> int:
        return self.rule.priority

    def matches(self, transaction: BankTransaction, entry: AccountingEntry) -> bool:
        """
        Check whether the transaction satisfies every field the rule sets.

        The entry is accepted for signature symmetry; rule fields only
        constrain the transaction side.
        """
        if self.description_tokens:
            description = transaction.description.lower()
            if not any(token in description for token in self.description_tokens):
                return False

        if self.transaction_type is not None:
            if transaction.transaction_type.value != self.transaction_type:
                return False

        if self.has_amount_constraint:
            amount = abs(transaction.amount)
            if not any(predicate.test(amount) for predicate in self.amount_predicates):
                return False

        return True


def compile_rules(rules: list[ReconciliationRule]) -> list[CompiledRule]:
    """Compile active rules ordered by ascending priority (stable for ties)."""
    active = [rule for rule in rules if rule.is_active]
    return [CompiledRule.from_rule(rule) for rule in sorted(active, key=lambda r: r.priority)]


def matches(
    rule: Union[ReconciliationRule, CompiledRule],
    transaction: BankTransaction,
    entry: AccountingEntry,
) -> bool:
    """Evaluate one rule against a transaction/entry pair."""
    compiled = rule if isinstance(rule, CompiledRule) else CompiledRule.from_rule(rule)
    return compiled.matches(transaction, entry)
