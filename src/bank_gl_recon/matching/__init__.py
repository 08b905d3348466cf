"""Matching engine, rules and confidence scoring."""

from .engine import CandidateMatcher
from .rules import (
    CompiledRule,
    Contains,
    Equals,
    GreaterThan,
    LessThan,
    compile_rules,
    matches,
    parse_amount_pattern,
)
from .scoring import (
    ConfidenceScorer,
    ScoreBreakdown,
    is_direction_compatible,
    score,
    score_breakdown,
)

__all__ = [
    "CandidateMatcher",
    "CompiledRule",
    "ConfidenceScorer",
    "Contains",
    "Equals",
    "GreaterThan",
    "LessThan",
    "ScoreBreakdown",
    "compile_rules",
    "is_direction_compatible",
    "matches",
    "parse_amount_pattern",
    "score",
    "score_breakdown",
]
