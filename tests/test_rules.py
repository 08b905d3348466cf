from decimal import Decimal

import pytest

from bank_gl_recon.matching.rules import (
    CompiledRule,
    Contains,
    Equals,
    GreaterThan,
    LessThan,
    compile_rules,
    format_amount,
    matches,
    parse_amount_pattern,
)

from tests.conftest import make_entry, make_rule, make_transaction


class TestParseAmountPattern:
    def test_parses_each_variant(self):
        predicates = parse_amount_pattern(">1000| <50 |=99.90|4521")
        assert predicates == (
            GreaterThan(Decimal("1000")),
            LessThan(Decimal("50")),
            Equals(Decimal("99.90")),
            Contains("4521"),
        )

    def test_drops_unparseable_numbers(self):
        assert parse_amount_pattern("=abc|>|<1,000|=NaN") == ()

    def test_skips_empty_tokens(self):
        assert parse_amount_pattern("||=5||") == (Equals(Decimal("5")),)

    def test_empty_pattern(self):
        assert parse_amount_pattern(None) == ()
        assert parse_amount_pattern("") == ()


def test_format_amount_uses_plain_notation():
    assert format_amount(Decimal("119000.00")) == "119000"
    assert format_amount(Decimal("12.50")) == "12.5"
    assert format_amount(Decimal("0.00")) == "0"


class TestRuleMatches:
    """Rule evaluation: AND across fields, OR within a field."""

    def test_empty_rule_matches_everything(self):
        assert matches(make_rule(), make_transaction(), make_entry())

    def test_description_any_token_case_insensitive(self):
        rule = make_rule(description_pattern="ARRIENDO|Luz")
        assert matches(rule, make_transaction(description="Pago luz marzo"), make_entry())
        assert not matches(rule, make_transaction(description="pago agua"), make_entry())

    def test_description_of_only_separators_is_no_constraint(self):
        rule = make_rule(description_pattern=" | ")
        assert matches(rule, make_transaction(description="anything"), make_entry())

    def test_transaction_type_filter(self):
        rule = make_rule(transaction_type="fee")
        assert matches(rule, make_transaction(transaction_type="fee"), make_entry())
        assert not matches(rule, make_transaction(transaction_type="payment"), make_entry())

    @pytest.mark.parametrize(
        "pattern, expected",
        [
            ("=119000", True),
            ("=119000.00", True),
            (">100000", True),
            (">119000", False),
            ("<119001", True),
            ("<100", False),
            ("1190", True),
            ("555", False),
            ("<100|=119000", True),
            ("=abc", False),
        ],
    )
    def test_amount_predicates_use_absolute_amount(self, pattern, expected):
        rule = make_rule(amount_pattern=pattern)
        tx = make_transaction(amount=Decimal("-119000.00"))
        assert matches(rule, tx, make_entry()) is expected

    def test_all_fields_must_hold(self):
        rule = make_rule(
            description_pattern="factura",
            amount_pattern=">1000",
            transaction_type="payment",
        )
        tx = make_transaction(description="pago factura 1", amount=-5000)
        assert matches(rule, tx, make_entry())

        assert not matches(rule, make_transaction(description="pago", amount=-5000), make_entry())
        assert not matches(rule, make_transaction(description="factura", amount=-10), make_entry())
        assert not matches(
            rule,
            make_transaction(description="factura", amount=-5000, transaction_type="fee"),
            make_entry(),
        )

    def test_compiled_rule_is_reusable(self):
        compiled = CompiledRule.from_rule(make_rule(amount_pattern=">10"))
        assert compiled.matches(make_transaction(amount=-11), make_entry())
        assert not compiled.matches(make_transaction(amount=-9), make_entry())
        assert compiled.amount_predicates == (GreaterThan(Decimal("10")),)


def test_compile_rules_orders_by_priority_and_drops_inactive():
    rules = [
        make_rule(id="late", priority=5),
        make_rule(id="off", priority=0, is_active=False),
        make_rule(id="first", priority=1),
        make_rule(id="tie", priority=1),
    ]
    assert [r.id for r in compile_rules(rules)] == ["first", "tie", "late"]
