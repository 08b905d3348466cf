from datetime import timedelta
from decimal import Decimal

import pytest

from bank_gl_recon.config import ReconciliationConfig
from bank_gl_recon.matching.scoring import (
    ConfidenceScorer,
    is_direction_compatible,
    score,
    score_breakdown,
)
from bank_gl_recon.utils.exceptions import InvalidConfig

from tests.conftest import BASE_DATE, make_entry, make_transaction


class TestDirection:
    """Sign/direction compatibility, including credit-note inversion."""

    def test_received_invoice_expects_payment_out(self):
        assert is_direction_compatible(make_transaction(amount=-100), make_entry())
        assert not is_direction_compatible(make_transaction(amount=100), make_entry())

    def test_issued_invoice_expects_money_in(self):
        entry = make_entry(document_direction="issued")
        assert is_direction_compatible(make_transaction(amount=100), entry)
        assert not is_direction_compatible(make_transaction(amount=-100), entry)

    def test_credit_notes_invert_direction(self):
        issued_nc = make_entry(document_direction="issued", document_type="credit_note")
        received_nc = make_entry(document_direction="received", document_type="Nota de Crédito")

        assert is_direction_compatible(make_transaction(amount=-100), issued_nc)
        assert not is_direction_compatible(make_transaction(amount=100), issued_nc)
        assert is_direction_compatible(make_transaction(amount=100), received_nc)
        assert not is_direction_compatible(make_transaction(amount=-100), received_nc)

    def test_zero_amount_counts_as_positive(self):
        assert is_direction_compatible(
            make_transaction(amount=0), make_entry(document_direction="issued")
        )

    def test_missing_direction_compares_signs(self):
        entry = make_entry(document_direction=None, amount=Decimal("-50"))
        assert is_direction_compatible(make_transaction(amount=-50), entry)
        assert not is_direction_compatible(make_transaction(amount=50), entry)


class TestVetoes:
    """Direction and amount mismatches always score zero."""

    def test_sign_veto_ignores_perfect_text_and_date(self, config):
        tx = make_transaction(amount=119000, reference="F-1", description="F-1")
        entry = make_entry(reference="F-1", description="F-1")
        assert score(tx, entry, config) == 0

    def test_credit_note_sign_veto(self, config):
        tx = make_transaction(amount=-500)
        entry = make_entry(amount=500, document_type="nc", document_direction="received")
        assert score(tx, entry, config) == 0

    def test_amount_veto_beyond_tolerance(self, config):
        tx = make_transaction(amount=-100000, reference="F-1")
        entry = make_entry(amount=102000, reference="F-1")
        assert score(tx, entry, config) == 0

    def test_amount_veto_reason_reported(self, config):
        breakdown = ConfidenceScorer(config).breakdown(
            make_transaction(amount=-100000), make_entry(amount=150000)
        )
        assert breakdown.vetoed
        assert "tolerance" in breakdown.veto_reason
        assert breakdown.total == 0


class TestAmountAndDate:
    def test_exact_amount_same_day_without_text(self, config):
        assert score(make_transaction(), make_entry(), config) == 80

    def test_partial_amount_credit(self, config):
        tx = make_transaction(amount=-100000)
        entry = make_entry(amount=100500)
        # 0.5% deviation with 1% tolerance: half the amount weight
        assert score(tx, entry, config) == 25 + 30

    def test_custom_amount_tolerance(self):
        config = ReconciliationConfig(amount_tolerance_percent=0.5)
        tx = make_transaction(amount=-1000)
        entry = make_entry(amount=1004)
        assert score(tx, entry, config) == 10 + 30

        assert score(tx, make_entry(amount=1006), config) == 0

    def test_small_amounts_use_unit_denominator(self, config):
        tx = make_transaction(amount=Decimal("-0.50"))
        entry = make_entry(amount=Decimal("0.50"))
        assert score(tx, entry, config) == 80

    @pytest.mark.parametrize(
        "days, expected_date_points",
        [(0, 30), (1, 20), (2, 10), (3, 0), (4, 5), (45, 5)],
    )
    def test_date_points(self, config, days, expected_date_points):
        entry = make_entry(date=BASE_DATE + timedelta(days=days))
        assert score(make_transaction(), entry, config) == 50 + expected_date_points

    def test_distant_date_floor_is_tunable(self):
        config = ReconciliationConfig(distant_date_floor_ratio=0)
        entry = make_entry(date=BASE_DATE - timedelta(days=20))
        assert score(make_transaction(), entry, config) == 50


class TestText:
    def test_equal_references_full_weight(self, config):
        tx = make_transaction(reference="F-100")
        entry = make_entry(reference="F-100")
        assert score(tx, entry, config) == 100

    def test_reference_case_ignored_when_scoring(self, config):
        tx = make_transaction(reference="F-100")
        entry = make_entry(reference="f-100")
        assert score(tx, entry, config) == 100

    def test_case_sensitive_references(self):
        config = ReconciliationConfig(case_sensitive_references=True)
        tx = make_transaction(reference="F-100")
        entry = make_entry(reference="f-100")
        # Falls through to containment
        assert score(tx, entry, config) == 95

    def test_reference_found_in_description(self, config):
        tx = make_transaction(description="pago factura 4521")
        entry = make_entry(reference="4521")
        assert score(tx, entry, config) == 95

    def test_shared_number_token(self, config):
        tx = make_transaction(description="pago factura 4521")
        entry = make_entry(reference="FAC-4521")
        assert score(tx, entry, config) == 90

    def test_word_overlap(self, config):
        tx = make_transaction(description="transferencia proveedor acme")
        entry = make_entry(description="Pago proveedor ACME ltda")
        # 2 of 3 transaction words found: 20 * 2/3
        assert score(tx, entry, config) == 80 + 13

    def test_short_words_are_ignored(self, config):
        tx = make_transaction(description="pago de luz")
        entry = make_entry(description="luz de mes")
        assert score(tx, entry, config) == 80

    def test_breakdown_explains_points(self, config):
        breakdown = ConfidenceScorer(config).breakdown(
            make_transaction(description="pago factura 4521"),
            make_entry(reference="FAC-4521", date=BASE_DATE + timedelta(days=1)),
        )
        assert breakdown.amount_points == 50
        assert breakdown.date_points == 20
        assert breakdown.text_points == 10
        assert breakdown.date_difference_days == 1
        assert "4521" in breakdown.text_reason
        assert breakdown.total == 80

    def test_score_breakdown_function(self, config):
        tx = make_transaction(amount=100)
        entry = make_entry()

        breakdown = score_breakdown(tx, entry, config)

        assert breakdown.vetoed
        assert breakdown.veto_reason == "incompatible direction"
        assert breakdown.total == score(tx, entry, config) == 0


class TestScorerConfig:
    def test_rejects_bad_weights(self):
        with pytest.raises(InvalidConfig):
            ConfidenceScorer(ReconciliationConfig(amount_weight=60))

    def test_is_deterministic(self, config):
        tx = make_transaction(description="pago proveedor acme")
        entry = make_entry(description="proveedor acme", date=BASE_DATE + timedelta(days=2))
        scorer = ConfidenceScorer(config)
        assert scorer.score(tx, entry) == scorer.score(tx, entry) == score(tx, entry, config)

    def test_custom_weights(self):
        config = ReconciliationConfig(amount_weight=40, date_weight=40, description_weight=20)
        assert score(make_transaction(), make_entry(), config) == 80
        entry = make_entry(date=BASE_DATE + timedelta(days=30))
        # Floor is a sixth of the date weight
        assert score(make_transaction(), entry, config) == 40 + 7
