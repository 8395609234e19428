"""Tests for baitulmal.zakat.calculator."""

import pytest

from baitulmal.core.exceptions import InvalidInput
from baitulmal.zakat.calculator import (
    AssetLedger,
    BusinessLedger,
    FitrahLedger,
    MetalLedger,
    ZakatCalculator,
    assess,
    calculate_zakat,
    round_money,
)
from baitulmal.zakat.nisab import DEFAULT_NISAB_TABLE, NisabRule, ZakatType


class TestRounding:
    def test_half_up(self):
        assert round_money(0.125) == 0.13
        assert round_money(2.675) == 2.68

    def test_calculate_zakat(self):
        assert calculate_zakat(15000, 0.025) == 375.0
        assert calculate_zakat(14454, 0.025) == 361.35

    def test_calculate_zakat_non_positive(self):
        assert calculate_zakat(0, 0.025) == 0.0
        assert calculate_zakat(-100, 0.025) == 0.0


@pytest.mark.smoke
class TestHarta:
    def test_cash_less_debts(self):
        result = assess(AssetLedger(cash=20000, debts=5000), ZakatType.HARTA)
        assert result.gross_amount == 20000
        assert result.net_qualifying_amount == 15000
        assert result.is_eligible is True
        assert result.amount_due == 375.0

    def test_all_holdings_counted(self):
        ledger = AssetLedger(cash=5000, savings=5000, investments=3000, gold_value=1000, silver_value=500)
        result = assess(ledger, "harta")
        assert result.gross_amount == 14500
        assert result.is_eligible is True
        assert result.amount_due == 362.5

    def test_exactly_at_nisab_is_eligible(self):
        result = assess(AssetLedger(cash=14454), "harta")
        assert result.is_eligible is True
        assert result.amount_due == 361.35

    def test_below_nisab_owes_nothing(self):
        result = assess(AssetLedger(cash=14453.99), "harta")
        assert result.is_eligible is False
        assert result.amount_due == 0.0
        assert result.shortfall == 0.01

    def test_debts_exceeding_assets_clamped(self):
        result = assess(AssetLedger(cash=1000, debts=5000), "harta")
        assert result.net_qualifying_amount == 0.0
        assert result.amount_due == 0.0

    def test_monotone_in_holdings(self):
        dues = [assess(AssetLedger(cash=c), "harta").amount_due for c in (10000, 14454, 20000, 50000, 100000)]
        assert dues == sorted(dues)

    def test_debt_never_increases_due(self):
        base = assess(AssetLedger(cash=50000), "harta").amount_due
        with_debt = assess(AssetLedger(cash=50000, debts=10000), "harta").amount_due
        assert with_debt <= base


class TestPerniagaan:
    def test_business_assets(self):
        ledger = BusinessLedger(inventory=30000, receivables=10000, business_cash=5000, business_debts=15000)
        result = assess(ledger, ZakatType.PERNIAGAAN)
        assert result.gross_amount == 45000
        assert result.net_qualifying_amount == 30000
        assert result.amount_due == 750.0

    def test_below_nisab(self):
        result = assess(BusinessLedger(inventory=10000), "perniagaan")
        assert result.is_eligible is False
        assert result.amount_due == 0.0

    def test_liabilities_clamped(self):
        result = assess(BusinessLedger(inventory=1000, business_debts=9000), "perniagaan")
        assert result.net_qualifying_amount == 0.0


class TestMetals:
    def test_gold_eligibility_by_weight(self):
        result = assess(MetalLedger(weight_grams=100, unit_price=400), ZakatType.EMAS)
        assert result.is_eligible is True
        assert result.gross_amount == 40000
        assert result.amount_due == 1000.0
        assert result.nisab_threshold == 85

    def test_gold_below_weight_not_eligible_whatever_the_value(self):
        result = assess(MetalLedger(weight_grams=80, unit_price=10000), "emas")
        assert result.is_eligible is False
        assert result.amount_due == 0.0

    def test_silver(self):
        result = assess(MetalLedger(weight_grams=600, unit_price=4), "perak")
        assert result.is_eligible is True
        assert result.amount_due == 60.0

    def test_purity_out_of_range(self):
        with pytest.raises(InvalidInput, match="purity"):
            assess(MetalLedger(weight_grams=100, unit_price=400, purity=1.5), "emas")


class TestFitrah:
    def test_per_head(self):
        result = assess(FitrahLedger(head_count=5), ZakatType.FITRAH)
        assert result.is_eligible is True
        assert result.amount_due == 35.0
        assert result.head_count == 5
        assert result.to_dict()["head_count"] == 5

    def test_linear_in_head_count(self):
        one = assess(FitrahLedger(head_count=1), "fitrah").amount_due
        for n in (2, 3, 7):
            assert assess(FitrahLedger(head_count=n), "fitrah").amount_due == pytest.approx(n * one)

    def test_rate_override(self):
        result = assess(FitrahLedger(head_count=2, rate_per_head=12.5), "fitrah")
        assert result.amount_due == 25.0

    def test_zero_heads_rejected(self):
        with pytest.raises(InvalidInput, match="head_count"):
            assess(FitrahLedger(head_count=0), "fitrah")

    def test_fractional_heads_rejected(self):
        with pytest.raises(InvalidInput):
            assess(FitrahLedger(head_count=2.5), "fitrah")  # type: ignore[arg-type]


class TestValidation:
    def test_negative_field_rejected(self):
        with pytest.raises(InvalidInput) as exc_info:
            assess(AssetLedger(cash=-1), "harta")
        assert exc_info.value.context["field"] == "cash"

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_field_rejected(self, value):
        with pytest.raises(InvalidInput) as exc_info:
            assess(AssetLedger(cash=value), "harta")
        assert exc_info.value.context["field"] == "cash"

    def test_non_finite_metal_price_rejected(self):
        with pytest.raises(InvalidInput):
            assess(MetalLedger(weight_grams=100, unit_price=float("inf")), "emas")

    @pytest.mark.parametrize("value", ["1000", True])
    def test_non_numeric_field_rejected(self, value):
        with pytest.raises(InvalidInput, match="must be a number"):
            assess(AssetLedger(savings=value), "harta")

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidInput):
            assess(AssetLedger(cash=1), "pertanian")

    def test_mismatched_ledger_rejected(self):
        with pytest.raises(InvalidInput, match="requires BusinessLedger"):
            assess(AssetLedger(cash=20000), "perniagaan")


class TestAssessmentDict:
    def test_to_dict(self):
        data = assess(AssetLedger(cash=20000, debts=5000), "harta").to_dict()
        assert data == {
            "zakat_type": "harta",
            "gross_amount": 20000.0,
            "net_qualifying_amount": 15000.0,
            "nisab_threshold": 14454,
            "rate": 0.025,
            "is_eligible": True,
            "amount_due": 375.0,
        }


class TestZakatCalculator:
    def test_uses_its_table(self):
        table = DEFAULT_NISAB_TABLE.with_rule("harta", NisabRule(20000, 0.025))
        calc = ZakatCalculator(table)
        assert calc.assess(AssetLedger(cash=15000), "harta").is_eligible is False

    def test_reload(self):
        calc = ZakatCalculator()
        assert calc.assess(AssetLedger(cash=15000), "harta").is_eligible is True
        calc.reload(DEFAULT_NISAB_TABLE.with_rule("harta", NisabRule(20000, 0.025)))
        assert calc.assess(AssetLedger(cash=15000), "harta").is_eligible is False
