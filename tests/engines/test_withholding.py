"""
Tests for the withholding tax engine.

wht_amount  = service_charge * rate / 100, half-up to two places
net_payment = expense_amount + service_charge - wht_amount
"""

from decimal import Decimal

import pytest

from estate_engines.withholding import WithholdingCalculator
from estate_kernel.domain.money import round_money
from estate_kernel.exceptions import ValidationError


@pytest.fixture
def calculator():
    return WithholdingCalculator()


class TestWhtAmount:

    def test_five_percent(self, calculator):
        assert calculator.wht_amount("10000", "5") == Decimal("500.00")

    def test_zero_rate(self, calculator):
        assert calculator.wht_amount("10000", "0") == Decimal("0.00")

    def test_rounds_half_up(self, calculator):
        # 333.33 * 7.5% = 24.99975
        assert calculator.wht_amount("333.33", "7.5") == Decimal("25.00")

    def test_full_rate_withholds_entire_charge(self, calculator):
        assert calculator.wht_amount("1234.56", "100") == Decimal("1234.56")

    @pytest.mark.parametrize("charge, rate", [("0.50", "1"), ("10.10", "2.5"), ("99999.99", "7.25")])
    def test_rounding_matches_ledger_money_rounding(self, calculator, charge, rate):
        expected = round_money(Decimal(charge) * Decimal(rate) / Decimal("100"))
        assert calculator.wht_amount(charge, rate) == expected


class TestNetPayment:

    def test_gross_thirty_thousand_at_five_percent(self, calculator):
        assert calculator.net_payment("20000", "10000", "5") == Decimal("29500.00")

    def test_without_service_charge(self, calculator):
        result = calculator.calculate("15000", None, "5")
        assert result.service_charge == Decimal("0.00")
        assert result.wht_amount == Decimal("0.00")
        assert result.net_payment == Decimal("15000.00")

    def test_gross_equals_net_plus_wht(self, calculator):
        for expense, charge, rate in [
            ("20000", "10000", "5"),
            ("999.99", "0.01", "50"),
            ("1", "333.33", "7.5"),
            ("0", "100", "10"),
        ]:
            result = calculator.calculate(expense, charge, rate)
            assert result.gross_amount == result.net_payment + result.wht_amount
            assert Decimal("0") <= result.wht_amount <= result.service_charge


class TestValidation:

    @pytest.mark.parametrize("rate", ["-1", "100.01", "abc", "5.001"])
    def test_bad_rates(self, calculator, rate):
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate("100", "100", rate)
        assert exc_info.value.field == "wht_rate"

    def test_float_rate_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate("100", "100", 5.0)

    def test_negative_service_charge(self, calculator):
        with pytest.raises(ValidationError, match="service_charge"):
            calculator.calculate("100", "-1", "5")

    def test_negative_expense(self, calculator):
        with pytest.raises(ValidationError, match="expense_amount"):
            calculator.calculate("-100", "0", "5")
