"""
Withholding Engine - withholding tax on vendor service charges.

Pure functions with no I/O. Withholding applies to the service-charge
component of an expense only; the expense amount itself is paid in full.

    wht_amount  = service_charge * wht_rate / 100   (half-up, 2 places)
    net_payment = expense_amount + service_charge - wht_amount

Usage:
    from decimal import Decimal
    from estate_engines.withholding import WithholdingCalculator

    result = WithholdingCalculator().calculate(
        expense_amount=Decimal("20000"),
        service_charge=Decimal("10000"),
        wht_rate=Decimal("5"),
    )
    result.wht_amount   # Decimal("500.00")
    result.net_payment  # Decimal("29500.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from estate_kernel.domain.money import CENT, round_money, to_money
from estate_kernel.exceptions import ValidationError
from estate_kernel.logging_config import get_logger

logger = get_logger("engines.withholding")

_HUNDRED = Decimal("100")


def _to_rate(value: Any) -> Decimal:
    if isinstance(value, (bool, float)):
        raise ValidationError("wht_rate must be a Decimal, int or string", field="wht_rate")
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as exc:
        raise ValidationError(f"wht_rate is not a number: {value!r}", field="wht_rate") from exc
    if not rate.is_finite() or rate < 0 or rate > _HUNDRED:
        raise ValidationError(
            f"wht_rate must be between 0 and 100, got {value}", field="wht_rate"
        )
    if rate != rate.quantize(CENT):
        raise ValidationError(
            f"wht_rate has more than two decimal places: {value}", field="wht_rate"
        )
    return rate


@dataclass(frozen=True)
class WithholdingResult:
    """Outcome of a withholding calculation."""

    expense_amount: Decimal
    service_charge: Decimal
    wht_rate: Decimal
    wht_amount: Decimal
    net_payment: Decimal

    @property
    def gross_amount(self) -> Decimal:
        return self.expense_amount + self.service_charge


class WithholdingCalculator:
    """
    Stateless withholding tax calculator.

    Guarantees:
        - gross_amount == net_payment + wht_amount exactly.
        - 0 <= wht_amount <= service_charge.
    """

    def wht_amount(self, service_charge: Any, wht_rate: Any) -> Decimal:
        charge = to_money(service_charge, "service_charge")
        if charge < 0:
            raise ValidationError("service_charge cannot be negative", field="service_charge")
        rate = _to_rate(wht_rate)
        return round_money(charge * rate / _HUNDRED)

    def net_payment(self, expense_amount: Any, service_charge: Any, wht_rate: Any) -> Decimal:
        return self.calculate(expense_amount, service_charge, wht_rate).net_payment

    def calculate(
        self,
        expense_amount: Any,
        service_charge: Any,
        wht_rate: Any,
    ) -> WithholdingResult:
        """
        Compute withholding and net payment.

        ``service_charge`` of None counts as zero.

        Raises:
            ValidationError: rate outside [0, 100], negative amounts, or
                amounts with more than two decimals.
        """
        expense = to_money(expense_amount, "expense_amount")
        if expense < 0:
            raise ValidationError("expense_amount cannot be negative", field="expense_amount")
        charge = to_money(service_charge if service_charge is not None else 0, "service_charge")
        rate = _to_rate(wht_rate)

        wht = self.wht_amount(charge, rate)
        result = WithholdingResult(
            expense_amount=expense,
            service_charge=charge,
            wht_rate=rate,
            wht_amount=wht,
            net_payment=expense + charge - wht,
        )
        logger.debug(
            "withholding_calculated",
            extra={
                "service_charge": str(charge),
                "wht_rate": str(rate),
                "wht_amount": str(wht),
                "net_payment": str(result.net_payment),
            },
        )
        return result
