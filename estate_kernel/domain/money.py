"""
Money -- boundary validation for monetary amounts.

Responsibility:
    Converts caller input into ``Decimal`` with exactly two decimal places.
    Amounts are stored as integer minor units (see ``db.base.MinorUnits``),
    so anything that cannot be represented exactly in hundredths is rejected
    here, before any row is touched.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - No float ever becomes a monetary value.
    - At most two decimal places; no rounding on input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from estate_kernel.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any, field: str = "amount") -> Decimal:
    """
    Parse ``value`` into a two-place Decimal.

    Accepts Decimal, int, or a numeric string. Floats are refused because
    their binary value is not the amount the caller meant.

    Raises:
        ValidationError: non-numeric, non-finite, float, or more than two
            decimal places.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(
            f"{field} must be a Decimal, int or string, got {type(value).__name__}",
            field=field,
        )
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} is not a number: {value!r}", field=field) from exc

    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    if amount != amount.quantize(CENT):
        raise ValidationError(
            f"{field} has more than two decimal places: {amount}", field=field
        )
    return amount.quantize(CENT)


def to_positive_money(value: Any, field: str = "amount") -> Decimal:
    """Like ``to_money`` but the result must be strictly greater than zero."""
    amount = to_money(value, field)
    if amount <= ZERO:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return amount


def round_money(value: Decimal) -> Decimal:
    """Round a computed amount half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
