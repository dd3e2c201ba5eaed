"""Exact decimal money arithmetic and installment splitting"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import List, Optional

from ledger_engine.domain.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value, field: str = "amount") -> Decimal:
    """
    Coerce a number or numeric string to a Decimal at the minor unit.

    Floats go through their repr so 0.1 becomes Decimal("0.10"), not the
    binary expansion. Values with sub-cent precision are rejected rather
    than silently rounded.

    Raises:
        ValidationError: Non-numeric input or more than two decimal places
    """
    if isinstance(value, bool):
        raise ValidationError("must be a number", field=field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("must be a number", field=field) from e
    if not amount.is_finite():
        raise ValidationError("must be a finite number", field=field)
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise ValidationError("must not have more than two decimal places", field=field)
    return quantized


def split_amount(amount, count: int) -> List[Decimal]:
    """
    Split a positive amount into `count` parts that add up exactly.

    Each part is the even share truncated to the cent; the last part absorbs
    the whole remainder (at most count - 1 cents).

    Example:
        100.00 / 3 → [33.33, 33.33, 33.34]
    """
    if not isinstance(count, int) or count < 1:
        raise ValidationError("installment count must be at least 1", field="count")
    total = to_money(amount)
    if total <= 0:
        raise ValidationError("must be greater than zero", field="amount")
    if total < CENT * count:
        raise ValidationError(f"too small to split into {count} parts", field="amount")

    base = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    parts = [base] * count
    parts[-1] = total - base * (count - 1)
    return parts


def percent_of(part: Decimal, whole: Decimal) -> Optional[Decimal]:
    """Percentage rounded to two places; None when whole is zero"""
    if not whole:
        return None
    return (part / whole * 100).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal) -> str:
    """Render as Brazilian real, e.g. R$ 1.234,56"""
    quantized = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    text = f"{abs(quantized):,.2f}"
    return f"{sign}R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")
