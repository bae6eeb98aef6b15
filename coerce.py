"""Lenient parsing of CRM field values.

The CRM delivers quantities, rates and dates as free text. None of these
helpers raise: anything unusable becomes zero (numbers) or ``None`` (dates).
"""

import logging
from datetime import date
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional, Union

ZERO = Decimal("0")
CENT = Decimal("0.01")
# Parsed values above this count as unusable.
MAX_VALUE = Decimal(10) ** 12
MONEY_PRECISION = 60

NumberLike = Union[str, int, float, Decimal, None]

logger = logging.getLogger(__name__)


def parse_decimal(value: NumberLike) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        clean = value.strip().replace("€", "").replace("$", "").replace(" ", "")
        clean = clean.replace(",", ".")
        if clean.count(".") > 1:
            parts = clean.split(".")
            clean = "".join(parts[:-1]) + "." + parts[-1]
        if not clean:
            return ZERO
        try:
            amount = Decimal(clean)
        except InvalidOperation:
            return ZERO
    if not amount.is_finite():
        return ZERO
    if amount < 0:
        return ZERO
    if amount > MAX_VALUE:
        logger.warning(f"value_out_of_range: value={value!r} max={MAX_VALUE}")
        return ZERO
    return amount


def parse_work_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _quantize(amount: Decimal, exp: Decimal, rounding: str) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        return amount.quantize(exp, rounding=rounding)


def round_money(amount: Decimal) -> Decimal:
    return _quantize(amount, CENT, ROUND_HALF_UP)


def floor_money(amount: Decimal) -> Decimal:
    return _quantize(amount, CENT, ROUND_DOWN)


def to_cents(amount: Decimal) -> int:
    return int(_quantize(amount * 100, Decimal("1"), ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
