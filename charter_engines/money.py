"""
Money helpers -- rounding and percentage application on ``Decimal``.

Every monetary figure the engines publish passes through ``round_money``
(ROUND_HALF_UP, two places).  Intermediate figures stay unrounded.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from charter_kernel.domain.documents import as_decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce a number or numeric string to ``Decimal``; ``None`` is zero."""
    if value is None:
        return ZERO
    return as_decimal(value)


def round_money(value: Any, places: int = 2) -> Decimal:
    """Round half away from zero to ``places`` decimals."""
    quantum = CENT if places == 2 else Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def percent_of(amount: Any, rate_percent: Any) -> Decimal:
    """``amount * rate_percent / 100``, unrounded."""
    return to_decimal(amount) * to_decimal(rate_percent) / HUNDRED


def is_zero(value: Any) -> bool:
    return round_money(value) == ZERO
