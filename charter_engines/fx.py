"""
FX conversion -- document amounts expressed in the base currency.

Pure functions.  Rate resolution itself (providers, cache, override) lives
in ``charter_services.fx_rate_resolver``; this module only multiplies.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from charter_engines.money import round_money
from charter_engines.totals import document_net_amount
from charter_kernel.domain.currency import CurrencyRegistry
from charter_kernel.domain.documents import Document
from charter_kernel.exceptions import InvalidExchangeRateError


@dataclass(frozen=True)
class BaseAmounts:
    """A document's totals converted to the base currency."""
    currency: str
    rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    wht_amount: Decimal
    net_amount: Decimal


def convert_to_base(amount: Decimal, rate: Decimal, places: int = 2) -> Decimal:
    return round_money(amount * rate, places)


def compute_base_amounts(document: Document, base_currency: str) -> BaseAmounts | None:
    """Convert the document's totals at its ``fx_rate``.

    Base-currency documents convert at 1.  A foreign-currency document
    without a rate yields ``None`` (the rate still has to be entered).
    Amounts are rounded to the base currency's minor unit.

    Raises:
        InvalidExchangeRateError: The attached rate is zero or negative.
    """
    if document.currency == base_currency:
        rate = Decimal("1")
    elif document.fx_rate is None:
        return None
    else:
        rate = document.fx_rate
        if rate <= 0:
            raise InvalidExchangeRateError(
                document.currency, str(rate), "rate must be greater than zero"
            )

    places = CurrencyRegistry.get_decimal_places(base_currency)
    return BaseAmounts(
        currency=base_currency,
        rate=rate,
        subtotal=convert_to_base(document.subtotal, rate, places),
        tax_amount=convert_to_base(document.tax_amount, rate, places),
        total_amount=convert_to_base(document.total_amount, rate, places),
        wht_amount=convert_to_base(document.wht_amount, rate, places),
        net_amount=convert_to_base(document_net_amount(document), rate, places),
    )
