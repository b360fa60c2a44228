"""
Line Item Calculator -- per-line gross amount, VAT and WHT.

Pure functions, no I/O.

VAT and WHT are both measured against the line's pre-VAT base, while the
gross ``amount`` depends on the pricing type:

    exclude_vat: base = qty * price          gross = base * (1 + vat%)
    include_vat: gross = qty * price         base  = gross / (1 + vat%)
    no_vat:      base = gross = qty * price  vat   = 0

WHT = base * wht% (or the line's custom amount), whatever the pricing type.

Usage:
    from charter_engines.line_items import compute_line_amount, compute_line_wht

    compute_line_amount(1, 1000, 7, PricingType.EXCLUDE_VAT)   # Decimal("1070.00")
    compute_line_wht(item, PricingType.INCLUDE_VAT)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from charter_engines.money import HUNDRED, ZERO, percent_of, round_money, to_decimal
from charter_kernel.domain.documents import LineItem, PricingType


@dataclass(frozen=True)
class LineBreakdown:
    """Unrounded figures for one line; totals are summed from these."""
    line_subtotal: Decimal  # qty * price as entered
    pre_vat_amount: Decimal
    tax_amount: Decimal
    amount: Decimal  # gross contribution to the document total
    wht_amount: Decimal

    def rounded(self) -> LineBreakdown:
        return LineBreakdown(
            line_subtotal=round_money(self.line_subtotal),
            pre_vat_amount=round_money(self.pre_vat_amount),
            tax_amount=round_money(self.tax_amount),
            amount=round_money(self.amount),
            wht_amount=round_money(self.wht_amount),
        )


def _vat_factor(tax_rate: Decimal) -> Decimal:
    return 1 + tax_rate / HUNDRED


def pre_vat_amount(
    quantity: Any, unit_price: Any, tax_rate: Any, pricing_type: PricingType
) -> Decimal:
    """The VAT-exclusive base of a line, unrounded."""
    line_subtotal = to_decimal(quantity) * to_decimal(unit_price)
    if PricingType(pricing_type) is PricingType.INCLUDE_VAT:
        return line_subtotal / _vat_factor(to_decimal(tax_rate))
    return line_subtotal


def _gross_amount(
    quantity: Decimal, unit_price: Decimal, tax_rate: Decimal, pricing_type: PricingType
) -> Decimal:
    line_subtotal = quantity * unit_price
    if pricing_type is PricingType.EXCLUDE_VAT:
        return line_subtotal * _vat_factor(tax_rate)
    return line_subtotal


def compute_line_amount(
    quantity: Any, unit_price: Any, tax_rate: Any, pricing_type: PricingType
) -> Decimal:
    """A line's contribution to the document total, rounded to 2dp."""
    return round_money(
        _gross_amount(
            to_decimal(quantity),
            to_decimal(unit_price),
            to_decimal(tax_rate),
            PricingType(pricing_type),
        )
    )


def _line_wht(item: LineItem, pricing_type: PricingType) -> Decimal:
    if item.is_custom_wht:
        return item.custom_wht_amount if item.custom_wht_amount is not None else ZERO
    if item.wht_rate == ZERO:
        return ZERO
    base = pre_vat_amount(item.quantity, item.unit_price, item.tax_rate, pricing_type)
    return percent_of(base, item.wht_rate)


def compute_line_wht(item: LineItem, pricing_type: PricingType) -> Decimal:
    """WHT for one line, rounded to 2dp.

    A ``custom`` rate returns the line's custom amount (zero when absent);
    any other rate is applied to the pre-VAT base.
    """
    return round_money(_line_wht(item, PricingType(pricing_type)))


def breakdown_line(item: LineItem, pricing_type: PricingType) -> LineBreakdown:
    """Every figure for one line, unrounded."""
    pricing_type = PricingType(pricing_type)
    line_subtotal = item.quantity * item.unit_price
    base = pre_vat_amount(item.quantity, item.unit_price, item.tax_rate, pricing_type)

    if pricing_type is PricingType.EXCLUDE_VAT:
        tax = percent_of(line_subtotal, item.tax_rate)
    elif pricing_type is PricingType.INCLUDE_VAT:
        tax = line_subtotal - base
    else:
        tax = ZERO

    return LineBreakdown(
        line_subtotal=line_subtotal,
        pre_vat_amount=base,
        tax_amount=tax,
        amount=_gross_amount(item.quantity, item.unit_price, item.tax_rate, pricing_type),
        wht_amount=_line_wht(item, pricing_type),
    )


def extract_tax(gross: Any, tax_rate: Any) -> tuple[Decimal, Decimal]:
    """Split a VAT-inclusive figure into (net, tax), both rounded.

    ``tax`` is taken as ``gross - net`` so the two always add back up to
    the rounded gross.
    """
    gross_rounded = round_money(gross)
    net = round_money(to_decimal(gross) / _vat_factor(to_decimal(tax_rate)))
    return net, gross_rounded - net
