"""
Document Totals Aggregator -- subtotal, VAT, total and WHT for a document.

Pure functions, no I/O.  Per-line figures are accumulated unrounded and
each published total is rounded once.  ``total_amount`` is always the sum
of the rounded subtotal and rounded tax, so the two always add up.

An empty line list yields all-zero totals.  Input is assumed validated;
negative prices are not clamped here.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Sequence

from charter_engines.line_items import breakdown_line
from charter_engines.money import ZERO, round_money
from charter_engines.tracer import traced_engine
from charter_kernel.domain.documents import (
    AdjustmentType,
    Document,
    LineItem,
    PaymentRecord,
    PricingType,
)
from charter_kernel.logging_config import get_logger

logger = get_logger("engines.totals")


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class ReceiptSettlement:
    """How much of a receipt's net amount has been received."""
    total_payments: Decimal
    total_received: Decimal  # payments adjusted by add/deduct
    remaining_amount: Decimal  # net amount to pay - received


@traced_engine("document_totals", "1.0", fingerprint_fields=("line_items", "pricing_type"))
def compute_document_totals(
    line_items: Sequence[LineItem], pricing_type: PricingType
) -> DocumentTotals:
    """Roll line items up into subtotal, tax and total."""
    pricing_type = PricingType(pricing_type)
    subtotal = ZERO
    tax = ZERO
    for item in line_items:
        figures = breakdown_line(item, pricing_type)
        subtotal += figures.pre_vat_amount
        tax += figures.tax_amount

    subtotal = round_money(subtotal)
    tax = ZERO if pricing_type is PricingType.NO_VAT else round_money(tax)
    # Rounded addends keep total == subtotal + tax exact.
    return DocumentTotals(subtotal=subtotal, tax_amount=tax, total_amount=subtotal + tax)


def compute_total_wht(line_items: Iterable[LineItem], pricing_type: PricingType) -> Decimal:
    """Sum of every line's WHT, rounded once."""
    pricing_type = PricingType(pricing_type)
    total = ZERO
    for item in line_items:
        total += breakdown_line(item, pricing_type).wht_amount
    return round_money(total)


def net_amount_to_pay(total_amount: Decimal, wht_amount: Decimal) -> Decimal:
    """What the customer actually remits on a receipt: total less WHT."""
    return round_money(total_amount - wht_amount)


def compute_receipt_settlement(
    payments: Iterable[PaymentRecord],
    adjustment_type: AdjustmentType,
    adjustment_amount: Decimal,
    net_to_pay: Decimal,
) -> ReceiptSettlement:
    total_payments = round_money(sum((p.amount for p in payments), ZERO))

    adjustment_type = AdjustmentType(adjustment_type)
    if adjustment_type is AdjustmentType.ADD:
        received = total_payments + adjustment_amount
    elif adjustment_type is AdjustmentType.DEDUCT:
        received = total_payments - adjustment_amount
    else:
        received = total_payments
    received = round_money(received)

    return ReceiptSettlement(
        total_payments=total_payments,
        total_received=received,
        remaining_amount=round_money(net_to_pay - received),
    )


def document_net_amount(document: Document) -> Decimal:
    return net_amount_to_pay(document.total_amount, document.wht_amount)


def receipt_settlement(document: Document) -> ReceiptSettlement:
    """Settlement figures for a receipt whose totals are already applied."""
    return compute_receipt_settlement(
        document.payments,
        document.adjustment_type,
        document.adjustment_amount,
        document_net_amount(document),
    )


def apply_document_totals(document: Document) -> Document:
    """Return ``document`` with every derived total recomputed from its lines."""
    totals = compute_document_totals(document.line_items, document.pricing_type)
    wht = compute_total_wht(document.line_items, document.pricing_type)
    logger.debug(
        "document_totals_computed",
        extra={
            "document_type": document.document_type.value,
            "pricing_type": document.pricing_type.value,
            "line_count": len(document.line_items),
            "subtotal": str(totals.subtotal),
            "tax_amount": str(totals.tax_amount),
            "total_amount": str(totals.total_amount),
            "wht_amount": str(wht),
        },
    )
    return replace(
        document,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        total_amount=totals.total_amount,
        wht_amount=wht,
    )
