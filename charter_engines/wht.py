"""
WHT tracking records -- one per line that withholds tax.

Pure functions.  The orchestrator hands the records to the external WHT
tracker, which later feeds the monthly withholding certificates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from charter_engines.line_items import breakdown_line
from charter_engines.money import HUNDRED, ZERO, round_money
from charter_kernel.domain.documents import Document, DocumentType


@dataclass(frozen=True)
class WhtTrackingRecord:
    document_id: UUID | None
    document_type: DocumentType
    document_number: str | None
    line_item_id: str
    company_id: str | None
    client_id: str | None
    client_name: str
    description: str
    base_amount: Decimal  # pre-VAT
    rate: Decimal  # percent; derived for custom amounts
    amount: Decimal
    currency: str
    document_date: date | None
    period: str | None  # YYYY-MM
    status: str = "pending"


def tracking_period(on: date | None) -> str | None:
    return on.strftime("%Y-%m") if on else None


def build_wht_tracking_records(document: Document) -> tuple[WhtTrackingRecord, ...]:
    """One record per line whose rounded WHT is non-zero, in line order."""
    records = []
    for item in document.line_items:
        figures = breakdown_line(item, document.pricing_type)
        amount = round_money(figures.wht_amount)
        if amount == ZERO:
            continue
        base = round_money(figures.pre_vat_amount)

        if item.is_custom_wht:
            rate = round_money(amount / base * HUNDRED) if base != ZERO else ZERO
        else:
            rate = item.wht_rate

        records.append(
            WhtTrackingRecord(
                document_id=document.id,
                document_type=document.document_type,
                document_number=document.document_number,
                line_item_id=item.id,
                company_id=document.company_id,
                client_id=document.client_id,
                client_name=document.client_name,
                description=item.description,
                base_amount=base,
                rate=rate,
                amount=amount,
                currency=document.currency,
                document_date=document.issue_date,
                period=tracking_period(document.issue_date),
            )
        )
    return tuple(records)
