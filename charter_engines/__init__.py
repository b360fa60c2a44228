"""
Module: charter_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: money
    rounding, line items, document totals, FX conversion, due dates,
    posting requests and WHT tracking records.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import charter_kernel (domain, logging, utils).
    MUST NOT import charter_services or charter_modules.

Invariants enforced:
    - Engines never read the clock; dates are passed in.
    - Decimal-only arithmetic.
    - Identical inputs always produce identical outputs.
"""

from charter_engines.fx import BaseAmounts, compute_base_amounts, convert_to_base
from charter_engines.line_items import (
    LineBreakdown,
    breakdown_line,
    compute_line_amount,
    compute_line_wht,
    extract_tax,
    pre_vat_amount,
)
from charter_engines.money import percent_of, round_money, to_decimal
from charter_engines.posting import (
    JournalLine,
    LineSide,
    PostingAccounts,
    PostingRequest,
    build_posting_request,
    posting_idempotency_key,
)
from charter_engines.terms import calculate_due_date
from charter_engines.totals import (
    DocumentTotals,
    ReceiptSettlement,
    apply_document_totals,
    compute_document_totals,
    compute_receipt_settlement,
    compute_total_wht,
    net_amount_to_pay,
    receipt_settlement,
)
from charter_engines.wht import WhtTrackingRecord, build_wht_tracking_records

__all__ = [
    "BaseAmounts",
    "DocumentTotals",
    "JournalLine",
    "LineBreakdown",
    "LineSide",
    "PostingAccounts",
    "PostingRequest",
    "ReceiptSettlement",
    "WhtTrackingRecord",
    "apply_document_totals",
    "breakdown_line",
    "build_posting_request",
    "build_wht_tracking_records",
    "calculate_due_date",
    "compute_base_amounts",
    "compute_document_totals",
    "compute_line_amount",
    "compute_line_wht",
    "compute_receipt_settlement",
    "compute_total_wht",
    "convert_to_base",
    "extract_tax",
    "net_amount_to_pay",
    "percent_of",
    "posting_idempotency_key",
    "pre_vat_amount",
    "receipt_settlement",
    "round_money",
    "to_decimal",
]
