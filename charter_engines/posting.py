"""
Posting request builder -- the journal a final document asks the ledger for.

Responsibility:
    Turns a document whose totals are applied into a ``PostingRequest``: a
    set of debit/credit journal lines plus the header fields the external
    ledger needs.  The ledger itself is out of reach of this package; the
    side-effect orchestrator submits the request.

Architecture position:
    Engines -- pure calculation, zero I/O.

Journal shapes:
    Invoice, debit note   Dr receivable (total)
                          Cr revenue per line (pre-VAT base), Cr VAT payable
    Credit note           mirror image of the invoice
    Receipt               Dr cash/bank per payment, Dr WHT receivable,
                          Dr adjustment (add) / Cr adjustment (deduct),
                          Dr/Cr receivable for any unsettled remainder,
                          Cr revenue per line, Cr VAT payable

Invariants enforced:
    - Line amounts are non-negative; a negative figure flips its side.
    - Revenue lines are rounded per line; the cent left over by rounding is
      carried on the last revenue line so revenue sums to the subtotal.
    - ``idempotency_key`` is stable for a (document, status) pair.

Failure modes:
    - ValueError if the document has no id yet (it must be persisted first).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from charter_engines.line_items import breakdown_line
from charter_engines.money import ZERO, round_money
from charter_engines.totals import document_net_amount, receipt_settlement
from charter_engines.tracer import traced_engine
from charter_kernel.domain.documents import (
    AdjustmentType,
    Document,
    DocumentStatus,
    DocumentType,
)
from charter_kernel.utils.idempotency import generate_idempotency_key

POSTING_PRODUCER = "charter"


class LineSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"

    def opposite(self) -> LineSide:
        return LineSide.CREDIT if self is LineSide.DEBIT else LineSide.DEBIT


@dataclass(frozen=True)
class PostingAccounts:
    """Ledger account codes used when a line or payment names none."""
    cash: str = "1000"
    bank: str = "1010"
    accounts_receivable: str = "1100"
    wht_receivable: str = "1160"
    vat_payable: str = "2200"
    revenue: str = "4490"


@dataclass(frozen=True)
class JournalLine:
    account_code: str
    side: LineSide
    amount: Decimal
    memo: str | None = None
    project_id: str | None = None

    def __post_init__(self) -> None:
        if self.amount < ZERO:
            raise ValueError("Journal line amount must be non-negative")


@dataclass(frozen=True)
class PaymentSummary:
    amount: Decimal
    date: date | None
    received_at: str | None
    remark: str = ""


@dataclass(frozen=True)
class PostingRequest:
    """Everything the ledger needs to book one document transition."""
    idempotency_key: str
    document_id: UUID
    document_type: DocumentType
    document_number: str | None
    status: DocumentStatus
    posting_date: date | None
    company_id: str | None
    client_id: str | None
    client_name: str
    currency: str
    fx_rate: Decimal | None
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    wht_amount: Decimal
    net_amount: Decimal
    lines: tuple[JournalLine, ...]
    payments: tuple[PaymentSummary, ...] = field(default_factory=tuple)

    @property
    def total_debits(self) -> Decimal:
        return sum((l.amount for l in self.lines if l.side is LineSide.DEBIT), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((l.amount for l in self.lines if l.side is LineSide.CREDIT), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


def posting_idempotency_key(document_id: UUID | str, document_type: DocumentType,
                            status: DocumentStatus) -> str:
    return generate_idempotency_key(
        POSTING_PRODUCER,
        f"{DocumentType(document_type).value}.{DocumentStatus(status).value}",
        document_id,
    )


class _JournalBuilder:
    def __init__(self) -> None:
        self.lines: list[JournalLine] = []

    def add(self, account_code: str, side: LineSide, amount: Decimal,
            memo: str | None = None, project_id: str | None = None) -> None:
        amount = round_money(amount)
        if amount == ZERO:
            return
        if amount < ZERO:
            side, amount = side.opposite(), -amount
        self.lines.append(JournalLine(account_code, side, amount, memo, project_id))


def _revenue_lines(document: Document, accounts: PostingAccounts,
                   side: LineSide, builder: _JournalBuilder) -> None:
    figures = [
        (item, round_money(breakdown_line(item, document.pricing_type).pre_vat_amount))
        for item in document.line_items
    ]
    figures = [(item, amount) for item, amount in figures if amount != ZERO]
    if not figures:
        return

    residual = document.subtotal - sum((amount for _, amount in figures), ZERO)
    last = len(figures) - 1
    for i, (item, amount) in enumerate(figures):
        if i == last:
            amount += residual
        builder.add(
            item.account_code or accounts.revenue,
            side,
            amount,
            memo=item.description or None,
            project_id=item.project_id,
        )


@traced_engine("posting_request", "1.0", fingerprint_fields=("document",))
def build_posting_request(document: Document, accounts: PostingAccounts) -> PostingRequest:
    """Build the journal for ``document`` in its current status."""
    if document.id is None:
        raise ValueError("Document must be persisted before it can be posted")

    builder = _JournalBuilder()
    doc_type = document.document_type
    label = document.document_number or str(document.id)

    if doc_type is DocumentType.RECEIPT:
        for payment in document.payments:
            builder.add(
                payment.received_at or accounts.cash,
                LineSide.DEBIT,
                payment.amount,
                memo=payment.remark or f"Receipt {label}",
            )
        builder.add(accounts.wht_receivable, LineSide.DEBIT, document.wht_amount,
                    memo=f"WHT on {label}")
        if document.has_adjustment:
            adjustment_side = (
                LineSide.DEBIT
                if document.adjustment_type is AdjustmentType.ADD
                else LineSide.CREDIT
            )
            builder.add(
                document.adjustment_account_code or accounts.cash,
                adjustment_side,
                document.adjustment_amount,
                memo=document.adjustment_remark or "Receipt adjustment",
            )
        builder.add(accounts.accounts_receivable, LineSide.DEBIT,
                    receipt_settlement(document).remaining_amount,
                    memo=f"Unsettled on {label}")
        _revenue_lines(document, accounts, LineSide.CREDIT, builder)
        builder.add(accounts.vat_payable, LineSide.CREDIT, document.tax_amount,
                    memo=f"VAT on {label}")
    else:
        # Credit notes reverse the invoice shape.
        revenue_side = (
            LineSide.DEBIT if doc_type is DocumentType.CREDIT_NOTE else LineSide.CREDIT
        )
        builder.add(accounts.accounts_receivable, revenue_side.opposite(),
                    document.total_amount, memo=f"{doc_type.value} {label}")
        _revenue_lines(document, accounts, revenue_side, builder)
        builder.add(accounts.vat_payable, revenue_side, document.tax_amount,
                    memo=f"VAT on {label}")

    return PostingRequest(
        idempotency_key=posting_idempotency_key(document.id, doc_type, document.status),
        document_id=document.id,
        document_type=doc_type,
        document_number=document.document_number,
        status=document.status,
        posting_date=document.issue_date,
        company_id=document.company_id,
        client_id=document.client_id,
        client_name=document.client_name,
        currency=document.currency,
        fx_rate=document.fx_rate,
        subtotal=document.subtotal,
        tax_amount=document.tax_amount,
        total_amount=document.total_amount,
        wht_amount=document.wht_amount,
        net_amount=document_net_amount(document),
        lines=tuple(builder.lines),
        payments=tuple(
            PaymentSummary(p.amount, p.date, p.received_at, p.remark)
            for p in document.payments
        ),
    )
