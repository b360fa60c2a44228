"""Journal shapes built for the ledger when a document is finalized."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from charter_engines.posting import (
    JournalLine,
    LineSide,
    PostingAccounts,
    build_posting_request,
    posting_idempotency_key,
)
from charter_engines.totals import apply_document_totals
from charter_kernel.domain.documents import (
    Document,
    DocumentStatus,
    DocumentType,
    LineItem,
    PaymentRecord,
)

ACCOUNTS = PostingAccounts()


def _doc(document_type=DocumentType.INVOICE, **kw) -> Document:
    values = dict(
        document_type=document_type,
        company_id="c1",
        issue_date=date(2026, 1, 15),
        id=uuid4(),
        document_number="INV-2601-0001",
        status=document_type.final_status,
        line_items=(
            LineItem(description="Charter day", unit_price=1000, tax_rate=7, wht_rate=3, account_code="4100"),
        ),
    )
    values.update(kw)
    return apply_document_totals(Document(**values))


def _by_account(request) -> dict[str, tuple[LineSide, Decimal]]:
    return {line.account_code: (line.side, line.amount) for line in request.lines}


class TestInvoicePosting:
    def test_invoice_shape(self):
        request = build_posting_request(_doc(), ACCOUNTS)
        assert _by_account(request) == {
            "1100": (LineSide.DEBIT, Decimal("1070.00")),
            "4100": (LineSide.CREDIT, Decimal("1000.00")),
            "2200": (LineSide.CREDIT, Decimal("70.00")),
        }
        assert request.is_balanced

    def test_credit_note_is_mirrored(self):
        request = build_posting_request(_doc(DocumentType.CREDIT_NOTE), ACCOUNTS)
        sides = {code: side for code, (side, _) in _by_account(request).items()}
        assert sides == {"1100": LineSide.CREDIT, "4100": LineSide.DEBIT, "2200": LineSide.DEBIT}
        assert request.is_balanced

    def test_revenue_falls_back_to_default_account(self):
        doc = _doc(line_items=(LineItem(description="Crew", unit_price=500, tax_rate=0),))
        assert "4490" in _by_account(build_posting_request(doc, ACCOUNTS))

    def test_rounding_residual_lands_on_last_revenue_line(self):
        lines = tuple(
            LineItem(description=f"Leg {i}", unit_price="33.335", tax_rate=0) for i in range(3)
        )
        doc = _doc(line_items=lines)
        request = build_posting_request(doc, ACCOUNTS)
        revenue = [l.amount for l in request.lines if l.account_code == "4490"]
        assert sum(revenue) == doc.subtotal
        assert request.is_balanced


class TestReceiptPosting:
    def _receipt(self, **kw) -> Document:
        values = dict(
            document_number="RE-2601-0001",
            payments=(PaymentRecord(amount=1040, received_at="1010"),),
        )
        values.update(kw)
        return _doc(DocumentType.RECEIPT, **values)

    def test_fully_settled_receipt(self):
        request = build_posting_request(self._receipt(), ACCOUNTS)
        assert _by_account(request) == {
            "1010": (LineSide.DEBIT, Decimal("1040.00")),
            "1160": (LineSide.DEBIT, Decimal("30.00")),
            "4100": (LineSide.CREDIT, Decimal("1000.00")),
            "2200": (LineSide.CREDIT, Decimal("70.00")),
        }
        assert request.is_balanced
        assert request.net_amount == Decimal("1040.00")

    def test_deduct_adjustment_and_remainder(self):
        receipt = self._receipt(
            payments=(PaymentRecord(amount=1000, received_at="1010"),),
            adjustment_type="deduct",
            adjustment_amount="15",
            adjustment_account_code="5300",
        )
        request = build_posting_request(receipt, ACCOUNTS)
        accounts = _by_account(request)
        assert accounts["5300"] == (LineSide.CREDIT, Decimal("15.00"))
        assert accounts["1100"] == (LineSide.DEBIT, Decimal("55.00"))
        assert request.is_balanced

    def test_add_adjustment_is_debited(self):
        receipt = self._receipt(
            payments=(PaymentRecord(amount=1020, received_at="1010"),),
            adjustment_type="add",
            adjustment_amount="20",
            adjustment_account_code="5310",
        )
        request = build_posting_request(receipt, ACCOUNTS)
        assert _by_account(request)["5310"] == (LineSide.DEBIT, Decimal("20.00"))
        assert "1100" not in _by_account(request)
        assert request.is_balanced

    def test_payment_without_account_uses_cash(self):
        receipt = self._receipt(payments=(PaymentRecord(amount=1040),))
        assert "1000" in _by_account(build_posting_request(receipt, ACCOUNTS))

    def test_overpayment_credits_receivable(self):
        receipt = self._receipt(payments=(PaymentRecord(amount=1100, received_at="1010"),))
        request = build_posting_request(receipt, ACCOUNTS)
        assert _by_account(request)["1100"] == (LineSide.CREDIT, Decimal("60.00"))
        assert request.is_balanced


class TestRequestHeader:
    def test_idempotency_key_is_stable(self):
        doc = _doc()
        first = build_posting_request(doc, ACCOUNTS)
        second = build_posting_request(doc, ACCOUNTS)
        assert first.idempotency_key == second.idempotency_key
        assert first.idempotency_key == posting_idempotency_key(doc.id, doc.document_type, doc.status)
        assert first.idempotency_key.startswith("charter:invoice.issued:")

    def test_requires_persisted_document(self):
        with pytest.raises(ValueError, match="persisted"):
            build_posting_request(replace(_doc(), id=None), ACCOUNTS)

    def test_status_in_key(self):
        doc = _doc(DocumentType.RECEIPT, payments=(PaymentRecord(amount=1040),))
        assert ":receipt.paid:" in build_posting_request(doc, ACCOUNTS).idempotency_key
        assert doc.status is DocumentStatus.PAID

    def test_journal_line_rejects_negative(self):
        with pytest.raises(ValueError, match="non-negative"):
            JournalLine("1000", LineSide.DEBIT, Decimal("-1"))
