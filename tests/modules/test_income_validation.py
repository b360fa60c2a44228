"""
Save-time validation for income documents.

Field keys match the entry form so the caller can place each message
next to its input.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from charter_kernel.domain.documents import DocumentType, LineItem, PaymentRecord
from charter_modules.income.validation import (
    LINE_REQUIRED,
    PROJECT_REQUIRED,
    ValidationRules,
    validate_for_draft,
    validate_for_issue,
)
from tests.factories import make_document, make_line


class TestIssueValidation:
    def test_complete_invoice_passes(self):
        assert validate_for_issue(make_document()) == {}

    def test_complete_receipt_passes(self):
        assert validate_for_issue(make_document(DocumentType.RECEIPT)) == {}

    def test_header_errors_collected_together(self):
        doc = make_document(company_id=None, client_id=None, issue_date=None)
        errors = validate_for_issue(doc)
        assert errors == {
            "companyId": "Company is required",
            "clientId": "Customer is required",
            "invoiceDate": "Invoice date is required",
        }

    @pytest.mark.parametrize(
        "document_type, key",
        [
            (DocumentType.RECEIPT, "receiptDate"),
            (DocumentType.CREDIT_NOTE, "creditNoteDate"),
            (DocumentType.DEBIT_NOTE, "debitNoteDate"),
        ],
    )
    def test_date_key_follows_type(self, document_type, key):
        assert key in validate_for_issue(make_document(document_type, issue_date=None))

    def test_only_empty_lines(self):
        doc = make_document(line_items=(LineItem(), LineItem(description="  ")))
        assert validate_for_issue(doc)["lineItems"] == LINE_REQUIRED

    def test_missing_project_on_issue(self):
        doc = make_document(line_items=(make_line(project_id=None),))
        assert validate_for_issue(doc)["lineItems"] == PROJECT_REQUIRED

    def test_empty_line_needs_no_project(self):
        doc = make_document(line_items=(make_line(), LineItem()))
        assert validate_for_issue(doc) == {}

    def test_line_field_errors(self):
        doc = make_document(
            line_items=(
                make_line(),
                make_line(quantity=0, unit_price=-5, tax_rate=107, wht_rate=4),
            )
        )
        errors = validate_for_issue(doc)
        assert errors["lineItem_1_quantity"] == "Quantity must be greater than 0"
        assert errors["lineItem_1_unitPrice"] == "Unit price cannot be negative"
        assert "lineItem_1_taxRate" in errors
        assert errors["lineItem_1_whtRate"] == "Select a valid withholding tax rate"
        assert not any(key.startswith("lineItem_0_") for key in errors)

    def test_custom_wht_amount_must_not_be_negative(self):
        doc = make_document(line_items=(make_line(wht_rate="custom", custom_wht_amount=-1),))
        assert "lineItem_0_customWhtAmount" in validate_for_issue(doc)

    def test_wht_rates_come_from_rules(self):
        doc = make_document(line_items=(make_line(wht_rate=4),))
        rules = ValidationRules(allowed_wht_rates=(Decimal("0"), Decimal("4")))
        assert validate_for_issue(doc, rules) == {}

    def test_unsupported_currency(self):
        doc = make_document(currency="JPY")
        rules = ValidationRules(supported_currencies=("THB", "USD"))
        assert "currency" in validate_for_issue(doc, rules)
        assert validate_for_issue(doc) == {}

    def test_due_date_before_invoice_date(self):
        doc = make_document(due_date=date(2026, 1, 1))
        assert validate_for_issue(doc)["dueDate"] == "Due date must be on or after invoice date"


class TestReceiptPayments:
    def test_payment_required(self):
        doc = make_document(DocumentType.RECEIPT, payments=())
        assert validate_for_issue(doc)["payments"] == "At least one payment record is required"

    def test_payment_fields(self):
        doc = make_document(
            DocumentType.RECEIPT,
            payments=(
                PaymentRecord(amount=1040, received_at="1010"),
                PaymentRecord(amount=0),
            ),
        )
        errors = validate_for_issue(doc)
        assert errors["payment_1_amount"] == "Amount must be greater than 0"
        assert errors["payment_1_receivedAt"] == "Select where payment was received"
        assert "payments" not in errors

    def test_no_positive_payment(self):
        doc = make_document(DocumentType.RECEIPT, payments=(PaymentRecord(amount=0, received_at="1000"),))
        assert "positive amount" in validate_for_issue(doc)["payments"]

    def test_adjustment_needs_account(self):
        doc = make_document(DocumentType.RECEIPT, adjustment_type="deduct", adjustment_amount=10)
        assert "adjustmentAccountCode" in validate_for_issue(doc)
        doc = replace(doc, adjustment_account_code="5300")
        assert "adjustmentAccountCode" not in validate_for_issue(doc)


class TestDraftValidation:
    def test_draft_is_lenient(self):
        doc = make_document(client_id=None, issue_date=None, line_items=())
        assert validate_for_draft(doc) == {}

    def test_company_required(self):
        assert validate_for_draft(make_document(company_id="")) == {"companyId": "Company is required"}

    def test_receipt_draft_needs_projects(self):
        doc = make_document(DocumentType.RECEIPT, line_items=(make_line(project_id=None),))
        assert validate_for_draft(doc)["lineItems"] == PROJECT_REQUIRED

    def test_invoice_draft_does_not_need_projects(self):
        doc = make_document(line_items=(make_line(project_id=None),))
        assert validate_for_draft(doc) == {}

    def test_zero_quantity_allowed_in_draft(self):
        doc = make_document(line_items=(make_line(quantity=0),))
        assert validate_for_draft(doc) == {}

    def test_negative_price_rejected_in_draft(self):
        doc = make_document(line_items=(make_line(unit_price=-10),))
        assert "lineItem_0_unitPrice" in validate_for_draft(doc)
