"""
Income document validation (``charter_modules.income.validation``).

Responsibility
--------------
Save-time checks for invoices, receipts, credit notes and debit notes.
Each check returns a mapping of field key to message; every problem is
collected so the user can correct them in one pass.

Two levels:

* ``validate_for_draft`` -- the weak check for work in progress: company
  selected, line figures sane and, for receipts, a project on every
  non-empty line.
* ``validate_for_issue`` -- everything needed before a document may
  become ``issued`` / ``paid``.

Field keys follow the form's naming (``companyId``, ``lineItems``,
``payment_0_amount``, ``lineItem_2_quantity`` ...).

Architecture position
---------------------
**Modules layer** -- pure functions, ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from charter_kernel.domain.documents import (
    ALLOWED_WHT_RATES,
    Document,
    DocumentType,
)
from charter_kernel.logging_config import get_logger

logger = get_logger("modules.income.validation")

FieldErrors = dict[str, str]

DATE_FIELDS: dict[DocumentType, tuple[str, str]] = {
    DocumentType.INVOICE: ("invoiceDate", "Invoice date is required"),
    DocumentType.RECEIPT: ("receiptDate", "Receipt date is required"),
    DocumentType.CREDIT_NOTE: ("creditNoteDate", "Credit note date is required"),
    DocumentType.DEBIT_NOTE: ("debitNoteDate", "Debit note date is required"),
}

PROJECT_REQUIRED = "Project is required for each line item"
LINE_REQUIRED = "Add at least one line item with a description or price"


@dataclass(frozen=True)
class ValidationRules:
    """Configuration-driven inputs to validation."""
    allowed_wht_rates: tuple[Decimal, ...] = ALLOWED_WHT_RATES
    supported_currencies: tuple[str, ...] | None = None


DEFAULT_RULES = ValidationRules()


def _check_lines(document: Document, rules: ValidationRules, *, issuing: bool) -> FieldErrors:
    errors: FieldErrors = {}
    allowed = set(rules.allowed_wht_rates)
    for i, item in enumerate(document.line_items):
        if item.is_empty:
            continue
        if issuing and item.quantity <= 0:
            errors[f"lineItem_{i}_quantity"] = "Quantity must be greater than 0"
        if item.unit_price < 0:
            errors[f"lineItem_{i}_unitPrice"] = "Unit price cannot be negative"
        if not 0 <= item.tax_rate <= 100:
            errors[f"lineItem_{i}_taxRate"] = "Tax rate must be between 0 and 100"
        if item.is_custom_wht:
            if item.custom_wht_amount is not None and item.custom_wht_amount < 0:
                errors[f"lineItem_{i}_customWhtAmount"] = "WHT amount cannot be negative"
        elif item.wht_rate not in allowed:
            errors[f"lineItem_{i}_whtRate"] = "Select a valid withholding tax rate"
    return errors


def _missing_project(document: Document) -> bool:
    return any(not item.project_id for item in document.non_empty_lines)


def _check_currency(document: Document, rules: ValidationRules) -> FieldErrors:
    if rules.supported_currencies is None:
        return {}
    if document.currency not in rules.supported_currencies:
        return {"currency": f"Currency {document.currency or '(none)'} is not supported"}
    return {}


def validate_for_draft(document: Document, rules: ValidationRules = DEFAULT_RULES) -> FieldErrors:
    """Checks for saving (or staying) in draft."""
    errors: FieldErrors = {}
    if not document.company_id:
        errors["companyId"] = "Company is required"
    if document.is_receipt and _missing_project(document):
        errors["lineItems"] = PROJECT_REQUIRED
    errors.update(_check_currency(document, rules))
    errors.update(_check_lines(document, rules, issuing=False))
    return errors


def _check_payments(document: Document) -> FieldErrors:
    errors: FieldErrors = {}
    if not document.payments:
        errors["payments"] = "At least one payment record is required"
        return errors
    for i, payment in enumerate(document.payments):
        if payment.amount <= 0:
            errors[f"payment_{i}_amount"] = "Amount must be greater than 0"
        if not payment.received_at:
            errors[f"payment_{i}_receivedAt"] = "Select where payment was received"
    if not any(p.amount > 0 for p in document.payments):
        errors["payments"] = "At least one payment record with a positive amount is required"
    return errors


def validate_for_issue(document: Document, rules: ValidationRules = DEFAULT_RULES) -> FieldErrors:
    """Checks for moving a document into its final status."""
    errors: FieldErrors = {}
    if not document.company_id:
        errors["companyId"] = "Company is required"
    if not document.client_id:
        errors["clientId"] = "Customer is required"

    date_key, date_message = DATE_FIELDS[document.document_type]
    if document.issue_date is None:
        errors[date_key] = date_message

    if not document.non_empty_lines:
        errors["lineItems"] = LINE_REQUIRED
    elif _missing_project(document):
        errors["lineItems"] = PROJECT_REQUIRED

    errors.update(_check_currency(document, rules))
    errors.update(_check_lines(document, rules, issuing=True))

    if document.is_receipt:
        errors.update(_check_payments(document))
        if document.has_adjustment and not document.adjustment_account_code:
            errors["adjustmentAccountCode"] = "Select an account for the adjustment"

    if (
        document.document_type is DocumentType.INVOICE
        and document.due_date is not None
        and document.issue_date is not None
        and document.due_date < document.issue_date
    ):
        errors["dueDate"] = "Due date must be on or after invoice date"

    return errors
