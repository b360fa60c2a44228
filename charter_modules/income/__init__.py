"""
Income Module.

Invoices, receipts, credit notes and debit notes raised to charter
customers: their lifecycle workflows and save-time validation.
Calculation comes from ``charter_engines``; persistence and side effects
from ``charter_services``.
"""

from charter_modules.income.validation import (
    DEFAULT_RULES,
    ValidationRules,
    validate_for_draft,
    validate_for_issue,
)
from charter_modules.income.workflows import (
    CREDIT_NOTE_WORKFLOW,
    DEBIT_NOTE_WORKFLOW,
    DRAFT_COMPLETE,
    INVOICE_WORKFLOW,
    READY_TO_ISSUE,
    RECEIPT_WORKFLOW,
    WORKFLOWS,
    workflow_for,
)

__all__ = [
    "CREDIT_NOTE_WORKFLOW",
    "DEBIT_NOTE_WORKFLOW",
    "DEFAULT_RULES",
    "DRAFT_COMPLETE",
    "INVOICE_WORKFLOW",
    "READY_TO_ISSUE",
    "RECEIPT_WORKFLOW",
    "ValidationRules",
    "WORKFLOWS",
    "validate_for_draft",
    "validate_for_issue",
    "workflow_for",
]
