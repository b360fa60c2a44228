"""
Income Document Workflows.

State machines for invoices, receipts, credit notes and debit notes.
Every type has the same shape: ``draft`` -> final (``issued`` or ``paid``)
-> ``void``, with ``void`` terminal and no way back from final to draft.
"""

from charter_kernel.domain.documents import DocumentStatus, DocumentType
from charter_kernel.domain.workflow import Guard, Transition, Workflow
from charter_kernel.logging_config import get_logger

logger = get_logger("modules.income.workflows")

DRAFT = DocumentStatus.DRAFT.value
ISSUED = DocumentStatus.ISSUED.value
PAID = DocumentStatus.PAID.value
VOID = DocumentStatus.VOID.value


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

DRAFT_COMPLETE = Guard(
    name="draft_complete",
    description="Company selected and work-in-progress lines are consistent",
)

READY_TO_ISSUE = Guard(
    name="ready_to_issue",
    description="Header, lines and (for receipts) payments are complete",
)

logger.info(
    "income_workflow_guards_defined",
    extra={"guards": [DRAFT_COMPLETE.name, READY_TO_ISSUE.name]},
)


def _document_workflow(
    name: str, description: str, final_state: str, issue_action: str
) -> Workflow:
    return Workflow(
        name=name,
        description=description,
        initial_state=DRAFT,
        states=(DRAFT, final_state, VOID),
        transitions=(
            Transition(DRAFT, DRAFT, action="save_draft", guard=DRAFT_COMPLETE),
            Transition(DRAFT, final_state, action=issue_action, guard=READY_TO_ISSUE, posts_entry=True),
            Transition(final_state, final_state, action="resave", guard=READY_TO_ISSUE),
            Transition(DRAFT, VOID, action="void"),
            Transition(final_state, VOID, action="void"),
        ),
        terminal_states=(VOID,),
    )


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

INVOICE_WORKFLOW = _document_workflow(
    "income_invoice", "Customer invoice lifecycle", ISSUED, "issue",
)

# -----------------------------------------------------------------------------
# Receipt Workflow
# -----------------------------------------------------------------------------

RECEIPT_WORKFLOW = _document_workflow(
    "income_receipt", "Payment receipt lifecycle", PAID, "mark_paid",
)

# -----------------------------------------------------------------------------
# Credit / Debit Note Workflows
# -----------------------------------------------------------------------------

CREDIT_NOTE_WORKFLOW = _document_workflow(
    "income_credit_note", "Credit note lifecycle", ISSUED, "issue",
)

DEBIT_NOTE_WORKFLOW = _document_workflow(
    "income_debit_note", "Debit note lifecycle", ISSUED, "issue",
)

WORKFLOWS: dict[DocumentType, Workflow] = {
    DocumentType.INVOICE: INVOICE_WORKFLOW,
    DocumentType.RECEIPT: RECEIPT_WORKFLOW,
    DocumentType.CREDIT_NOTE: CREDIT_NOTE_WORKFLOW,
    DocumentType.DEBIT_NOTE: DEBIT_NOTE_WORKFLOW,
}

for _workflow in WORKFLOWS.values():
    logger.info(
        "income_workflow_registered",
        extra={
            "workflow_name": _workflow.name,
            "state_count": len(_workflow.states),
            "transition_count": len(_workflow.transitions),
            "initial_state": _workflow.initial_state,
        },
    )


def workflow_for(document_type: DocumentType) -> Workflow:
    return WORKFLOWS[DocumentType(document_type)]
