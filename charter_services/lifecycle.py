"""
charter_services.lifecycle -- Document lifecycle state machine.

Responsibility:
    Decides whether a requested status change is allowed for a document
    type and runs the transition's guard.  Guards are declared on the
    workflow transitions (name + description); ``GuardExecutor`` holds the
    evaluation logic per guard name.  Evaluators return field errors
    rather than a bare boolean so every problem reaches the caller at once.

Architecture position:
    Services layer.  Workflows and validators come from
    ``charter_modules.income``; nothing here performs I/O.

Invariants enforced:
    - Nothing leaves ``void``; the attempt raises before any state changes.
    - ``issued``/``paid`` never returns to ``draft``.
    - A failing guard raises ``DocumentValidationError`` with every field
      error collected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

from charter_kernel.domain.documents import Document, DocumentStatus, DocumentType
from charter_kernel.domain.workflow import Guard, Transition, Workflow
from charter_kernel.exceptions import (
    DocumentValidationError,
    DocumentVoidedError,
    InvalidTransitionError,
)
from charter_kernel.logging_config import get_logger
from charter_modules.income.validation import (
    DEFAULT_RULES,
    ValidationRules,
    validate_for_draft,
    validate_for_issue,
)
from charter_modules.income.workflows import (
    DRAFT_COMPLETE,
    READY_TO_ISSUE,
    WORKFLOWS,
)

logger = get_logger("services.lifecycle")

GuardEvaluator = Callable[[Document], Mapping[str, str]]


class GuardExecutor:
    """Evaluates workflow guards against a document."""

    def __init__(self) -> None:
        self._evaluators: dict[str, GuardEvaluator] = {}

    def register(self, guard_name: str, evaluator: GuardEvaluator) -> None:
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, document: Document) -> dict[str, str]:
        """Field errors for ``guard``; empty when it passes."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return {"status": f"No rule is registered for '{guard.name}'"}
        return dict(fn(document))


def default_guard_executor(rules: ValidationRules = DEFAULT_RULES) -> GuardExecutor:
    ex = GuardExecutor()
    ex.register(DRAFT_COMPLETE.name, lambda doc: validate_for_draft(doc, rules))
    ex.register(READY_TO_ISSUE.name, lambda doc: validate_for_issue(doc, rules))
    return ex


@dataclass(frozen=True)
class TransitionDecision:
    document_type: DocumentType
    from_status: DocumentStatus
    to_status: DocumentStatus
    transition: Transition

    @property
    def action(self) -> str:
        return self.transition.action

    @property
    def enters_final(self) -> bool:
        """A real move into issued/paid (not a re-save in place)."""
        return self.transition.posts_entry

    @property
    def lands_in_final(self) -> bool:
        return self.to_status is self.document_type.final_status


class DocumentLifecycle:
    """
    State machine over the income workflows.

    Contract:
        ``check_transition`` never mutates anything; ``validate`` raises
        with all field errors or returns silently.
    """

    def __init__(
        self,
        guard_executor: GuardExecutor | None = None,
        workflows: Mapping[DocumentType, Workflow] = WORKFLOWS,
    ):
        self._guards = guard_executor or default_guard_executor()
        self._workflows = dict(workflows)

    def workflow(self, document_type: DocumentType) -> Workflow:
        return self._workflows[DocumentType(document_type)]

    def check_transition(
        self,
        document_type: DocumentType,
        from_status: DocumentStatus,
        to_status: DocumentStatus,
        *,
        document_id: str | None = None,
    ) -> TransitionDecision:
        """Resolve the workflow transition or raise.

        Raises:
            DocumentVoidedError: ``from_status`` is void.
            InvalidTransitionError: The workflow has no such transition
                (including a status the type does not use).
        """
        document_type = DocumentType(document_type)
        from_status = DocumentStatus(from_status)
        to_status = DocumentStatus(to_status)
        workflow = self.workflow(document_type)

        if workflow.is_terminal(from_status.value):
            logger.warning(
                "transition_rejected_terminal",
                extra={
                    "document_type": document_type.value,
                    "from_status": from_status.value,
                    "to_status": to_status.value,
                },
            )
            raise DocumentVoidedError(document_type.value, to_status.value, document_id)

        transition = workflow.find_transition(from_status.value, to_status.value)
        if transition is None:
            logger.warning(
                "transition_rejected",
                extra={
                    "document_type": document_type.value,
                    "from_status": from_status.value,
                    "to_status": to_status.value,
                },
            )
            raise InvalidTransitionError(document_type.value, from_status.value, to_status.value)

        return TransitionDecision(document_type, from_status, to_status, transition)

    def validate(self, document: Document, decision: TransitionDecision) -> None:
        guard = decision.transition.guard
        if guard is None:
            return
        errors = self._guards.evaluate(guard, document)
        if errors:
            logger.info(
                "document_validation_failed",
                extra={
                    "document_type": decision.document_type.value,
                    "target_status": decision.to_status.value,
                    "guard": guard.name,
                    "fields": sorted(errors),
                },
            )
            raise DocumentValidationError(errors, decision.to_status.value)
