"""
DocumentService -- the save pipeline for income documents.

Responsibility:
    Saves a document into a requested status.  One save runs these steps
    in a fixed order, each awaited before the next:

        transition check -> totals / due date -> validation -> FX rate
        -> document number + header -> line items -> payments
        -> (final status only) ledger posting -> WHT tracking

    Also exposes ``approve`` (draft invoice -> issued) and ``void``.

Architecture position:
    Services layer -- the outermost coordinator.  Calculation is delegated
    to ``charter_engines``, rules to ``DocumentLifecycle``, numbering to
    ``NumberingService`` and side effects to ``SideEffectOrchestrator``.

Invariants enforced:
    - Validation failures stop the save before anything is persisted.
    - Derived totals are always recomputed from the line items.
    - Only brand-new documents retry on a duplicate number.
    - Steps are not wrapped in one transaction; a failure after the header
      is written is reported with the steps already committed.

Failure modes:
    - InvalidTransitionError / DocumentVoidedError: transition not allowed.
    - DocumentValidationError: field errors, nothing persisted.
    - NumberingRetriesExhaustedError: every create attempt collided; the
      document was not saved.
    - PartialPersistenceError: line items, payments or WHT tracking failed
      after the header was committed.
    - FX and ledger failures are warnings on ``SaveResult``.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable
from dataclasses import asdict, dataclass, field, replace
from uuid import UUID

from charter_config.schema import CharterConfig
from charter_engines.fx import BaseAmounts, compute_base_amounts
from charter_engines.posting import PostingAccounts
from charter_engines.terms import calculate_due_date
from charter_engines.totals import ReceiptSettlement, apply_document_totals, receipt_settlement
from charter_kernel.domain.clock import Clock, SystemClock
from charter_kernel.domain.documents import (
    Document,
    DocumentStatus,
    DocumentType,
    NumberSource,
)
from charter_kernel.exceptions import (
    InvalidTransitionError,
    PartialPersistenceError,
)
from charter_kernel.logging_config import LogContext, get_logger
from charter_modules.income.validation import ValidationRules
from charter_services.contracts import (
    DocumentNumberProvider,
    DocumentPersistence,
    LedgerPoster,
    PostingResult,
    WhtTracker,
)
from charter_services.fx_rate_resolver import FxRateResolver
from charter_services.lifecycle import DocumentLifecycle, default_guard_executor
from charter_services.numbering import (
    NumberAllocation,
    NumberingService,
    NumberStore,
    RecycleResult,
)
from charter_services.side_effects import SideEffectOrchestrator, SideEffectReport

logger = get_logger("services.document_service")

STEP_HEADER = "header"
STEP_LINE_ITEMS = "line_items"
STEP_PAYMENTS = "payments"
STEP_LEDGER = "ledger_posting"
STEP_WHT = "wht_tracking"


@dataclass(frozen=True)
class SaveResult:
    document: Document
    created: bool
    previous_status: DocumentStatus
    action: str
    attempts: int = 1
    posting: PostingResult | None = None
    posted: bool = False
    wht_records_created: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)
    base_amounts: BaseAmounts | None = None
    settlement: ReceiptSettlement | None = None


class DocumentService:
    """
    Coordinates saving, approving and voiding documents.

    Contract:
        ``save`` returns the document as persisted (id, number, totals and
        FX fields filled in) or raises; see the module docstring for the
        failure taxonomy.
    """

    def __init__(
        self,
        persistence: DocumentPersistence,
        numbering: DocumentNumberProvider,
        *,
        lifecycle: DocumentLifecycle | None = None,
        side_effects: SideEffectOrchestrator | None = None,
        fx_resolver: FxRateResolver | None = None,
        base_currency: str = "THB",
        clock: Clock | None = None,
    ):
        self._persistence = persistence
        self._numbering = numbering
        self._lifecycle = lifecycle or DocumentLifecycle()
        self._side_effects = side_effects or SideEffectOrchestrator()
        self._fx = fx_resolver
        self._base_currency = fx_resolver.base_currency if fx_resolver else base_currency
        self._clock = clock or SystemClock()

    @classmethod
    def from_config(
        cls,
        config: CharterConfig,
        persistence: DocumentPersistence,
        *,
        ledger_poster: LedgerPoster | None = None,
        wht_tracker: WhtTracker | None = None,
        fx_resolver: FxRateResolver | None = None,
        number_store: NumberStore | None = None,
        clock: Clock | None = None,
    ) -> DocumentService:
        """Wire the default collaborators from configuration."""
        clock = clock or SystemClock()
        rules = ValidationRules(
            allowed_wht_rates=config.wht.allowed_rates,
            supported_currencies=config.supported_currencies,
        )
        return cls(
            persistence,
            NumberingService(number_store, config.numbering, persistence=persistence, clock=clock),
            lifecycle=DocumentLifecycle(default_guard_executor(rules)),
            side_effects=SideEffectOrchestrator(
                ledger_poster,
                wht_tracker,
                accounts=PostingAccounts(**asdict(config.accounts)),
                wht_config=config.wht,
                max_create_attempts=config.numbering.max_create_attempts,
            ),
            fx_resolver=fx_resolver,
            base_currency=config.base_currency,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def prepare(self, document: Document) -> Document:
        """Recompute totals and, for invoices, the due date."""
        document = apply_document_totals(document)
        if (
            document.document_type is DocumentType.INVOICE
            and document.payment_terms is not None
            and document.issue_date is not None
        ):
            document = replace(
                document,
                due_date=calculate_due_date(
                    document.issue_date, document.payment_terms, document.due_date
                ),
            )
        return document

    async def _allocate(self, document: Document) -> NumberAllocation:
        allocate = getattr(self._numbering, "allocate", None)
        if allocate is not None:
            return await allocate(document.company_id, document.document_type)
        number = await self._numbering.next(document.company_id, document.document_type)
        return NumberAllocation(number, NumberSource.SEQUENCE)

    async def _create_header(self, document: Document) -> tuple[Document, int]:
        async def attempt(n: int) -> Document:
            candidate = document
            if n > 1 or not candidate.document_number:
                allocation = await self._allocate(candidate)
                candidate = replace(
                    candidate,
                    document_number=allocation.number,
                    number_source=allocation.source,
                )
            elif candidate.number_source is None:
                candidate = replace(candidate, number_source=NumberSource.MANUAL)
            document_id = await self._persistence.save_header(candidate)
            return replace(candidate, id=document_id)

        return await self._side_effects.run_with_number_retry(
            attempt, document_type=document.document_type
        )

    async def _persist_step(
        self, step: str, document_id: UUID, completed: list[str], call: Awaitable[None]
    ) -> None:
        try:
            await call
        except Exception as exc:
            logger.error(
                "document_save_step_failed",
                extra={"step": step, "completed_steps": list(completed), "error": str(exc)},
                exc_info=True,
            )
            raise PartialPersistenceError(str(document_id), step, completed, str(exc)) from exc
        completed.append(step)

    async def save(self, document: Document, target_status: DocumentStatus | str) -> SaveResult:
        """Save ``document`` in ``target_status``."""
        target = DocumentStatus(target_status)
        previous = document.status
        started = time.monotonic()

        with LogContext.bind(
            document_id=str(document.id) if document.id else None,
            company_id=document.company_id,
        ):
            decision = self._lifecycle.check_transition(
                document.document_type,
                previous,
                target,
                document_id=str(document.id) if document.id else None,
            )
            if target is DocumentStatus.VOID:
                raise ValueError("Use DocumentService.void() to void a document")

            logger.info(
                "document_save_started",
                extra={
                    "document_type": document.document_type.value,
                    "from_status": previous.value,
                    "to_status": target.value,
                    "action": decision.action,
                    "is_new": document.is_new,
                },
            )

            candidate = replace(self.prepare(document), status=target)
            self._lifecycle.validate(candidate, decision)

            warnings: list[str] = []
            if self._fx is not None:
                fx = await self._fx.apply_to(candidate)
                candidate = fx.document
                if fx.warning:
                    warnings.append(fx.warning)

            created = candidate.is_new
            attempts = 1
            if created:
                saved, attempts = await self._create_header(candidate)
                requested = candidate.document_number
                if requested and saved.document_number != requested:
                    warnings.append(
                        f"Document number {requested} is already in use; "
                        f"saved as {saved.document_number}"
                    )
            else:
                await self._persistence.save_header(candidate)
                saved = candidate

            completed = [STEP_HEADER]
            with LogContext.bind(document_id=str(saved.id)):
                await self._persist_step(
                    STEP_LINE_ITEMS, saved.id, completed,
                    self._persistence.save_line_items(saved.id, saved.line_items),
                )
                if saved.is_receipt:
                    await self._persist_step(
                        STEP_PAYMENTS, saved.id, completed,
                        self._persistence.save_payments(saved.id, saved.payments),
                    )

                report = SideEffectReport()
                if decision.lands_in_final:
                    try:
                        report = await self._side_effects.on_final(
                            saved, entered_final=decision.enters_final
                        )
                    except Exception as exc:
                        logger.error(
                            "document_side_effects_failed",
                            extra={"completed_steps": completed, "error": str(exc)},
                            exc_info=True,
                        )
                        if decision.enters_final:
                            completed.append(STEP_LEDGER)
                        raise PartialPersistenceError(
                            str(saved.id), STEP_WHT, completed, str(exc)
                        ) from exc
                warnings.extend(report.warnings)

                base_amounts = compute_base_amounts(saved, self._base_currency)
                settlement = receipt_settlement(saved) if saved.is_receipt else None

                logger.info(
                    "document_save_completed",
                    extra={
                        "document_type": saved.document_type.value,
                        "document_number": saved.document_number,
                        "status": saved.status.value,
                        "is_new_document": created,
                        "attempts": attempts,
                        "total_amount": str(saved.total_amount),
                        "posted": report.posted,
                        "wht_records_created": report.wht_records_created,
                        "warning_count": len(warnings),
                        "duration_ms": round((time.monotonic() - started) * 1000, 2),
                    },
                )

        return SaveResult(
            document=saved,
            created=created,
            previous_status=previous,
            action=decision.action,
            attempts=attempts,
            posting=report.posting,
            posted=report.posted,
            wht_records_created=report.wht_records_created,
            warnings=tuple(warnings),
            base_amounts=base_amounts,
            settlement=settlement,
        )

    # ------------------------------------------------------------------
    # Approve / void
    # ------------------------------------------------------------------

    async def approve(self, document_id: UUID) -> SaveResult:
        """Issue a saved draft as-is (the invoice list's Approve action)."""
        document = await self._persistence.load_document(document_id)
        if document.status is document.final_status:
            raise InvalidTransitionError(
                document.document_type.value, document.status.value, document.final_status.value
            )
        return await self.save(document, document.final_status)

    async def void(self, document_id: UUID, reason: str | None = None) -> RecycleResult:
        """Void a document and recycle its number."""
        document = await self._persistence.load_document(document_id)
        with LogContext.bind_document(document):
            self._lifecycle.check_transition(
                document.document_type,
                document.status,
                DocumentStatus.VOID,
                document_id=str(document_id),
            )
            void_and_recycle = getattr(self._numbering, "void_and_recycle", None)
            if void_and_recycle is not None:
                return await void_and_recycle(document_id, reason)

            # Plain providers: void here, then hand the number back.
            await self._persistence.update_status(
                document_id,
                DocumentStatus.VOID,
                reason=reason,
                voided_at=self._clock.now(),
            )
            recycled = False
            if document.document_number and document.number_source is not NumberSource.MANUAL:
                recycled = await self._numbering.recycle(
                    document.company_id, document.document_type, document.document_number
                )
            logger.info("document_voided", extra={"recycled": recycled})
            return RecycleResult(recycled, document.document_number)
