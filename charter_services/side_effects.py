"""
SideEffectOrchestrator -- ledger posting, WHT tracking and number retries.

Responsibility:
    Runs what follows a document landing in ``issued``/``paid``:

    1. Ledger posting (best effort).  Attempted once per real transition
       into the final status, skipped on re-saves and whenever the poster
       reports an existing posting.  Failures become warnings.
    2. WHT tracking.  One record per line with non-zero WHT, created only
       when the tracker holds none for the document yet.
    3. Create-time number retry.  ``run_with_number_retry`` re-runs a
       create attempt with a fresh number whenever persistence reports a
       duplicate, up to the configured bound.

Architecture position:
    Services layer -- async coordinator over ``LedgerPoster`` and
    ``WhtTracker``; journal and record shapes come from ``charter_engines``.

Failure modes:
    - Ledger failures (result or exception) never propagate.
    - WHT tracker exceptions propagate to the save pipeline.
    - NumberingRetriesExhaustedError when every create attempt collided.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from charter_config.schema import WhtConfig
from charter_engines.posting import PostingAccounts, build_posting_request
from charter_engines.wht import build_wht_tracking_records
from charter_kernel.domain.documents import Document, DocumentType
from charter_kernel.exceptions import (
    DuplicateDocumentNumberError,
    NumberingRetriesExhaustedError,
)
from charter_kernel.logging_config import get_logger
from charter_services.contracts import LedgerPoster, PostingResult, WhtTracker

logger = get_logger("services.side_effects")

T = TypeVar("T")


@dataclass(frozen=True)
class SideEffectReport:
    posting: PostingResult | None = None
    posted: bool = False
    wht_records_created: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)


class SideEffectOrchestrator:
    def __init__(
        self,
        ledger_poster: LedgerPoster | None = None,
        wht_tracker: WhtTracker | None = None,
        *,
        accounts: PostingAccounts | None = None,
        wht_config: WhtConfig | None = None,
        max_create_attempts: int = 3,
    ):
        self._ledger = ledger_poster
        self._wht = wht_tracker
        self._accounts = accounts or PostingAccounts()
        self._wht_config = wht_config or WhtConfig()
        self._max_attempts = max_create_attempts

    async def run_with_number_retry(
        self,
        attempt: Callable[[int], Awaitable[T]],
        *,
        document_type: DocumentType,
    ) -> tuple[T, int]:
        """Run ``attempt(n)`` until it stops colliding; return (result, attempts)."""
        last_number: str | None = None
        for n in range(1, self._max_attempts + 1):
            try:
                return await attempt(n), n
            except DuplicateDocumentNumberError as exc:
                last_number = exc.document_number
                logger.warning(
                    "document_number_collision",
                    extra={
                        "document_type": DocumentType(document_type).value,
                        "document_number": exc.document_number,
                        "attempt": n,
                        "max_attempts": self._max_attempts,
                    },
                )

        logger.error(
            "document_number_retries_exhausted",
            extra={
                "document_type": DocumentType(document_type).value,
                "attempts": self._max_attempts,
                "last_number": last_number,
            },
        )
        raise NumberingRetriesExhaustedError(
            DocumentType(document_type).value, self._max_attempts, last_number
        )

    async def _already_posted(self, document: Document) -> bool:
        has_posting = getattr(self._ledger, "has_posting", None)
        if has_posting is None:
            return False
        try:
            return bool(await has_posting(document.id))
        except Exception as exc:  # noqa: BLE001
            # Unknown; the request's idempotency key still guards the ledger.
            logger.warning(
                "ledger_posting_lookup_failed",
                extra={"error": str(exc)},
            )
            return False

    async def post_to_ledger(self, document: Document) -> tuple[PostingResult | None, str | None]:
        """Submit the posting request; return (result, warning)."""
        if self._ledger is None:
            return None, None

        if await self._already_posted(document):
            logger.info("ledger_posting_skipped_existing", extra={"document_number": document.document_number})
            return None, None

        request = build_posting_request(document, self._accounts)
        if not request.is_balanced:
            logger.warning(
                "posting_request_unbalanced",
                extra={
                    "idempotency_key": request.idempotency_key,
                    "total_debits": str(request.total_debits),
                    "total_credits": str(request.total_credits),
                },
            )

        try:
            result = await self._ledger.post(request)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "ledger_posting_failed",
                extra={"idempotency_key": request.idempotency_key, "error": str(exc)},
                exc_info=True,
            )
            return PostingResult(success=False, error=str(exc)), f"Ledger posting failed: {exc}"

        if not result.success:
            logger.warning(
                "ledger_posting_rejected",
                extra={"idempotency_key": request.idempotency_key, "error": result.error},
            )
            return result, f"Ledger posting failed: {result.error or 'unknown error'}"

        logger.info(
            "ledger_posting_succeeded",
            extra={
                "idempotency_key": request.idempotency_key,
                "reference_number": result.reference_number,
                "line_count": len(request.lines),
            },
        )
        return result, None

    async def track_wht(self, document: Document) -> int:
        """Create WHT records for the document once; return how many were made."""
        if self._wht is None or not self._wht_config.tracks(document.document_type):
            return 0

        records = build_wht_tracking_records(document)
        if not records:
            return 0

        if await self._wht.exists(document.id):
            logger.info("wht_tracking_skipped_existing", extra={"record_count": len(records)})
            return 0

        await self._wht.create_from_lines(document.id, records)
        logger.info(
            "wht_tracking_created",
            extra={
                "record_count": len(records),
                "total_wht": str(sum(r.amount for r in records)),
                "period": records[0].period,
            },
        )
        return len(records)

    async def on_final(self, document: Document, *, entered_final: bool) -> SideEffectReport:
        """Side effects for a save that leaves the document issued/paid.

        ``entered_final`` is False for a re-save in the final status; the
        ledger is then left alone while WHT tracking is still reconciled.
        """
        posting: PostingResult | None = None
        warnings: list[str] = []
        if entered_final:
            posting, warning = await self.post_to_ledger(document)
            if warning:
                warnings.append(warning)

        created = await self.track_wht(document)
        return SideEffectReport(
            posting=posting,
            posted=bool(posting and posting.success),
            wht_records_created=created,
            warnings=tuple(warnings),
        )
