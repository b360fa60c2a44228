"""
NumberingService -- company-scoped document numbers with recycling.

Responsibility:
    Issues human-facing numbers ``PREFIX-PERIOD-SEQUENCE`` per
    (company, document type).  The sequence restarts each period.  Numbers
    released by voided documents go into a FIFO pool and are handed out
    again before the counter advances, so the series keeps no permanent
    gaps.  ``void_and_recycle`` performs the void itself: the stored
    number becomes ``VOID-<number>``, the reason is appended to the notes
    and the original number is released.

Architecture position:
    Services layer.  Counter and pool storage sit behind ``NumberStore``:
    ``InMemoryNumberStore`` here, ``SqlDocumentNumberStore`` for SQL.

Invariants enforced:
    - A number held by an active document is never pooled, so ``next``
      never returns it.
    - Releasing a number that is already pooled is a successful no-op.
    - Manually entered numbers are never pooled.

Failure modes:
    - DocumentVoidedError when voiding a document that is already void.
    - DocumentNotFoundError (from persistence) for an unknown id.
    - A pool failure after the void is committed is logged and reported
      as ``recycled=False``; the void stands.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from charter_config.schema import NumberFormat, NumberingConfig
from charter_kernel.domain.clock import Clock, SystemClock
from charter_kernel.domain.documents import (
    DocumentStatus,
    DocumentType,
    NumberSource,
)
from charter_kernel.exceptions import DocumentVoidedError
from charter_kernel.logging_config import LogContext, get_logger
from charter_services.contracts import DocumentPersistence

logger = get_logger("services.numbering")

VOID_PREFIX = "VOID-"


def format_period(on: date, date_format: str) -> str:
    if date_format == "YYMM":
        return on.strftime("%y%m")
    if date_format == "YYYYMM":
        return on.strftime("%Y%m")
    if date_format == "MMYY":
        return on.strftime("%m%y")
    return ""


def format_document_number(fmt: NumberFormat, on: date, sequence: int) -> str:
    """``INV-2601-0001`` for prefix INV, YYMM, 4 digits, January 2026."""
    parts = [fmt.prefix, format_period(on, fmt.date_format), str(sequence).zfill(fmt.sequence_digits)]
    return fmt.separator.join(part for part in parts if part)


def voided_number(number: str) -> str:
    return f"{VOID_PREFIX}{number}"


def append_void_note(notes: str | None, reason: str | None) -> str:
    """Append ``[VOIDED: reason]``, on a new paragraph when notes exist."""
    marker = f"[VOIDED: {reason.strip() if reason and reason.strip() else 'No reason given'}]"
    existing = (notes or "").rstrip()
    return f"{existing}\n\n{marker}" if existing else marker


@dataclass(frozen=True)
class NumberAllocation:
    number: str
    source: NumberSource


@dataclass(frozen=True)
class RecycleResult:
    recycled: bool
    document_number: str | None = None
    voided_number: str | None = None


class NumberStore(Protocol):
    async def next_sequence(self, company_id: str, document_type: DocumentType, period: str) -> int:
        ...

    async def claim_recycled(self, company_id: str, document_type: DocumentType) -> str | None:
        ...

    async def release(
        self, company_id: str, document_type: DocumentType, number: str, voided_at: datetime
    ) -> bool:
        """Pool ``number``; True when pooled now or already pooled."""
        ...


class InMemoryNumberStore:
    """Process-local counters and pool, one lock for the whole store."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._counters: dict[tuple[str, str, str], int] = defaultdict(int)
        self._pool: dict[tuple[str, str], deque[tuple[datetime, str]]] = defaultdict(deque)

    async def next_sequence(self, company_id: str, document_type: DocumentType, period: str) -> int:
        async with self._lock:
            key = (company_id, DocumentType(document_type).value, period)
            self._counters[key] += 1
            return self._counters[key]

    async def claim_recycled(self, company_id: str, document_type: DocumentType) -> str | None:
        async with self._lock:
            pool = self._pool[(company_id, DocumentType(document_type).value)]
            if not pool:
                return None
            _, number = pool.popleft()
            return number

    async def release(
        self, company_id: str, document_type: DocumentType, number: str, voided_at: datetime
    ) -> bool:
        async with self._lock:
            pool = self._pool[(company_id, DocumentType(document_type).value)]
            if any(n == number for _, n in pool):
                return True
            pool.append((voided_at, number))
            # FIFO by void time
            ordered = sorted(pool, key=lambda entry: entry[0])
            pool.clear()
            pool.extend(ordered)
            return True

    def pooled(self, company_id: str, document_type: DocumentType) -> list[str]:
        return [n for _, n in self._pool[(company_id, DocumentType(document_type).value)]]


class NumberingService:
    """
    Document number provider.

    Contract:
        ``next`` / ``allocate`` return a number for (company, type) that no
        active document holds, unless a concurrent writer takes it first;
        the save pipeline retries on that collision.
    """

    def __init__(
        self,
        store: NumberStore | None = None,
        config: NumberingConfig | None = None,
        *,
        persistence: DocumentPersistence | None = None,
        clock: Clock | None = None,
    ):
        self._store = store or InMemoryNumberStore()
        self._config = config or NumberingConfig()
        self._persistence = persistence
        self._clock = clock or SystemClock()

    async def allocate(self, company_id: str, document_type: DocumentType) -> NumberAllocation:
        document_type = DocumentType(document_type)
        if self._config.recycles(document_type):
            recycled = await self._store.claim_recycled(company_id, document_type)
            if recycled is not None:
                logger.info(
                    "document_number_reused",
                    extra={
                        "company_id": company_id,
                        "document_type": document_type.value,
                        "document_number": recycled,
                    },
                )
                return NumberAllocation(recycled, NumberSource.RECYCLED)

        fmt = self._config.format_for(document_type)
        today = self._clock.today()
        period = format_period(today, fmt.date_format)
        sequence = await self._store.next_sequence(company_id, document_type, period)
        number = format_document_number(fmt, today, sequence)
        logger.info(
            "document_number_allocated",
            extra={
                "company_id": company_id,
                "document_type": document_type.value,
                "period": period,
                "sequence": sequence,
                "document_number": number,
            },
        )
        return NumberAllocation(number, NumberSource.SEQUENCE)

    async def next(self, company_id: str, document_type: DocumentType) -> str:
        return (await self.allocate(company_id, document_type)).number

    async def recycle(self, company_id: str, document_type: DocumentType, number: str) -> bool:
        document_type = DocumentType(document_type)
        if not number or not self._config.recycles(document_type):
            return False
        released = await self._store.release(company_id, document_type, number, self._clock.now())
        logger.info(
            "document_number_recycled",
            extra={
                "company_id": company_id,
                "document_type": document_type.value,
                "document_number": number,
                "released": released,
            },
        )
        return released

    async def void_and_recycle(self, document_id: UUID, reason: str | None = None) -> RecycleResult:
        """Void the document and return its number to the pool."""
        if self._persistence is None:
            raise RuntimeError("NumberingService needs persistence to void documents")

        document = await self._persistence.load_document(document_id)
        if document.status is DocumentStatus.VOID:
            raise DocumentVoidedError(
                document.document_type.value, DocumentStatus.VOID.value, str(document_id)
            )

        number = document.document_number
        renamed = voided_number(number) if number else None
        notes = append_void_note(document.notes, reason)
        voided_at = self._clock.now()

        with LogContext.bind_document(document):
            await self._persistence.update_status(
                document_id,
                DocumentStatus.VOID,
                reason=reason,
                document_number=renamed,
                notes=notes,
                voided_at=voided_at,
            )
            logger.info(
                "document_voided",
                extra={
                    "document_type": document.document_type.value,
                    "previous_status": document.status.value,
                    "document_number": number,
                    "voided_number": renamed,
                    "reason": reason,
                },
            )

            recyclable = (
                number is not None
                and document.company_id is not None
                and document.number_source in (NumberSource.SEQUENCE, NumberSource.RECYCLED)
            )
            if not recyclable:
                return RecycleResult(False, number, renamed)

            try:
                recycled = await self.recycle(document.company_id, document.document_type, number)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "document_number_recycle_failed",
                    extra={"document_number": number, "error": str(exc)},
                    exc_info=True,
                )
                recycled = False

        return RecycleResult(recycled, number, renamed)
