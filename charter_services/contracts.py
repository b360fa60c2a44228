"""
charter_services.contracts -- Async contracts for external collaborators.

Responsibility:
    Declares the narrow request/response interfaces the engine consumes:
    FX rate providers, document number providers, the ledger poster, the
    WHT tracker and document persistence.  Implementations (database,
    hosted APIs) live outside this package; tests use in-memory fakes.

Architecture position:
    Services layer.  Imports kernel domain types and engine DTOs only.

Invariants enforced:
    - Every collaborator call is awaitable.
    - ``DocumentPersistence.save_header`` reports a number collision by
      raising ``DuplicateDocumentNumberError``; nothing else signals it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, Sequence, runtime_checkable
from uuid import UUID

from charter_engines.posting import PostingRequest
from charter_engines.wht import WhtTrackingRecord
from charter_kernel.domain.documents import (
    Document,
    DocumentStatus,
    DocumentType,
    FxRateSource,
    LineItem,
    PaymentRecord,
)


@dataclass(frozen=True)
class FxQuote:
    """A rate to the base currency: 1 unit of ``currency`` = ``rate`` base."""
    currency: str
    rate: Decimal
    source: FxRateSource
    rate_date: date


@dataclass(frozen=True)
class PostingResult:
    success: bool
    reference_number: str | None = None
    error: str | None = None


@runtime_checkable
class FxRateProvider(Protocol):
    source: FxRateSource

    async def get_rate(self, currency: str, as_of: date) -> FxQuote | None:
        """Return a quote, or None when the provider has no rate."""
        ...


@runtime_checkable
class DocumentNumberProvider(Protocol):
    async def next(self, company_id: str, document_type: DocumentType) -> str:
        ...

    async def recycle(self, company_id: str, document_type: DocumentType, number: str) -> bool:
        ...


@runtime_checkable
class LedgerPoster(Protocol):
    """Best-effort ledger.  May also offer ``has_posting(document_id)``."""

    async def post(self, request: PostingRequest) -> PostingResult:
        ...


@runtime_checkable
class WhtTracker(Protocol):
    async def exists(self, document_id: UUID) -> bool:
        ...

    async def create_from_lines(
        self, document_id: UUID, records: Sequence[WhtTrackingRecord]
    ) -> None:
        ...


@runtime_checkable
class DocumentPersistence(Protocol):
    async def save_header(self, document: Document) -> UUID:
        """Insert (id is None) or update the header; return the id.

        Raises:
            DuplicateDocumentNumberError: The number is held by another
                active document of the same company and type.
        """
        ...

    async def save_line_items(self, document_id: UUID, line_items: Sequence[LineItem]) -> None:
        ...

    async def save_payments(self, document_id: UUID, payments: Sequence[PaymentRecord]) -> None:
        ...

    async def update_status(
        self,
        document_id: UUID,
        status: DocumentStatus,
        *,
        reason: str | None = None,
        document_number: str | None = None,
        notes: str | None = None,
        voided_at: datetime | None = None,
    ) -> None:
        ...

    async def load_document(self, document_id: UUID) -> Document:
        """Raises ``DocumentNotFoundError`` for an unknown id."""
        ...
