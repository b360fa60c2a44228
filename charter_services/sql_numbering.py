"""
SqlDocumentNumberStore -- document number counters and pool in SQL.

Responsibility:
    Durable ``NumberStore`` for ``NumberingService``.  One counter row per
    (company, document type, period) is locked with ``SELECT ... FOR
    UPDATE`` and incremented; recycled numbers live in a pool table and are
    claimed oldest void first.

Architecture position:
    Services layer -- imperative shell over SQLAlchemy.  Each call runs in
    its own transaction from the session factory, on a worker thread
    (``asyncio.to_thread``) so a lock wait never stalls the event loop.

Invariants enforced:
    - The locked counter row is the only source of the next sequence;
      max-plus-one over issued numbers is never used.
    - A pooled number is claimed at most once (``claimed_at`` is set in
      the same transaction that selects it).
    - Releasing an already pooled, unclaimed number is a no-op success.

Failure modes:
    - IntegrityError on a concurrent first insert of a counter or pool row
      is absorbed with a savepoint and the existing row is used.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, UniqueConstraint, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column, sessionmaker

from charter_kernel.db.base import Base
from charter_kernel.domain.clock import Clock, SystemClock
from charter_kernel.domain.documents import DocumentType
from charter_kernel.logging_config import get_logger

logger = get_logger("services.sql_numbering")


class DocumentNumberCounter(Base):
    __tablename__ = "document_number_counters"
    __table_args__ = (
        UniqueConstraint("company_id", "document_type", "period", name="uq_number_counter_scope"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    # "" when the format has no date part
    period: Mapped[str] = mapped_column(String(8), nullable=False, default="")
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class RecycledDocumentNumber(Base):
    __tablename__ = "recycled_document_numbers"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "document_type", "document_number", name="uq_recycled_number"
        ),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    document_number: Mapped[str] = mapped_column(String(64), nullable=False)
    voided_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class SqlDocumentNumberStore:
    """``NumberStore`` over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session], clock: Clock | None = None):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def _lock_counter(
        self, session: Session, company_id: str, document_type: str, period: str
    ) -> DocumentNumberCounter | None:
        return session.execute(
            select(DocumentNumberCounter)
            .where(
                DocumentNumberCounter.company_id == company_id,
                DocumentNumberCounter.document_type == document_type,
                DocumentNumberCounter.period == period,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _next_sequence(self, session: Session, company_id: str, document_type: str, period: str) -> int:
        counter = self._lock_counter(session, company_id, document_type, period)

        if counter is None:
            savepoint = session.begin_nested()
            try:
                session.add(
                    DocumentNumberCounter(
                        company_id=company_id,
                        document_type=document_type,
                        period=period,
                        current_value=1,
                    )
                )
                session.flush()
                savepoint.commit()
                return 1
            except IntegrityError:
                logger.debug(
                    "number_counter_race_retry",
                    extra={"company_id": company_id, "document_type": document_type, "period": period},
                )
                savepoint.rollback()
                session.expire_all()
                counter = self._lock_counter(session, company_id, document_type, period)
                if counter is None:
                    raise

        counter.current_value += 1
        session.flush()
        return counter.current_value

    def allocate_sequence(self, company_id: str, type_value: str, period: str) -> int:
        """Blocking counter increment in its own transaction."""
        with self._session_factory() as session, session.begin():
            value = self._next_sequence(session, company_id, type_value, period)
        logger.debug(
            "number_sequence_allocated",
            extra={
                "company_id": company_id,
                "document_type": type_value,
                "period": period,
                "value": value,
            },
        )
        return value

    async def next_sequence(self, company_id: str, document_type: DocumentType, period: str) -> int:
        return await asyncio.to_thread(
            self.allocate_sequence, company_id, DocumentType(document_type).value, period
        )

    def claim_oldest(self, company_id: str, type_value: str) -> str | None:
        with self._session_factory() as session, session.begin():
            row = session.execute(
                select(RecycledDocumentNumber)
                .where(
                    RecycledDocumentNumber.company_id == company_id,
                    RecycledDocumentNumber.document_type == type_value,
                    RecycledDocumentNumber.claimed_at.is_(None),
                )
                .order_by(RecycledDocumentNumber.voided_at, RecycledDocumentNumber.document_number)
                .limit(1)
                .with_for_update(skip_locked=True)
            ).scalar_one_or_none()
            if row is None:
                return None
            row.claimed_at = self._clock.now()
            number = row.document_number
        logger.debug(
            "recycled_number_claimed",
            extra={"company_id": company_id, "document_type": type_value, "document_number": number},
        )
        return number

    async def claim_recycled(self, company_id: str, document_type: DocumentType) -> str | None:
        return await asyncio.to_thread(
            self.claim_oldest, company_id, DocumentType(document_type).value
        )

    def pool_number(
        self, company_id: str, type_value: str, number: str, voided_at: datetime
    ) -> bool:
        with self._session_factory() as session, session.begin():
            row = session.execute(
                select(RecycledDocumentNumber)
                .where(
                    RecycledDocumentNumber.company_id == company_id,
                    RecycledDocumentNumber.document_type == type_value,
                    RecycledDocumentNumber.document_number == number,
                )
                .with_for_update()
            ).scalar_one_or_none()

            if row is None:
                savepoint = session.begin_nested()
                try:
                    session.add(
                        RecycledDocumentNumber(
                            company_id=company_id,
                            document_type=type_value,
                            document_number=number,
                            voided_at=voided_at,
                        )
                    )
                    session.flush()
                    savepoint.commit()
                except IntegrityError:
                    # Someone pooled it first; that still counts.
                    savepoint.rollback()
            elif row.claimed_at is not None:
                # Reissued then voided again
                row.claimed_at = None
                row.voided_at = voided_at

        logger.debug(
            "number_released",
            extra={"company_id": company_id, "document_type": type_value, "document_number": number},
        )
        return True

    async def release(
        self, company_id: str, document_type: DocumentType, number: str, voided_at: datetime
    ) -> bool:
        return await asyncio.to_thread(
            self.pool_number, company_id, DocumentType(document_type).value, number, voided_at
        )

    def pooled(self, company_id: str, document_type: DocumentType) -> list[str]:
        """Unclaimed pool numbers in claim order."""
        type_value = DocumentType(document_type).value
        with self._session_factory() as session:
            return list(
                session.execute(
                    select(RecycledDocumentNumber.document_number)
                    .where(
                        RecycledDocumentNumber.company_id == company_id,
                        RecycledDocumentNumber.document_type == type_value,
                        RecycledDocumentNumber.claimed_at.is_(None),
                    )
                    .order_by(RecycledDocumentNumber.voided_at, RecycledDocumentNumber.document_number)
                ).scalars()
            )
