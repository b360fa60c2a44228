"""
Financial Documents (``charter_kernel.domain.documents``).

Responsibility
--------------
Frozen dataclass value objects for the four income documents a charter
company raises: invoices, receipts, credit notes and debit notes, together
with their line items and (for receipts) payment records.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.  Consumed
by ``charter_engines`` (calculation), ``charter_modules.income``
(validation and workflows) and ``charter_services`` (save pipeline).

Invariants enforced
-------------------
* All models are ``frozen=True``; edits go through ``dataclasses.replace``.
* Every amount, rate and quantity is a ``Decimal`` -- NEVER ``float``.
  Numeric input is coerced through ``str`` on construction.
* A line's ``amount`` is never stored; it is always recomputed from
  quantity, unit price, tax rate and the document's pricing type.
* ``custom_wht_amount`` is only meaningful when ``wht_rate`` is ``custom``.

Failure modes
-------------
* Construction with an unknown enum value raises ``ValueError``.
* A non-numeric amount or a negative WHT rate raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class DocumentType(str, Enum):
    """The income documents handled by the engine."""
    INVOICE = "invoice"
    RECEIPT = "receipt"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"

    @property
    def final_status(self) -> DocumentStatus:
        """The issued-equivalent status for this type."""
        if self is DocumentType.RECEIPT:
            return DocumentStatus.PAID
        return DocumentStatus.ISSUED


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    VOID = "void"


class PricingType(str, Enum):
    """How unit prices relate to VAT."""
    EXCLUDE_VAT = "exclude_vat"  # VAT added on top
    INCLUDE_VAT = "include_vat"  # price already gross
    NO_VAT = "no_vat"


class FxRateSource(str, Enum):
    BOT = "bot"
    API = "api"
    FALLBACK = "fallback"
    MANUAL = "manual"


class AdjustmentType(str, Enum):
    """Receipt adjustment applied on top of the payments received."""
    NONE = "none"
    ADD = "add"
    DEDUCT = "deduct"


class PaymentTerms(str, Enum):
    DUE_ON_RECEIPT = "due_on_receipt"
    NET_15 = "net_15"
    NET_30 = "net_30"
    NET_60 = "net_60"
    CUSTOM = "custom"


class NumberSource(str, Enum):
    """Where a document number came from."""
    SEQUENCE = "sequence"
    RECYCLED = "recycled"
    MANUAL = "manual"


WHT_CUSTOM = "custom"

ALLOWED_WHT_RATES: tuple[Decimal, ...] = tuple(
    Decimal(r) for r in ("0", "0.75", "1", "1.5", "2", "3", "5", "10", "15")
)


def as_decimal(value: Any, name: str = "value") -> Decimal:
    """Coerce ``value`` to ``Decimal`` via ``str`` (floats never leak in)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value).strip() or "0")
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{name} must be numeric, got {value!r}") from exc


def parse_wht_rate(value: Any) -> Decimal | str:
    """Normalize a WHT rate: ``"custom"`` or a non-negative ``Decimal``."""
    if isinstance(value, str) and value.strip().lower() == WHT_CUSTOM:
        return WHT_CUSTOM
    rate = as_decimal(value, "wht_rate")
    if rate < 0:
        raise ValueError(f"wht_rate cannot be negative: {value!r}")
    return rate


def _set(obj: Any, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class LineItem:
    """A single line on a document."""
    description: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    wht_rate: Decimal | str = Decimal("0")
    custom_wht_amount: Decimal | None = None
    account_code: str | None = None  # revenue account
    project_id: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        _set(self, "quantity", as_decimal(self.quantity, "quantity"))
        _set(self, "unit_price", as_decimal(self.unit_price, "unit_price"))
        _set(self, "tax_rate", as_decimal(self.tax_rate, "tax_rate"))
        _set(self, "wht_rate", parse_wht_rate(self.wht_rate))
        if self.custom_wht_amount is not None:
            _set(
                self,
                "custom_wht_amount",
                as_decimal(self.custom_wht_amount, "custom_wht_amount"),
            )

    @property
    def is_custom_wht(self) -> bool:
        return self.wht_rate == WHT_CUSTOM

    @property
    def is_empty(self) -> bool:
        """A line with no description and no positive price carries nothing."""
        return not self.description.strip() and self.unit_price <= 0


@dataclass(frozen=True)
class PaymentRecord:
    """A payment received against a receipt."""
    amount: Decimal
    date: date | None = None
    received_at: str | None = None  # cash/bank account code
    remark: str = ""
    id: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        _set(self, "amount", as_decimal(self.amount, "amount"))


@dataclass(frozen=True)
class Document:
    """
    A financial document (invoice, receipt, credit note or debit note).

    Contract:
        ``subtotal``, ``tax_amount``, ``total_amount`` and ``wht_amount``
        are derived; the save pipeline overwrites them from the line items
        before anything is persisted.  ``payments`` and the adjustment
        fields are only meaningful for receipts; ``due_date`` and
        ``payment_terms`` only for invoices.
    """
    document_type: DocumentType
    company_id: str | None
    issue_date: date | None
    client_id: str | None = None
    client_name: str = ""
    id: UUID | None = None
    document_number: str | None = None
    original_document_number: str | None = None
    number_source: NumberSource | None = None
    due_date: date | None = None
    payment_terms: PaymentTerms | None = None
    currency: str = "THB"
    fx_rate: Decimal | None = None
    fx_rate_source: FxRateSource | None = None
    fx_rate_date: date | None = None
    pricing_type: PricingType = PricingType.EXCLUDE_VAT
    line_items: tuple[LineItem, ...] = field(default_factory=tuple)
    status: DocumentStatus = DocumentStatus.DRAFT
    payments: tuple[PaymentRecord, ...] = field(default_factory=tuple)
    adjustment_type: AdjustmentType = AdjustmentType.NONE
    adjustment_amount: Decimal = Decimal("0")
    adjustment_account_code: str | None = None
    adjustment_remark: str = ""
    notes: str = ""
    voided_at: datetime | None = None
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    wht_amount: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        _set(self, "document_type", DocumentType(self.document_type))
        _set(self, "status", DocumentStatus(self.status))
        _set(self, "pricing_type", PricingType(self.pricing_type))
        _set(self, "adjustment_type", AdjustmentType(self.adjustment_type))
        if self.fx_rate_source is not None:
            _set(self, "fx_rate_source", FxRateSource(self.fx_rate_source))
        if self.payment_terms is not None:
            _set(self, "payment_terms", PaymentTerms(self.payment_terms))
        if self.number_source is not None:
            _set(self, "number_source", NumberSource(self.number_source))
        if self.fx_rate is not None:
            _set(self, "fx_rate", as_decimal(self.fx_rate, "fx_rate"))
        _set(self, "currency", (self.currency or "").upper().strip())
        _set(self, "line_items", tuple(self.line_items))
        _set(self, "payments", tuple(self.payments))
        for name in (
            "adjustment_amount", "subtotal", "tax_amount",
            "total_amount", "wht_amount",
        ):
            _set(self, name, as_decimal(getattr(self, name), name))

    @property
    def final_status(self) -> DocumentStatus:
        return self.document_type.final_status

    @property
    def is_receipt(self) -> bool:
        return self.document_type is DocumentType.RECEIPT

    @property
    def is_new(self) -> bool:
        """True until persistence has assigned an id."""
        return self.id is None

    @property
    def non_empty_lines(self) -> tuple[LineItem, ...]:
        return tuple(item for item in self.line_items if not item.is_empty)

    @property
    def has_adjustment(self) -> bool:
        return (
            self.adjustment_type is not AdjustmentType.NONE
            and self.adjustment_amount != 0
        )
