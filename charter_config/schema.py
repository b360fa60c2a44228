"""
Configuration Schema (``charter_config.schema``).

Responsibility
--------------
Frozen dataclasses describing a charter company's document configuration:
base currency, numbering formats, default ledger accounts and WHT rules.

Architecture position
---------------------
**Config layer** -- pure data definitions, ZERO I/O.  Populated by
``charter_config.loader``; read by ``charter_services``.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* Rates are ``Decimal``, never ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from charter_kernel.domain.documents import ALLOWED_WHT_RATES, DocumentType

DATE_FORMATS = ("YYMM", "YYYYMM", "MMYY", "none")


@dataclass(frozen=True)
class NumberFormat:
    """How document numbers are rendered: PREFIX-PERIOD-SEQUENCE."""
    prefix: str
    date_format: str = "YYMM"
    sequence_digits: int = 4
    separator: str = "-"


DEFAULT_NUMBER_FORMATS: Mapping[DocumentType, NumberFormat] = MappingProxyType({
    DocumentType.INVOICE: NumberFormat("INV"),
    DocumentType.RECEIPT: NumberFormat("RE"),
    DocumentType.CREDIT_NOTE: NumberFormat("CN"),
    DocumentType.DEBIT_NOTE: NumberFormat("DN"),
})


@dataclass(frozen=True)
class NumberingConfig:
    formats: Mapping[DocumentType, NumberFormat] = field(
        default_factory=lambda: DEFAULT_NUMBER_FORMATS
    )
    recycle_voided: frozenset[DocumentType] = frozenset(DocumentType)
    max_create_attempts: int = 3

    def format_for(self, document_type: DocumentType) -> NumberFormat:
        return self.formats[DocumentType(document_type)]

    def recycles(self, document_type: DocumentType) -> bool:
        return DocumentType(document_type) in self.recycle_voided


@dataclass(frozen=True)
class AccountsConfig:
    """Default ledger account codes (field names match PostingAccounts)."""
    cash: str = "1000"
    bank: str = "1010"
    accounts_receivable: str = "1100"
    wht_receivable: str = "1160"
    vat_payable: str = "2200"
    revenue: str = "4490"


@dataclass(frozen=True)
class WhtConfig:
    allowed_rates: tuple[Decimal, ...] = ALLOWED_WHT_RATES
    tracked_document_types: frozenset[DocumentType] = frozenset({DocumentType.RECEIPT})

    def tracks(self, document_type: DocumentType) -> bool:
        return DocumentType(document_type) in self.tracked_document_types


@dataclass(frozen=True)
class CharterConfig:
    """The complete runtime configuration."""
    config_id: str = "default"
    version: int = 1
    base_currency: str = "THB"
    supported_currencies: tuple[str, ...] = ("THB", "USD", "EUR", "GBP", "SGD", "AED")
    numbering: NumberingConfig = field(default_factory=NumberingConfig)
    accounts: AccountsConfig = field(default_factory=AccountsConfig)
    wht: WhtConfig = field(default_factory=WhtConfig)
    checksum: str = ""

    def supports_currency(self, code: str) -> bool:
        return (code or "").upper().strip() in self.supported_currencies
