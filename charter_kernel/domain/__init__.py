"""
Pure domain layer.

Immutable documents, currency registry, clock and workflow value types.
No ORM, database or I/O (``SystemClock`` aside).
"""

from charter_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from charter_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from charter_kernel.domain.documents import (
    ALLOWED_WHT_RATES,
    WHT_CUSTOM,
    AdjustmentType,
    Document,
    DocumentStatus,
    DocumentType,
    FxRateSource,
    LineItem,
    NumberSource,
    PaymentRecord,
    PaymentTerms,
    PricingType,
)
from charter_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "ALLOWED_WHT_RATES",
    "AdjustmentType",
    "Clock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "Document",
    "DocumentStatus",
    "DocumentType",
    "FxRateSource",
    "Guard",
    "LineItem",
    "NumberSource",
    "PaymentRecord",
    "PaymentTerms",
    "PricingType",
    "SystemClock",
    "Transition",
    "WHT_CUSTOM",
    "Workflow",
]
