"""
charter_services -- async orchestration over external collaborators.

Public surface:
    DocumentService          save / approve / void pipeline
    DocumentLifecycle        status transitions and guards
    NumberingService         document numbers with recycling
    SqlDocumentNumberStore   SQL-backed counters and pool
    FxRateResolver           base-currency rates at save time
    SideEffectOrchestrator   ledger posting, WHT tracking, number retry
"""

from charter_services.contracts import (
    DocumentNumberProvider,
    DocumentPersistence,
    FxQuote,
    FxRateProvider,
    LedgerPoster,
    PostingResult,
    WhtTracker,
)
from charter_services.document_service import DocumentService, SaveResult
from charter_services.fx_rate_resolver import FxRateResolver, StaticFxRateProvider
from charter_services.lifecycle import DocumentLifecycle, GuardExecutor, default_guard_executor
from charter_services.numbering import (
    InMemoryNumberStore,
    NumberAllocation,
    NumberingService,
    RecycleResult,
)
from charter_services.side_effects import SideEffectOrchestrator, SideEffectReport
from charter_services.sql_numbering import SqlDocumentNumberStore

__all__ = [
    "DocumentLifecycle",
    "DocumentNumberProvider",
    "DocumentPersistence",
    "DocumentService",
    "FxQuote",
    "FxRateProvider",
    "FxRateResolver",
    "GuardExecutor",
    "InMemoryNumberStore",
    "LedgerPoster",
    "NumberAllocation",
    "NumberingService",
    "PostingResult",
    "RecycleResult",
    "SaveResult",
    "SideEffectOrchestrator",
    "SideEffectReport",
    "SqlDocumentNumberStore",
    "StaticFxRateProvider",
    "WhtTracker",
    "default_guard_executor",
]
