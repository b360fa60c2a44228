"""
Pytest fixtures for the charter document engine test suite.

Provides:
- Structured logging configured once per session
- LogContext isolation between tests
- ``captured_logs`` for asserting on emitted JSON log records
- A deterministic clock and the default configuration
- In-memory collaborators wired into a DocumentService

Document builders live in tests/factories.py.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from charter_config import CharterConfig, get_active_config
from charter_kernel.domain.clock import DeterministicClock
from charter_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from charter_services.document_service import DocumentService
from charter_services.numbering import InMemoryNumberStore
from tests.fakes import (
    FakeLedgerPoster,
    FakeWhtTracker,
    InMemoryPersistence,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture charter_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            asyncio.run(service.save(doc, DocumentStatus.ISSUED))
            logs = captured_logs()
            assert any(r["message"] == "document_save_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("charter_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def config() -> CharterConfig:
    return get_active_config()


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def ledger() -> FakeLedgerPoster:
    return FakeLedgerPoster()


@pytest.fixture
def wht_tracker() -> FakeWhtTracker:
    return FakeWhtTracker()


@pytest.fixture
def number_store() -> InMemoryNumberStore:
    return InMemoryNumberStore()


@pytest.fixture
def service(config, persistence, ledger, wht_tracker, number_store, clock) -> DocumentService:
    return DocumentService.from_config(
        config,
        persistence,
        ledger_poster=ledger,
        wht_tracker=wht_tracker,
        number_store=number_store,
        clock=clock,
    )
