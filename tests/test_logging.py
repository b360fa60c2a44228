"""Tests for the structured logging system (charter_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from charter_kernel.domain.documents import DocumentStatus
from charter_kernel.exceptions import PartialPersistenceError
from charter_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from tests.factories import make_document


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


class TestStructuredFormatter:
    """One JSON object per line, with context and extras merged in."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "charter_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "document_save_completed",
            extra={"attempts": 2, "status": DocumentStatus.PAID},
        )

        record = _parse_log(stream)
        assert record["attempts"] == 2
        assert record["status"] == "paid"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(document_id="doc-1", company_id="company-andaman")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["document_id"] == "doc-1"
        assert record["company_id"] == "company-andaman"

    def test_decimal_date_and_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "typed_values",
            extra={"amount": Decimal("1070.00"), "on": date(2026, 1, 15), "ref": uid},
        )

        record = _parse_log(stream)
        assert record["amount"] == "1070.00"
        assert record["on"] == "2026-01-15"
        assert record["ref"] == str(uid)

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_and_data_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise PartialPersistenceError("doc-9", "payments", ["header", "line_items"], "disk full")
        except PartialPersistenceError:
            get_logger("test").error("save_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "PARTIAL_PERSISTENCE"
        assert record["exc_failed_step"] == "payments"
        assert record["exc_completed_steps"] == ["header", "line_items"]

    def test_debug_suppressed_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", document_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "document_id": "y"}

    def test_clear(self):
        LogContext.set(company_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(document_id="outer")
        with LogContext.bind(document_id="inner"):
            assert LogContext.get_all()["document_id"] == "inner"
        assert LogContext.get_all()["document_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(company_id="temp"):
            assert LogContext.get_all()["company_id"] == "temp"
        assert "company_id" not in LogContext.get_all()

    def test_bind_ignores_none_values(self):
        LogContext.set(document_id="kept")
        with LogContext.bind(document_id=None, company_id="c"):
            assert LogContext.get_all()["document_id"] == "kept"

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            document_id="d",
            company_id="co",
            actor_id="a",
            trace_id="t",
        )
        assert len(LogContext.get_all()) == 5

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="vessel_id"):
            LogContext.set(vessel_id="v")

    def test_bind_document(self):
        document = make_document(id=uuid4())
        with LogContext.bind_document(document):
            ctx = LogContext.get_all()
            assert ctx["document_id"] == str(document.id)
            assert ctx["company_id"] == document.company_id
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        installed = [
            h
            for h in logging.getLogger("charter_kernel").handlers
            if isinstance(h.formatter, StructuredFormatter)
        ]
        assert installed == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("services.numbering").name == "charter_kernel.services.numbering"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "charter_kernel.deep.nested.module"
