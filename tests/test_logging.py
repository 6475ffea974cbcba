"""Tests for the structured logging system (capex_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from capex_kernel.domain.roi_impact import Severity
from capex_kernel.exceptions import DuplicateActionError
from capex_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


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


@pytest.fixture
def logged():
    """Configured logger plus a parser for everything it wrote."""
    handler, stream = _make_handler()
    configure_logging(handler=handler)
    return get_logger("test"), lambda: _parse_all_logs(stream)


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """JSON line output."""

    def test_basic_json_output(self, logged):
        logger, records = logged
        logger.info("hello")

        record = records()[0]
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "capex_kernel.test"
        assert "ts" in record

    def test_extra_fields_and_domain_values(self, logged):
        logger, records = logged
        uid = uuid4()
        logger.info(
            "impact",
            extra={"request_id": uid, "roi_loss": Decimal("7.50"), "severity": Severity.HIGH},
        )

        record = records()[0]
        assert record["request_id"] == str(uid)
        assert record["roi_loss"] == "7.50"
        assert record["severity"] == "high"

    def test_context_fields_included(self, logged):
        logger, records = logged
        LogContext.set(correlation_id="abc-123", request_id="req-1")
        logger.info("decided")

        record = records()[0]
        assert record["correlation_id"] == "abc-123"
        assert record["request_id"] == "req-1"

    def test_no_context_fields_when_empty(self, logged):
        logger, records = logged
        logger.info("bare_message")

        record = records()[0]
        assert "correlation_id" not in record
        assert "actor_id" not in record

    def test_kernel_exception_fields_extracted(self, logged):
        logger, records = logged
        try:
            raise DuplicateActionError("req-9", "user-3", "approve")
        except DuplicateActionError:
            logger.error("decision_failed", exc_info=True)

        record = records()[0]
        assert record["exc_type"] == "DuplicateActionError"
        assert record["exc_code"] == "DUPLICATE_ACTION"
        assert record["exc_request_id"] == "req-9"
        assert record["exc_actor_id"] == "user-3"
        assert "traceback" in record

    def test_debug_filtered_at_info(self, logged):
        logger, records = logged
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in records()] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    """Context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="y")

        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}

    def test_clear(self):
        LogContext.set(request_id="x")
        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(request_id="outer")
        with LogContext.bind(request_id="inner", actor_id="a"):
            assert LogContext.get_all() == {"request_id": "inner", "actor_id": "a"}
        assert LogContext.get_all() == {"request_id": "outer"}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(request_id="r", not_a_field="z"):
            assert LogContext.get_all() == {"request_id": "r"}

    def test_bind_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="temp"):
                raise RuntimeError("boom")

        assert "actor_id" not in LogContext.get_all()


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Initialization."""

    def test_idempotent(self):
        kernel_logger = logging.getLogger("capex_kernel")
        before = set(kernel_logger.handlers)
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        # Capture handlers installed by the test runner are not ours.
        added = set(kernel_logger.handlers) - before
        assert added == {h1}

    def test_get_logger_returns_child(self):
        assert get_logger("services.approval").name == "capex_kernel.services.approval"

    def test_child_loggers_inherit_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("engines.roi_impact").debug("hierarchy_test")

        record = _parse_all_logs(stream)[0]
        assert record["logger"] == "capex_kernel.engines.roi_impact"
