"""Tests for the structured logging system (lifecycle_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from lifecycle_kernel.exceptions import GuardNotSatisfiedError
from lifecycle_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "lifecycle_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "trajectory_appended", extra={"position": 2, "decision_id": 1},
        )

        record = _parse_log(stream)
        assert record["position"] == 2
        assert record["decision_id"] == 1

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", process_id="7")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["process_id"] == "7"

    def test_policy_rejection_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise GuardNotSatisfiedError(7, 1, "guard condition not satisfied", formula_id=1)
        except GuardNotSatisfiedError:
            get_logger("test").error("rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "GUARD_NOT_SATISFIED"
        assert record["exc_type"] == "GuardNotSatisfiedError"
        assert record["exc_process_id"] == 7
        assert record["exc_reason"] == "guard condition not satisfied"
        assert record["exc_formula_id"] == 1
        assert "traceback" in record

    def test_plain_exception_has_no_code(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record

    def test_decimal_and_date_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "value_checked", extra={"value": Decimal("180.5"), "on": date(2026, 1, 2)},
        )

        record = _parse_log(stream)
        assert record["value"] == "180.5"
        assert record["on"] == "2026-01-02"

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_clear(self):
        LogContext.set(correlation_id="x", actor_id="3")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "3"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(process_id="outer")
        with LogContext.bind(process_id=5):
            assert LogContext.get_all()["process_id"] == "5"
        assert LogContext.get_all()["process_id"] == "outer"

    def test_bind_ignores_none_and_unknown_fields(self):
        with LogContext.bind(template_id=None, colour="red"):
            assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        handlers = logging.getLogger("lifecycle_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_child_logger_inherits_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("services.process_driver").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "lifecycle_kernel.services.process_driver"
