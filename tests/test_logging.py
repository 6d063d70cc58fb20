"""Tests for the structured logging system (workhour_kernel/logging_config.py)."""

import json
import logging
from datetime import date, datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest

from workhour_kernel.domain.approval import ApprovalStatus
from workhour_kernel.exceptions import ConcurrentTransitionError, InvalidStateError
from workhour_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
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
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "workhour_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("approved", extra={"version": 3, "resulting_status": "approved"})

        record = _parse_log(stream)
        assert record["version"] == 3
        assert record["resulting_status"] == "approved"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", actor_email="hanako@example.com")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["actor_email"] == "hanako@example.com"

    def test_context_wins_over_duplicate_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(submitter_email="taro@example.com"):
            get_logger("test").info("dup", extra={"submitter_email": "other@example.com"})

        assert _parse_log(stream)["submitter_email"] == "taro@example.com"

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

    def test_kernel_exception_fields_extracted(self):
        """Kernel exceptions carry .code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidStateError("taro@example.com", date(2025, 1, 15), "approved", "reject")
        except InvalidStateError:
            get_logger("test").error("transition_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_STATE"
        assert record["exc_type"] == "InvalidStateError"
        assert record["exc_submitter_email"] == "taro@example.com"
        assert record["exc_work_date"] == "2025-01-15"
        assert record["exc_current_status"] == "approved"
        assert record["exc_operation"] == "reject"

    def test_subclass_code_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ConcurrentTransitionError("taro@example.com", date(2025, 1, 15), "pending", 0, "approve")
        except InvalidStateError:
            get_logger("test").warning("lost_race", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "CONCURRENT_TRANSITION"
        assert record["exc_expected_version"] == 0

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "actor_email" not in record

    def test_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values",
            extra={
                "event_id": uid,
                "work_date": date(2025, 1, 15),
                "occurred_at": datetime(2025, 1, 16, 9, 30, tzinfo=timezone.utc),
                "status": ApprovalStatus.REJECTED,
                "emails": {"b@example.com", "a@example.com"},
            },
        )

        record = _parse_log(stream)
        assert record["event_id"] == str(uid)
        assert record["work_date"] == "2025-01-15"
        assert record["occurred_at"] == "2025-01-16T09:30:00+00:00"
        assert record["status"] == "rejected"
        assert record["emails"] == ["a@example.com", "b@example.com"]

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", submitter_email="taro@example.com")
        assert LogContext.get_all() == {
            "correlation_id": "x",
            "submitter_email": "taro@example.com",
        }

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(actor_email="outer@example.com")
        with LogContext.bind(actor_email="inner@example.com"):
            assert LogContext.get_all()["actor_email"] == "inner@example.com"
        assert LogContext.get_all()["actor_email"] == "outer@example.com"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "work_date" not in LogContext.get_all()
        with LogContext.bind(work_date="2025-01-15"):
            assert LogContext.get_all()["work_date"] == "2025-01-15"
        assert "work_date" not in LogContext.get_all()

    def test_set_rejects_unknown_field(self):
        with pytest.raises(TypeError, match="tenant"):
            LogContext.set(tenant="acme")
        assert LogContext.get_all() == {}

    def test_get_all_returns_copy(self):
        LogContext.set(trace_id="t")
        LogContext.get_all()["trace_id"] = "changed"
        assert LogContext.get_all() == {"trace_id": "t"}

    def test_bind_ignores_unknown_and_none(self):
        with LogContext.bind(correlation_id=None, tenant="acme", trace_id="t"):
            assert LogContext.get_all() == {"trace_id": "t"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(correlation_id="temp"):
                raise RuntimeError("inside")
        assert LogContext.get_all() == {}

    def test_additive_set(self):
        LogContext.set(correlation_id="a")
        LogContext.set(trace_id="b")
        ctx = LogContext.get_all()
        assert ctx["correlation_id"] == "a"
        assert ctx["trace_id"] == "b"

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_email="a@example.com",
            submitter_email="s@example.com",
            work_date="2025-01-15",
            trace_id="t",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["work_date"] == "2025-01-15"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("workhour_kernel")
        assert root.handlers == [h1]

    def test_does_not_propagate(self):
        configure_logging(handler=_make_handler()[0])
        assert logging.getLogger("workhour_kernel").propagate is False

    def test_get_logger_returns_child(self):
        assert get_logger("services.approval_workflow").name == "workhour_kernel.services.approval_workflow"

    def test_logger_hierarchy(self):
        """Child loggers inherit the workhour_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "workhour_kernel.deep.nested.module"
