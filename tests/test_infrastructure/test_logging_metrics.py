"""
Test infrastructure components: logging, redaction and metrics.

These tests verify the observability layer wrapped around the engine.
"""

from decimal import Decimal

import pytest
import structlog

from income_allocator.allocation.models import BucketSet, BucketType
from income_allocator.engine import AllocationEngine
from income_allocator.kernel.logging import (
    LogOperation,
    configure_logging,
    get_correlation_id,
    get_logger,
    is_production,
    redact_amounts,
    redact_context,
    session_context,
    set_correlation_id,
)
from income_allocator.kernel.metrics import (
    operation_duration_seconds,
    operations_total,
    track_operation_duration,
)


class TestLoggingFramework:
    """Test structured logging framework."""

    def test_configure_logging_console(self) -> None:
        """Test logging configuration for console output."""
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)
        assert logger is not None

    def test_configure_logging_json(self) -> None:
        """Test logging configuration for JSON output."""
        configure_logging(json_output=True, log_level="DEBUG")
        logger = get_logger(__name__)
        assert logger is not None

    def test_correlation_id(self) -> None:
        """Test correlation ID context management."""
        cid = get_correlation_id()
        assert cid is not None
        assert len(cid) > 0

        custom_id = "session-123"
        set_correlation_id(custom_id)
        assert get_correlation_id() == custom_id

    def test_log_operation_context_manager(self) -> None:
        """Test LogOperation context manager."""
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)

        with LogOperation(logger, "test_operation", bucket_type="investments"):
            pass

    def test_log_operation_with_exception(self) -> None:
        """Test LogOperation logs errors and re-raises."""
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)

        with pytest.raises(ValueError):
            with LogOperation(logger, "failing_operation"):
                raise ValueError("Test error")

    def test_session_context_scopes_ids(self) -> None:
        """Test session context binds and then restores the IDs."""
        set_correlation_id("cli-run")

        with session_context("session-42"):
            assert get_correlation_id() == "session-42"
            assert structlog.contextvars.get_contextvars()["session_id"] == "session-42"

        assert get_correlation_id() == "cli-run"
        assert "session_id" not in structlog.contextvars.get_contextvars()

    def test_environment_detection(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert is_production()

        monkeypatch.setenv("ENVIRONMENT", "staging")
        assert not is_production()

        monkeypatch.delenv("ENVIRONMENT")
        assert not is_production()


class TestRedaction:
    """Amounts never reach the logs."""

    def test_financial_fields_redacted(self) -> None:
        context = redact_context(
            {
                "monthly_income": "5000",
                "requested_amount": "1000",
                "bucket_type": "emergencyFund",
            }
        )

        assert context == {
            "monthly_income": "***REDACTED***",
            "requested_amount": "***REDACTED***",
            "bucket_type": "emergencyFund",
        }

    def test_processor_masks_every_event(self) -> None:
        event = redact_amounts(
            None, "warning", {"event": "Edit rejected", "settled_amount": "10.00"}
        )

        assert event == {"event": "Edit rejected", "settled_amount": "***REDACTED***"}

    def test_engine_logs_without_amounts(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test engine operation logs carry identifiers but no amounts."""
        configure_logging(json_output=True, log_level="DEBUG")
        buckets = BucketSet.from_amounts(
            {BucketType.ESSENTIAL_SPENDING: 4000, BucketType.INVESTMENTS: 1000}
        )

        with caplog.at_level("DEBUG", logger="income_allocator"):
            AllocationEngine().apply_edit(
                buckets, Decimal("5000"), BucketType.INVESTMENTS, Decimal("1234.56")
            )

        assert "apply_edit completed" in caplog.text
        assert "1234.56" not in caplog.text


class TestMetrics:
    """Test Prometheus metrics collection."""

    def test_operation_duration_recorded(self) -> None:
        """Test engine operations observe the duration histogram."""
        histogram = operation_duration_seconds.labels(operation="rebalance_to_income")
        before = histogram._sum.get()
        buckets = BucketSet.from_amounts(
            {BucketType.ESSENTIAL_SPENDING: 4000, BucketType.INVESTMENTS: 1000}
        )

        AllocationEngine().rebalance_to_income(buckets, Decimal("6000"))

        assert histogram._sum.get() > before

    def test_track_operation_duration_counts_status(self) -> None:
        """Test the decorator counts success and failure separately."""

        @track_operation_duration("test_op")
        def flaky(fail: bool) -> str:
            if fail:
                raise RuntimeError("boom")
            return "ok"

        success = operations_total.labels(operation="test_op", status="success")
        failure = operations_total.labels(operation="test_op", status="failure")
        success_before = success._value.get()
        failure_before = failure._value.get()

        assert flaky(False) == "ok"
        with pytest.raises(RuntimeError):
            flaky(True)

        assert success._value.get() == success_before + 1
        assert failure._value.get() == failure_before + 1
