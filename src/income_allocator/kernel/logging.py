"""
Structured logging for Income Allocator.

Every log line carries a correlation ID and, inside a budgeting session,
the session ID. Money never reaches the log output: a processor in the
chain masks amount fields on every event, whichever module emitted it.
Logs go to stderr so CLI output on stdout stays machine-readable.
"""

import contextvars
import logging
import os
import secrets
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

# Correlation ID for the current budgeting session or CLI invocation
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

REDACTED = "***REDACTED***"

# Event fields that hold money; bucket types and conditions stay visible
REDACTED_FIELDS = frozenset(
    {
        "amount",
        "requested_amount",
        "settled_amount",
        "previous_amount",
        "new_amount",
        "monthly_income",
        "essential_spending_amount",
        "original_amount",
        "total_allocated",
    }
)


def generate_correlation_id() -> str:
    """Generate a new 22-character URL-safe correlation ID."""
    return secrets.token_urlsafe(16)


def get_correlation_id() -> str:
    """Get the current correlation ID, or generate a new one if not set."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


@contextmanager
def session_context(session_id: str) -> Iterator[None]:
    """
    Tag every log line emitted inside the block with a budgeting session

    The session ID doubles as the correlation ID, so the engine calls made
    on behalf of one session can be grouped without passing IDs around.
    """
    token = correlation_id_var.set(session_id)
    try:
        with structlog.contextvars.bound_contextvars(session_id=session_id):
            yield
    finally:
        correlation_id_var.reset(token)


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Mask money fields in a log context.

    Example:
        >>> redact_context({"monthly_income": "5000", "bucket_type": "investments"})
        {"monthly_income": "***REDACTED***", "bucket_type": "investments"}
    """
    return {k: REDACTED if k in REDACTED_FIELDS else v for k, v in context.items()}


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def redact_amounts(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Processor form of redact_context, applied to every event."""
    return redact_context(event_dict)


def configure_logging(
    *,
    json_output: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_output: If True, output JSON logs (for production).
                    If False, output human-readable console logs (for development).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )
    logging.getLogger("income_allocator").setLevel(level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        redact_amounts,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_env() -> None:
    """
    Configure logging from the environment.

    ENVIRONMENT=production selects JSON output; ALLOCATOR_LOG_LEVEL sets
    the level (WARNING by default).
    """
    configure_logging(
        json_output=is_production(),
        log_level=os.getenv("ALLOCATOR_LOG_LEVEL", "WARNING"),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def is_production() -> bool:
    """Anything but ENVIRONMENT=production counts as development."""
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


class LogOperation:
    """
    Context manager timing one engine operation.

    Logs start at debug, completion at info and failure at error. The
    context is redacted on entry.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        """
        Args:
            logger: Structured logger instance
            operation: Operation name (e.g., "apply_edit", "validate_all")
            **context: Additional context to include in logs
        """
        self.logger = logger
        self.operation = operation
        self.context = redact_context(context)
        self.start_time: float = 0.0

    def __enter__(self) -> "LogOperation":
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation} started", operation=self.operation, **self.context)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is None:
            self.logger.info(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
                **self.context,
            )
            return

        # Stack traces only outside production
        self.logger.error(
            f"{self.operation} failed",
            operation=self.operation,
            duration_ms=duration_ms,
            error=type(exc_val).__name__,
            exc_info=not is_production(),
            **self.context,
        )
