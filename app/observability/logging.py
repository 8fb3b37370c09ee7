# ==== STRUCTURED LOGGING WITH LOGURU ==== #

"""
Structured logging with loguru for Credit Gate.

This module provides JSON structured logging with correlation and company
context, optional log rotation, and OpenTelemetry trace correlation for the
credit validation service.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger
from opentelemetry import trace


# ==== STDLIB INTERCEPTION ==== #


class InterceptHandler(logging.Handler):
    """Route standard library log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def init_logging(level: str = "INFO", log_to_files: bool = False, log_dir: str = "logs") -> None:
    """Initialize structured logging with loguru.

    Configures JSON output on stdout, optional rotated and compressed log
    files, and routes standard library logging through loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_files: Also write rotated JSON log files
        log_dir: Directory for log files
    """
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        format="{message}",
        serialize=True,
        level=level.upper(),
        enqueue=True,
        colorize=False,
        backtrace=True,
        diagnose=False,
    )

    if log_to_files:
        logs_dir = Path(log_dir)
        logs_dir.mkdir(exist_ok=True)

        logger.add(
            logs_dir / "credit_gate_{time:YYYY-MM-DD}.log",
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            serialize=True,
            level="DEBUG",
            enqueue=True,
        )

        # Credit decisions and data-source failures are kept longer
        logger.add(
            logs_dir / "credit_gate_errors_{time:YYYY-MM-DD}.log",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            serialize=True,
            level="ERROR",
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.info("Structured logging initialized", level=level.upper(), log_to_files=log_to_files)


class ContextualLogger:
    """Logger using loguru with automatic context injection.

    Binds the logger name, any keyword fields and the current OpenTelemetry
    trace and span ids to every record.
    """

    def __init__(self, name: str):
        """Initialize contextual logger.

        Args:
            name: Logger name (typically __name__)
        """
        self.name = name
        self.logger = logger.bind(logger_name=name)

    def _add_context(self, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """Add contextual information to log record.

        Args:
            extra: Additional fields to include

        Returns:
            Dictionary with context fields
        """
        context: Dict[str, Any] = {"logger_name": self.name}

        if extra:
            context.update(extra)

        span = trace.get_current_span()
        span_context = span.get_span_context()
        if span_context.is_valid:
            context["trace_id"] = format(span_context.trace_id, "032x")
            context["span_id"] = format(span_context.span_id, "016x")

        return context

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message with context."""
        self.logger.bind(**self._add_context(kwargs)).debug(msg)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message with context."""
        self.logger.bind(**self._add_context(kwargs)).info(msg)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message with context."""
        self.logger.bind(**self._add_context(kwargs)).warning(msg)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log error message with context."""
        self.logger.bind(**self._add_context(kwargs)).error(msg)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log exception with full traceback and context."""
        self.logger.bind(**self._add_context(kwargs)).exception(msg)


# ==== LOGGING UTILITIES ==== #


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """Log performance metrics with structured data.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context fields
    """
    perf_logger = logger.bind(
        operation=operation,
        duration_seconds=round(duration, 3),
        performance_log=True,
        **context
    )

    if duration > 2.0:
        perf_logger.warning(f"Slow operation detected: {operation}")
    else:
        perf_logger.debug(f"Operation completed: {operation}")


def log_business_event(event_type: str, company_id: int, **context: Any) -> None:
    """Log business events with structured data.

    Args:
        event_type: Type of business event
        company_id: Company scope of the event
        **context: Additional business context
    """
    logger.bind(
        event_type=event_type,
        company_id=company_id,
        business_event=True,
        **context
    ).info(f"Business event: {event_type}")
