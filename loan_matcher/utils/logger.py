"""
Logging configuration and utilities for the loan matcher.

Provides structured logging with JSON format for production environments
and human-readable format for development.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


# Extra fields lifted from log records into the JSON payload
_EXTRA_FIELDS = (
    "batch_id",
    "order_id",
    "maturity",
    "execution_time_ms",
    "correlation_id",
)


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Converts log records to JSON format with additional context fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field_name in _EXTRA_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                log_data[field_name] = value if isinstance(value, (int, float)) else str(value)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class MatchingEngineLogger:
    """
    Centralized logger for the loan matcher.

    Provides structured logging with batch correlation and search metrics.
    Supports both JSON (production) and console (development) formats.
    """

    def __init__(
        self,
        name: str = "LoanMatcher",
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        use_json: bool = False,
    ):
        """
        Initialize the matcher logger.

        Args:
            name: Logger name
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (None for console only)
            use_json: Use JSON formatting (for production)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.handlers.clear()  # Remove existing handlers

        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)

        if use_json:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)

        self.logger.addHandler(console_handler)

        # File handlers if log_dir is specified
        if log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            # Application log
            app_handler = self._create_file_handler(
                log_dir / "application.log",
                use_json
            )
            self.logger.addHandler(app_handler)

            # Settlement log
            self.settlement_logger = logging.getLogger(f"{name}.settlements")
            self.settlement_logger.setLevel(logging.INFO)
            self.settlement_logger.handlers.clear()
            settlement_handler = self._create_file_handler(
                log_dir / "settlements.log",
                use_json
            )
            self.settlement_logger.addHandler(settlement_handler)

            # Error log
            error_handler = self._create_file_handler(
                log_dir / "errors.log",
                use_json
            )
            error_handler.setLevel(logging.ERROR)
            self.logger.addHandler(error_handler)
        else:
            self.settlement_logger = self.logger

    def _create_file_handler(
        self,
        filepath: Path,
        use_json: bool
    ) -> logging.FileHandler:
        """Create a file handler with appropriate formatter."""
        handler = logging.FileHandler(filepath)

        if use_json:
            handler.setFormatter(JSONFormatter())
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

        return handler

    def log_batch_received(
        self,
        batch_id: Optional[str],
        order_count: int,
        lender_count: int,
        borrower_count: int,
        partition_count: int,
        maturity: Optional[int] = None,
    ):
        """Log the start of a partition search."""
        extra = {
            "batch_id": batch_id,
            "maturity": maturity,
            "correlation_id": batch_id,
        }
        msg = (
            f"Matching {order_count} orders ({lender_count} lenders, "
            f"{borrower_count} borrowers) across {partition_count} partitions"
        )
        self.logger.info(msg, extra=extra)

    def log_search_summary(
        self,
        batch_id: Optional[str],
        partitions_considered: int,
        partitions_feasible: int,
        candidates: int,
        execution_time_ms: float,
        maturity: Optional[int] = None,
    ):
        """Log partition search statistics."""
        extra = {
            "batch_id": batch_id,
            "maturity": maturity,
            "execution_time_ms": execution_time_ms,
        }
        msg = (
            f"Search complete: {partitions_considered} partitions, "
            f"{partitions_feasible} feasible, {candidates} matching candidates "
            f"in {execution_time_ms:.3f}ms"
        )
        self.logger.debug(msg, extra=extra)

    def log_best_result(
        self,
        batch_id: Optional[str],
        total_matched: int,
        average_rate,
        efficiency,
        feasibility: str,
        maturity: Optional[int] = None,
    ):
        """Log the winning matching result."""
        extra = {"batch_id": batch_id, "maturity": maturity}
        msg = (
            f"Best result: matched {total_matched} at avg {average_rate} bips, "
            f"efficiency {efficiency} ({feasibility})"
        )
        self.logger.info(msg, extra=extra)

    def log_transfer(
        self,
        batch_id: Optional[str],
        lender_order_id: int,
        borrower_order_id: int,
        amount: int,
        rate_bips: int,
        maturity: int,
    ):
        """Log one settlement transfer."""
        extra = {
            "batch_id": batch_id,
            "order_id": borrower_order_id,
            "maturity": maturity,
        }
        msg = (
            f"Transfer: lender {lender_order_id} -> borrower {borrower_order_id} "
            f"{amount} @ {rate_bips} bips"
        )
        self.settlement_logger.info(msg, extra=extra)

    def log_no_match(
        self,
        batch_id: Optional[str],
        order_count: int,
        reason: str,
        maturity: Optional[int] = None,
    ):
        """Log a batch that produced no feasible partition."""
        extra = {"batch_id": batch_id, "maturity": maturity}
        msg = f"No feasible match for {order_count} orders: {reason}"
        self.logger.info(msg, extra=extra)

    def log_error(
        self,
        message: str,
        exception: Optional[Exception] = None,
        **kwargs
    ):
        """Log error with optional exception."""
        if exception:
            self.logger.error(message, exc_info=exception, extra=kwargs)
        else:
            self.logger.error(message, extra=kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self.logger.error(message, extra=kwargs)


# Global logger instance
_logger: Optional[MatchingEngineLogger] = None


def get_logger(
    name: str = "LoanMatcher",
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    use_json: bool = False,
) -> MatchingEngineLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        log_level: Logging level
        log_dir: Directory for log files
        use_json: Use JSON formatting

    Returns:
        MatchingEngineLogger instance
    """
    global _logger

    if _logger is None:
        _logger = MatchingEngineLogger(name, log_level, log_dir, use_json)

    return _logger
