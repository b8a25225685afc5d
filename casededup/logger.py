"""
Structured logging system for casededup.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for detection passes and resolutions.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring detection and resolution activity.
    """

    def __init__(
        self,
        name: str = "casededup",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "detection_runs": 0,
            "pairs_compared": 0,
            "candidates_found": 0,
            "pairs_created": 0,
            "pairs_skipped": 0,
            "pairs_failed": 0,
            "resolutions": {},
            "cases_deleted": 0,
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"casededup_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_detection_run(self, compared: int, candidates: int, created: int, skipped: int, failed: int):
        """Accumulate the counters of one detection pass."""
        self.metrics["detection_runs"] += 1
        self.metrics["pairs_compared"] += compared
        self.metrics["candidates_found"] += candidates
        self.metrics["pairs_created"] += created
        self.metrics["pairs_skipped"] += skipped
        self.metrics["pairs_failed"] += failed

    def record_resolution(self, status: str):
        """Record a committed resolution transition."""
        resolutions = self.metrics["resolutions"]
        resolutions[status] = resolutions.get(status, 0) + 1

    def record_case_deleted(self):
        self.metrics["cases_deleted"] += 1

    def record_error(self, error_type: str):
        """Count an error by its type name."""
        if error_type not in self.metrics["errors_by_type"]:
            self.metrics["errors_by_type"][error_type] = 0
        self.metrics["errors_by_type"][error_type] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = dict(self.metrics)
        metrics_copy["resolutions"] = dict(self.metrics["resolutions"])
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        if metrics_copy["candidates_found"] > 0:
            metrics_copy["creation_rate"] = round(
                metrics_copy["pairs_created"] / metrics_copy["candidates_found"], 3
            )
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Duplicate Detection Metrics ===")
        self.info(f"Detection runs: {metrics['detection_runs']}")
        self.info(f"Pairs compared: {metrics['pairs_compared']}")
        self.info(
            f"Candidates: {metrics['candidates_found']} "
            f"(created={metrics['pairs_created']} skipped={metrics['pairs_skipped']} "
            f"failed={metrics['pairs_failed']})"
        )

        if metrics["resolutions"]:
            self.info("Resolutions:")
            for status, count in sorted(metrics["resolutions"].items()):
                self.info(f"  {status}: {count}")

        if metrics["cases_deleted"]:
            self.info(f"Cases deleted: {metrics['cases_deleted']}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "casededup",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
