"""
Structured logging for the retrieval core.
Vector store, persistence, corpus ingestion and generation events all flow through here.
"""

import logging
import os
from typing import Any, Dict


def _preview(text: str, limit: int = 50) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class StructuredLogger:
    """Structured logger for store, persistence and generation operations."""

    def __init__(self, name: str = "lorekeeper"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_level(self, level: str) -> None:
        """Change the level, e.g. DEBUG for --verbose runs."""
        self.logger.setLevel(level.upper())

    def is_debug(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_vector_operation(self, operation: str, ordinal: int, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector store operation against a 1-based document ordinal."""
        log_details = {"ordinal": ordinal}
        if details:
            log_details.update(details)

        level = logging.WARNING if status != "success" else logging.INFO
        self.log_operation(f"vector.{operation}", status, log_details, level)

    def log_persistence(self, operation: str, path: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a save or load of a vector store file."""
        log_details = {"path": str(path)}
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"vdb.{operation}", status, log_details, level)

    def log_corpus(self, path: str, added: int, skipped: int, failed: int, status: str = "success"):
        """Log the outcome of a corpus ingestion run."""
        self.log_operation("corpus.load", status, {
            "path": str(path),
            "added": added,
            "skipped_blank": skipped,
            "failed": failed,
        })

    def log_generation(self, model: str, tokens: int, stop_reason: str, text: str = None, status: str = "success"):
        """Log the outcome of one generation loop."""
        details = {"model": model, "tokens": tokens, "stop_reason": stop_reason}
        if text is not None:
            details["text"] = _preview(text)

        level = logging.WARNING if status != "success" else logging.INFO
        self.log_operation("generation", status, details, level)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
