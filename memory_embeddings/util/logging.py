"""
Structured logging for embedding generation, similarity ranking and backfill runs.
"""

import logging
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for embedding, similarity and backfill operations."""

    def __init__(self, name: str = "memory_embeddings"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        elif status in ("skipped", "degraded"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_model_load(self, model_name: str, status: str = "success", details: Dict[str, Any] = None):
        """Log the one-time model initialization."""
        log_details = {"model": model_name}
        if details:
            log_details.update(details)

        self.log_operation("embedding.model_load", status, log_details)

    def log_embedding_operation(self, operation: str, text: str = None, details: Dict[str, Any] = None, status: str = "success"):
        """Log an embedding operation. Text is truncated to keep logs readable."""
        log_details = {}
        if text is not None:
            log_details["text"] = text[:50] + "..." if len(text) > 50 else text
        if details:
            log_details.update(details)

        self.log_operation(f"embedding.{operation}", status, log_details)

    def log_backfill_item(self, record_type: str, record_id: int, status: str, error: Exception = None):
        """Log the outcome of one record during a backfill run."""
        log_details = {"record_type": record_type, "record_id": record_id}
        if error is not None:
            log_details["error"] = str(error)[:200]

        self.log_operation("backfill.item", status, log_details)

    def log_similarity_skip(self, record_type: str, record_id: int, error: Exception):
        """Log a candidate dropped from a ranking because it couldn't be scored."""
        log_details = {
            "record_type": record_type,
            "record_id": record_id,
            "error": str(error)[:200]
        }
        self.log_operation("similarity.candidate", "skipped", log_details)

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
