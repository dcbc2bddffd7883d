"""Observability module for zkqsig.

Structured logging with JSON output for production and colored console
output for development.

Example:
    >>> from zkqsig.observability import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("zkqsig.verify.passed", doc_hash="ab12...")
"""

from zkqsig.observability.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_context,
    sanitize_for_logging,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "log_context",
    "sanitize_for_logging",
]
