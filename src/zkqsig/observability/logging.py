"""Structured logging configuration for zkqsig.

This module configures structlog for structured logging with support for
both development (console) and production (JSON) output formats.

Environment Variables:
    ZKQSIG_LOG_FORMAT: Set to "json" for JSON output, "console" for colored output
    ZKQSIG_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR)
    ZKQSIG_SERVICE_NAME: Service name to include in logs

Example:
    >>> from zkqsig.observability.logging import get_logger, configure_logging
    >>> configure_logging(log_format="json", log_level="INFO")
    >>> logger = get_logger("zkqsig.trust.merkle")
    >>> logger.info("zkqsig.trust_list.built", leaves=4, depth=2)
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "zkqsig"

ENV_LOG_FORMAT = "ZKQSIG_LOG_FORMAT"
ENV_LOG_LEVEL = "ZKQSIG_LOG_LEVEL"
ENV_SERVICE_NAME = "ZKQSIG_SERVICE_NAME"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Key substrings (case-insensitive) that indicate secret material
_SENSITIVE_KEY_PATTERNS = frozenset({"private", "secret", "password", "shared", "sender_key"})

_logging_configured = False


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with secret-looking values redacted.

    Nested dicts and lists of dicts are sanitized recursively.

    Example:
        >>> sanitize_for_logging({"curve": "p256", "private_key": "abcd"})
        {'curve': 'p256', 'private_key': '***REDACTED***'}
    """
    if not data:
        return {}
    result: dict[str, Any] = {}
    for k, v in data.items():
        if _is_sensitive_key(k):
            result[k] = REDACTED_PLACEHOLDER
        elif isinstance(v, dict):
            result[k] = sanitize_for_logging(v)
        elif isinstance(v, list):
            result[k] = [
                sanitize_for_logging(item) if isinstance(item, dict) else item for item in v
            ]
        else:
            result[k] = v
    return result


def _get_log_level() -> str:
    return os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()


def _get_log_format() -> str:
    return os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT).lower()


def _get_service_name() -> str:
    return os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME)


def _redact_secret_fields(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor: no event leaves the process with key or secret material in it."""
    return sanitize_for_logging(event_dict)


def _get_shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _redact_secret_fields,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_format: Output format - "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "INFO"
        service_name: Service name for log context. Defaults to env var or "zkqsig"
        force: If True, reconfigure even if already configured
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = log_format or _get_log_format()
    log_level = log_level or _get_log_level()
    service_name = service_name or _get_service_name()

    shared_processors = _get_shared_processors()

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # Logs go to stderr so CLI stdout stays machine-readable
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level))

    structlog.contextvars.bind_contextvars(service=service_name)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name, configuring defaults on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("zkqsig.manifest.written", path="out/manifest.json")
    """
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent logs (e.g. service)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of a block, restoring the previous values after.

    Example:
        >>> with log_context(mutation="swap_trust_root"):
        ...     verifier.verify(manifest, ciphertext, root)
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
