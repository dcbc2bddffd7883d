"""Tests for structured logging configuration."""

import logging
import sys
from unittest.mock import patch

import pytest
import structlog

from zkqsig.observability.logging import (
    REDACTED_PLACEHOLDER,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_context,
    sanitize_for_logging,
)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_logging_respects_log_level(self) -> None:
        configure_logging(log_format="console", log_level="WARNING", force=True)

        assert logging.getLogger().level == logging.WARNING

    def test_configure_logging_with_json_format(self) -> None:
        configure_logging(log_format="json", log_level="INFO", force=True)

        logger = get_logger("test.json")
        logger.info("zkqsig.test.event", root="ab" * 32)

    def test_configure_logging_does_not_reconfigure_by_default(self) -> None:
        configure_logging(log_format="console", log_level="DEBUG", force=True)
        configure_logging(log_format="json", log_level="ERROR")

        assert logging.getLogger().level == logging.DEBUG

    def test_configure_logging_from_environment_variables(self) -> None:
        with patch.dict(
            "os.environ",
            {
                "ZKQSIG_LOG_FORMAT": "json",
                "ZKQSIG_LOG_LEVEL": "ERROR",
                "ZKQSIG_SERVICE_NAME": "verifier-service",
            },
        ):
            configure_logging(force=True)

            assert logging.getLogger().level == logging.ERROR
            assert structlog.contextvars.get_contextvars()["service"] == "verifier-service"
        configure_logging(force=True)

    def test_logs_go_to_stderr(self) -> None:
        configure_logging(force=True)
        handlers = logging.getLogger().handlers

        assert any(
            isinstance(h, logging.StreamHandler) and h.stream is sys.stderr for h in handlers
        )


class TestContextBinding:
    def test_bind_and_clear(self) -> None:
        configure_logging(force=True)

        bind_context(manifest_doc_hash="ab" * 32)
        assert structlog.contextvars.get_contextvars()["manifest_doc_hash"] == "ab" * 32

        clear_context()
        assert "manifest_doc_hash" not in structlog.contextvars.get_contextvars()


class TestLogContext:
    def test_bound_only_inside_block(self) -> None:
        configure_logging(force=True)

        with log_context(mutation="swap_trust_root"):
            assert structlog.contextvars.get_contextvars()["mutation"] == "swap_trust_root"
        assert "mutation" not in structlog.contextvars.get_contextvars()

    def test_restores_outer_value(self) -> None:
        configure_logging(force=True)
        bind_context(step="outer")

        with log_context(step="inner"):
            assert structlog.contextvars.get_contextvars()["step"] == "inner"
        assert structlog.contextvars.get_contextvars()["step"] == "outer"
        clear_context()


class TestSecretRedaction:
    def test_secret_fields_never_rendered(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_format="json", log_level="INFO", force=True)

        get_logger("test.redaction").info(
            "zkqsig.test.event", private_key="deadbeef", curve="p256"
        )

        err = capsys.readouterr().err
        assert "deadbeef" not in err
        assert REDACTED_PLACEHOLDER in err
        assert "p256" in err
        configure_logging(force=True)


class TestSanitizeForLogging:
    """Tests for sanitize_for_logging (secret redaction)."""

    def test_key_material_redacted(self) -> None:
        data = {"private_key": "abcd", "shared_secret": "ef01", "curve": "p256"}
        result = sanitize_for_logging(data)

        assert result["private_key"] == REDACTED_PLACEHOLDER
        assert result["shared_secret"] == REDACTED_PLACEHOLDER
        assert result["curve"] == "p256"

    def test_nested_and_lists(self) -> None:
        data = {
            "recipient": {"public_key": "04aa", "password": "x"},
            "items": [{"secret": "s", "name": "a"}, "plain"],
        }
        result = sanitize_for_logging(data)

        assert result["recipient"]["public_key"] == "04aa"
        assert result["recipient"]["password"] == REDACTED_PLACEHOLDER
        assert result["items"][0] == {"secret": REDACTED_PLACEHOLDER, "name": "a"}
        assert result["items"][1] == "plain"

    def test_empty(self) -> None:
        assert sanitize_for_logging({}) == {}

    def test_input_not_mutated(self) -> None:
        data = {"private_key": "abcd"}
        sanitize_for_logging(data)

        assert data == {"private_key": "abcd"}
