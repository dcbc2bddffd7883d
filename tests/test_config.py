"""Tests for zkqsig deployment settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from zkqsig.config import (
    DEFAULT_MAX_PROOF_BYTES,
    DEFAULT_PROOF_TIMEOUT_SECONDS,
    Settings,
    load_settings,
)
from zkqsig.models.enums import CurveId, HashAlgorithm


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.merkle_hash is HashAlgorithm.SHA256
        assert settings.curve is CurveId.P256
        assert settings.proof_timeout_seconds == DEFAULT_PROOF_TIMEOUT_SECONDS
        assert settings.max_proof_bytes == DEFAULT_MAX_PROOF_BYTES

    def test_frozen(self) -> None:
        settings = Settings()
        with pytest.raises(ValidationError):
            settings.curve = CurveId.P384  # type: ignore[misc]

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            Settings(merkle_depth=4)  # type: ignore[call-arg]

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError):
            Settings(proof_timeout_seconds=0)


class TestLoadSettings:
    def test_empty_environment_gives_defaults(self) -> None:
        assert load_settings({}) == Settings()

    def test_reads_overrides(self, tmp_path: Path) -> None:
        settings = load_settings(
            {
                "ZKQSIG_MERKLE_HASH": "SHA3-256",
                "ZKQSIG_CURVE": "secp256k1",
                "ZKQSIG_PROOF_TIMEOUT_SECONDS": "2.5",
                "ZKQSIG_MAX_PROOF_BYTES": "4096",
                "ZKQSIG_STORE_DIR": str(tmp_path),
            }
        )

        assert settings.merkle_hash is HashAlgorithm.SHA3_256
        assert settings.curve is CurveId.SECP256K1
        assert settings.proof_timeout_seconds == 2.5
        assert settings.max_proof_bytes == 4096
        assert settings.store_dir == tmp_path

    def test_blank_values_are_ignored(self) -> None:
        assert load_settings({"ZKQSIG_CURVE": "  "}).curve is CurveId.P256

    def test_invalid_value_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Invalid zkqsig settings"):
            load_settings({"ZKQSIG_MERKLE_HASH": "md5"})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ZKQSIG_CURVE", "x25519")

        assert load_settings().curve is CurveId.X25519
