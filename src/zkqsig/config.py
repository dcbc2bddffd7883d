"""Deployment settings for zkqsig.

Settings are a frozen model with defaults, overridable through environment
variables. The Merkle hash and key-agreement curve are fixed per deployment:
every party (prover, verifier, circuit) must agree on them.

Environment Variables:
    ZKQSIG_MERKLE_HASH: Merkle node hash (sha256, sha3-256, blake2s)
    ZKQSIG_CURVE: Default key-agreement curve (p256, p384, secp256k1, x25519)
    ZKQSIG_PROOF_TIMEOUT_SECONDS: Upper bound for a single proof generation
    ZKQSIG_MAX_PROOF_BYTES: Largest proof accepted by the verifier
    ZKQSIG_STORE_DIR: Root of the file-backed content-addressed store
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zkqsig.models.enums import CurveId, HashAlgorithm

ENV_MERKLE_HASH = "ZKQSIG_MERKLE_HASH"
ENV_CURVE = "ZKQSIG_CURVE"
ENV_PROOF_TIMEOUT = "ZKQSIG_PROOF_TIMEOUT_SECONDS"
ENV_MAX_PROOF_BYTES = "ZKQSIG_MAX_PROOF_BYTES"
ENV_STORE_DIR = "ZKQSIG_STORE_DIR"

DEFAULT_PROOF_TIMEOUT_SECONDS = 600.0
DEFAULT_MAX_PROOF_BYTES = 1024 * 1024
DEFAULT_STORE_DIR = Path(".zkqsig") / "store"


class Settings(BaseModel):
    """Per-deployment configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    merkle_hash: HashAlgorithm = Field(default=HashAlgorithm.SHA256)
    curve: CurveId = Field(default=CurveId.P256)
    proof_timeout_seconds: float | None = Field(default=DEFAULT_PROOF_TIMEOUT_SECONDS, gt=0)
    max_proof_bytes: int = Field(default=DEFAULT_MAX_PROOF_BYTES, ge=1)
    store_dir: Path = Field(default=DEFAULT_STORE_DIR)


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from environment variables. Raises ValueError on invalid values."""
    env = os.environ if environ is None else environ
    overrides: dict[str, object] = {}
    mapping = {
        ENV_MERKLE_HASH: "merkle_hash",
        ENV_CURVE: "curve",
        ENV_PROOF_TIMEOUT: "proof_timeout_seconds",
        ENV_MAX_PROOF_BYTES: "max_proof_bytes",
        ENV_STORE_DIR: "store_dir",
    }
    for var, field_name in mapping.items():
        value = (env.get(var) or "").strip()
        if not value:
            continue
        # Enum values are lowercase
        if var in (ENV_MERKLE_HASH, ENV_CURVE):
            value = value.lower()
        overrides[field_name] = value
    try:
        return Settings.model_validate(overrides)
    except ValidationError as exc:
        raise ValueError(f"Invalid zkqsig settings: {exc}") from exc
