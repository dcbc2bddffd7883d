"""Enumerations for zkqsig.

This module defines all enum types used in the protocol to ensure
type safety and prevent magic strings.
"""

from enum import Enum


class CurveId(str, Enum):
    """Key-agreement / identity curves."""

    P256 = "p256"
    P384 = "p384"
    SECP256K1 = "secp256k1"
    X25519 = "x25519"

    def is_weierstrass(self) -> bool:
        """True for short-Weierstrass curves (SEC1 point encoding)."""
        return self is not CurveId.X25519

    @property
    def algorithm_id(self) -> str:
        """Algorithm identifier written into encryption metadata."""
        return f"ecdh-{self.value}+aes-256-gcm"


class HashAlgorithm(str, Enum):
    """Merkle node compression functions available per deployment."""

    SHA256 = "sha256"
    SHA3_256 = "sha3-256"
    BLAKE2S = "blake2s"


class ArtifactType(str, Enum):
    """Kind of artifact a manifest is bound to."""

    CIPHER = "cipher"


class VerificationStep(str, Enum):
    """The five ordered manifest checks."""

    MANIFEST_FORMAT = "manifest_format"
    ARTIFACT_BINDING = "artifact_binding"
    TRUST_ROOT = "trust_root"
    PROOF_FORMAT = "proof_format"
    PROOF_VERIFICATION = "proof_verification"

    @classmethod
    def ordered(cls) -> tuple["VerificationStep", ...]:
        return (
            cls.MANIFEST_FORMAT,
            cls.ARTIFACT_BINDING,
            cls.TRUST_ROOT,
            cls.PROOF_FORMAT,
            cls.PROOF_VERIFICATION,
        )


class CheckStatus(str, Enum):
    """Outcome of a single verification step."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
