"""Manifest verification and tamper detection."""

from zkqsig.verification.tamper import (
    DEFAULT_MUTATIONS,
    Mutation,
    TamperDetector,
    TamperOutcome,
    TamperReport,
)
from zkqsig.verification.verifier import (
    CheckResult,
    ManifestVerifier,
    VerificationReport,
    verify_manifest,
)

__all__ = [
    "DEFAULT_MUTATIONS",
    "CheckResult",
    "ManifestVerifier",
    "Mutation",
    "TamperDetector",
    "TamperOutcome",
    "TamperReport",
    "VerificationReport",
    "verify_manifest",
]
