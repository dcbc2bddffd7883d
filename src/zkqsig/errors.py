"""zkqsig Error Taxonomy.

This module defines the error hierarchy for the binding-and-verification
protocol. Every failure carries a stable error code and a ``details`` dict so
callers can tell from the error alone which binding failed.
"""
from __future__ import annotations

from typing import Any


class ZKQSigError(Exception):
    """Base exception for all zkqsig errors.

    Attributes:
        code: Error code following the zkqsig:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class MalformedIdentityError(ZKQSigError):
    """Raised when a signer identity has wrong-length or off-curve key material."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:identity/malformed",
            message=f"Malformed identity: {reason}",
            details=details or {},
        )
        self.reason = reason


class NotInTrustListError(ZKQSigError):
    """Raised when an inclusion proof is requested for a fingerprint that is not a leaf.

    Attributes:
        fingerprint: Hex fingerprint that was looked up
    """

    def __init__(
        self, fingerprint: str, root: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            code="zkqsig:trust/not_in_trust_list",
            message=f"Fingerprint not in trust list: {fingerprint}",
            details={"fingerprint": fingerprint, "root": root, **(details or {})},
        )
        self.fingerprint = fingerprint


class ManifestFormatError(ZKQSigError):
    """Raised when a manifest is missing fields, malformed, or has an unsupported version."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:manifest/format",
            message=f"Malformed manifest: {reason}",
            details=details or {},
        )
        self.reason = reason


class _BindingError(ZKQSigError):
    """Shared shape for binding mismatches: carries expected and actual digests."""

    def __init__(
        self,
        code: str,
        message: str,
        expected: str,
        actual: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            details={"expected": expected, "actual": actual, **(details or {})},
        )
        self.expected = expected
        self.actual = actual


class ArtifactBindingError(_BindingError):
    """Raised when digest(ciphertext) does not match the manifest's artifact hash."""

    def __init__(self, expected: str, actual: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:binding/artifact_mismatch",
            message=(
                "Artifact binding failed: ciphertext digest does not match the "
                "manifest artifact hash"
            ),
            expected=expected,
            actual=actual,
            details=details,
        )


class TrustRootMismatchError(_BindingError):
    """Raised when the manifest trust root is not the root the verifier expects."""

    def __init__(self, expected: str, actual: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:binding/trust_root_mismatch",
            message="Trust root mismatch: manifest was proven against a different allow-list",
            expected=expected,
            actual=actual,
            details=details,
        )


class ProofFormatError(ZKQSigError):
    """Raised when proof bytes fail size or structure sanity checks."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:proof/format",
            message=f"Malformed proof: {reason}",
            details=details or {},
        )
        self.reason = reason


class ProofGenerationError(ZKQSigError):
    """Raised when the proof backend fails, times out, or the witness is inconsistent.

    Backend diagnostics are preserved verbatim in ``details["backend_message"]``.
    """

    def __init__(
        self,
        message: str,
        backend_message: str | None = None,
        details: dict[str, Any] | None = None,
        code: str = "zkqsig:proof/generation_failed",
    ) -> None:
        details_dict: dict[str, Any] = dict(details or {})
        if backend_message is not None:
            details_dict["backend_message"] = backend_message
        super().__init__(code=code, message=message, details=details_dict)
        self.backend_message = backend_message


class ProofCancelledError(ProofGenerationError):
    """Raised when a running proof generation is cancelled or exceeds its timeout."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=f"Proof generation aborted: {reason}",
            details={"reason": reason, **(details or {})},
            code="zkqsig:proof/cancelled",
        )
        self.reason = reason


class ProofVerificationError(ZKQSigError):
    """Raised when the proof backend rejects the proof for the manifest public inputs."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:proof/verification_failed",
            message=message,
            details=details or {},
        )


class AuthenticationError(ZKQSigError):
    """Raised when AEAD tag verification fails (tampered ciphertext, wrong key or wrong AAD)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="zkqsig:crypto/authentication_failed",
            message=message,
            details=details or {},
        )


class IntegrityMismatchError(_BindingError):
    """Raised when decrypted or stored content does not hash to the expected digest."""

    def __init__(
        self,
        expected: str,
        actual: str,
        message: str = "Integrity check failed: content digest does not match expected value",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="zkqsig:crypto/integrity_mismatch",
            message=message,
            expected=expected,
            actual=actual,
            details=details,
        )


class TamperDetectionError(ZKQSigError):
    """Raised when a single-field mutation is not caught at its corresponding check.

    Attributes:
        failures: Mutation name -> observed step (or "undetected")
    """

    def __init__(self, failures: dict[str, str], details: dict[str, Any] | None = None) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(
            code="zkqsig:tamper/undetected",
            message=f"Tamper checks failed for: {names}",
            details={"failures": failures, **(details or {})},
        )
        self.failures = failures
