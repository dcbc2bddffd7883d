"""Five-step manifest verification.

Checks run in a fixed order and stop at the first failure:

1. manifest_format     - structure and version        -> ManifestFormatError
2. artifact_binding    - sha256(ciphertext) matches   -> ArtifactBindingError
3. trust_root          - expected allow-list root     -> TrustRootMismatchError
4. proof_format        - proof size/framing           -> ProofFormatError
5. proof_verification  - backend verify()             -> ProofVerificationError

The result is a VerificationReport naming the step that failed, so a caller
can always tell which binding broke.
"""

from __future__ import annotations

import hmac
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from zkqsig.config import Settings
from zkqsig.crypto.encryption import EncryptedArtifact, artifact_digest
from zkqsig.errors import (
    ArtifactBindingError,
    ProofFormatError,
    ProofVerificationError,
    TrustRootMismatchError,
    ZKQSigError,
)
from zkqsig.models.entities import Manifest
from zkqsig.models.enums import CheckStatus, VerificationStep
from zkqsig.models.validators import normalize_hex_digest
from zkqsig.observability import get_logger
from zkqsig.proving.backend import ProofBackend, PublicInputs
from zkqsig.proving.manifest_io import parse_manifest
from zkqsig.trust.merkle import TrustList

logger = get_logger(__name__)

ManifestInput = Manifest | dict[str, Any] | str | bytes
ArtifactInput = bytes | bytearray | EncryptedArtifact
TrustRootInput = bytes | str | TrustList


class CheckResult(BaseModel):
    """Outcome of one verification step."""

    model_config = ConfigDict(frozen=True)

    step: VerificationStep
    status: CheckStatus
    code: str | None = None
    message: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class VerificationReport(BaseModel):
    """Itemized result of verifying one manifest against one artifact."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    checks: list[CheckResult]
    error: ZKQSigError | None = Field(default=None, exclude=True)

    @property
    def ok(self) -> bool:
        return all(check.status is CheckStatus.PASSED for check in self.checks)

    @property
    def failed_step(self) -> VerificationStep | None:
        for check in self.checks:
            if check.status is CheckStatus.FAILED:
                return check.step
        return None

    def raise_for_failure(self) -> None:
        """Re-raise the specific error of the failed step, if any."""
        if self.error is not None:
            raise self.error

    def summary_lines(self) -> list[str]:
        lines = []
        for index, check in enumerate(self.checks, start=1):
            line = f"[{index}/{len(self.checks)}] {check.step.value}: {check.status.value}"
            if check.message:
                line += f" - {check.message}"
            lines.append(line)
        return lines


def ciphertext_of(artifact: ArtifactInput) -> bytes:
    if isinstance(artifact, EncryptedArtifact):
        return artifact.ciphertext
    return bytes(artifact)


def _root_of(expected: TrustRootInput) -> bytes:
    if isinstance(expected, TrustList):
        return expected.root
    if isinstance(expected, str):
        try:
            return bytes.fromhex(normalize_hex_digest(expected))
        except ValueError as exc:
            raise ValueError(f"Invalid expected trust root {expected!r}: {exc}") from exc
    return bytes(expected)


class ManifestVerifier:
    """Verifies manifests through a proof backend.

    Example:
        >>> verifier = ManifestVerifier(backend, verification_key)
        >>> report = verifier.verify(manifest, ciphertext, trust_list)
        >>> report.ok
        True
    """

    def __init__(
        self,
        backend: ProofBackend,
        verification_key: bytes,
        settings: Settings | None = None,
    ) -> None:
        self.backend = backend
        self.verification_key = verification_key
        self.settings = settings or Settings()

    def check_artifact_binding(self, manifest: Manifest, artifact: ArtifactInput) -> None:
        actual = artifact_digest(ciphertext_of(artifact)).hex()
        expected = manifest.artifact.artifact_hash
        if not hmac.compare_digest(actual, expected):
            raise ArtifactBindingError(expected=expected, actual=actual)

    def check_trust_root(self, manifest: Manifest, expected_root: TrustRootInput) -> None:
        expected = _root_of(expected_root).hex()
        if not hmac.compare_digest(expected, manifest.trust_root):
            raise TrustRootMismatchError(expected=expected, actual=manifest.trust_root)

    def check_proof_format(self, manifest: Manifest) -> bytes:
        try:
            proof = manifest.proof_bytes()
        except ValueError as exc:
            raise ProofFormatError(str(exc)) from exc
        if not proof:
            raise ProofFormatError("proof is empty")
        if len(proof) > self.settings.max_proof_bytes:
            raise ProofFormatError(
                f"proof is {len(proof)} bytes, limit is {self.settings.max_proof_bytes}",
                details={"size": len(proof), "limit": self.settings.max_proof_bytes},
            )
        if not self.backend.is_well_formed(proof):
            raise ProofFormatError(
                "proof structure rejected by backend",
                details={"size": len(proof)},
            )
        return proof

    def check_proof(self, manifest: Manifest, proof: bytes) -> None:
        public_inputs = PublicInputs.from_manifest(manifest)
        try:
            valid = self.backend.verify(proof, public_inputs, self.verification_key)
        except Exception as exc:
            raise ProofVerificationError(
                f"Proof backend raised during verification: {exc}",
                details={"backend_error": type(exc).__name__, "backend_message": str(exc)},
            ) from exc
        if not valid:
            raise ProofVerificationError(
                "Proof does not verify for the manifest public inputs",
                details={"doc_hash": manifest.doc_hash, "trust_root": manifest.trust_root},
            )

    def verify(
        self,
        manifest: ManifestInput,
        artifact: ArtifactInput,
        expected_trust_root: TrustRootInput,
    ) -> VerificationReport:
        """Run all five checks, short-circuiting on the first failure."""
        expected_root = _root_of(expected_trust_root)
        checks: list[CheckResult] = []
        error: ZKQSigError | None = None
        parsed: Manifest | None = None
        proof = b""

        def run(step: VerificationStep) -> None:
            nonlocal parsed, proof
            if step is VerificationStep.MANIFEST_FORMAT:
                parsed = parse_manifest(manifest)
                return
            assert parsed is not None
            if step is VerificationStep.ARTIFACT_BINDING:
                self.check_artifact_binding(parsed, artifact)
            elif step is VerificationStep.TRUST_ROOT:
                self.check_trust_root(parsed, expected_root)
            elif step is VerificationStep.PROOF_FORMAT:
                proof = self.check_proof_format(parsed)
            else:
                self.check_proof(parsed, proof)

        for step in VerificationStep.ordered():
            if error is not None:
                checks.append(CheckResult(step=step, status=CheckStatus.SKIPPED))
                continue
            try:
                run(step)
            except ZKQSigError as exc:
                error = exc
                checks.append(
                    CheckResult(
                        step=step,
                        status=CheckStatus.FAILED,
                        code=exc.code,
                        message=exc.message,
                        details=exc.details,
                    )
                )
                logger.warning(
                    "zkqsig.verify.failed",
                    step=step.value,
                    code=exc.code,
                    reason=exc.message,
                )
            else:
                checks.append(CheckResult(step=step, status=CheckStatus.PASSED))

        report = VerificationReport(checks=checks, error=error)
        if report.ok:
            logger.info("zkqsig.verify.passed", doc_hash=parsed.doc_hash if parsed else None)
        return report

    def verify_or_raise(
        self,
        manifest: ManifestInput,
        artifact: ArtifactInput,
        expected_trust_root: TrustRootInput,
    ) -> Manifest:
        """Verify and return the parsed manifest; raise the failing step's error."""
        report = self.verify(manifest, artifact, expected_trust_root)
        report.raise_for_failure()
        return parse_manifest(manifest)


def verify_manifest(
    manifest: ManifestInput,
    artifact: ArtifactInput,
    expected_trust_root: TrustRootInput,
    *,
    backend: ProofBackend,
    verification_key: bytes,
    settings: Settings | None = None,
) -> VerificationReport:
    """Functional form of ``ManifestVerifier.verify``."""
    return ManifestVerifier(backend, verification_key, settings).verify(
        manifest, artifact, expected_trust_root
    )
