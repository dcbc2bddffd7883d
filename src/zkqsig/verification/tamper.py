"""Single-field tamper detection.

Mutates one field of a known-good (manifest, artifact) pair at a time and
checks that verification fails at the step responsible for that field.
Used as a regression harness and from ``zkqsig tamper-check``.
"""

from __future__ import annotations

import base64
import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from zkqsig.errors import TamperDetectionError
from zkqsig.models.entities import Manifest
from zkqsig.models.enums import VerificationStep
from zkqsig.observability import get_logger, log_context
from zkqsig.proving.manifest_io import parse_manifest
from zkqsig.verification.verifier import (
    ArtifactInput,
    ManifestInput,
    ManifestVerifier,
    TrustRootInput,
    ciphertext_of,
)

logger = get_logger(__name__)

UNDETECTED = "undetected"

# (manifest JSON dict, ciphertext) -> mutated pair
MutateFn = Callable[[dict[str, Any], bytes], tuple[dict[str, Any], bytes]]


def _flip_hex(value: str) -> str:
    last = int(value[-1], 16) ^ 0x1
    return value[:-1] + format(last, "x")


def _flip_ciphertext_byte(doc: dict[str, Any], ciphertext: bytes) -> tuple[dict[str, Any], bytes]:
    if not ciphertext:
        return doc, b"\x00"
    mutated = bytearray(ciphertext)
    mutated[len(mutated) // 2] ^= 0x01
    return doc, bytes(mutated)


def _swap_trust_root(doc: dict[str, Any], ciphertext: bytes) -> tuple[dict[str, Any], bytes]:
    doc["trustRoot"] = _flip_hex(doc["trustRoot"])
    return doc, ciphertext


def _alter_doc_hash(doc: dict[str, Any], ciphertext: bytes) -> tuple[dict[str, Any], bytes]:
    doc["docHash"] = _flip_hex(doc["docHash"])
    return doc, ciphertext


def _alter_artifact_hash(doc: dict[str, Any], ciphertext: bytes) -> tuple[dict[str, Any], bytes]:
    doc["artifact"]["artifactHash"] = _flip_hex(doc["artifact"]["artifactHash"])
    return doc, ciphertext


def _truncate_proof(doc: dict[str, Any], ciphertext: bytes) -> tuple[dict[str, Any], bytes]:
    proof = base64.b64decode(doc["proof"])
    doc["proof"] = base64.b64encode(proof[:-1] or b"\x00").decode("ascii")
    return doc, ciphertext


def _drop_required_field(doc: dict[str, Any], ciphertext: bytes) -> tuple[dict[str, Any], bytes]:
    del doc["docHash"]
    return doc, ciphertext


@dataclass(frozen=True)
class Mutation:
    """A named single-field mutation and the step expected to catch it."""

    name: str
    expected_step: VerificationStep
    apply: MutateFn


DEFAULT_MUTATIONS: tuple[Mutation, ...] = (
    Mutation("flip_ciphertext_byte", VerificationStep.ARTIFACT_BINDING, _flip_ciphertext_byte),
    Mutation("swap_trust_root", VerificationStep.TRUST_ROOT, _swap_trust_root),
    Mutation("alter_doc_hash", VerificationStep.PROOF_VERIFICATION, _alter_doc_hash),
    Mutation("truncate_proof", VerificationStep.PROOF_FORMAT, _truncate_proof),
    Mutation("drop_required_field", VerificationStep.MANIFEST_FORMAT, _drop_required_field),
    Mutation("alter_artifact_hash", VerificationStep.ARTIFACT_BINDING, _alter_artifact_hash),
)


@dataclass(frozen=True)
class TamperOutcome:
    mutation: str
    expected_step: VerificationStep
    observed_step: VerificationStep | None

    @property
    def detected(self) -> bool:
        return self.observed_step is self.expected_step

    @property
    def observed(self) -> str:
        return self.observed_step.value if self.observed_step is not None else UNDETECTED


@dataclass(frozen=True)
class TamperReport:
    """Baseline result plus one outcome per mutation."""

    baseline_ok: bool
    outcomes: tuple[TamperOutcome, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.baseline_ok and all(outcome.detected for outcome in self.outcomes)

    def failures(self) -> dict[str, str]:
        failed = {o.mutation: o.observed for o in self.outcomes if not o.detected}
        if not self.baseline_ok:
            failed["baseline"] = "failed"
        return failed

    def assert_all_detected(self) -> None:
        """Raise TamperDetectionError naming every mutation caught at the wrong step."""
        failures = self.failures()
        if failures:
            raise TamperDetectionError(failures)


class TamperDetector:
    """Runs single-field mutations through a ManifestVerifier."""

    def __init__(
        self,
        verifier: ManifestVerifier,
        mutations: tuple[Mutation, ...] = DEFAULT_MUTATIONS,
    ) -> None:
        self.verifier = verifier
        self.mutations = mutations

    def run(
        self,
        manifest: ManifestInput,
        artifact: ArtifactInput,
        expected_trust_root: TrustRootInput,
    ) -> TamperReport:
        parsed: Manifest = parse_manifest(manifest)
        ciphertext = ciphertext_of(artifact)

        baseline = self.verifier.verify(parsed, ciphertext, expected_trust_root)
        if not baseline.ok:
            logger.warning(
                "zkqsig.tamper.baseline_failed",
                step=baseline.failed_step.value if baseline.failed_step else None,
            )
            return TamperReport(baseline_ok=False)

        document = parsed.to_json_dict()
        outcomes = []
        for mutation in self.mutations:
            mutated_doc, mutated_ciphertext = mutation.apply(copy.deepcopy(document), ciphertext)
            with log_context(mutation=mutation.name):
                report = self.verifier.verify(mutated_doc, mutated_ciphertext, expected_trust_root)
            outcome = TamperOutcome(
                mutation=mutation.name,
                expected_step=mutation.expected_step,
                observed_step=report.failed_step,
            )
            outcomes.append(outcome)
            logger.debug(
                "zkqsig.tamper.mutation",
                mutation=mutation.name,
                expected=mutation.expected_step.value,
                observed=outcome.observed,
            )

        result = TamperReport(baseline_ok=True, outcomes=tuple(outcomes))
        logger.info("zkqsig.tamper.completed", ok=result.ok, mutations=len(outcomes))
        return result
