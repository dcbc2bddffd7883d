"""Proof orchestration: public inputs + witness -> backend -> Manifest.

Proof generation is the slow step (seconds to minutes). It runs on a single
worker thread so the caller can bound it with a timeout or cancel it through
a ``threading.Event``. Either way no Manifest is produced: the operation is
all-or-nothing. The worker thread itself cannot be interrupted; its result is
discarded once the caller has given up on it.
"""

from __future__ import annotations

import base64
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone

from zkqsig.config import Settings
from zkqsig.crypto.encryption import artifact_digest
from zkqsig.crypto.fingerprint import SignerRecord, make_signer_record
from zkqsig.errors import ProofCancelledError, ProofGenerationError
from zkqsig.models.entities import ArtifactRef, Manifest, SignatureBundle, SignerInfo
from zkqsig.models.enums import ArtifactType
from zkqsig.models.validators import require_digest
from zkqsig.observability import get_logger
from zkqsig.proving.backend import ProofBackend, PublicInputs, Witness
from zkqsig.trust.merkle import MerkleProof, TrustList, verify_inclusion

logger = get_logger(__name__)

# How often a waiting caller re-checks its cancel event
CANCEL_POLL_SECONDS = 0.05

_UNSET = object()


def _await_proof(
    future: Future[bytes],
    timeout: float | None,
    cancel_event: threading.Event | None,
) -> bytes:
    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        if cancel_event is not None and cancel_event.is_set():
            future.cancel()
            raise ProofCancelledError("cancelled by caller")
        remaining = None if deadline is None else deadline - time.monotonic()
        if remaining is not None and remaining <= 0:
            future.cancel()
            raise ProofCancelledError(f"timed out after {timeout}s", details={"timeout": timeout})
        step = CANCEL_POLL_SECONDS if cancel_event is not None else remaining
        if step is not None and remaining is not None:
            step = min(step, remaining)
        done, _ = wait([future], timeout=step, return_when=FIRST_COMPLETED)
        if done:
            break

    try:
        proof = future.result()
    except Exception as exc:
        raise ProofGenerationError(
            "Proof backend failed; witness is inconsistent with the public inputs",
            backend_message=str(exc),
            details={"backend_error": type(exc).__name__},
        ) from exc
    if not proof:
        raise ProofGenerationError("Proof backend returned an empty proof")
    return bytes(proof)


class ProofOrchestrator:
    """Builds manifests through a proof backend.

    Example:
        >>> orchestrator = ProofOrchestrator(StubProofBackend())
        >>> manifest = orchestrator.build_manifest(
        ...     doc_hash, artifact_hash, signer, trust_list, proof, signature
        ... )
    """

    def __init__(self, backend: ProofBackend, settings: Settings | None = None) -> None:
        self.backend = backend
        self.settings = settings or Settings()

    def build_manifest(
        self,
        doc_hash: bytes,
        artifact_hash: bytes,
        signer: SignerRecord,
        trust_list: TrustList,
        merkle_proof: MerkleProof,
        signature: bytes,
        *,
        timeout: float | None | object = _UNSET,
        cancel_event: threading.Event | None = None,
        notes: str | None = None,
    ) -> Manifest:
        """Prove membership and artifact binding, and wrap the result in a Manifest.

        Args:
            doc_hash: 32-byte signed document digest
            artifact_hash: 32-byte sha256 of the final ciphertext
            signer: Signer record (fingerprint + public key)
            trust_list: Trust list the signer belongs to
            merkle_proof: Inclusion proof for the signer fingerprint in ``trust_list``
            signature: Signer's signature over ``doc_hash`` (DER or r||s)
            timeout: Seconds before giving up; defaults to settings, None for unbounded
            cancel_event: Set from another thread to abandon the proof
            notes: Optional free-text note stored in the manifest

        Raises:
            ValueError: digests are not fully computed 32-byte values
            ProofGenerationError: inconsistent witness or backend failure
            ProofCancelledError: timed out or cancelled; nothing was produced
        """
        doc_hash = require_digest(doc_hash, "doc_hash")
        artifact_hash = require_digest(artifact_hash, "artifact_hash")
        if not signature:
            raise ValueError("signature must not be empty")

        if merkle_proof.leaf != signer.fingerprint:
            raise ProofGenerationError(
                "Membership proof is for a different leaf than the signer fingerprint",
                details={
                    "proof_leaf": merkle_proof.leaf.hex(),
                    "fingerprint": signer.fingerprint_hex,
                },
            )
        if not verify_inclusion(merkle_proof, trust_list.root, trust_list.hash_algorithm):
            raise ProofGenerationError(
                "Membership proof does not reconstruct the trust list root",
                details={"trust_root": trust_list.root_hex, "leaf_index": merkle_proof.leaf_index},
            )

        public_inputs = PublicInputs(
            doc_hash=doc_hash,
            artifact_hash=artifact_hash,
            signer_public_key=signer.public_key,
            trust_root=trust_list.root,
        )
        witness = Witness(
            signature=bytes(signature),
            siblings=merkle_proof.siblings,
            leaf_index=merkle_proof.leaf_index,
        )
        effective_timeout = self.settings.proof_timeout_seconds if timeout is _UNSET else timeout

        logger.info(
            "zkqsig.proof.started",
            doc_hash=doc_hash.hex(),
            artifact_hash=artifact_hash.hex(),
            trust_root=trust_list.root_hex,
            timeout=effective_timeout,
        )
        started = time.monotonic()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zkqsig-prover")
        try:
            future = executor.submit(self.backend.prove, public_inputs, witness)
            proof = _await_proof(future, effective_timeout, cancel_event)  # type: ignore[arg-type]
        except ProofGenerationError as exc:
            logger.warning("zkqsig.proof.failed", code=exc.code, reason=exc.message)
            raise
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        manifest = Manifest(
            doc_hash=doc_hash.hex(),
            artifact=ArtifactRef(type=ArtifactType.CIPHER, artifact_hash=artifact_hash.hex()),
            signer=SignerInfo(public_key=signer.public_key.hex(), fingerprint=signer.fingerprint_hex),
            trust_root=trust_list.root_hex,
            proof=base64.b64encode(proof).decode("ascii"),
            timestamp=datetime.now(timezone.utc),
            notes=notes,
        )
        logger.info(
            "zkqsig.proof.completed",
            proof_size=len(proof),
            duration_seconds=round(time.monotonic() - started, 3),
        )
        return manifest

    def prove_bundle(
        self,
        bundle: SignatureBundle,
        ciphertext: bytes,
        trust_list: TrustList,
        **kwargs: object,
    ) -> Manifest:
        """Build a manifest from signature-extractor output and a finished ciphertext."""
        signer = make_signer_record(bytes.fromhex(bundle.public_key), bundle.curve)
        merkle_proof = trust_list.prove_inclusion(signer.fingerprint)
        return self.build_manifest(
            bytes.fromhex(bundle.document_digest),
            artifact_digest(ciphertext),
            signer,
            trust_list,
            merkle_proof,
            bytes.fromhex(bundle.signature),
            **kwargs,  # type: ignore[arg-type]
        )


def build_manifest(
    doc_hash: bytes,
    artifact_hash: bytes,
    signer: SignerRecord,
    trust_list: TrustList,
    merkle_proof: MerkleProof,
    signature: bytes,
    *,
    backend: ProofBackend,
    settings: Settings | None = None,
    **kwargs: object,
) -> Manifest:
    """Functional form of ``ProofOrchestrator.build_manifest``."""
    return ProofOrchestrator(backend, settings).build_manifest(
        doc_hash,
        artifact_hash,
        signer,
        trust_list,
        merkle_proof,
        signature,
        **kwargs,  # type: ignore[arg-type]
    )
