"""Proof backend boundary.

The zero-knowledge engine is an external collaborator. This module fixes the
shapes that cross the boundary (public inputs, witness, proof bytes) and the
``ProofBackend`` protocol any concrete engine implements.

``StubProofBackend`` stands in for a real engine in tests and local runs. It
checks that the witness is consistent with the public inputs (the ECDSA
signature verifies over the document hash and the Merkle path reconstructs
the trust root) and then emits an HMAC commitment over the canonical public
inputs. It hides nothing and is not zero-knowledge.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import Protocol, cast, runtime_checkable

import jcs
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature

from zkqsig.crypto.fingerprint import encode_leaf
from zkqsig.crypto.keys import ec_curve, load_public_key
from zkqsig.errors import MalformedIdentityError
from zkqsig.models.entities import Manifest
from zkqsig.models.enums import CurveId, HashAlgorithm
from zkqsig.models.validators import require_digest
from zkqsig.trust.merkle import compute_root


class BackendError(Exception):
    """Raised by a backend when it cannot produce a proof (e.g. unsatisfied constraints).

    The message is the backend's own diagnostic and is surfaced verbatim.
    """


@dataclass(frozen=True)
class PublicInputs:
    """Public input tuple shared by prover and verifier."""

    doc_hash: bytes
    artifact_hash: bytes
    signer_public_key: bytes
    trust_root: bytes

    def __post_init__(self) -> None:
        require_digest(self.doc_hash, "doc_hash")
        require_digest(self.artifact_hash, "artifact_hash")
        require_digest(self.trust_root, "trust_root")
        if not self.signer_public_key:
            raise ValueError("signer_public_key must not be empty")

    def to_fields(self) -> dict[str, str]:
        return {
            "doc_hash": self.doc_hash.hex(),
            "artifact_hash": self.artifact_hash.hex(),
            "signer_public_key": self.signer_public_key.hex(),
            "trust_root": self.trust_root.hex(),
        }

    def canonical_bytes(self) -> bytes:
        """RFC 8785 (JCS) encoding of the hex fields."""
        return cast(bytes, jcs.canonicalize(self.to_fields()))

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> PublicInputs:
        return cls(
            doc_hash=bytes.fromhex(manifest.doc_hash),
            artifact_hash=bytes.fromhex(manifest.artifact.artifact_hash),
            signer_public_key=bytes.fromhex(manifest.signer.public_key),
            trust_root=bytes.fromhex(manifest.trust_root),
        )


@dataclass(frozen=True)
class Witness:
    """Private witness: never persisted, never logged."""

    signature: bytes
    siblings: tuple[bytes, ...]
    leaf_index: int

    def __repr__(self) -> str:
        return f"Witness(depth={len(self.siblings)}, leaf_index=<redacted>, signature=<redacted>)"


@runtime_checkable
class ProofBackend(Protocol):
    """Blocking prove/verify capability of an external proof engine."""

    def prove(self, public_inputs: PublicInputs, witness: Witness) -> bytes:
        """Produce proof bytes; raise BackendError if the witness does not satisfy the circuit."""
        ...

    def verify(self, proof: bytes, public_inputs: PublicInputs, verification_key: bytes) -> bool:
        ...

    def is_well_formed(self, proof: bytes) -> bool:
        """Cheap structural check (size, framing) before full verification."""
        ...


def _normalize_signature(signature: bytes, curve: CurveId) -> bytes:
    """Accept DER or fixed-width ``r || s``; return DER."""
    size = (ec_curve(curve).key_size + 7) // 8
    if len(signature) == 2 * size:
        r = int.from_bytes(signature[:size], "big")
        s = int.from_bytes(signature[size:], "big")
        return encode_dss_signature(r, s)
    return signature


class StubProofBackend:
    """Witness-checking stand-in for a real proof engine.

    The proof is ``PROOF_MAGIC || HMAC-SHA256(key, JCS(public inputs))``; the
    verification key is the same 32-byte secret.
    """

    PROOF_MAGIC = b"ZKQSTUB1"
    PROOF_SIZE = len(PROOF_MAGIC) + hashlib.sha256().digest_size

    def __init__(
        self,
        key: bytes | None = None,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
        curve: CurveId = CurveId.P256,
    ) -> None:
        if not curve.is_weierstrass():
            raise ValueError("Signers must use an ECDSA curve; X25519 cannot sign")
        self._key = key if key is not None else os.urandom(32)
        self.hash_algorithm = hash_algorithm
        self.curve = curve

    @property
    def verification_key(self) -> bytes:
        return self._key

    def _commitment(self, key: bytes, public_inputs: PublicInputs) -> bytes:
        return hmac.new(key, public_inputs.canonical_bytes(), hashlib.sha256).digest()

    def prove(self, public_inputs: PublicInputs, witness: Witness) -> bytes:
        try:
            signer_key = load_public_key(public_inputs.signer_public_key, self.curve)
        except MalformedIdentityError as exc:
            raise BackendError(f"signer public key rejected: {exc.message}") from exc
        assert isinstance(signer_key, ec.EllipticCurvePublicKey)

        try:
            signer_key.verify(
                _normalize_signature(witness.signature, self.curve),
                public_inputs.doc_hash,
                ec.ECDSA(Prehashed(hashes.SHA256())),
            )
        except (InvalidSignature, ValueError) as exc:
            raise BackendError("constraint failed: signature does not verify over doc_hash") from exc

        leaf = encode_leaf(signer_key)
        try:
            root = compute_root(leaf, witness.leaf_index, witness.siblings, self.hash_algorithm)
        except ValueError as exc:
            raise BackendError(f"constraint failed: malformed merkle path ({exc})") from exc
        if root != public_inputs.trust_root:
            raise BackendError("constraint failed: merkle path does not reconstruct trust_root")

        return self.PROOF_MAGIC + self._commitment(self._key, public_inputs)

    def verify(self, proof: bytes, public_inputs: PublicInputs, verification_key: bytes) -> bool:
        if not self.is_well_formed(proof):
            return False
        expected = self._commitment(verification_key, public_inputs)
        return hmac.compare_digest(proof[len(self.PROOF_MAGIC) :], expected)

    def is_well_formed(self, proof: bytes) -> bool:
        return len(proof) == self.PROOF_SIZE and proof.startswith(self.PROOF_MAGIC)
