"""Persisted entity models for zkqsig.

This module defines the JSON structures that cross process boundaries:
- Manifest: public commitments plus the proof, produced by the prover
- ArtifactRef / SignerInfo: nested manifest sections
- EncryptionMetadata: everything a recipient needs to decrypt an artifact
- SignatureBundle: the signature extractor's output consumed by the prover
- TrustListDocument: a serialized trust list (leaves, depth, root)
- Allowlist: the allow-list of certificate fingerprints
"""

import base64
import binascii
from datetime import datetime, timezone

from pydantic import Field, field_validator

from zkqsig.models.base import ZKQBaseModel
from zkqsig.models.constants import (
    BASE64_PATTERN,
    MANIFEST_VERSION,
    TRUST_LIST_FORMAT_VERSION,
)
from zkqsig.models.enums import ArtifactType, CurveId, HashAlgorithm
from zkqsig.models.types import Base64Bytes, HexBytes, HexDigest


class ArtifactRef(ZKQBaseModel):
    """Manifest section naming the bound artifact and its hash commitment."""

    type: ArtifactType = Field(default=ArtifactType.CIPHER)
    artifact_hash: HexDigest = Field(..., description="sha256(ciphertext), hex.")


class SignerInfo(ZKQBaseModel):
    """Manifest section describing the signer."""

    public_key: HexBytes = Field(..., min_length=2, description="SEC1 point, hex.")
    fingerprint: HexDigest = Field(..., description="Trust-list leaf for the signer, hex.")


class Manifest(ZKQBaseModel):
    """Record combining all public commitments and the proof.

    Immutable once produced; re-proving always yields a new Manifest. The
    verifier only reads it.
    """

    version: int = Field(default=MANIFEST_VERSION, ge=1)
    doc_hash: HexDigest
    artifact: ArtifactRef
    signer: SignerInfo
    trust_root: HexDigest
    proof: Base64Bytes = Field(..., pattern=BASE64_PATTERN)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware (ISO-8601 with offset)")
        return v

    def proof_bytes(self) -> bytes:
        """Decode the base64 proof; raises ValueError if it is not valid base64."""
        try:
            return base64.b64decode(self.proof, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Invalid proof encoding (base64): {exc}") from exc


class EncryptionMetadata(ZKQBaseModel):
    """Decryption metadata persisted next to a ciphertext. Holds no secret material."""

    iv: HexBytes
    aad: HexBytes
    sender_public_key: HexBytes
    curve: CurveId
    alg: str
    encrypted_size: int = Field(..., ge=0)
    original_hash: HexDigest = Field(..., description="sha256(plaintext), hex.")
    artifact_hash: HexDigest = Field(..., description="sha256(ciphertext), hex.")


class SignatureBundle(ZKQBaseModel):
    """Output of the external signature extractor: signature, signer key and digest."""

    signature: HexBytes = Field(..., min_length=2)
    public_key: HexBytes = Field(..., min_length=2)
    document_digest: HexDigest
    curve: CurveId = Field(default=CurveId.P256)


class TrustListDocument(ZKQBaseModel):
    """Serialized trust list; loading must recompute the root and compare."""

    version: int = Field(default=TRUST_LIST_FORMAT_VERSION, ge=1)
    hash_algorithm: HashAlgorithm = Field(default=HashAlgorithm.SHA256)
    depth: int = Field(..., ge=1)
    root: HexDigest
    leaves: list[HexDigest] = Field(..., min_length=1)


class Allowlist(ZKQBaseModel):
    """Allow-list of signer fingerprints, in significant order."""

    cert_fingerprints: list[HexDigest] = Field(..., alias="cert_fingerprints", min_length=1)
