"""Artifact binding: ECDH + HKDF + AES-256-GCM with the document hash as AAD.

The ciphertext (with the 16-byte GCM tag appended) is the artifact. Its
SHA-256 digest is the public commitment that a manifest binds to; the
plaintext never appears in any public structure.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from zkqsig.crypto.keys import (
    PrivateKey,
    PrivateKeyHandle,
    PublicKey,
    curve_of,
    load_public_key,
    public_key_to_bytes,
)
from zkqsig.errors import AuthenticationError, IntegrityMismatchError, MalformedIdentityError
from zkqsig.models.constants import AES_KEY_SIZE, GCM_IV_SIZE, GCM_TAG_SIZE, KDF_INFO
from zkqsig.models.entities import EncryptionMetadata
from zkqsig.models.enums import CurveId
from zkqsig.models.validators import require_digest
from zkqsig.observability import get_logger

logger = get_logger(__name__)


def artifact_digest(ciphertext: bytes) -> bytes:
    """The artifact hash: sha256 over the full ciphertext (tag included)."""
    return hashlib.sha256(ciphertext).digest()


@dataclass(frozen=True)
class EncryptedArtifact:
    """Ciphertext plus the public values needed to decrypt it. No secrets."""

    ciphertext: bytes
    iv: bytes
    sender_public_key: bytes
    curve: CurveId
    aad: bytes

    @property
    def artifact_hash(self) -> bytes:
        return artifact_digest(self.ciphertext)

    @property
    def auth_tag(self) -> bytes:
        return self.ciphertext[-GCM_TAG_SIZE:]

    def to_metadata(self, original_hash: bytes) -> EncryptionMetadata:
        return EncryptionMetadata(
            iv=self.iv.hex(),
            aad=self.aad.hex(),
            sender_public_key=self.sender_public_key.hex(),
            curve=self.curve,
            alg=self.curve.algorithm_id,
            encrypted_size=len(self.ciphertext),
            original_hash=original_hash.hex(),
            artifact_hash=self.artifact_hash.hex(),
        )

    @classmethod
    def from_metadata(cls, metadata: EncryptionMetadata, ciphertext: bytes) -> EncryptedArtifact:
        """Rejoin metadata with its ciphertext; the ciphertext must match the recorded hash."""
        actual = artifact_digest(ciphertext).hex()
        if actual != metadata.artifact_hash:
            raise IntegrityMismatchError(
                expected=metadata.artifact_hash,
                actual=actual,
                message="Ciphertext does not match the artifact hash in its metadata",
            )
        if metadata.alg != metadata.curve.algorithm_id:
            raise ValueError(
                f"Metadata algorithm {metadata.alg!r} does not match curve {metadata.curve.value}"
            )
        return cls(
            ciphertext=ciphertext,
            iv=bytes.fromhex(metadata.iv),
            sender_public_key=bytes.fromhex(metadata.sender_public_key),
            curve=metadata.curve,
            aad=bytes.fromhex(metadata.aad),
        )


def derive_shared_secret(private_key: PrivateKey, peer_public_key: PublicKey) -> bytes:
    """Raw ECDH output (x-coordinate for Weierstrass curves)."""
    if curve_of(private_key) is not curve_of(peer_public_key):
        raise MalformedIdentityError(
            "peer public key is on a different curve",
            details={
                "local_curve": curve_of(private_key).value,
                "peer_curve": curve_of(peer_public_key).value,
            },
        )
    if isinstance(private_key, X25519PrivateKey):
        shared = private_key.exchange(peer_public_key)  # type: ignore[arg-type]
        if not any(shared):
            raise MalformedIdentityError("X25519 peer key is a low-order point")
        return shared
    return private_key.exchange(ec.ECDH(), peer_public_key)  # type: ignore[arg-type]


def derive_symmetric_key(shared_secret: bytes | bytearray) -> bytes:
    """HKDF-Expand (SHA-256) of the shared secret into an AES-256 key."""
    return HKDFExpand(
        algorithm=hashes.SHA256(),
        length=AES_KEY_SIZE,
        info=KDF_INFO,
    ).derive(bytes(shared_secret))


def _agree(key_handle: PrivateKeyHandle, peer: PublicKey) -> tuple[bytes, bytes]:
    """Symmetric key and own public key; the private key lives only inside this call."""
    with key_handle.acquire() as private_key:
        shared = bytearray(derive_shared_secret(private_key, peer))
        own_public = public_key_to_bytes(private_key.public_key())
    try:
        return derive_symmetric_key(shared), own_public
    finally:
        for i in range(len(shared)):
            shared[i] = 0


def encrypt(
    plaintext: bytes,
    sender_key: PrivateKeyHandle,
    recipient_public_key: bytes | PublicKey,
    document_hash: bytes,
) -> tuple[EncryptedArtifact, bytes]:
    """Encrypt ``plaintext`` for the recipient, bound to ``document_hash`` via AAD.

    Args:
        plaintext: Payload, any length including zero
        sender_key: Scoped handle to the sender's private key; its curve selects
            the key-agreement curve
        recipient_public_key: Recipient key object or encoded bytes on the same curve
        document_hash: 32-byte digest of the signed document, used as AAD

    Returns:
        (EncryptedArtifact, artifact_hash)
    """
    document_hash = require_digest(document_hash, "document_hash")
    curve = sender_key.curve
    if isinstance(recipient_public_key, (bytes, bytearray)):
        recipient = load_public_key(bytes(recipient_public_key), curve)
    else:
        recipient = recipient_public_key

    symmetric_key, sender_public = _agree(sender_key, recipient)
    iv = os.urandom(GCM_IV_SIZE)
    ciphertext = AESGCM(symmetric_key).encrypt(iv, bytes(plaintext), document_hash)

    artifact = EncryptedArtifact(
        ciphertext=ciphertext,
        iv=iv,
        sender_public_key=sender_public,
        curve=curve,
        aad=document_hash,
    )
    artifact_hash = artifact.artifact_hash
    logger.info(
        "zkqsig.artifact.encrypted",
        curve=curve.value,
        plaintext_size=len(plaintext),
        encrypted_size=len(ciphertext),
        artifact_hash=artifact_hash.hex(),
    )
    return artifact, artifact_hash


def decrypt(
    artifact: EncryptedArtifact,
    recipient_key: PrivateKeyHandle,
    document_hash: bytes,
    expected_plaintext_hash: bytes | None = None,
) -> bytes:
    """Decrypt an artifact; all-or-nothing.

    Raises:
        AuthenticationError: tag check failed (tampered ciphertext, wrong key, wrong AAD)
        IntegrityMismatchError: plaintext digest differs from ``expected_plaintext_hash``
    """
    document_hash = require_digest(document_hash, "document_hash")
    if recipient_key.curve is not artifact.curve:
        raise ValueError(
            f"Recipient key is on {recipient_key.curve.value}, artifact uses {artifact.curve.value}"
        )
    if len(artifact.ciphertext) < GCM_TAG_SIZE:
        raise AuthenticationError(
            "Ciphertext is shorter than the authentication tag",
            details={"encrypted_size": len(artifact.ciphertext)},
        )
    sender = load_public_key(artifact.sender_public_key, artifact.curve)
    symmetric_key, _ = _agree(recipient_key, sender)
    try:
        plaintext = AESGCM(symmetric_key).decrypt(artifact.iv, artifact.ciphertext, document_hash)
    except InvalidTag as exc:
        logger.warning(
            "zkqsig.artifact.authentication_failed",
            artifact_hash=artifact.artifact_hash.hex(),
        )
        raise AuthenticationError(
            "Decryption failed: authentication tag mismatch "
            "(tampered ciphertext, wrong key, or wrong document hash)",
            details={"artifact_hash": artifact.artifact_hash.hex()},
        ) from exc

    if expected_plaintext_hash is not None:
        actual = hashlib.sha256(plaintext).digest()
        if not hmac.compare_digest(actual, bytes(expected_plaintext_hash)):
            raise IntegrityMismatchError(
                expected=bytes(expected_plaintext_hash).hex(),
                actual=actual.hex(),
                message="Decrypted plaintext does not match the expected hash",
            )
    logger.info(
        "zkqsig.artifact.decrypted",
        curve=artifact.curve.value,
        artifact_hash=artifact.artifact_hash.hex(),
    )
    return plaintext
