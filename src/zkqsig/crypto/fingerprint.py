"""Signer fingerprints and trust-list leaf encoding.

A leaf is ``sha256(X || Y)`` over the fixed-width affine coordinates of a
Weierstrass public key, or ``sha256(raw)`` for X25519 keys. The same bytes
feed the allow-list tooling and the membership circuit, so the encoding must
not change within a deployment.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PublicKey

from zkqsig.crypto.keys import PublicKey, curve_of, load_public_key, public_key_to_bytes
from zkqsig.errors import MalformedIdentityError
from zkqsig.models.constants import ZERO_LEAF
from zkqsig.models.enums import CurveId


@dataclass(frozen=True)
class SignerRecord:
    """Signer identity admitted to a trust list. Immutable."""

    fingerprint: bytes
    public_key: bytes
    curve: CurveId = CurveId.P256

    @property
    def fingerprint_hex(self) -> str:
        return self.fingerprint.hex()

    def load_public_key(self) -> PublicKey:
        return load_public_key(self.public_key, self.curve)


Identity = Union[
    bytes,
    bytearray,
    ec.EllipticCurvePublicKey,
    X25519PublicKey,
    x509.Certificate,
    SignerRecord,
]


def _coerce_public_key(identity: Identity, curve: CurveId) -> PublicKey:
    if isinstance(identity, SignerRecord):
        return identity.load_public_key()
    if isinstance(identity, x509.Certificate):
        try:
            cert_key = identity.public_key()
        except ValueError as exc:
            raise MalformedIdentityError(f"unreadable certificate key: {exc}") from exc
        if not isinstance(cert_key, (ec.EllipticCurvePublicKey, X25519PublicKey)):
            raise MalformedIdentityError(
                f"unsupported certificate key type: {type(cert_key).__name__}"
            )
        return cert_key
    if isinstance(identity, (ec.EllipticCurvePublicKey, X25519PublicKey)):
        return identity
    if isinstance(identity, (bytes, bytearray)):
        return load_public_key(bytes(identity), curve)
    raise MalformedIdentityError(f"unsupported identity type: {type(identity).__name__}")


def _fingerprint_input(key: PublicKey) -> bytes:
    if isinstance(key, X25519PublicKey):
        return public_key_to_bytes(key)
    # Uncompressed SEC1 point without the 0x04 prefix: X || Y
    return public_key_to_bytes(key)[1:]


def encode_leaf(identity: Identity, curve: CurveId = CurveId.P256) -> bytes:
    """Deterministic 32-byte leaf for a signer identity.

    ``curve`` is used only when the identity is given as raw bytes; key
    objects and certificates carry their own curve.

    Raises:
        MalformedIdentityError: wrong-length or off-curve key material,
            unsupported key type, or a digest equal to the padding sentinel
    """
    try:
        key = _coerce_public_key(identity, curve)
        curve_of(key)
    except ValueError as exc:
        raise MalformedIdentityError(str(exc)) from exc
    leaf = hashlib.sha256(_fingerprint_input(key)).digest()
    if leaf == ZERO_LEAF:
        raise MalformedIdentityError("fingerprint collides with the padding sentinel")
    return leaf


def make_signer_record(identity: Identity, curve: CurveId = CurveId.P256) -> SignerRecord:
    """SignerRecord with the leaf fingerprint and uncompressed public key."""
    if isinstance(identity, SignerRecord):
        return identity
    try:
        key = _coerce_public_key(identity, curve)
        key_curve = curve_of(key)
    except ValueError as exc:
        raise MalformedIdentityError(str(exc)) from exc
    return SignerRecord(
        fingerprint=encode_leaf(key),
        public_key=public_key_to_bytes(key),
        curve=key_curve,
    )
