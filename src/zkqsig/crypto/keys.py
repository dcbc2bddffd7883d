"""Key generation, encoding and scoped private-key handling for zkqsig.

Public keys travel as SEC1 points (Weierstrass curves) or raw 32-byte keys
(X25519). Private keys are never passed around as plain values: callers hold a
``PrivateKeyHandle`` and materialize the key only inside ``acquire()``, after
which the loaded secret buffer is zeroed.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from zkqsig.errors import MalformedIdentityError
from zkqsig.models.enums import CurveId
from zkqsig.observability import get_logger

logger = get_logger(__name__)

PrivateKey = Union[ec.EllipticCurvePrivateKey, X25519PrivateKey]
PublicKey = Union[ec.EllipticCurvePublicKey, X25519PublicKey]

# Recommended mode for private key files (owner read/write only).
KEY_FILE_RECOMMENDED_MODE = 0o600

_PEM_PREFIX = b"-----BEGIN"

_EC_CURVES: dict[CurveId, type[ec.EllipticCurve]] = {
    CurveId.P256: ec.SECP256R1,
    CurveId.P384: ec.SECP384R1,
    CurveId.SECP256K1: ec.SECP256K1,
}


def ec_curve(curve: CurveId) -> ec.EllipticCurve:
    """cryptography curve instance for a Weierstrass CurveId."""
    try:
        return _EC_CURVES[curve]()
    except KeyError:
        raise ValueError(f"{curve.value} is not a Weierstrass curve") from None


def curve_of(key: PrivateKey | PublicKey) -> CurveId:
    """CurveId for a loaded key; ValueError for unsupported key types."""
    if isinstance(key, (X25519PrivateKey, X25519PublicKey)):
        return CurveId.X25519
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        for curve_id, curve_cls in _EC_CURVES.items():
            if isinstance(key.curve, curve_cls):
                return curve_id
        raise ValueError(f"Unsupported elliptic curve: {key.curve.name}")
    raise ValueError(f"Unsupported key type: {type(key).__name__}")


def generate_keypair(curve: CurveId = CurveId.P256) -> tuple[PrivateKey, PublicKey]:
    if curve is CurveId.X25519:
        x_private = X25519PrivateKey.generate()
        return (x_private, x_private.public_key())
    ec_private = ec.generate_private_key(ec_curve(curve))
    return (ec_private, ec_private.public_key())


def serialize_private_key(key: PrivateKey) -> bytes:
    """PEM (PKCS#8, unencrypted)."""
    pem: bytes = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return pem


def public_key_to_bytes(key: PublicKey) -> bytes:
    """Uncompressed SEC1 point for EC keys, raw 32 bytes for X25519."""
    if isinstance(key, X25519PublicKey):
        return key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
    return key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def load_public_key(data: bytes, curve: CurveId = CurveId.P256) -> PublicKey:
    """Parse public key bytes for ``curve``.

    Weierstrass curves accept compressed or uncompressed SEC1 points, or bare
    ``X || Y`` coordinates. Raises MalformedIdentityError for wrong lengths or
    points that are not on the curve.
    """
    data = bytes(data)
    if curve is CurveId.X25519:
        if len(data) != 32:
            raise MalformedIdentityError(
                f"X25519 public key must be 32 bytes, got {len(data)}",
                details={"curve": curve.value, "length": len(data)},
            )
        return X25519PublicKey.from_public_bytes(data)

    ec_instance = ec_curve(curve)
    coordinate_size = (ec_instance.key_size + 7) // 8
    if len(data) == 2 * coordinate_size:
        data = b"\x04" + data
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec_instance, data)
    except ValueError as exc:
        raise MalformedIdentityError(
            f"invalid {curve.value} public key: {exc}",
            details={"curve": curve.value, "length": len(data)},
        ) from exc


def load_private_key_from_pem(pem: bytes | bytearray, curve: CurveId | None = None) -> PrivateKey:
    """From PEM. Raises ValueError if invalid, unsupported, or not on ``curve``."""
    key = load_pem_private_key(pem, password=None)
    if not isinstance(key, (ec.EllipticCurvePrivateKey, X25519PrivateKey)):
        raise ValueError("Key is not an EC or X25519 private key")
    if curve is not None and curve_of(key) is not curve:
        raise ValueError(f"Key is on {curve_of(key).value}, expected {curve.value}")
    return key


def load_private_key_from_raw(raw: bytes | bytearray, curve: CurveId) -> PrivateKey:
    """From a raw big-endian scalar (EC) or raw 32-byte key (X25519)."""
    if curve is CurveId.X25519:
        if len(raw) != 32:
            raise ValueError(f"X25519 private key must be 32 bytes, got {len(raw)}")
        return X25519PrivateKey.from_private_bytes(raw)
    ec_instance = ec_curve(curve)
    expected = (ec_instance.key_size + 7) // 8
    if len(raw) != expected:
        raise ValueError(f"{curve.value} private scalar must be {expected} bytes, got {len(raw)}")
    return ec.derive_private_key(int.from_bytes(raw, "big"), ec_instance)


def _zeroize(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


def _parse_private_key(buf: bytearray, curve: CurveId) -> PrivateKey:
    """PEM, raw bytes, or hex text (optionally 0x-prefixed)."""
    if buf.lstrip().startswith(_PEM_PREFIX):
        return load_private_key_from_pem(buf, curve)
    if curve is CurveId.X25519:
        raw_size = 32
    else:
        raw_size = (ec_curve(curve).key_size + 7) // 8
    if len(buf) == raw_size:
        return load_private_key_from_raw(buf, curve)
    try:
        text = buf.decode("ascii").strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        raw = bytearray(bytes.fromhex(text))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ValueError("Private key is neither PEM, raw bytes, nor hex") from exc
    try:
        return load_private_key_from_raw(raw, curve)
    finally:
        _zeroize(raw)


def warn_if_key_file_permissions_loose(path: Path) -> None:
    """Warn when key file is group/other readable (recommend chmod 0600)."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return
    if (mode & 0o77) != 0:
        logger.warning(
            "zkqsig.keys.file_permissions_loose",
            path=str(path),
            mode=oct(mode),
            recommended=oct(KEY_FILE_RECOMMENDED_MODE),
        )


class PrivateKeyHandle:
    """Scoped access to a private key.

    The secret is read only inside ``acquire()`` and the buffer holding it is
    zeroed on every exit path. Handles built from files or environment
    variables re-read their source on each acquisition; handles built from
    in-memory bytes are single-use and are zeroed after the first acquisition.

    Example:
        >>> handle = PrivateKeyHandle.from_file("sender.pem", CurveId.P256)
        >>> with handle.acquire() as key:
        ...     shared = key.exchange(ec.ECDH(), peer_public_key)
    """

    def __init__(self, loader: Callable[[], bytearray], curve: CurveId, source: str) -> None:
        self._loader = loader
        self.curve = curve
        self.source = source

    @classmethod
    def from_file(cls, path: str | Path, curve: CurveId = CurveId.P256) -> PrivateKeyHandle:
        path = Path(path)

        def _load() -> bytearray:
            warn_if_key_file_permissions_loose(path)
            return bytearray(path.read_bytes())

        return cls(_load, curve, source=f"file:{path}")

    @classmethod
    def from_env(cls, var_name: str, curve: CurveId = CurveId.P256) -> PrivateKeyHandle:
        def _load() -> bytearray:
            value = os.environ.get(var_name)
            if not value:
                raise ValueError(f"Environment variable {var_name!r} is not set or empty")
            return bytearray(value.encode("utf-8"))

        return cls(_load, curve, source=f"env:{var_name}")

    @classmethod
    def from_bytes(cls, data: bytes | bytearray, curve: CurveId = CurveId.P256) -> PrivateKeyHandle:
        """Single-use handle over in-memory key material (PEM, hex or raw)."""
        held = bytearray(data)
        consumed = False

        def _load() -> bytearray:
            nonlocal consumed
            if consumed:
                raise ValueError("Private key handle already consumed")
            consumed = True
            copy = bytearray(held)
            _zeroize(held)
            return copy

        return cls(_load, curve, source="memory")

    @classmethod
    def from_key(cls, key: PrivateKey) -> PrivateKeyHandle:
        """Single-use handle wrapping an already-loaded key (serialized to PEM internally)."""
        return cls.from_bytes(serialize_private_key(key), curve_of(key))

    @contextmanager
    def acquire(self) -> Iterator[PrivateKey]:
        buf = self._loader()
        try:
            key = _parse_private_key(buf, self.curve)
            logger.debug("zkqsig.keys.acquired", source=self.source, curve=self.curve.value)
            yield key
        finally:
            _zeroize(buf)

    def __repr__(self) -> str:
        return f"PrivateKeyHandle(source={self.source!r}, curve={self.curve.value!r})"
