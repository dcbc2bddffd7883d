"""Allow-list files built from signer certificates.

The allow-list is the ordered list of signer fingerprints a trust list is
built from: ``{"cert_fingerprints": ["<hex>", ...]}``.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from cryptography import x509
from pydantic import ValidationError

from zkqsig.crypto.fingerprint import encode_leaf
from zkqsig.errors import MalformedIdentityError
from zkqsig.models.entities import Allowlist
from zkqsig.observability import get_logger
from zkqsig.utils.files import atomic_write_json

logger = get_logger(__name__)

_PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


def load_certificate(cert_bytes: bytes) -> x509.Certificate:
    """Parse a PEM or DER X.509 certificate."""
    try:
        if _PEM_MARKER in cert_bytes:
            return x509.load_pem_x509_certificate(cert_bytes)
        return x509.load_der_x509_certificate(cert_bytes)
    except ValueError as exc:
        raise MalformedIdentityError(f"cannot parse certificate: {exc}") from exc


def fingerprint_certificate(cert_bytes: bytes) -> str:
    """Hex leaf fingerprint of a certificate's subject public key."""
    return encode_leaf(load_certificate(cert_bytes)).hex()


def build_allowlist_from_certificates(
    cert_paths: Iterable[str | Path],
    sort: bool = False,
) -> Allowlist:
    """Fingerprint each certificate in order; optional lexicographic sort.

    Raises:
        ValueError: if two certificates share a fingerprint
    """
    fingerprints = [fingerprint_certificate(Path(p).read_bytes()) for p in cert_paths]
    if sort:
        fingerprints.sort()
    if len(set(fingerprints)) != len(fingerprints):
        raise ValueError("Duplicate certificate fingerprints detected in allowlist input")
    logger.info("zkqsig.allowlist.built", fingerprints=len(fingerprints), sorted=sort)
    return Allowlist(cert_fingerprints=fingerprints)


def load_allowlist(path: str | Path) -> Allowlist:
    """Read an allow-list JSON file. Raises ValueError on malformed content."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return Allowlist.model_validate(data)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        raise ValueError(f"Invalid allowlist {path}: {exc}") from exc


def write_allowlist(allowlist: Allowlist, path: str | Path) -> Path:
    return atomic_write_json(path, allowlist.to_json_dict())


def allowlist_leaves(allowlist: Allowlist) -> list[bytes]:
    return [bytes.fromhex(fp) for fp in allowlist.cert_fingerprints]
