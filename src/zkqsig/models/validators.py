"""Shared validators for zkqsig models."""

from zkqsig.models.constants import DIGEST_SIZE


def normalize_hex(v: str) -> str:
    """Strip an optional 0x prefix and lowercase; raise ValueError on odd length or bad chars."""
    v = v.strip()
    if v[:2].lower() == "0x":
        v = v[2:]
    v = v.lower()
    if len(v) % 2:
        raise ValueError(f"Hex string must have even length, got {len(v)}")
    try:
        bytes.fromhex(v)
    except ValueError as exc:
        raise ValueError(f"Invalid hex string: {exc}") from exc
    return v


def normalize_hex_digest(v: str) -> str:
    v = normalize_hex(v)
    if len(v) != DIGEST_SIZE * 2:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes ({DIGEST_SIZE * 2} hex chars)")
    return v


def require_digest(value: bytes, field_name: str) -> bytes:
    """Return ``value`` as bytes if it is exactly one digest long, else ValueError."""
    value = bytes(value)
    if len(value) != DIGEST_SIZE:
        raise ValueError(f"{field_name} must be {DIGEST_SIZE} bytes, got {len(value)}")
    return value
