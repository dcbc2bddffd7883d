"""Protocol constants for zkqsig."""

from typing import Final

# Manifest format version written by this implementation
MANIFEST_VERSION: Final[int] = 1
SUPPORTED_MANIFEST_VERSIONS: Final[frozenset[int]] = frozenset({1})

TRUST_LIST_FORMAT_VERSION: Final[int] = 1

DIGEST_SIZE: Final[int] = 32
HEX_DIGEST_PATTERN: Final[str] = r"^[0-9a-f]{64}$"
HEX_PATTERN: Final[str] = r"^[0-9a-f]*$"
BASE64_PATTERN: Final[str] = r"^[A-Za-z0-9+/=]+$"

# Padding leaf for unused tree slots; rejected as a real fingerprint
ZERO_LEAF: Final[bytes] = b"\x00" * DIGEST_SIZE

# AES-GCM nonce size in bytes (96-bit IV)
GCM_IV_SIZE: Final[int] = 12
GCM_TAG_SIZE: Final[int] = 16
AES_KEY_SIZE: Final[int] = 32

# HKDF info string binding the derived key to its use
KDF_INFO: Final[bytes] = b"aes-256-gcm-key"
