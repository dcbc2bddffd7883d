"""zkqsig Cryptographic Layer.

This module provides the key handling and artifact binding primitives:
- Key generation, encoding and scoped private-key handles
- Signer fingerprints (trust-list leaves)
- ECDH + HKDF + AES-256-GCM artifact encryption with the document hash as AAD

Public exports:
    keys: Key generation and handles submodule
    fingerprint: Leaf encoding submodule
    encryption: Artifact encryption submodule
"""

from zkqsig.crypto import encryption, fingerprint, keys
from zkqsig.crypto.encryption import EncryptedArtifact, artifact_digest, decrypt, encrypt
from zkqsig.crypto.fingerprint import SignerRecord, encode_leaf, make_signer_record
from zkqsig.crypto.keys import PrivateKeyHandle, generate_keypair

__all__ = [
    "encryption",
    "fingerprint",
    "keys",
    "EncryptedArtifact",
    "PrivateKeyHandle",
    "SignerRecord",
    "artifact_digest",
    "decrypt",
    "encode_leaf",
    "encrypt",
    "generate_keypair",
    "make_signer_record",
]
