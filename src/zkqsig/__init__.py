"""zkqsig: privacy-preserving signature binding.

Proves that an encrypted artifact was produced for a document signed by a
member of an allow-list, without revealing which member signed.

Example:
    >>> from zkqsig import ManifestVerifier, StubProofBackend
    >>> backend = StubProofBackend()
    >>> verifier = ManifestVerifier(backend, backend.verification_key)
    >>> report = verifier.verify(manifest, ciphertext, trust_list)
"""

__version__ = "0.1.0"

from zkqsig.config import Settings, load_settings
from zkqsig.crypto import (
    EncryptedArtifact,
    PrivateKeyHandle,
    SignerRecord,
    artifact_digest,
    decrypt,
    encode_leaf,
    encrypt,
    generate_keypair,
    make_signer_record,
)
from zkqsig.errors import ZKQSigError
from zkqsig.models import Manifest
from zkqsig.proving import ProofOrchestrator, StubProofBackend, build_manifest
from zkqsig.trust import MerkleProof, TrustList, build_trust_list
from zkqsig.verification import ManifestVerifier, TamperDetector, VerificationReport

__all__ = [
    "__version__",
    "EncryptedArtifact",
    "Manifest",
    "ManifestVerifier",
    "MerkleProof",
    "PrivateKeyHandle",
    "ProofOrchestrator",
    "Settings",
    "SignerRecord",
    "StubProofBackend",
    "TamperDetector",
    "TrustList",
    "VerificationReport",
    "ZKQSigError",
    "artifact_digest",
    "build_manifest",
    "build_trust_list",
    "decrypt",
    "encode_leaf",
    "encrypt",
    "generate_keypair",
    "load_settings",
    "make_signer_record",
]
