"""Trust-list construction and membership proofs.

- merkle: fixed-depth Merkle tree over signer fingerprints
- allowlist: allow-list files and certificate fingerprinting
"""

from zkqsig.trust.allowlist import (
    build_allowlist_from_certificates,
    fingerprint_certificate,
    load_allowlist,
    write_allowlist,
)
from zkqsig.trust.merkle import (
    MerkleProof,
    TrustList,
    build_trust_list,
    compute_root,
    verify_inclusion,
)

__all__ = [
    "MerkleProof",
    "TrustList",
    "build_allowlist_from_certificates",
    "build_trust_list",
    "compute_root",
    "fingerprint_certificate",
    "load_allowlist",
    "verify_inclusion",
    "write_allowlist",
]
