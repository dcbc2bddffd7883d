"""Proof generation and manifest assembly.

- backend: ProofBackend protocol, public inputs/witness shapes, stub backend
- orchestrator: timeout/cancel-bounded proof generation into a Manifest
- manifest_io: manifest parsing, validation and atomic persistence
"""

from zkqsig.proving.backend import (
    BackendError,
    ProofBackend,
    PublicInputs,
    StubProofBackend,
    Witness,
)
from zkqsig.proving.manifest_io import load_manifest, parse_manifest, write_manifest
from zkqsig.proving.orchestrator import ProofOrchestrator, build_manifest

__all__ = [
    "BackendError",
    "ProofBackend",
    "ProofOrchestrator",
    "PublicInputs",
    "StubProofBackend",
    "Witness",
    "build_manifest",
    "load_manifest",
    "parse_manifest",
    "write_manifest",
]
