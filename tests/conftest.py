"""Shared pytest fixtures for zkqsig tests.

This module provides common fixtures used across multiple test modules,
reducing duplication and ensuring consistency in test data.
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from tests.factories import (
    BACKEND_SECRET,
    SignedArtifact,
    create_signed_artifact,
    create_signers,
    document_hash,
)
from zkqsig.crypto.keys import generate_keypair
from zkqsig.models.enums import CurveId
from zkqsig.proving.backend import StubProofBackend
from zkqsig.verification.verifier import ManifestVerifier


@pytest.fixture
def doc_hash() -> bytes:
    """32-byte document digest used as the signed hash and the AAD."""
    return document_hash()


@pytest.fixture
def signer_keys() -> list[ec.EllipticCurvePrivateKey]:
    """Five P-256 signer keys."""
    return create_signers(5)


@pytest.fixture
def key_agreement_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePrivateKey]:
    """(sender, recipient) P-256 private keys for encryption tests."""
    sender, _ = generate_keypair(CurveId.P256)
    recipient, _ = generate_keypair(CurveId.P256)
    assert isinstance(sender, ec.EllipticCurvePrivateKey)
    assert isinstance(recipient, ec.EllipticCurvePrivateKey)
    return sender, recipient


@pytest.fixture
def stub_backend() -> StubProofBackend:
    return StubProofBackend(BACKEND_SECRET)


@pytest.fixture
def signed_artifact(stub_backend: StubProofBackend) -> SignedArtifact:
    """A manifest, its ciphertext and trust list that verify together."""
    return create_signed_artifact(backend=stub_backend)


@pytest.fixture
def verifier(stub_backend: StubProofBackend) -> ManifestVerifier:
    return ManifestVerifier(stub_backend, stub_backend.verification_key)
