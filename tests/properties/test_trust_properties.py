"""Property-based tests for trust lists and artifact encryption.

Inclusion: every real leaf proves against the root; nothing else does.
Encryption: any plaintext survives encrypt/decrypt, and any single-bit change
to the ciphertext is rejected.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from zkqsig.crypto.encryption import artifact_digest, decrypt, encrypt
from zkqsig.crypto.keys import PrivateKeyHandle, generate_keypair, public_key_to_bytes
from zkqsig.errors import AuthenticationError
from zkqsig.models.constants import ZERO_LEAF
from zkqsig.models.enums import CurveId, HashAlgorithm
from zkqsig.trust.merkle import MerkleProof, TrustList, verify_inclusion

# --- Shared strategies ---

leaves = st.binary(min_size=32, max_size=32).filter(lambda b: b != ZERO_LEAF)
leaf_sets = st.lists(leaves, min_size=1, max_size=40)
hash_algorithms = st.sampled_from(list(HashAlgorithm))

# Key generation is slow; one pair serves every example
_SENDER, _ = generate_keypair(CurveId.P256)
_RECIPIENT, _RECIPIENT_PUBLIC = generate_keypair(CurveId.P256)
_DOC_HASH = b"\x5a" * 32


@given(leaf_sets, hash_algorithms, st.data())
def test_every_leaf_proves_inclusion(
    leaf_list: list[bytes], hash_algorithm: HashAlgorithm, data: st.DataObject
) -> None:
    trust_list = TrustList.from_leaves(leaf_list, hash_algorithm)
    leaf = data.draw(st.sampled_from(leaf_list))

    proof = trust_list.prove_inclusion(leaf)

    assert proof.depth == trust_list.depth
    assert len(leaf_list) <= trust_list.capacity
    assert verify_inclusion(proof, trust_list.root, hash_algorithm)


@given(leaf_sets, leaves)
def test_non_member_does_not_prove(leaf_list: list[bytes], outsider: bytes) -> None:
    assume(outsider not in leaf_list)
    trust_list = TrustList.from_leaves(leaf_list)
    member_proof = trust_list.prove_inclusion(leaf_list[0])

    forged = MerkleProof(
        leaf=outsider, leaf_index=member_proof.leaf_index, siblings=member_proof.siblings
    )

    assert outsider not in trust_list
    assert not verify_inclusion(forged, trust_list.root)


@given(leaf_sets, hash_algorithms)
def test_root_is_deterministic(leaf_list: list[bytes], hash_algorithm: HashAlgorithm) -> None:
    first = TrustList.from_leaves(leaf_list, hash_algorithm)
    second = TrustList.from_leaves(list(leaf_list), hash_algorithm)

    assert first.root == second.root
    assert TrustList.from_document(first.to_document()).root == first.root


@given(st.lists(leaves, min_size=2, max_size=16, unique=True))
def test_order_changes_root(leaf_list: list[bytes]) -> None:
    reordered = leaf_list[1:] + leaf_list[:1]

    assert TrustList.from_leaves(leaf_list).root != TrustList.from_leaves(reordered).root


@settings(max_examples=25, deadline=None)
@given(st.binary(max_size=2048), st.data())
def test_encryption_round_trip_and_bit_flip(plaintext: bytes, data: st.DataObject) -> None:
    artifact, artifact_hash = encrypt(
        plaintext,
        PrivateKeyHandle.from_key(_SENDER),
        public_key_to_bytes(_RECIPIENT_PUBLIC),
        _DOC_HASH,
    )
    assert artifact_hash == artifact_digest(artifact.ciphertext)
    assert decrypt(artifact, PrivateKeyHandle.from_key(_RECIPIENT), _DOC_HASH) == plaintext

    position = data.draw(st.integers(min_value=0, max_value=len(artifact.ciphertext) - 1))
    bit = data.draw(st.integers(min_value=0, max_value=7))
    tampered = bytearray(artifact.ciphertext)
    tampered[position] ^= 1 << bit

    assert artifact_digest(bytes(tampered)) != artifact_hash
    with pytest.raises(AuthenticationError):
        decrypt(
            replace(artifact, ciphertext=bytes(tampered)),
            PrivateKeyHandle.from_key(_RECIPIENT),
            _DOC_HASH,
        )
