"""Tests for the proof backend boundary and the stub backend."""

import hashlib

import jcs
import pytest
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from tests.factories import SignedArtifact, create_signers, document_hash, sign_digest
from zkqsig.crypto.fingerprint import make_signer_record
from zkqsig.crypto.keys import public_key_to_bytes
from zkqsig.models.enums import CurveId, HashAlgorithm
from zkqsig.proving.backend import (
    BackendError,
    ProofBackend,
    PublicInputs,
    StubProofBackend,
    Witness,
)
from zkqsig.trust.merkle import build_trust_list


def _inputs_and_witness(
    signed: SignedArtifact, signature: bytes | None = None
) -> tuple[PublicInputs, Witness]:
    proof = signed.trust_list.prove_inclusion(signed.signer.fingerprint)
    public_inputs = PublicInputs(
        doc_hash=signed.doc_hash,
        artifact_hash=signed.artifact.artifact_hash,
        signer_public_key=signed.signer.public_key,
        trust_root=signed.trust_list.root,
    )
    witness = Witness(
        signature=signature if signature is not None else signed.signature,
        siblings=proof.siblings,
        leaf_index=proof.leaf_index,
    )
    return public_inputs, witness


class TestPublicInputs:
    def test_rejects_short_digests(self) -> None:
        with pytest.raises(ValueError, match="trust_root"):
            PublicInputs(b"\x01" * 32, b"\x02" * 32, b"\x04" + b"\x03" * 64, b"\x04" * 31)

    def test_rejects_empty_public_key(self) -> None:
        with pytest.raises(ValueError, match="signer_public_key"):
            PublicInputs(b"\x01" * 32, b"\x02" * 32, b"", b"\x04" * 32)

    def test_canonical_bytes_are_jcs(self) -> None:
        inputs = PublicInputs(b"\x01" * 32, b"\x02" * 32, b"\x04\x05", b"\x03" * 32)

        assert inputs.canonical_bytes() == jcs.canonicalize(inputs.to_fields())
        assert inputs.canonical_bytes().startswith(b'{"artifact_hash":"0202')

    def test_from_manifest(self, signed_artifact: SignedArtifact) -> None:
        inputs = PublicInputs.from_manifest(signed_artifact.manifest)

        assert inputs.doc_hash == signed_artifact.doc_hash
        assert inputs.trust_root == signed_artifact.trust_list.root
        assert inputs.signer_public_key == signed_artifact.signer.public_key


class TestWitness:
    def test_repr_redacts(self) -> None:
        witness = Witness(signature=b"\xaa" * 70, siblings=(b"\x01" * 32,) * 3, leaf_index=5)

        assert "aa" not in repr(witness)
        assert "5" not in repr(witness)
        assert "depth=3" in repr(witness)


class TestStubProofBackend:
    def test_satisfies_protocol(self, stub_backend: StubProofBackend) -> None:
        assert isinstance(stub_backend, ProofBackend)

    def test_prove_and_verify(self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend) -> None:
        public_inputs, witness = _inputs_and_witness(signed_artifact)
        proof = stub_backend.prove(public_inputs, witness)

        assert len(proof) == StubProofBackend.PROOF_SIZE
        assert stub_backend.is_well_formed(proof)
        assert stub_backend.verify(proof, public_inputs, stub_backend.verification_key)

    def test_fixed_width_signature(
        self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend
    ) -> None:
        r, s = decode_dss_signature(signed_artifact.signature)
        raw = r.to_bytes(32, "big") + s.to_bytes(32, "big")
        public_inputs, witness = _inputs_and_witness(signed_artifact, signature=raw)

        assert stub_backend.verify(
            stub_backend.prove(public_inputs, witness), public_inputs, stub_backend.verification_key
        )

    def test_verify_fails_for_other_inputs(
        self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend
    ) -> None:
        public_inputs, witness = _inputs_and_witness(signed_artifact)
        proof = stub_backend.prove(public_inputs, witness)
        altered = PublicInputs(
            doc_hash=hashlib.sha256(b"other").digest(),
            artifact_hash=public_inputs.artifact_hash,
            signer_public_key=public_inputs.signer_public_key,
            trust_root=public_inputs.trust_root,
        )

        assert not stub_backend.verify(proof, altered, stub_backend.verification_key)

    def test_verify_fails_with_other_key(
        self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend
    ) -> None:
        public_inputs, witness = _inputs_and_witness(signed_artifact)
        proof = stub_backend.prove(public_inputs, witness)

        assert not stub_backend.verify(proof, public_inputs, b"\x00" * 32)

    def test_unsatisfied_signature_constraint(
        self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend
    ) -> None:
        bad_signature = sign_digest(signed_artifact.signer_key, document_hash("not this one"))
        public_inputs, witness = _inputs_and_witness(signed_artifact, signature=bad_signature)

        with pytest.raises(BackendError, match="signature does not verify"):
            stub_backend.prove(public_inputs, witness)

    def test_signer_outside_trust_list(
        self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend
    ) -> None:
        outsider = create_signers(1)[0]
        public_inputs, witness = _inputs_and_witness(signed_artifact)
        forged = PublicInputs(
            doc_hash=public_inputs.doc_hash,
            artifact_hash=public_inputs.artifact_hash,
            signer_public_key=public_key_to_bytes(outsider.public_key()),
            trust_root=public_inputs.trust_root,
        )
        forged_witness = Witness(
            signature=sign_digest(outsider, signed_artifact.doc_hash),
            siblings=witness.siblings,
            leaf_index=witness.leaf_index,
        )

        with pytest.raises(BackendError, match="does not reconstruct trust_root"):
            stub_backend.prove(forged, forged_witness)

    def test_malformed_path(self, signed_artifact: SignedArtifact, stub_backend: StubProofBackend) -> None:
        public_inputs, witness = _inputs_and_witness(signed_artifact)
        bad = Witness(signature=witness.signature, siblings=witness.siblings, leaf_index=99)

        with pytest.raises(BackendError, match="malformed merkle path"):
            stub_backend.prove(public_inputs, bad)

    @pytest.mark.parametrize(
        "proof",
        [b"", b"ZKQSTUB1", b"ZKQSTUB1" + b"\x00" * 31, b"NOTSTUB1" + b"\x00" * 32],
    )
    def test_is_well_formed_rejects(self, proof: bytes, stub_backend: StubProofBackend) -> None:
        assert not stub_backend.is_well_formed(proof)

    def test_other_hash_algorithm(self) -> None:
        signers = create_signers(3, CurveId.SECP256K1)
        trust_list = build_trust_list(
            (k.public_key() for k in signers), hash_algorithm=HashAlgorithm.SHA3_256
        )
        signer = make_signer_record(signers[1].public_key())
        doc_hash = document_hash()
        path = trust_list.prove_inclusion(signer.fingerprint)
        backend = StubProofBackend(hash_algorithm=HashAlgorithm.SHA3_256, curve=CurveId.SECP256K1)
        public_inputs = PublicInputs(doc_hash, b"\x07" * 32, signer.public_key, trust_list.root)

        proof = backend.prove(
            public_inputs,
            Witness(sign_digest(signers[1], doc_hash), path.siblings, path.leaf_index),
        )
        assert backend.verify(proof, public_inputs, backend.verification_key)

    def test_x25519_cannot_sign(self) -> None:
        with pytest.raises(ValueError, match="X25519"):
            StubProofBackend(curve=CurveId.X25519)

    def test_random_key_by_default(self) -> None:
        assert StubProofBackend().verification_key != StubProofBackend().verification_key
