"""Fixed-depth binary Merkle trust list over signer fingerprints.

Leaves keep insertion order. The tree is padded to ``2**depth`` with the
all-zero sentinel, and each internal node is ``H(left || right)`` with the
deployment's hash. Nodes are hashed as raw 32-byte values; the proof circuit
must use the same function bit-for-bit.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from zkqsig.crypto.fingerprint import Identity, encode_leaf
from zkqsig.errors import MalformedIdentityError, NotInTrustListError
from zkqsig.models.constants import DIGEST_SIZE, ZERO_LEAF
from zkqsig.models.entities import TrustListDocument
from zkqsig.models.enums import CurveId, HashAlgorithm
from zkqsig.models.validators import require_digest
from zkqsig.observability import get_logger

logger = get_logger(__name__)

NodeHash = Callable[[bytes, bytes], bytes]


def _sha256(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(left + right).digest()


def _sha3_256(left: bytes, right: bytes) -> bytes:
    return hashlib.sha3_256(left + right).digest()


def _blake2s(left: bytes, right: bytes) -> bytes:
    return hashlib.blake2s(left + right, digest_size=DIGEST_SIZE).digest()


_NODE_HASHES: dict[HashAlgorithm, NodeHash] = {
    HashAlgorithm.SHA256: _sha256,
    HashAlgorithm.SHA3_256: _sha3_256,
    HashAlgorithm.BLAKE2S: _blake2s,
}


def node_hash(hash_algorithm: HashAlgorithm) -> NodeHash:
    return _NODE_HASHES[hash_algorithm]


def depth_for(leaf_count: int) -> int:
    """ceil(log2(n)), minimum 1."""
    if leaf_count < 1:
        raise ValueError("Cannot build a trust list from zero leaves")
    return max(1, (leaf_count - 1).bit_length())


@dataclass(frozen=True)
class MerkleProof:
    """Sibling path for one leaf, bottom-to-top. Valid only for the tree it came from."""

    leaf: bytes
    leaf_index: int
    siblings: tuple[bytes, ...]

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_dict(self) -> dict[str, object]:
        return {
            "leaf": self.leaf.hex(),
            "index": self.leaf_index,
            "siblings": [s.hex() for s in self.siblings],
        }


def compute_root(
    leaf: bytes,
    leaf_index: int,
    siblings: Sequence[bytes],
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
) -> bytes:
    """Recompute the root implied by a leaf, its index and its sibling path."""
    if not 0 <= leaf_index < (1 << len(siblings)):
        raise ValueError(f"Leaf index {leaf_index} out of range for depth {len(siblings)}")
    h = node_hash(hash_algorithm)
    node = require_digest(leaf, "leaf")
    index = leaf_index
    for sibling in siblings:
        sibling = require_digest(sibling, "sibling")
        node = h(sibling, node) if index & 1 else h(node, sibling)
        index >>= 1
    return node


def verify_inclusion(
    proof: MerkleProof,
    root: bytes,
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
) -> bool:
    try:
        return compute_root(proof.leaf, proof.leaf_index, proof.siblings, hash_algorithm) == root
    except ValueError:
        return False


@dataclass(frozen=True)
class TrustList:
    """Immutable trust list. A new allow-list version yields a new TrustList.

    Attributes:
        leaves: Real leaves in insertion order (no padding)
        depth: Tree depth; ``len(leaves) <= 2**depth``
        root: Merkle root
        hash_algorithm: Node compression function
    """

    leaves: tuple[bytes, ...]
    depth: int
    root: bytes
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    _layers: tuple[tuple[bytes, ...], ...] = field(default=(), repr=False, compare=False)
    _first_index: dict[bytes, int] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_leaves(
        cls,
        leaves: Iterable[bytes],
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
    ) -> TrustList:
        """Build from precomputed 32-byte fingerprints, preserving order."""
        leaf_tuple = tuple(bytes(leaf) for leaf in leaves)
        depth = depth_for(len(leaf_tuple))
        for position, leaf in enumerate(leaf_tuple):
            if len(leaf) != DIGEST_SIZE:
                raise MalformedIdentityError(
                    f"leaf {position} must be {DIGEST_SIZE} bytes, got {len(leaf)}"
                )
            if leaf == ZERO_LEAF:
                raise MalformedIdentityError(
                    f"leaf {position} equals the padding sentinel",
                    details={"index": position},
                )

        h = node_hash(hash_algorithm)
        level = leaf_tuple + (ZERO_LEAF,) * ((1 << depth) - len(leaf_tuple))
        layers = [level]
        while len(level) > 1:
            level = tuple(h(level[i], level[i + 1]) for i in range(0, len(level), 2))
            layers.append(level)

        first_index: dict[bytes, int] = {}
        for position, leaf in enumerate(leaf_tuple):
            first_index.setdefault(leaf, position)

        trust_list = cls(
            leaves=leaf_tuple,
            depth=depth,
            root=level[0],
            hash_algorithm=hash_algorithm,
            _layers=tuple(layers),
            _first_index=first_index,
        )
        logger.info(
            "zkqsig.trust_list.built",
            leaves=len(leaf_tuple),
            depth=depth,
            hash_algorithm=hash_algorithm.value,
            root=trust_list.root_hex,
        )
        return trust_list

    @property
    def root_hex(self) -> str:
        return self.root.hex()

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    def __contains__(self, fingerprint: object) -> bool:
        return isinstance(fingerprint, (bytes, bytearray)) and bytes(fingerprint) in self._first_index

    def index_of(self, fingerprint: bytes) -> int:
        """Index of the first occurrence; NotInTrustListError if absent."""
        try:
            return self._first_index[bytes(fingerprint)]
        except KeyError:
            raise NotInTrustListError(bytes(fingerprint).hex(), root=self.root_hex) from None

    def prove_inclusion(self, fingerprint: bytes) -> MerkleProof:
        """Sibling path for ``fingerprint`` (first occurrence wins for duplicates)."""
        index = self.index_of(fingerprint)
        siblings = []
        position = index
        for layer in self._layers[:-1]:
            siblings.append(layer[position ^ 1])
            position >>= 1
        return MerkleProof(leaf=bytes(fingerprint), leaf_index=index, siblings=tuple(siblings))

    def to_document(self) -> TrustListDocument:
        return TrustListDocument(
            hash_algorithm=self.hash_algorithm,
            depth=self.depth,
            root=self.root_hex,
            leaves=[leaf.hex() for leaf in self.leaves],
        )

    @classmethod
    def from_document(cls, document: TrustListDocument) -> TrustList:
        """Rebuild from a document; ValueError if the stored root or depth does not match."""
        trust_list = cls.from_leaves(
            (bytes.fromhex(leaf) for leaf in document.leaves),
            hash_algorithm=document.hash_algorithm,
        )
        if trust_list.root_hex != document.root or trust_list.depth != document.depth:
            raise ValueError(
                f"Trust list document is inconsistent: stored root {document.root} "
                f"(depth {document.depth}), recomputed {trust_list.root_hex} "
                f"(depth {trust_list.depth})"
            )
        return trust_list


def build_trust_list(
    identities: Iterable[Identity],
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
    curve: CurveId = CurveId.P256,
) -> TrustList:
    """Encode each identity as a leaf and build the tree, in the order given.

    Callers that need canonical ordering must sort before calling.
    """
    return TrustList.from_leaves(
        (encode_leaf(identity, curve) for identity in identities),
        hash_algorithm=hash_algorithm,
    )
