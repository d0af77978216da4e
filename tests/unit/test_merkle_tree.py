"""
Module 04 - Merkle Tree Unit Tests
Tests for bridge_core/merkle/merkle_tree.py and merkle_proofs.py

Covers:
1. Empty and single-leaf trees
2. Known roots for Tendermint-shaped trees
3. Split point and path bits
4. Proof generation / verification for every index
5. Tamper detection on leaf, aunts, root and path
"""
import pytest

from bridge_core.crypto.hashing import inner_hash, leaf_hash, sha256
from bridge_core.merkle.merkle_proofs import InclusionProof, MerkleProver, MerkleVerifier
from bridge_core.merkle.merkle_tree import (
    EMPTY_TREE_ROOT,
    MerkleProof,
    MerkleTree,
    build,
    build_merkle_root,
    compute_hash_from_aunts,
    compute_tree_depth,
    path_indices,
    split_point,
    verify,
)
from bridge_core.schemas.errors import MalformedInputException


THREE_LEAVES = [
    bytes.fromhex("de6ad0941095ada2a7996e6a888581928203b8b69e07ee254d289f5b9c9caea193c2ab01902d"),
    bytes.fromhex("92fbe0c52937d80c5ea643c7832620b84bfdf154ec7129b8b471a63a763f2fe955af1ac65fd3"),
    bytes.fromhex("e902f88b2371ff6243bf4b0ebe8f46205e00749dd4dad07b2ea34350a1f9ceedb7620ab913c2"),
]
THREE_LEAVES_ROOT = "5541a94a9cf19e568401a2eed59f4ac8118c945d37803632aad655c6ee4f3ed6"


def _leaves(n: int) -> list[bytes]:
    return [f"leaf-{i}".encode() for i in range(n)]


class TestEmptyTree:
    """Tests for empty tree behavior."""

    def test_empty_leaves_returns_sha256_empty(self):
        """build_merkle_root([]) returns sha256(b"")."""
        assert build_merkle_root([]) == sha256(b"") == EMPTY_TREE_ROOT

    def test_proof_on_empty_tree_raises(self):
        """Cannot generate a proof for an empty tree."""
        with pytest.raises(MalformedInputException):
            MerkleTree([]).proof(0)


class TestSingleLeaf:
    """Tests for single leaf tree behavior."""

    def test_single_leaf_known_root(self):
        """Root of one leaf is its leaf hash."""
        root = build_merkle_root([b"L123456"])
        assert root.hex() == "395aa064aa4c29f7010acfe3f25db9485bbd4b91897b6ad7ad547639252b4d56"
        assert root == leaf_hash(b"L123456")

    def test_single_leaf_proof_has_no_aunts(self):
        """Proof for a single leaf has no siblings and verifies."""
        tree = MerkleTree([b"only"])
        proof = tree.proof(0)
        assert proof.siblings == ()
        assert verify(proof, tree.root, b"only")


class TestKnownRoots:
    """Roots that must match Tendermint byte for byte."""

    def test_three_validator_leaves(self):
        """Three 38-byte validator leaves."""
        assert build_merkle_root(THREE_LEAVES).hex() == THREE_LEAVES_ROOT

    def test_leaf_hash_of_validator_leaf(self):
        """Leaf hash of the first validator leaf."""
        assert leaf_hash(THREE_LEAVES[0]).hex() == (
            "84f633a570a987326947aafd434ae37f151e98d5e6d429137a4cc378d4a7988e"
        )

    def test_three_leaf_shape(self):
        """Three leaves split 2 + 1."""
        a, b, c = (leaf_hash(x) for x in THREE_LEAVES)
        assert build_merkle_root(THREE_LEAVES) == inner_hash(inner_hash(a, b), c)

    def test_root_determinism(self):
        """Same leaves give the same root; order matters."""
        leaves = _leaves(7)
        assert build_merkle_root(leaves) == build_merkle_root(list(leaves))
        assert build_merkle_root(leaves) != build_merkle_root(leaves[::-1])


class TestSplitPoint:
    """Tests for split_point()."""

    @pytest.mark.parametrize("n,expected", [
        (1, 0), (2, 1), (3, 2), (4, 2), (5, 4), (8, 4), (9, 8), (14, 8), (16, 8),
    ])
    def test_split_point(self, n, expected):
        """Largest power of two strictly below n."""
        assert split_point(n) == expected

    def test_split_point_zero_raises(self):
        """A tree of size zero cannot be split."""
        with pytest.raises(MalformedInputException):
            split_point(0)


class TestPathIndices:
    """Tests for path_indices()."""

    @pytest.mark.parametrize("index,expected", [
        (2, [False, True, False, False]),
        (4, [False, False, True, False]),
        (6, [False, True, True, False]),
        (7, [True, True, True, False]),
        (8, [False, False, False, True]),
    ])
    def test_header_field_paths(self, index, expected):
        """Paths of the tracked header fields in a 14-leaf tree."""
        assert path_indices(index, 14) == expected

    def test_unbalanced_right_subtree(self):
        """Leaf 12 of 14 sits in the 6-leaf right subtree, two levels shallower."""
        assert path_indices(12, 14) == [False, True, True]
        assert compute_tree_depth(12, 14) == 3

    def test_path_length_matches_proof(self):
        """Path bits and aunts have the same length for every leaf."""
        for total in range(1, 20):
            tree = MerkleTree(_leaves(total))
            for i in range(total):
                assert len(path_indices(i, total)) == len(tree.proof(i).siblings)

    def test_out_of_range_raises(self):
        """Index outside the tree is rejected."""
        with pytest.raises(MalformedInputException):
            path_indices(14, 14)


class TestProofs:
    """Proof generation and verification."""

    @pytest.mark.parametrize("total", [1, 2, 3, 5, 8, 14, 17])
    def test_every_proof_verifies(self, total):
        """Each leaf's proof verifies against the root."""
        leaves = _leaves(total)
        root, proofs = build(leaves)
        for i, proof in enumerate(proofs):
            assert verify(proof, root, leaves[i])
            assert compute_hash_from_aunts(i, total, leaf_hash(leaves[i]), proof.siblings) == root

    def test_wrong_leaf_fails(self):
        """A different leaf does not verify."""
        leaves = _leaves(5)
        root, proofs = build(leaves)
        assert not verify(proofs[2], root, b"other")

    def test_flipped_aunt_bit_fails(self):
        """Flipping one bit of an aunt breaks the proof."""
        leaves = _leaves(6)
        root, proofs = build(leaves)
        proof = proofs[3]
        tampered = bytearray(proof.siblings[0])
        tampered[0] ^= 0x01
        bad = MerkleProof(
            total_leaves=proof.total_leaves,
            leaf_index=proof.leaf_index,
            leaf_hash=proof.leaf_hash,
            siblings=(bytes(tampered),) + proof.siblings[1:],
        )
        assert not verify(bad, root, leaves[3])

    def test_wrong_root_fails(self):
        """Proof does not verify against another root."""
        leaves = _leaves(4)
        _, proofs = build(leaves)
        assert not verify(proofs[0], sha256(b"not the root"), leaves[0])

    def test_too_many_aunts_fails(self):
        """Extra aunts make the fold inconsistent."""
        leaves = _leaves(4)
        root, proofs = build(leaves)
        assert compute_hash_from_aunts(0, 4, leaf_hash(leaves[0]), proofs[0].siblings + (root,)) is None

    def test_proof_index_out_of_range(self):
        """MerkleProof rejects an index outside total."""
        with pytest.raises(MalformedInputException):
            MerkleProof(total_leaves=2, leaf_index=2, leaf_hash=bytes(32), siblings=())


class TestInclusionProof:
    """Tests for InclusionProof and the prover/verifier helpers."""

    def test_prover_verifier_round(self):
        """Every index proves and verifies for a 14-leaf tree."""
        leaves = _leaves(14)
        root = MerkleProver.compute_root(leaves)
        for i in range(14):
            proof = MerkleProver.prove(leaves, i)
            assert proof.compute_root() == root
            assert MerkleVerifier.verify(proof, root)

    def test_wrong_path_bits_rejected(self):
        """A proof whose path disagrees with (index, total) is rejected."""
        leaves = _leaves(4)
        root = MerkleProver.compute_root(leaves)
        proof = MerkleProver.prove(leaves, 1)
        bad = InclusionProof(
            index=proof.index,
            total=proof.total,
            enc_leaf=proof.enc_leaf,
            path=tuple(not bit for bit in proof.path),
            aunts=proof.aunts,
        )
        assert not MerkleVerifier.verify(bad, root)

    def test_mismatched_path_and_aunts(self):
        """Path and aunts must have equal length."""
        with pytest.raises(MalformedInputException):
            InclusionProof(index=0, total=2, enc_leaf=b"a", path=(False,), aunts=())

    def test_verify_leaf_in_root(self):
        """Loose-component verification."""
        leaves = _leaves(3)
        root, proofs = build(leaves)
        assert MerkleVerifier.verify_leaf_in_root(leaves[2], 2, 3, proofs[2].siblings, root)
        assert not MerkleVerifier.verify_leaf_in_root(leaves[2], 5, 3, proofs[2].siblings, root)
