"""
Module 04 - Merkle Proof Wrappers
Inclusion proofs in the form consumed by the circuit layer, plus
class-based prover/verifier wrappers.

Owner: Protocol/Crypto Engineer
Module ID: M04

An InclusionProof carries everything needed to re-check a leaf without
the tree: the raw encoded leaf, one path bit per level, and the aunts.
Path bits and aunts are both ordered bottom-up.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from bridge_core.crypto.hashing import inner_hash, leaf_hash
from bridge_core.merkle.merkle_tree import (
    MerkleProof,
    MerkleTree,
    path_indices,
    verify,
)
from bridge_core.schemas.errors import MalformedInputException


@dataclass(frozen=True)
class InclusionProof:
    """
    Self-contained proof that enc_leaf is leaf `index` of a `total`-leaf tree.

    Attributes:
        index: Leaf position
        total: Leaf count of the tree
        enc_leaf: Raw (un-hashed) leaf bytes
        path: Per-level bits, True where the aunt folds in on the left
        aunts: Sibling hashes, bottom-up
    """
    index: int
    total: int
    enc_leaf: bytes
    path: tuple[bool, ...]
    aunts: tuple[bytes, ...]

    def __post_init__(self) -> None:
        if len(self.path) != len(self.aunts):
            raise MalformedInputException(
                f"Proof has {len(self.path)} path bits but {len(self.aunts)} aunts"
            )

    @property
    def leaf_hash(self) -> bytes:
        return leaf_hash(self.enc_leaf)

    def compute_root(self) -> bytes:
        """Fold the leaf up through the aunts using the path bits."""
        node = self.leaf_hash
        for is_right, aunt in zip(self.path, self.aunts):
            node = inner_hash(aunt, node) if is_right else inner_hash(node, aunt)
        return node

    def to_merkle_proof(self) -> MerkleProof:
        return MerkleProof(
            total_leaves=self.total,
            leaf_index=self.index,
            leaf_hash=self.leaf_hash,
            siblings=self.aunts,
        )


class MerkleProver:
    """
    Convenience class for generating inclusion proofs.

    Example:
        >>> proof = MerkleProver.prove([b"a", b"b", b"c"], index=1)
        >>> proof.enc_leaf
        b'b'
    """

    @staticmethod
    def prove(leaves: Sequence[bytes], index: int) -> InclusionProof:
        """
        Generate an inclusion proof for the leaf at the given index.

        Args:
            leaves: Raw leaf bytes
            index: 0-based index of the leaf to prove

        Returns:
            InclusionProof for the specified leaf

        Raises:
            MalformedInputException: If index is out of range
        """
        tree = MerkleTree(leaves)
        return MerkleProver.prove_from_tree(tree, leaves, index)

    @staticmethod
    def prove_from_tree(tree: MerkleTree, leaves: Sequence[bytes], index: int) -> InclusionProof:
        proof = tree.proof(index)
        return InclusionProof(
            index=index,
            total=tree.total,
            enc_leaf=leaves[index],
            path=tuple(path_indices(index, tree.total)),
            aunts=proof.siblings,
        )

    @staticmethod
    def compute_root(leaves: Sequence[bytes]) -> bytes:
        return MerkleTree(leaves).root


class MerkleVerifier:
    """
    Convenience class for verifying inclusion proofs.

    Example:
        >>> leaves = [b"a", b"b", b"c"]
        >>> proof = MerkleProver.prove(leaves, index=1)
        >>> MerkleVerifier.verify(proof, MerkleProver.compute_root(leaves))
        True
    """

    @staticmethod
    def verify(proof: InclusionProof, root: bytes) -> bool:
        """
        Verify an inclusion proof against a root.

        The path bits must be the ones implied by (index, total); a proof
        whose bits disagree is rejected even if its fold happens to match.

        Returns:
            True if the proof is valid, False otherwise
        """
        if not 0 <= proof.index < proof.total:
            return False
        if list(proof.path) != path_indices(proof.index, proof.total):
            return False
        if proof.compute_root() != root:
            return False
        return verify(proof.to_merkle_proof(), root, proof.enc_leaf)

    @staticmethod
    def verify_leaf_in_root(
        leaf: bytes,
        index: int,
        total: int,
        siblings: Sequence[bytes],
        root: bytes,
    ) -> bool:
        """Verify raw leaf bytes against a root from loose components."""
        if not 0 <= index < total:
            return False
        proof = MerkleProof(
            total_leaves=total,
            leaf_index=index,
            leaf_hash=leaf_hash(leaf),
            siblings=tuple(siblings),
        )
        return verify(proof, root, leaf)


__all__ = [
    "InclusionProof",
    "MerkleProver",
    "MerkleVerifier",
]
