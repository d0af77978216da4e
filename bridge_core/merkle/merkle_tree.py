"""
Module 04 - Merkle Tree Implementation
Tendermint-compatible Merkle tree construction, proofs and verification.

Owner: Protocol/Crypto Engineer
Module ID: M04

This module provides:
- split_point: where a tree over n leaves divides into subtrees
- MerkleTree: node arena built in one bottom-up pass, with per-leaf proofs
- build / build_merkle_root: root (and proofs) from raw leaf bytes
- verify / compute_hash_from_aunts: fold a proof back to a root
- path_indices: left/right bit per level for a leaf position

Canonical Commitment Rules (Hard Contracts):
1. Leaf hashing: leaf = sha256(0x00 || leaf_bytes)
2. Parent hashing: parent = sha256(0x01 || left || right)
3. Shape: the left subtree always holds split_point(n) leaves, a power
   of two strictly smaller than n. There is no duplication padding.
4. Empty leaves: root is sha256(b"")
5. Single leaf: root is leaf_hash(leaf), proof has no siblings

Determinism Notes:
- Leaf order is defined by the caller and never re-sorted
- Siblings ("aunts") are ordered bottom-up; the last entry is the
  sibling of the root's direct child
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from bridge_core.crypto.hashing import empty_hash, inner_hash, leaf_hash
from bridge_core.schemas.errors import MalformedInputException


# Empty tree sentinel: sha256 of empty bytes
EMPTY_TREE_ROOT: bytes = empty_hash()


@dataclass(frozen=True)
class MerkleProof:
    """
    Inclusion proof for a single leaf.

    Attributes:
        total_leaves: Number of leaves in the tree
        leaf_index: 0-based position of the proven leaf
        leaf_hash: leaf_hash() of the proven leaf bytes
        siblings: Aunt hashes from bottom to top of the tree
    """
    total_leaves: int
    leaf_index: int
    leaf_hash: bytes
    siblings: tuple[bytes, ...]

    def __post_init__(self) -> None:
        if self.total_leaves < 1:
            raise MalformedInputException(
                f"Proof total must be positive, got {self.total_leaves}"
            )
        if not 0 <= self.leaf_index < self.total_leaves:
            raise MalformedInputException(
                f"Leaf index {self.leaf_index} out of range for "
                f"{self.total_leaves} leaves"
            )


def split_point(n: int) -> int:
    """
    Size of the left subtree for a tree over n leaves.

    The largest power of two strictly less than n: with b = floor(log2 n),
    k = 2^b, halved when 2^b == n.

    Args:
        n: Leaf count (>= 1)

    Returns:
        Left subtree size (0 when n == 1)

    Raises:
        MalformedInputException: If n < 1

    Example:
        >>> [split_point(n) for n in (2, 3, 4, 5, 14)]
        [1, 2, 2, 4, 8]
    """
    if n < 1:
        raise MalformedInputException(f"Trying to split a tree with size {n}")
    k = 1 << (n.bit_length() - 1)
    if k == n:
        k >>= 1
    return k


class MerkleTree:
    """
    Merkle tree stored as a flat node arena.

    Nodes are appended children-first, so every parent index is larger
    than its children's. Each node records its parent and sibling
    positions; a proof is a walk from a leaf node to the root.

    Example:
        >>> tree = MerkleTree([b"a", b"b", b"c"])
        >>> proof = tree.proof(2)
        >>> verify(proof, tree.root, b"c")
        True
    """

    def __init__(self, leaves: Sequence[bytes]) -> None:
        self.total = len(leaves)
        self._hashes: list[bytes] = []
        self._parent: list[int] = []
        self._sibling: list[int] = []
        self._leaf_nodes: list[int] = []
        if self.total == 0:
            self.root = EMPTY_TREE_ROOT
        else:
            top = self._build(leaves, 0, self.total)
            self.root = self._hashes[top]

    def _add(self, node_hash: bytes) -> int:
        self._hashes.append(node_hash)
        self._parent.append(-1)
        self._sibling.append(-1)
        return len(self._hashes) - 1

    def _build(self, leaves: Sequence[bytes], start: int, end: int) -> int:
        if end - start == 1:
            idx = self._add(leaf_hash(leaves[start]))
            self._leaf_nodes.append(idx)
            return idx
        mid = start + split_point(end - start)
        left = self._build(leaves, start, mid)
        right = self._build(leaves, mid, end)
        idx = self._add(inner_hash(self._hashes[left], self._hashes[right]))
        self._parent[left] = self._parent[right] = idx
        self._sibling[left] = right
        self._sibling[right] = left
        return idx

    def leaf_hash(self, index: int) -> bytes:
        self._check_index(index)
        return self._hashes[self._leaf_nodes[index]]

    def proof(self, index: int) -> MerkleProof:
        """
        Inclusion proof for the leaf at index.

        Raises:
            MalformedInputException: If the tree is empty or index is out
                                     of range
        """
        self._check_index(index)
        node = self._leaf_nodes[index]
        siblings: list[bytes] = []
        while self._parent[node] != -1:
            siblings.append(self._hashes[self._sibling[node]])
            node = self._parent[node]
        return MerkleProof(
            total_leaves=self.total,
            leaf_index=index,
            leaf_hash=self._hashes[self._leaf_nodes[index]],
            siblings=tuple(siblings),
        )

    def proofs(self) -> list[MerkleProof]:
        return [self.proof(i) for i in range(self.total)]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.total:
            raise MalformedInputException(
                f"Leaf index {index} out of range for {self.total} leaves"
            )


def build(leaves: Sequence[bytes]) -> tuple[bytes, list[MerkleProof]]:
    """
    Build a tree and return its root with one proof per leaf.

    Args:
        leaves: Raw leaf bytes, order preserved

    Returns:
        (root, proofs) where proofs[i] proves leaves[i]
    """
    tree = MerkleTree(leaves)
    return tree.root, tree.proofs()


def build_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """Root over raw leaf bytes (no proofs)."""
    return MerkleTree(leaves).root


def compute_hash_from_aunts(
    index: int,
    total: int,
    leaf: bytes,
    aunts: Sequence[bytes],
) -> bytes | None:
    """
    Fold a leaf hash and its aunts back to a root.

    Descends through the same split points used to build the tree; the
    last aunt pairs with the top-level subtree.

    Args:
        index: Leaf position
        total: Leaf count of the tree
        leaf: Leaf hash (already domain-separated)
        aunts: Sibling hashes, bottom-up

    Returns:
        The implied root, or None when index/total/aunts are inconsistent
    """
    if index < 0 or total <= 0 or index >= total:
        return None
    if total == 1:
        if aunts:
            return None
        return leaf
    if not aunts:
        return None
    num_left = split_point(total)
    if index < num_left:
        left = compute_hash_from_aunts(index, num_left, leaf, aunts[:-1])
        if left is None:
            return None
        return inner_hash(left, aunts[-1])
    right = compute_hash_from_aunts(index - num_left, total - num_left, leaf, aunts[:-1])
    if right is None:
        return None
    return inner_hash(aunts[-1], right)


def verify(proof: MerkleProof, root: bytes, leaf_bytes: bytes) -> bool:
    """
    Verify that leaf_bytes sits at proof.leaf_index under root.

    Fails closed: any mismatch or shape inconsistency returns False.

    Args:
        proof: Proof produced by MerkleTree.proof / build
        root: Expected 32-byte root
        leaf_bytes: Raw leaf bytes (hashed here)

    Returns:
        True if the proof is valid, False otherwise
    """
    if leaf_hash(leaf_bytes) != proof.leaf_hash:
        return False
    computed = compute_hash_from_aunts(
        proof.leaf_index,
        proof.total_leaves,
        proof.leaf_hash,
        proof.siblings,
    )
    return computed is not None and computed == root


def path_indices(index: int, total: int) -> list[bool]:
    """
    Left/right position of a leaf's ancestors, bottom-up.

    Entry i is True when the node at height i on the leaf's path is a
    right child, so its aunt is folded in on the left. The length equals
    the proof depth for that leaf.

    Args:
        index: Leaf position
        total: Leaf count of the tree

    Returns:
        Bits ordered like MerkleProof.siblings

    Raises:
        MalformedInputException: If index is out of range

    Example:
        >>> path_indices(4, 14)
        [False, False, True, False]
    """
    if not 0 <= index < total:
        raise MalformedInputException(
            f"Leaf index {index} out of range for {total} leaves"
        )
    bits: list[bool] = []
    while total > 1:
        k = split_point(total)
        if index < k:
            bits.append(False)
            total = k
        else:
            bits.append(True)
            index -= k
            total -= k
    bits.reverse()
    return bits


def compute_tree_depth(index: int, total: int) -> int:
    """Number of aunts in the proof for the leaf at index."""
    return len(path_indices(index, total))


__all__ = [
    "EMPTY_TREE_ROOT",
    "MerkleProof",
    "MerkleTree",
    "split_point",
    "build",
    "build_merkle_root",
    "compute_hash_from_aunts",
    "verify",
    "path_indices",
    "compute_tree_depth",
]
