"""
Module 04 - Merkle Tree and Commitments
Tendermint Merkle tree construction + proof generation/verification.

Owner: Protocol/Crypto Engineer
Module ID: M04

This module provides:
- MerkleTree / build: root and per-leaf proofs from raw leaf bytes
- verify: check a proof against a root
- path_indices: per-level left/right bits for a leaf
- reduce_enabled / padded_root: fixed-capacity roots with disabled slots
- InclusionProof: leaf + path bits + aunts, checkable without the tree

Canonical Commitment Rules:
1. Leaf hashing: sha256(0x00 || leaf)
2. Parent hashing: sha256(0x01 || left || right)
3. Shape: left subtree holds the largest power of two below n
4. Empty tree: sha256(b"")
5. Single leaf: root = leaf_hash(leaf)

Usage:
    from bridge_core.merkle import MerkleTree, verify

    tree = MerkleTree(leaves)
    proof = tree.proof(2)
    assert verify(proof, tree.root, leaves[2])
"""
from .merkle_tree import (
    EMPTY_TREE_ROOT,
    MerkleProof,
    MerkleTree,
    split_point,
    build,
    build_merkle_root,
    compute_hash_from_aunts,
    verify,
    path_indices,
    compute_tree_depth,
)

from .enabled_tree import (
    is_power_of_two,
    next_power_of_two,
    check_enabled_prefix,
    reduce_enabled,
    hash_enabled_leaves,
    padded_root,
)

from .merkle_proofs import (
    InclusionProof,
    MerkleProver,
    MerkleVerifier,
)


__all__ = [
    # Core types
    "MerkleProof",
    "MerkleTree",
    "InclusionProof",
    "EMPTY_TREE_ROOT",
    # Core functions
    "split_point",
    "build",
    "build_merkle_root",
    "compute_hash_from_aunts",
    "verify",
    "path_indices",
    "compute_tree_depth",
    # Enabled-slot reduction
    "is_power_of_two",
    "next_power_of_two",
    "check_enabled_prefix",
    "reduce_enabled",
    "hash_enabled_leaves",
    "padded_root",
    # Convenience classes
    "MerkleProver",
    "MerkleVerifier",
]
