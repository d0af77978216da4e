"""
Module 04 - Enabled-Leaf Reduction
Fixed-capacity Merkle root over a power-of-two slot array where only a
prefix of the slots holds real leaves.

Owner: Protocol/Crypto Engineer
Module ID: M04

Reduction rule, applied pairwise layer by layer:
- both children enabled  -> inner_hash(left, right), enabled
- exactly one enabled    -> that child's hash, enabled
- neither enabled        -> disabled (hash irrelevant)

For an enabled prefix of length n this yields the same root as
MerkleTree over the n real leaves. The slot count is fixed by the
caller (a circuit or deployment bound), never by the input size.

Disabled slots must all trail the enabled ones. An interleaved layout
is rejected: the reduction would then hash a shape no Tendermint tree
produces.
"""
from __future__ import annotations

from typing import Sequence

from bridge_core.crypto.hashing import HASH_SIZE, inner_hash, leaf_hash
from bridge_core.schemas.errors import (
    CapacityExceededException,
    MalformedInputException,
)


_DISABLED_HASH = bytes(HASH_SIZE)


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def check_enabled_prefix(enabled: Sequence[bool]) -> int:
    """
    Validate that enabled flags form a prefix and return its length.

    Raises:
        MalformedInputException: If an enabled slot follows a disabled one
    """
    count = 0
    for i, flag in enumerate(enabled):
        if flag:
            if count != i:
                raise MalformedInputException(
                    f"Enabled slot {i} follows a disabled slot; padding must be trailing",
                    details={"slot": i},
                )
            count += 1
    return count


def reduce_enabled(hashes: Sequence[bytes], enabled: Sequence[bool]) -> bytes:
    """
    Reduce slot hashes to a root with the enable-bit rule.

    Args:
        hashes: One 32-byte hash per slot (disabled slot values are ignored)
        enabled: One flag per slot

    Returns:
        32-byte root

    Raises:
        MalformedInputException: On length mismatch, a slot count that is
            not a power of two, no enabled slot, or non-trailing padding
    """
    if len(hashes) != len(enabled):
        raise MalformedInputException(
            f"Got {len(hashes)} hashes for {len(enabled)} enable flags"
        )
    if not is_power_of_two(len(hashes)):
        raise MalformedInputException(
            f"Slot count must be a power of two, got {len(hashes)}"
        )
    if check_enabled_prefix(enabled) == 0:
        raise MalformedInputException("No enabled slots to reduce")

    layer = [(h if e else _DISABLED_HASH, bool(e)) for h, e in zip(hashes, enabled)]
    while len(layer) > 1:
        next_layer: list[tuple[bytes, bool]] = []
        for i in range(0, len(layer), 2):
            (left, left_on), (right, right_on) = layer[i], layer[i + 1]
            if left_on and right_on:
                next_layer.append((inner_hash(left, right), True))
            elif left_on:
                next_layer.append((left, True))
            elif right_on:
                next_layer.append((right, True))
            else:
                next_layer.append((_DISABLED_HASH, False))
        layer = next_layer
    return layer[0][0]


def hash_enabled_leaves(leaves: Sequence[bytes], enabled: Sequence[bool]) -> bytes:
    """
    Leaf-hash raw slot bytes and reduce them.

    Disabled slots may carry any bytes (commonly empty); they are not hashed.
    """
    if len(leaves) != len(enabled):
        raise MalformedInputException(
            f"Got {len(leaves)} leaves for {len(enabled)} enable flags"
        )
    hashes = [leaf_hash(leaf) if on else _DISABLED_HASH for leaf, on in zip(leaves, enabled)]
    return reduce_enabled(hashes, enabled)


def padded_root(leaves: Sequence[bytes], capacity: int) -> bytes:
    """
    Root over real leaves padded with disabled slots up to capacity.

    Args:
        leaves: Real leaf bytes (all enabled)
        capacity: Total slot count, a power of two

    Raises:
        MalformedInputException: If capacity is not a power of two or
                                 leaves is empty
        CapacityExceededException: If there are more leaves than slots
    """
    if not is_power_of_two(capacity):
        raise MalformedInputException(
            f"Capacity must be a power of two, got {capacity}"
        )
    if len(leaves) > capacity:
        raise CapacityExceededException(
            f"{len(leaves)} leaves exceed capacity {capacity}",
            size=len(leaves),
            capacity=capacity,
        )
    padding = capacity - len(leaves)
    slots = list(leaves) + [b""] * padding
    enabled = [True] * len(leaves) + [False] * padding
    return hash_enabled_leaves(slots, enabled)


__all__ = [
    "is_power_of_two",
    "next_power_of_two",
    "check_enabled_prefix",
    "reduce_enabled",
    "hash_enabled_leaves",
    "padded_root",
]
