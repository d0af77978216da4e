"""
Module 06 - Validator Set Hasher
Protobuf validator leaves and the validator-set Merkle root.

Owner: Protocol/Crypto Engineer
Module ID: M06

Leaf layout (SimpleValidator{pub_key: PublicKey{ed25519}, voting_power}):

    [10, 34, 10, 32] || pub_key (32) || 16 || varint(voting_power)

giving 38..46 bytes depending on the power. The set root is computed
over a power-of-two slot array with the enable-bit reduction, so any
real validator count hashes to the same root Tendermint computes.
"""
from __future__ import annotations

from typing import Sequence

from bridge_core.crypto.signatures import PUBKEY_SIZE
from bridge_core.encoding.protobuf import encode_varint
from bridge_core.merkle.enabled_tree import hash_enabled_leaves, next_power_of_two
from bridge_core.schemas.errors import (
    CapacityExceededException,
    MalformedInputException,
)
from bridge_core.schemas.validator import (
    MAX_VOTING_POWER,
    Padding,
    Validator,
    ValidatorSlot,
)


# field 1 (pub_key, len 34) > field 1 (ed25519, len 32)
VALIDATOR_LEAF_PREFIX = bytes([10, 34, 10, 32])
# field 2, varint
VOTING_POWER_TAG = bytes([16])

MIN_LEAF_BYTES = len(VALIDATOR_LEAF_PREFIX) + PUBKEY_SIZE + 1 + 1
MAX_LEAF_BYTES = len(VALIDATOR_LEAF_PREFIX) + PUBKEY_SIZE + 1 + 9


def encode_validator(pub_key: bytes, voting_power: int) -> bytes:
    """
    Encode one validator as its Merkle leaf.

    Args:
        pub_key: Raw 32-byte Ed25519 public key
        voting_power: Power in [0, 2^63 - 1]

    Returns:
        38..46 leaf bytes

    Raises:
        MalformedInputException: On a wrong key length or out-of-range power

    Example:
        >>> len(encode_validator(bytes(32), 1))
        38
    """
    if len(pub_key) != PUBKEY_SIZE:
        raise MalformedInputException(
            f"Public key must be {PUBKEY_SIZE} bytes, got {len(pub_key)}"
        )
    if not 0 <= voting_power <= MAX_VOTING_POWER:
        raise MalformedInputException(
            f"Voting power out of range: {voting_power}"
        )
    return VALIDATOR_LEAF_PREFIX + pub_key + VOTING_POWER_TAG + encode_varint(voting_power)


def validator_leaf(validator: Validator) -> bytes:
    return encode_validator(validator.pub_key, validator.voting_power)


def pad_slots(slots: Sequence[ValidatorSlot], size: int | None = None) -> tuple[ValidatorSlot, ...]:
    """
    Append Padding slots up to size (default: next power of two).

    Raises:
        CapacityExceededException: If there are more slots than size
    """
    target = next_power_of_two(len(slots)) if size is None else size
    if len(slots) > target:
        raise CapacityExceededException(
            f"{len(slots)} validators exceed slot count {target}",
            size=len(slots),
            capacity=target,
        )
    return tuple(slots) + (Padding(),) * (target - len(slots))


def hash_validator_slots(slots: Sequence[ValidatorSlot]) -> bytes:
    """
    Validator-set root over a padded slot array.

    Padding slots are disabled and must all trail the real validators.
    """
    leaves = [b"" if isinstance(slot, Padding) else validator_leaf(slot.validator) for slot in slots]
    enabled = [slot.enabled for slot in slots]
    return hash_enabled_leaves(leaves, enabled)


def hash_validator_set(validators: Sequence[Validator], slot_count: int | None = None) -> bytes:
    """
    Validator-set hash as committed in a header's validators_hash.

    Args:
        validators: Validators in set order
        slot_count: Power-of-two slot count; defaults to the next power of
            two. Any count large enough gives the same root.

    Returns:
        32-byte root

    Raises:
        MalformedInputException: If the set is empty or slot_count is not a
            power of two
        CapacityExceededException: If the set is larger than slot_count
    """
    if not validators:
        raise MalformedInputException("Validator set is empty")
    size = next_power_of_two(len(validators)) if slot_count is None else slot_count
    if len(validators) > size:
        raise CapacityExceededException(
            f"{len(validators)} validators exceed slot count {size}",
            size=len(validators),
            capacity=size,
        )
    leaves = [validator_leaf(v) for v in validators] + [b""] * (size - len(validators))
    enabled = [True] * len(validators) + [False] * (size - len(validators))
    return hash_enabled_leaves(leaves, enabled)


__all__ = [
    "VALIDATOR_LEAF_PREFIX",
    "VOTING_POWER_TAG",
    "MIN_LEAF_BYTES",
    "MAX_LEAF_BYTES",
    "encode_validator",
    "validator_leaf",
    "pad_slots",
    "hash_validator_slots",
    "hash_validator_set",
]
