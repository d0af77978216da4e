"""
Module 08 - Vote Reconstructor
Rebuilds the canonical precommit bytes each validator signed and checks
the signatures of a commit against its validator set.

Owner: Protocol/Crypto Engineer
Module ID: M08

CanonicalVote wire layout (length-prefixed):

    08 02                        type = precommit
    11 <8 bytes LE>              height (sfixed64, omitted if 0)
    19 <8 bytes LE>              round  (sfixed64, omitted if 0)
    22 len { 0a 20 <hash>        block_id (omitted for nil votes)
             12 len { 08 total, 12 20 <parts hash> } }
    2a len { 08 secs, 10 nanos } timestamp (always present)
    32 len <chain_id>

With a one-byte length prefix the block hash therefore starts at byte
16, or at byte 25 when a round is encoded. Round presence is a property
of the commit, shared by all of its votes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from bridge_core.crypto.hashing import HASH_SIZE
from bridge_core.crypto.signatures import verify as verify_signature
from bridge_core.encoding.protobuf import (
    bytes_field,
    length_prefixed,
    message_field,
    sfixed64_field,
    varint_field,
)
from bridge_core.schemas.commit import BlockIDFlag, Commit, CommitSig
from bridge_core.schemas.errors import (
    HashMismatchException,
    MalformedInputException,
    SignatureInvalidException,
)
from bridge_core.schemas.header import BlockID, HeaderFields, Timestamp
from bridge_core.schemas.validator import (
    DidNotSign,
    SignedSlot,
    ValidatorSet,
    ValidatorSlot,
)
from bridge_core.tendermint.validator_set import pad_slots

logger = logging.getLogger(__name__)


PRECOMMIT_TYPE = 2
HASH_OFFSET_NO_ROUND = 16
HASH_OFFSET_WITH_ROUND = 25


@dataclass(frozen=True)
class CanonicalVote:
    """The record a validator signs for a precommit."""
    height: int
    round: int
    block_id: BlockID | None
    timestamp: Timestamp
    chain_id: str

    def encode(self) -> bytes:
        out = varint_field(1, PRECOMMIT_TYPE)
        out += sfixed64_field(2, self.height)
        out += sfixed64_field(3, self.round)
        if self.block_id is not None and not self.block_id.is_zero:
            psh = self.block_id.part_set_header
            canonical_psh = varint_field(1, psh.total) + bytes_field(2, psh.hash)
            canonical_block_id = bytes_field(1, self.block_id.hash) + message_field(2, canonical_psh)
            out += message_field(4, canonical_block_id)
        out += message_field(5, self.timestamp.encode())
        out += bytes_field(6, self.chain_id.encode("utf-8"))
        return out

    def sign_bytes(self) -> bytes:
        """Length-delimited encoding, exactly as signed."""
        return length_prefixed(self.encode())


def round_present(commit: Commit) -> bool:
    return commit.round > 0


def header_hash_offset(has_round: bool) -> int:
    return HASH_OFFSET_WITH_ROUND if has_round else HASH_OFFSET_NO_ROUND


def canonical_vote(chain_id: str, commit: Commit, sig: CommitSig) -> CanonicalVote:
    """
    Canonical vote for one commit signature.

    Raises:
        MalformedInputException: For an absent signature (nothing was signed)
    """
    if sig.block_id_flag == BlockIDFlag.ABSENT:
        raise MalformedInputException("Absent commit signature has no vote to rebuild")
    block_id = commit.block_id if sig.block_id_flag == BlockIDFlag.COMMIT else None
    return CanonicalVote(
        height=commit.height,
        round=commit.round,
        block_id=block_id,
        timestamp=sig.timestamp,
        chain_id=chain_id,
    )


def vote_sign_bytes(chain_id: str, commit: Commit, sig: CommitSig) -> bytes:
    return canonical_vote(chain_id, commit, sig).sign_bytes()


def verify_hash_in_message(signed_bytes: bytes, expected_header_hash: bytes, has_round: bool) -> bool:
    """
    Check the header hash sits at the fixed offset for the round case.

    Only the offset selected by has_round is inspected.

    Example:
        >>> verify_hash_in_message(message, header_hash, has_round=False)
        True
    """
    if len(expected_header_hash) != HASH_SIZE:
        return False
    offset = header_hash_offset(has_round)
    if len(signed_bytes) < offset + HASH_SIZE:
        return False
    return signed_bytes[offset:offset + HASH_SIZE] == expected_header_hash


def collect_slots(
    header: HeaderFields,
    commit: Commit,
    validator_set: ValidatorSet,
    slot_count: int | None = None,
    max_message_bytes: int | None = None,
) -> tuple[ValidatorSlot, ...]:
    """
    Check every commit signature and classify each validator.

    Slot i belongs to validator i. Absent entries become DidNotSign, nil
    votes are signature-checked and become DidNotSign, commit votes are
    signature-checked, must carry the header hash at the expected offset,
    and become SignedSlot. The result is padded to slot_count.

    Args:
        header: Header the commit finalizes
        commit: Commit for that header
        validator_set: Set that produced the commit
        slot_count: Power-of-two slot count (default: next power of two)
        max_message_bytes: Upper bound on a signed message, if any

    Returns:
        Padded slot tuple

    Raises:
        MalformedInputException: Height/length/address inconsistencies or
            an oversized message
        HashMismatchException: Commit is for a different block
        SignatureInvalidException: A signature does not verify
        CapacityExceededException: More validators than slots
    """
    header_hash = header.hash()
    if commit.height != header.height:
        raise MalformedInputException(
            f"Commit height {commit.height} does not match header height {header.height}"
        )
    if commit.block_id.hash != header_hash:
        raise HashMismatchException(
            "Commit block id does not match header hash",
            expected=header_hash,
            actual=commit.block_id.hash,
        )
    if len(commit.signatures) != len(validator_set):
        raise MalformedInputException(
            f"Commit has {len(commit.signatures)} signatures for "
            f"{len(validator_set)} validators"
        )

    has_round = round_present(commit)
    slots: list[ValidatorSlot] = []
    for i, (sig, validator) in enumerate(zip(commit.signatures, validator_set.validators)):
        if sig.is_absent:
            slots.append(DidNotSign(validator=validator))
            continue
        if sig.validator_address != validator.address:
            raise MalformedInputException(
                f"Commit signature {i} names a different validator",
                details={
                    "validator_index": i,
                    "expected": validator.address.hex(),
                    "actual": sig.validator_address.hex(),
                },
            )
        message = vote_sign_bytes(header.chain_id, commit, sig)
        if max_message_bytes is not None and len(message) > max_message_bytes:
            raise MalformedInputException(
                f"Signed message of validator {i} is {len(message)} bytes, "
                f"limit is {max_message_bytes}",
                details={"validator_index": i},
            )
        if not verify_signature(message, sig.signature, validator.pub_key):
            raise SignatureInvalidException(
                f"Signature of validator {i} does not verify",
                validator_index=i,
            )
        if sig.block_id_flag == BlockIDFlag.NIL:
            slots.append(DidNotSign(validator=validator, nil_vote=True))
            continue
        if not verify_hash_in_message(message, header_hash, has_round):
            raise HashMismatchException(
                f"Signed message of validator {i} does not carry the header hash",
                expected=header_hash,
                details={"validator_index": i, "round_present": has_round},
            )
        slots.append(SignedSlot(validator=validator, signature=sig.signature, message=message))

    signed = sum(1 for slot in slots if isinstance(slot, SignedSlot))
    logger.debug(
        f"Height {header.height}: {signed}/{len(slots)} validators signed "
        f"(round_present={has_round})"
    )
    return pad_slots(slots, slot_count)


def verify_slot_signatures(
    slots: Sequence[ValidatorSlot],
    header_hash: bytes,
    has_round: bool,
) -> None:
    """
    Re-check the signed slots of a finished proof.

    Raises:
        SignatureInvalidException: A stored signature does not verify
        HashMismatchException: A stored message lacks the header hash
    """
    for i, slot in enumerate(slots):
        if not isinstance(slot, SignedSlot):
            continue
        if not verify_signature(slot.message, slot.signature, slot.validator.pub_key):
            raise SignatureInvalidException(
                f"Signature in slot {i} does not verify",
                validator_index=i,
            )
        if not verify_hash_in_message(slot.message, header_hash, has_round):
            raise HashMismatchException(
                f"Message in slot {i} does not carry the header hash",
                expected=header_hash,
                details={"validator_index": i},
            )


__all__ = [
    "PRECOMMIT_TYPE",
    "HASH_OFFSET_NO_ROUND",
    "HASH_OFFSET_WITH_ROUND",
    "CanonicalVote",
    "round_present",
    "header_hash_offset",
    "canonical_vote",
    "vote_sign_bytes",
    "verify_hash_in_message",
    "collect_slots",
    "verify_slot_signatures",
]
