"""
Module 08 - Vote Reconstructor Tests
Tests for bridge_core/tendermint/vote.py
"""
import pytest

from bridge_core.crypto.hashing import sha256
from bridge_core.schemas.commit import BlockIDFlag
from bridge_core.schemas.errors import (
    HashMismatchException,
    MalformedInputException,
    SignatureInvalidException,
)
from bridge_core.schemas.header import BlockID, PartSetHeader, Timestamp
from bridge_core.schemas.validator import DidNotSign, Padding, SignedSlot
from bridge_core.tendermint.vote import (
    HASH_OFFSET_NO_ROUND,
    HASH_OFFSET_WITH_ROUND,
    CanonicalVote,
    canonical_vote,
    collect_slots,
    verify_hash_in_message,
    verify_slot_signatures,
)

from fixtures.chain import make_keyring, make_signed_block


BLOCK_HASH = bytes.fromhex("8909e1b73b7d987e95a7541d96ed484c17a4b0411e98ee4b7c890ad21302ff8c")
PARTS_HASH = bytes.fromhex("61263df4855e55fcab7aab0a53ee32cf4f29a1101b56de4a9d249d44e4cf9628")
KNOWN_VOTE = (
    "6b080211de3202000000000022480a208909e1b73b7d987e95a7541d96ed484c17a4b0411e98ee4b"
    "7c890ad21302ff8c12240801122061263df4855e55fcab7aab0a53ee32cf4f29a1101b56de4a9d24"
    "9d44e4cf96282a0b089dce84a60610ebb7a81932076d6f6368612d33"
)


def known_vote(round: int = 0, block_id: BlockID | None = None) -> CanonicalVote:
    if block_id is None:
        block_id = BlockID(hash=BLOCK_HASH, part_set_header=PartSetHeader(total=1, hash=PARTS_HASH))
    return CanonicalVote(
        height=144094,
        round=round,
        block_id=block_id,
        timestamp=Timestamp(seconds=1690380061, nanos=53091307),
        chain_id="mocha-3",
    )


def replace_sig(block, index, **update):
    sigs = list(block.commit.signatures)
    sigs[index] = sigs[index].model_copy(update=update)
    commit = block.commit.model_copy(update={"signatures": tuple(sigs)})
    return block.model_copy(update={"commit": commit})


class TestCanonicalVote:
    """Sign-bytes reconstruction."""

    def test_known_sign_bytes(self):
        """Matches a recorded mocha-3 precommit."""
        assert known_vote().sign_bytes().hex() == KNOWN_VOTE

    def test_hash_offset_without_round(self):
        """Header hash starts at byte 16."""
        message = known_vote().sign_bytes()
        assert message[HASH_OFFSET_NO_ROUND:HASH_OFFSET_NO_ROUND + 32] == BLOCK_HASH
        assert verify_hash_in_message(message, BLOCK_HASH, has_round=False)

    def test_hash_offset_with_round(self):
        """A non-zero round shifts the hash to byte 25."""
        message = known_vote(round=2).sign_bytes()
        assert message[HASH_OFFSET_WITH_ROUND:HASH_OFFSET_WITH_ROUND + 32] == BLOCK_HASH
        assert verify_hash_in_message(message, BLOCK_HASH, has_round=True)
        assert not verify_hash_in_message(message, BLOCK_HASH, has_round=False)

    def test_nil_vote_has_no_block_id(self):
        """Nil votes omit field 4 and so carry no hash."""
        nil = CanonicalVote(
            height=144094,
            round=0,
            block_id=None,
            timestamp=Timestamp(seconds=1690380061, nanos=53091307),
            chain_id="mocha-3",
        )
        message = nil.sign_bytes()
        assert BLOCK_HASH not in message
        assert not verify_hash_in_message(message, BLOCK_HASH, has_round=False)

    def test_short_message_rejected(self):
        """Messages too short for the offset never match."""
        assert not verify_hash_in_message(b"\x00" * 20, BLOCK_HASH, has_round=False)

    def test_absent_signature_has_no_vote(self):
        """Absent entries cannot be rebuilt."""
        block = make_signed_block(11000, make_keyring())
        absent = block.commit.signatures[3]
        assert absent.block_id_flag == BlockIDFlag.ABSENT
        with pytest.raises(MalformedInputException):
            canonical_vote(block.header.chain_id, block.commit, absent)


class TestCollectSlots:
    """Classifying commit entries against the validator set."""

    def test_signed_nil_and_absent(self):
        """Signers, nil voters and absent validators each map to their slot."""
        block = make_signed_block(11000, make_keyring(), signers=(0, 1), nil_voters=(2,))
        slots = collect_slots(block.header, block.commit, block.validator_set, 8)
        assert len(slots) == 8
        assert isinstance(slots[0], SignedSlot)
        assert isinstance(slots[1], SignedSlot)
        assert isinstance(slots[2], DidNotSign) and slots[2].nil_vote
        assert isinstance(slots[3], DidNotSign) and not slots[3].nil_vote
        assert all(isinstance(s, Padding) for s in slots[4:])

    def test_signed_messages_carry_header_hash(self):
        """Each stored message verifies and holds the header hash."""
        block = make_signed_block(11000, make_keyring())
        slots = collect_slots(block.header, block.commit, block.validator_set)
        verify_slot_signatures(slots, block.header.hash(), has_round=False)

    def test_round_commit(self):
        """Commits from a later round use the shifted offset."""
        block = make_signed_block(11000, make_keyring(), round=3)
        slots = collect_slots(block.header, block.commit, block.validator_set)
        signed = [s for s in slots if isinstance(s, SignedSlot)]
        assert len(signed) == 2
        verify_slot_signatures(slots, block.header.hash(), has_round=True)

    def test_bad_signature(self):
        """A corrupted signature raises SignatureInvalid."""
        block = make_signed_block(11000, make_keyring())
        bad = bytearray(block.commit.signatures[1].signature)
        bad[0] ^= 0xFF
        block = replace_sig(block, 1, signature=bytes(bad))
        with pytest.raises(SignatureInvalidException) as exc_info:
            collect_slots(block.header, block.commit, block.validator_set)
        assert exc_info.value.details["validator_index"] == 1

    def test_address_mismatch(self):
        """A signature naming another validator is malformed."""
        block = make_signed_block(11000, make_keyring())
        other = block.validator_set.validators[2].address
        block = replace_sig(block, 0, validator_address=other)
        with pytest.raises(MalformedInputException):
            collect_slots(block.header, block.commit, block.validator_set)

    def test_commit_for_other_block(self):
        """Commit block id must be the header hash."""
        block = make_signed_block(11000, make_keyring())
        other = make_signed_block(11000, make_keyring(), prev_hash=sha256(b"fork"))
        with pytest.raises(HashMismatchException):
            collect_slots(other.header, block.commit, block.validator_set)

    def test_signature_count_mismatch(self):
        """One commit entry per validator."""
        block = make_signed_block(11000, make_keyring())
        short = block.commit.model_copy(update={"signatures": block.commit.signatures[:3]})
        with pytest.raises(MalformedInputException):
            collect_slots(block.header, short, block.validator_set)

    def test_message_size_limit(self):
        """Signed messages longer than the limit are rejected."""
        block = make_signed_block(11000, make_keyring())
        with pytest.raises(MalformedInputException):
            collect_slots(block.header, block.commit, block.validator_set, max_message_bytes=64)

    def test_tampered_slot_message(self):
        """A stored message edited after collection fails re-verification."""
        block = make_signed_block(11000, make_keyring())
        slots = list(collect_slots(block.header, block.commit, block.validator_set))
        first = slots[0]
        slots[0] = SignedSlot(
            validator=first.validator,
            signature=first.signature,
            message=first.message[:-1] + b"5",
        )
        with pytest.raises(SignatureInvalidException):
            verify_slot_signatures(slots, block.header.hash(), has_round=False)
