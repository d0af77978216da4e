"""
Synthetic chain fixtures.

Builds small, fully signed Tendermint chains from deterministic Ed25519
seeds, so protocol tests can run without recorded network data.

Default chain: four validators with powers (40, 40, 10, 30) on mocha-4,
starting at height 11000. Validators 0 and 1 sign, which is exactly
2/3 of the total power.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from bridge_core.crypto.hashing import sha256
from bridge_core.crypto.signatures import public_key_from_seed, sign
from bridge_core.schemas.commit import BlockIDFlag, Commit, CommitSig, SignedBlock
from bridge_core.schemas.header import (
    BlockID,
    Consensus,
    HeaderFields,
    PartSetHeader,
    Timestamp,
)
from bridge_core.schemas.validator import Validator, ValidatorSet
from bridge_core.tendermint.validator_set import hash_validator_set
from bridge_core.tendermint.vote import CanonicalVote


CHAIN_ID = "mocha-4"
START_HEIGHT = 11000
POWERS = (40, 40, 10, 30)
DEFAULT_SIGNERS = (0, 1)
GENESIS_TIME = 1_700_000_000
BLOCK_TIME = 12


def validator_seed(index: int) -> bytes:
    """Deterministic 32-byte Ed25519 seed for validator number `index`."""
    return sha256(f"validator-{index}".encode())


@dataclass(frozen=True)
class Keyring:
    """Seeds and powers of one validator set, in set order."""
    seeds: tuple[bytes, ...]
    powers: tuple[int, ...]

    @property
    def validator_set(self) -> ValidatorSet:
        return ValidatorSet(validators=tuple(
            Validator(pub_key=public_key_from_seed(seed), voting_power=power)
            for seed, power in zip(self.seeds, self.powers)
        ))

    @property
    def validators_hash(self) -> bytes:
        return hash_validator_set(self.validator_set.validators)


def make_keyring(powers: Sequence[int] = POWERS, offset: int = 0) -> Keyring:
    """Validators offset..offset+len(powers)-1 with the given powers."""
    return Keyring(
        seeds=tuple(validator_seed(offset + i) for i in range(len(powers))),
        powers=tuple(powers),
    )


def block_time(height: int) -> Timestamp:
    return Timestamp(
        seconds=GENESIS_TIME + (height - START_HEIGHT) * BLOCK_TIME,
        nanos=123_456_789,
    )


def parts_header(height: int) -> PartSetHeader:
    return PartSetHeader(total=1, hash=sha256(f"parts-{height}".encode()))


def make_header(
    height: int,
    keyring: Keyring,
    *,
    next_keyring: Optional[Keyring] = None,
    prev_hash: Optional[bytes] = None,
    chain_id: str = CHAIN_ID,
) -> HeaderFields:
    next_keyring = next_keyring or keyring
    if prev_hash is None:
        prev_hash = sha256(f"header-{height - 1}".encode())
    return HeaderFields(
        version=Consensus(block=11, app=1),
        chain_id=chain_id,
        height=height,
        time=block_time(height),
        last_block_id=BlockID(hash=prev_hash, part_set_header=parts_header(height - 1)),
        last_commit_hash=sha256(f"last-commit-{height}".encode()),
        data_hash=sha256(f"data-{height}".encode()),
        validators_hash=keyring.validators_hash,
        next_validators_hash=next_keyring.validators_hash,
        consensus_hash=sha256(b"consensus-params"),
        app_hash=sha256(f"app-{height}".encode()),
        last_results_hash=sha256(f"results-{height}".encode()),
        evidence_hash=sha256(b""),
        proposer_address=keyring.validator_set.validators[0].address,
    )


def make_commit(
    header: HeaderFields,
    keyring: Keyring,
    *,
    signers: Iterable[int] = DEFAULT_SIGNERS,
    nil_voters: Iterable[int] = (),
    round: int = 0,
) -> Commit:
    """
    Commit for header. Validators in signers vote for the block, those in
    nil_voters vote nil, the rest are absent.
    """
    signers, nil_voters = set(signers), set(nil_voters)
    block_id = BlockID(hash=header.hash(), part_set_header=parts_header(header.height))
    validators = keyring.validator_set.validators
    vote_time = Timestamp(seconds=header.time.seconds + 1, nanos=53_091_307)

    signatures = []
    for i, (seed, validator) in enumerate(zip(keyring.seeds, validators)):
        if i in signers:
            flag, vote_block_id = BlockIDFlag.COMMIT, block_id
        elif i in nil_voters:
            flag, vote_block_id = BlockIDFlag.NIL, None
        else:
            signatures.append(CommitSig(block_id_flag=BlockIDFlag.ABSENT))
            continue
        vote = CanonicalVote(
            height=header.height,
            round=round,
            block_id=vote_block_id,
            timestamp=vote_time,
            chain_id=header.chain_id,
        )
        signatures.append(CommitSig(
            block_id_flag=flag,
            validator_address=validator.address,
            timestamp=vote_time,
            signature=sign(vote.sign_bytes(), seed),
        ))

    return Commit(
        height=header.height,
        round=round,
        block_id=block_id,
        signatures=tuple(signatures),
    )


def make_signed_block(
    height: int,
    keyring: Keyring,
    *,
    next_keyring: Optional[Keyring] = None,
    prev_hash: Optional[bytes] = None,
    signers: Iterable[int] = DEFAULT_SIGNERS,
    nil_voters: Iterable[int] = (),
    round: int = 0,
    chain_id: str = CHAIN_ID,
) -> SignedBlock:
    header = make_header(
        height,
        keyring,
        next_keyring=next_keyring,
        prev_hash=prev_hash,
        chain_id=chain_id,
    )
    commit = make_commit(header, keyring, signers=signers, nil_voters=nil_voters, round=round)
    return SignedBlock(header=header, commit=commit, validator_set=keyring.validator_set)


def make_chain(
    length: int = 2,
    *,
    start: int = START_HEIGHT,
    keyrings: Optional[Sequence[Keyring]] = None,
    signers: Iterable[int] = DEFAULT_SIGNERS,
    round: int = 0,
) -> list[SignedBlock]:
    """
    A linked chain of `length` signed blocks starting at `start`.

    keyrings gives the validator set per block (default: the same four
    validators throughout); each header's next_validators_hash is the
    set of the following block.
    """
    keyrings = list(keyrings) if keyrings is not None else [make_keyring()] * length
    signers = tuple(signers)
    blocks: list[SignedBlock] = []
    prev_hash: Optional[bytes] = None
    for i in range(length):
        next_keyring = keyrings[i + 1] if i + 1 < length else keyrings[i]
        block = make_signed_block(
            start + i,
            keyrings[i],
            next_keyring=next_keyring,
            prev_hash=prev_hash,
            signers=signers,
            round=round,
        )
        blocks.append(block)
        prev_hash = block.header.hash()
    return blocks
