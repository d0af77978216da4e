"""
Module 01 - Schemas & Canonicalization
File: proof.py

Purpose: Proof objects produced by the Skip/Step protocol and the data
commitment aggregator. They expose every intermediate value the circuit
layer re-checks (leaf bytes, path bits, aunts, slot flags, power sums),
not only a final boolean.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bridge_core.crypto.hashing import HASH_SIZE
from bridge_core.merkle.merkle_proofs import InclusionProof

from .validator import Validator, ValidatorSlot


@dataclass(frozen=True)
class TrustOverlap:
    """
    Power of target signers that were also members of the trusted set.

    Attributes:
        accumulated: Trusted-set power of the overlapping signers
        trusted_total: Total power of the trusted set
        numerator / denominator: Trust fraction the overlap was held to
        trusted_validators: The trusted set, in chain order
        trusted_validators_proof: Trusted header proof for validators_hash,
            which the trusted set must hash to
    """
    accumulated: int
    trusted_total: int
    numerator: int
    denominator: int
    trusted_validators: tuple[Validator, ...]
    trusted_validators_proof: InclusionProof


@dataclass(frozen=True)
class BridgeProof:
    """
    Fields shared by both proof variants.

    Attributes:
        trusted_header_hash: Hash of the header trust starts from
        target_header_hash: Hash of the header being proven
        trusted_height / target_height: Heights of the two headers
        validator_slots: Target validator set padded to a power of two
        validator_set_hash: Enable-bit root over the slots
        field_proofs: Target header proofs for last_block_id, data_hash,
                      validators_hash and next_validators_hash, in that order
        height_proof: Target header proof for the height field
        trusted_height_proof: Trusted header proof for the height field
        round_present: Whether the signed messages encode a non-zero round
        accumulated_power: Power of the validators that signed
        total_power: Power of the whole target set
    """
    trusted_header_hash: bytes
    target_header_hash: bytes
    trusted_height: int
    target_height: int
    validator_slots: tuple[ValidatorSlot, ...]
    validator_set_hash: bytes
    field_proofs: tuple[InclusionProof, ...]
    height_proof: InclusionProof
    trusted_height_proof: InclusionProof
    round_present: bool
    accumulated_power: int
    total_power: int

    def field_proof(self, index: int) -> InclusionProof:
        for proof in self.field_proofs:
            if proof.index == index:
                return proof
        raise KeyError(index)


@dataclass(frozen=True)
class StepProof(BridgeProof):
    """
    Trusted height N to N+1.

    Attributes:
        trusted_next_validators_proof: Trusted header proof for
            next_validators_hash, equal to validator_set_hash
        prev_header_hash: Hash read from the target's last_block_id leaf;
            equals trusted_header_hash
    """
    trusted_next_validators_proof: InclusionProof
    prev_header_hash: bytes

    kind = "step"


@dataclass(frozen=True)
class SkipProof(BridgeProof):
    """
    Trusted height N to any M > N.

    Attributes:
        trust_overlap: Overlap with the trusted validator set, or None when
            the check was not requested
    """
    trust_overlap: TrustOverlap | None

    kind = "skip"


AnyBridgeProof = Union[StepProof, SkipProof]


class DataCommitmentRange(BaseModel):
    """
    Window [start_height, end_height) of data hashes.

    data_hashes[i] belongs to height start_height + i; the end header
    closes the window and contributes no data hash.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    start_height: int = Field(..., gt=0)
    start_header: bytes
    end_height: int = Field(..., gt=0)
    end_header: bytes
    data_hashes: tuple[bytes, ...]

    @model_validator(mode="after")
    def validate_window(self) -> "DataCommitmentRange":
        if self.start_height >= self.end_height:
            raise ValueError(
                f"start_height {self.start_height} must be below end_height {self.end_height}"
            )
        if len(self.data_hashes) != self.end_height - self.start_height:
            raise ValueError(
                f"Expected {self.end_height - self.start_height} data hashes, "
                f"got {len(self.data_hashes)}"
            )
        for name, value in (("start_header", self.start_header), ("end_header", self.end_header)):
            if len(value) != HASH_SIZE:
                raise ValueError(f"{name} must be {HASH_SIZE} bytes, got {len(value)}")
        for i, data_hash in enumerate(self.data_hashes):
            if len(data_hash) != HASH_SIZE:
                raise ValueError(f"data_hashes[{i}] must be {HASH_SIZE} bytes, got {len(data_hash)}")
        return self

    @property
    def heights(self) -> range:
        return range(self.start_height, self.end_height)


@dataclass(frozen=True)
class DataCommitmentProof:
    """
    Commitment over a header chain, checkable from proofs alone.

    Attributes:
        window: The committed range
        capacity: Leaf slot count of the commitment tree
        header_hashes: Hash of every header start..end inclusive
        data_hash_proofs: data_hash field proof per height start..end-1
        last_block_id_proofs: last_block_id field proof per height
            start+1..end, linking each header to its predecessor
        commitment_root: Root over (data_hash, height) leaves
    """
    window: DataCommitmentRange
    capacity: int
    header_hashes: tuple[bytes, ...]
    data_hash_proofs: tuple[InclusionProof, ...]
    last_block_id_proofs: tuple[InclusionProof, ...]
    commitment_root: bytes


__all__ = [
    "TrustOverlap",
    "BridgeProof",
    "StepProof",
    "SkipProof",
    "AnyBridgeProof",
    "DataCommitmentRange",
    "DataCommitmentProof",
]
