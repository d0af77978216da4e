"""
Module 01 - Schemas & Canonicalization
File: commit.py

Purpose: Commit (the +2/3 precommit certificate for a block) and the
signed-block bundle a data source hands to the core.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bridge_core.crypto.signatures import SIGNATURE_SIZE

from .header import ADDRESS_SIZE, BlockID, HeaderFields, Timestamp
from .validator import ValidatorSet


class BlockIDFlag(IntEnum):
    """How a validator's slot in a commit should be read."""

    ABSENT = 1
    COMMIT = 2
    NIL = 3


class CommitSig(BaseModel):
    """One validator's entry in a commit, in validator-set order."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    block_id_flag: BlockIDFlag
    validator_address: bytes = Field(default=b"")
    timestamp: Timestamp = Field(default_factory=Timestamp)
    signature: bytes = Field(default=b"")

    @model_validator(mode="after")
    def validate_flag_consistency(self) -> "CommitSig":
        """Absent slots carry nothing; voting slots carry an address and signature."""
        if self.block_id_flag == BlockIDFlag.ABSENT:
            if self.validator_address or self.signature:
                raise ValueError("Absent commit signature must not carry address or signature")
            return self
        if len(self.validator_address) != ADDRESS_SIZE:
            raise ValueError(
                f"Validator address must be {ADDRESS_SIZE} bytes, got {len(self.validator_address)}"
            )
        if len(self.signature) != SIGNATURE_SIZE:
            raise ValueError(
                f"Signature must be {SIGNATURE_SIZE} bytes, got {len(self.signature)}"
            )
        return self

    @property
    def is_absent(self) -> bool:
        return self.block_id_flag == BlockIDFlag.ABSENT


class Commit(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    height: int = Field(..., gt=0)
    round: int = Field(default=0, ge=0, le=(1 << 31) - 1)
    block_id: BlockID
    signatures: tuple[CommitSig, ...] = Field(..., min_length=1)


class SignedBlock(BaseModel):
    """
    Header, the commit that finalized it, and the validator set that signed.

    Assembled by the data source from RPC output; one per height.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    header: HeaderFields
    commit: Commit
    validator_set: ValidatorSet

    @property
    def height(self) -> int:
        return self.header.height


__all__ = [
    "BlockIDFlag",
    "CommitSig",
    "Commit",
    "SignedBlock",
]
