"""
Module 01 - Schemas & Canonicalization
File: validator.py

Purpose: Validator and validator-set schemas, and the per-slot tagged
variants used once a commit has been checked against a set.

A slot is exactly one of:
- SignedSlot   the validator signed this block; its vote is attached
- DidNotSign   a real validator whose signature is absent or nil
- Padding      a filler slot up to the power-of-two set size
Padding never carries a validator, so it can neither sign nor hold power.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bridge_core.crypto.hashing import sha256
from bridge_core.crypto.signatures import PUBKEY_SIZE, SIGNATURE_SIZE

from .errors import MalformedInputException
from .header import ADDRESS_SIZE


MAX_VOTING_POWER = (1 << 63) - 1


class Validator(BaseModel):
    """An Ed25519 validator with its voting power."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    pub_key: bytes = Field(..., description="Raw 32-byte Ed25519 public key")
    voting_power: int = Field(..., ge=0, le=MAX_VOTING_POWER)

    @field_validator("pub_key")
    @classmethod
    def validate_pub_key(cls, v: bytes) -> bytes:
        if len(v) != PUBKEY_SIZE:
            raise ValueError(f"Public key must be {PUBKEY_SIZE} bytes, got {len(v)}")
        return v

    @property
    def address(self) -> bytes:
        """First 20 bytes of sha256(pub_key)."""
        return sha256(self.pub_key)[:ADDRESS_SIZE]


class ValidatorSet(BaseModel):
    """
    Ordered validator set as returned by the chain.

    Order is protocol-defined and never re-sorted. The total voting power
    is not stored; see bridge_core.tendermint.voting_power.total_power.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    validators: tuple[Validator, ...] = Field(..., min_length=1)

    def __len__(self) -> int:
        return len(self.validators)


@dataclass(frozen=True)
class SignedSlot:
    """Validator whose signature over `message` verified for this block."""
    validator: Validator
    signature: bytes
    message: bytes

    def __post_init__(self) -> None:
        if len(self.signature) != SIGNATURE_SIZE:
            raise MalformedInputException(
                f"Signature must be {SIGNATURE_SIZE} bytes, got {len(self.signature)}"
            )

    enabled = True
    signed = True

    @property
    def voting_power(self) -> int:
        return self.validator.voting_power


@dataclass(frozen=True)
class DidNotSign:
    """Real validator with no vote for this block (absent or nil)."""
    validator: Validator
    nil_vote: bool = False

    enabled = True
    signed = False

    @property
    def voting_power(self) -> int:
        return self.validator.voting_power


@dataclass(frozen=True)
class Padding:
    """Filler slot beyond the real validators."""

    enabled = False
    signed = False
    voting_power = 0


ValidatorSlot = Union[SignedSlot, DidNotSign, Padding]


__all__ = [
    "MAX_VOTING_POWER",
    "Validator",
    "ValidatorSet",
    "SignedSlot",
    "DidNotSign",
    "Padding",
    "ValidatorSlot",
]
