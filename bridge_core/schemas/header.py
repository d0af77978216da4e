"""
Module 01 - Schemas & Canonicalization
File: header.py

Purpose: Block header schema and its 14 protobuf-encoded Merkle leaves.

The leaf encodings reproduce Tendermint's per-field hashing exactly:
- version           Consensus{block, app}
- chain_id          StringValue
- height            Int64Value
- time              Timestamp{seconds, nanos}
- last_block_id     BlockID{hash, part_set_header{total, hash}}
- hash fields,
  app_hash,
  proposer_address  BytesValue
Zero values are omitted (proto3), except the part-set header, which is a
non-nullable sub-message and is always written.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bridge_core.crypto.hashing import HASH_SIZE
from bridge_core.encoding.protobuf import (
    bytes_field,
    int64_field,
    message_field,
    varint_field,
)
from bridge_core.merkle.merkle_tree import build_merkle_root


U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1
I64_MAX = (1 << 63) - 1
ADDRESS_SIZE = 20
HEADER_FIELD_COUNT = 14


def _check_hash_length(value: bytes, allow_empty: bool = True) -> bytes:
    if len(value) == HASH_SIZE or (allow_empty and len(value) == 0):
        return value
    raise ValueError(f"Hash must be {HASH_SIZE} bytes, got {len(value)}")


class Consensus(BaseModel):
    """Block and app protocol versions."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    block: int = Field(default=0, ge=0, le=U64_MAX)
    app: int = Field(default=0, ge=0, le=U64_MAX)

    def encode(self) -> bytes:
        return varint_field(1, self.block) + varint_field(2, self.app)


class Timestamp(BaseModel):
    """Seconds/nanos since the Unix epoch, as google.protobuf.Timestamp."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    seconds: int = Field(default=0, ge=-(1 << 63), le=I64_MAX)
    nanos: int = Field(default=0, ge=0, le=999_999_999)

    def encode(self) -> bytes:
        return int64_field(1, self.seconds) + int64_field(2, self.nanos)


class PartSetHeader(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    total: int = Field(default=0, ge=0, le=U32_MAX)
    hash: bytes = Field(default=b"")

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: bytes) -> bytes:
        return _check_hash_length(v)

    def encode(self) -> bytes:
        return varint_field(1, self.total) + bytes_field(2, self.hash)


class BlockID(BaseModel):
    """Block hash plus the part-set header of the block's parts."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    hash: bytes = Field(default=b"")
    part_set_header: PartSetHeader = Field(default_factory=PartSetHeader)

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: bytes) -> bytes:
        return _check_hash_length(v)

    @property
    def is_zero(self) -> bool:
        return not self.hash and self.part_set_header == PartSetHeader()

    def encode(self) -> bytes:
        return bytes_field(1, self.hash) + message_field(2, self.part_set_header.encode())


class HeaderFields(BaseModel):
    """
    Tendermint block header.

    Field order is the canonical Merkle leaf order; see HeaderField in
    bridge_core.tendermint.header_tree for the indices.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: Consensus = Field(default_factory=Consensus)
    chain_id: str = Field(..., min_length=1, max_length=50)
    height: int = Field(..., gt=0, le=I64_MAX)
    time: Timestamp = Field(default_factory=Timestamp)
    last_block_id: BlockID = Field(default_factory=BlockID)
    last_commit_hash: bytes = Field(default=b"")
    data_hash: bytes = Field(default=b"")
    validators_hash: bytes = Field(...)
    next_validators_hash: bytes = Field(...)
    consensus_hash: bytes = Field(default=b"")
    app_hash: bytes = Field(default=b"")
    last_results_hash: bytes = Field(default=b"")
    evidence_hash: bytes = Field(default=b"")
    proposer_address: bytes = Field(default=b"")

    @field_validator(
        "last_commit_hash",
        "data_hash",
        "consensus_hash",
        "last_results_hash",
        "evidence_hash",
    )
    @classmethod
    def validate_optional_hash(cls, v: bytes) -> bytes:
        return _check_hash_length(v)

    @field_validator("validators_hash", "next_validators_hash")
    @classmethod
    def validate_required_hash(cls, v: bytes) -> bytes:
        return _check_hash_length(v, allow_empty=False)

    @field_validator("proposer_address")
    @classmethod
    def validate_proposer_address(cls, v: bytes) -> bytes:
        if v and len(v) != ADDRESS_SIZE:
            raise ValueError(f"Proposer address must be {ADDRESS_SIZE} bytes, got {len(v)}")
        return v

    def encode_leaves(self) -> list[bytes]:
        """The 14 Merkle leaves in canonical order."""
        return [
            self.version.encode(),
            bytes_field(1, self.chain_id.encode("utf-8")),
            int64_field(1, self.height),
            self.time.encode(),
            self.last_block_id.encode(),
            bytes_field(1, self.last_commit_hash),
            bytes_field(1, self.data_hash),
            bytes_field(1, self.validators_hash),
            bytes_field(1, self.next_validators_hash),
            bytes_field(1, self.consensus_hash),
            bytes_field(1, self.app_hash),
            bytes_field(1, self.last_results_hash),
            bytes_field(1, self.evidence_hash),
            bytes_field(1, self.proposer_address),
        ]

    def hash(self) -> bytes:
        """Header hash: Merkle root over encode_leaves()."""
        return build_merkle_root(self.encode_leaves())


__all__ = [
    "ADDRESS_SIZE",
    "HEADER_FIELD_COUNT",
    "Consensus",
    "Timestamp",
    "PartSetHeader",
    "BlockID",
    "HeaderFields",
]
