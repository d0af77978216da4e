"""
Module 11 - RPC JSON Codec

Purpose: Convert Tendermint RPC JSON (as returned by /commit and
/validators and stored in fixture files) into core schemas, and back.

Conventions of the RPC encoding:
- 64-bit integers are JSON strings
- hashes and addresses are upper-case hex
- public keys and signatures are base64
- times are RFC 3339 with up to nine fractional digits

Any decoding problem is raised as MalformedInputException.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from bridge_core.crypto.hashing import from_hex
from bridge_core.schemas.commit import BlockIDFlag, Commit, CommitSig, SignedBlock
from bridge_core.schemas.errors import MalformedInputException
from bridge_core.schemas.header import (
    BlockID,
    Consensus,
    HeaderFields,
    PartSetHeader,
    Timestamp,
)
from bridge_core.schemas.validator import Validator, ValidatorSet


ED25519_KEY_TYPE = "tendermint/PubKeyEd25519"
ZERO_TIME = "0001-01-01T00:00:00Z"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TIME_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?(Z|[+-]\d{2}:\d{2})$"
)


# =============================================================================
# Scalar codecs
# =============================================================================

def parse_timestamp(value: str) -> Timestamp:
    """
    Parse an RFC 3339 time into seconds and nanos.

    Example:
        >>> parse_timestamp("1970-01-01T00:00:01.5Z")
        Timestamp(seconds=1, nanos=500000000)
    """
    match = _TIME_RE.match(value)
    if not match:
        raise MalformedInputException(f"Invalid RFC 3339 time: {value!r}")
    base, fraction, zone = match.groups()
    try:
        dt = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise MalformedInputException(f"Invalid RFC 3339 time: {value!r}") from e
    if zone != "Z":
        sign = 1 if zone[0] == "+" else -1
        dt -= sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
    seconds = (dt - _EPOCH) // timedelta(seconds=1)
    nanos = int(fraction.ljust(9, "0")) if fraction else 0
    return Timestamp(seconds=seconds, nanos=nanos)


def format_timestamp(ts: Timestamp) -> str:
    """RFC 3339 with trailing fractional zeros trimmed, as Tendermint prints it."""
    dt = _EPOCH + timedelta(seconds=ts.seconds)
    text = (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )
    fraction = f"{ts.nanos:09d}".rstrip("0")
    if fraction:
        text += "." + fraction
    return text + "Z"


def _hex(value: Any, field_path: str) -> bytes:
    if value is None:
        return b""
    try:
        return from_hex(value)
    except (TypeError, ValueError) as e:
        raise MalformedInputException(f"Invalid hex in {field_path}", field_path=field_path) from e


def _b64(value: Any, field_path: str) -> bytes:
    if value is None:
        return b""
    try:
        return base64.b64decode(value, validate=True)
    except (TypeError, binascii.Error) as e:
        raise MalformedInputException(f"Invalid base64 in {field_path}", field_path=field_path) from e


def _int(value: Any, field_path: str) -> int:
    if isinstance(value, bool):
        raise MalformedInputException(f"Expected integer in {field_path}", field_path=field_path)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedInputException(f"Expected integer in {field_path}", field_path=field_path) from e


def _hex_out(value: bytes) -> str:
    return value.hex().upper()


def _b64_out(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


# =============================================================================
# Decoding
# =============================================================================

def _block_id(data: dict[str, Any], path: str) -> BlockID:
    parts = data.get("parts") or data.get("part_set_header") or {}
    return BlockID(
        hash=_hex(data.get("hash"), f"{path}.hash"),
        part_set_header=PartSetHeader(
            total=_int(parts.get("total", 0), f"{path}.parts.total"),
            hash=_hex(parts.get("hash"), f"{path}.parts.hash"),
        ),
    )


def header_from_json(data: dict[str, Any]) -> HeaderFields:
    version = data.get("version") or {}
    return HeaderFields(
        version=Consensus(
            block=_int(version.get("block", 0), "header.version.block"),
            app=_int(version.get("app", 0), "header.version.app"),
        ),
        chain_id=data["chain_id"],
        height=_int(data["height"], "header.height"),
        time=parse_timestamp(data["time"]),
        last_block_id=_block_id(data.get("last_block_id") or {}, "header.last_block_id"),
        last_commit_hash=_hex(data.get("last_commit_hash"), "header.last_commit_hash"),
        data_hash=_hex(data.get("data_hash"), "header.data_hash"),
        validators_hash=_hex(data["validators_hash"], "header.validators_hash"),
        next_validators_hash=_hex(data["next_validators_hash"], "header.next_validators_hash"),
        consensus_hash=_hex(data.get("consensus_hash"), "header.consensus_hash"),
        app_hash=_hex(data.get("app_hash"), "header.app_hash"),
        last_results_hash=_hex(data.get("last_results_hash"), "header.last_results_hash"),
        evidence_hash=_hex(data.get("evidence_hash"), "header.evidence_hash"),
        proposer_address=_hex(data.get("proposer_address"), "header.proposer_address"),
    )


def _commit_sig(data: dict[str, Any], index: int) -> CommitSig:
    path = f"commit.signatures[{index}]"
    flag = BlockIDFlag(_int(data["block_id_flag"], f"{path}.block_id_flag"))
    if flag == BlockIDFlag.ABSENT:
        return CommitSig(block_id_flag=flag)
    return CommitSig(
        block_id_flag=flag,
        validator_address=_hex(data.get("validator_address"), f"{path}.validator_address"),
        timestamp=parse_timestamp(data["timestamp"]),
        signature=_b64(data.get("signature"), f"{path}.signature"),
    )


def commit_from_json(data: dict[str, Any]) -> Commit:
    return Commit(
        height=_int(data["height"], "commit.height"),
        round=_int(data.get("round", 0), "commit.round"),
        block_id=_block_id(data["block_id"], "commit.block_id"),
        signatures=tuple(_commit_sig(sig, i) for i, sig in enumerate(data["signatures"])),
    )


def _validator(data: dict[str, Any], index: int) -> Validator:
    path = f"validator_set.validators[{index}]"
    pub_key = data["pub_key"]
    if pub_key.get("type", ED25519_KEY_TYPE) != ED25519_KEY_TYPE:
        raise MalformedInputException(
            f"Unsupported key type {pub_key.get('type')!r}", field_path=f"{path}.pub_key"
        )
    validator = Validator(
        pub_key=_b64(pub_key["value"], f"{path}.pub_key.value"),
        voting_power=_int(data["voting_power"], f"{path}.voting_power"),
    )
    if "address" in data and _hex(data["address"], f"{path}.address") != validator.address:
        raise MalformedInputException(
            f"Address of validator {index} does not match its public key",
            field_path=f"{path}.address",
        )
    return validator


def validator_set_from_json(data: dict[str, Any] | list[Any]) -> ValidatorSet:
    entries = data["validators"] if isinstance(data, dict) else data
    return ValidatorSet(validators=tuple(_validator(v, i) for i, v in enumerate(entries)))


def signed_block_from_json(data: dict[str, Any]) -> SignedBlock:
    """
    Decode one signed_block.json document.

    Raises:
        MalformedInputException: Missing keys, bad encodings or values the
            schemas reject
    """
    try:
        return SignedBlock(
            header=header_from_json(data["header"]),
            commit=commit_from_json(data["commit"]),
            validator_set=validator_set_from_json(data["validator_set"]),
        )
    except ValidationError as e:
        raise MalformedInputException(
            f"Signed block failed validation: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
    except KeyError as e:
        raise MalformedInputException(f"Missing field {e.args[0]!r}", field_path=str(e.args[0])) from e
    except (TypeError, AttributeError, ValueError) as e:
        if isinstance(e, MalformedInputException):
            raise
        raise MalformedInputException(f"Malformed signed block: {e}") from e


# =============================================================================
# Encoding
# =============================================================================

def _block_id_json(block_id: BlockID) -> dict[str, Any]:
    return {
        "hash": _hex_out(block_id.hash),
        "parts": {
            "total": block_id.part_set_header.total,
            "hash": _hex_out(block_id.part_set_header.hash),
        },
    }


def header_to_json(header: HeaderFields) -> dict[str, Any]:
    return {
        "version": {"block": str(header.version.block), "app": str(header.version.app)},
        "chain_id": header.chain_id,
        "height": str(header.height),
        "time": format_timestamp(header.time),
        "last_block_id": _block_id_json(header.last_block_id),
        "last_commit_hash": _hex_out(header.last_commit_hash),
        "data_hash": _hex_out(header.data_hash),
        "validators_hash": _hex_out(header.validators_hash),
        "next_validators_hash": _hex_out(header.next_validators_hash),
        "consensus_hash": _hex_out(header.consensus_hash),
        "app_hash": _hex_out(header.app_hash),
        "last_results_hash": _hex_out(header.last_results_hash),
        "evidence_hash": _hex_out(header.evidence_hash),
        "proposer_address": _hex_out(header.proposer_address),
    }


def _commit_sig_json(sig: CommitSig) -> dict[str, Any]:
    if sig.is_absent:
        return {
            "block_id_flag": int(sig.block_id_flag),
            "validator_address": "",
            "timestamp": ZERO_TIME,
            "signature": None,
        }
    return {
        "block_id_flag": int(sig.block_id_flag),
        "validator_address": _hex_out(sig.validator_address),
        "timestamp": format_timestamp(sig.timestamp),
        "signature": _b64_out(sig.signature),
    }


def signed_block_to_json(block: SignedBlock) -> dict[str, Any]:
    """Render a signed block in the layout signed_block_from_json reads."""
    return {
        "header": header_to_json(block.header),
        "commit": {
            "height": str(block.commit.height),
            "round": block.commit.round,
            "block_id": _block_id_json(block.commit.block_id),
            "signatures": [_commit_sig_json(sig) for sig in block.commit.signatures],
        },
        "validator_set": {
            "validators": [
                {
                    "address": _hex_out(v.address),
                    "pub_key": {"type": ED25519_KEY_TYPE, "value": _b64_out(v.pub_key)},
                    "voting_power": str(v.voting_power),
                }
                for v in block.validator_set.validators
            ],
        },
    }


__all__ = [
    "ED25519_KEY_TYPE",
    "parse_timestamp",
    "format_timestamp",
    "header_from_json",
    "commit_from_json",
    "validator_set_from_json",
    "signed_block_from_json",
    "header_to_json",
    "signed_block_to_json",
]
