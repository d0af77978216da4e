"""
Circuit witness export.

The circuit layer re-expresses the core's checks as constraints and
needs every intermediate value, not a verdict. A WitnessBackend turns a
finished proof into whatever form that layer reads; JsonWitnessBackend
writes canonical JSON (sorted keys, hex bytes).
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, Union

from bridge_core.merkle.merkle_proofs import InclusionProof
from bridge_core.schemas.canonical import dumps_canonical
from bridge_core.schemas.proof import AnyBridgeProof, DataCommitmentProof, StepProof
from bridge_core.schemas.validator import DidNotSign, Padding, SignedSlot, ValidatorSlot
from bridge_core.tendermint.validator_set import validator_leaf


WitnessInput = Union[AnyBridgeProof, DataCommitmentProof]


class WitnessBackend(Protocol):
    def render(self, proof: WitnessInput) -> str: ...

    def write(self, proof: WitnessInput, path: str | Path) -> Path: ...


def _inclusion(proof: InclusionProof) -> dict[str, Any]:
    return {
        "index": proof.index,
        "total": proof.total,
        "enc_leaf": proof.enc_leaf,
        "leaf_hash": proof.leaf_hash,
        "path": list(proof.path),
        "aunts": list(proof.aunts),
    }


def _slot(slot: ValidatorSlot) -> dict[str, Any]:
    if isinstance(slot, Padding):
        return {"enabled": False, "signed": False, "voting_power": 0}
    entry: dict[str, Any] = {
        "enabled": True,
        "signed": isinstance(slot, SignedSlot),
        "pub_key": slot.validator.pub_key,
        "voting_power": slot.voting_power,
        "validator_leaf": validator_leaf(slot.validator),
    }
    if isinstance(slot, SignedSlot):
        entry["signature"] = slot.signature
        entry["message"] = slot.message
        entry["message_length"] = len(slot.message)
    elif isinstance(slot, DidNotSign) and slot.nil_vote:
        entry["nil_vote"] = True
    return entry


def bridge_proof_witness(proof: AnyBridgeProof) -> dict[str, Any]:
    witness: dict[str, Any] = {
        "kind": proof.kind,
        "trusted_header_hash": proof.trusted_header_hash,
        "target_header_hash": proof.target_header_hash,
        "trusted_height": proof.trusted_height,
        "target_height": proof.target_height,
        "round_present": proof.round_present,
        "validator_set_hash": proof.validator_set_hash,
        "validators": [_slot(slot) for slot in proof.validator_slots],
        "accumulated_power": proof.accumulated_power,
        "total_power": proof.total_power,
        "field_proofs": [_inclusion(p) for p in proof.field_proofs],
        "height_proof": _inclusion(proof.height_proof),
        "trusted_height_proof": _inclusion(proof.trusted_height_proof),
    }
    if isinstance(proof, StepProof):
        witness["prev_header_hash"] = proof.prev_header_hash
        witness["trusted_next_validators_proof"] = _inclusion(proof.trusted_next_validators_proof)
    else:
        overlap = proof.trust_overlap
        witness["trust_overlap"] = None if overlap is None else {
            "accumulated": overlap.accumulated,
            "trusted_total": overlap.trusted_total,
            "numerator": overlap.numerator,
            "denominator": overlap.denominator,
            "trusted_validators": [
                {
                    "pub_key": v.pub_key,
                    "voting_power": v.voting_power,
                    "validator_leaf": validator_leaf(v),
                }
                for v in overlap.trusted_validators
            ],
            "trusted_validators_proof": _inclusion(overlap.trusted_validators_proof),
        }
    return witness


def data_commitment_witness(proof: DataCommitmentProof) -> dict[str, Any]:
    window = proof.window
    return {
        "kind": "data_commitment",
        "start_height": window.start_height,
        "end_height": window.end_height,
        "start_header": window.start_header,
        "end_header": window.end_header,
        "capacity": proof.capacity,
        "data_hashes": list(window.data_hashes),
        "header_hashes": list(proof.header_hashes),
        "data_hash_proofs": [_inclusion(p) for p in proof.data_hash_proofs],
        "last_block_id_proofs": [_inclusion(p) for p in proof.last_block_id_proofs],
        "commitment_root": proof.commitment_root,
    }


class JsonWitnessBackend:
    """Canonical JSON witnesses."""

    def render(self, proof: WitnessInput) -> str:
        if isinstance(proof, DataCommitmentProof):
            return dumps_canonical(data_commitment_witness(proof))
        return dumps_canonical(bridge_proof_witness(proof))

    def write(self, proof: WitnessInput, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(proof), encoding="utf-8")
        return path


__all__ = [
    "WitnessBackend",
    "JsonWitnessBackend",
    "bridge_proof_witness",
    "data_commitment_witness",
]
