"""
Tendermint light-client logic for the bridge: header field proofs,
validator-set hashing, voting power, vote reconstruction, the skip/step
protocol and data commitments.
"""
from .header_tree import (
    EXPECTED_PATHS,
    TRACKED_FIELDS,
    HeaderField,
    HeaderFieldTree,
    extract_hash,
    extract_height,
    extract_last_block_hash,
    verify_field_proof,
)
from .validator_set import (
    encode_validator,
    hash_validator_set,
    hash_validator_slots,
    pad_slots,
)
from .voting_power import (
    accumulate,
    exceeds_threshold,
    require_threshold,
    signed_power,
    total_power,
)
from .vote import (
    CanonicalVote,
    collect_slots,
    round_present,
    verify_hash_in_message,
    vote_sign_bytes,
)
from .protocol import prove_skip, prove_step, verify_bridge_proof
from .commitment import (
    build_data_commitment,
    encode_data_commitment_leaf,
    prove_data_commitment,
    verify_data_commitment_proof,
)

__all__ = [
    "EXPECTED_PATHS",
    "TRACKED_FIELDS",
    "HeaderField",
    "HeaderFieldTree",
    "extract_hash",
    "extract_height",
    "extract_last_block_hash",
    "verify_field_proof",
    "encode_validator",
    "hash_validator_set",
    "hash_validator_slots",
    "pad_slots",
    "accumulate",
    "exceeds_threshold",
    "require_threshold",
    "signed_power",
    "total_power",
    "CanonicalVote",
    "collect_slots",
    "round_present",
    "verify_hash_in_message",
    "vote_sign_bytes",
    "prove_skip",
    "prove_step",
    "verify_bridge_proof",
    "build_data_commitment",
    "encode_data_commitment_leaf",
    "prove_data_commitment",
    "verify_data_commitment_proof",
]
