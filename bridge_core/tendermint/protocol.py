"""
Module 09 - Skip/Step Protocol
Composes vote checks, voting power, validator-set hashing and header
field proofs into one bridge proof from a trusted header to a target.

Owner: Protocol/Crypto Engineer
Module ID: M09

Step (N -> N+1):
- the target's validators signed it with at least the threshold power
- the target's validators_hash is the hash of that set
- the trusted header's next_validators_hash is the same hash
- the target's last_block_id points at the trusted header

Skip (N -> M > N):
- the target's validators signed it with at least the threshold power
- the target's validators_hash is the hash of that set
- optionally, signers that were in the trusted set hold at least the
  trust fraction of the trusted set's power; the trusted set is proven
  against the trusted header's validators_hash and kept in the proof

Both variants carry a height proof for each header, so the recorded
heights are bound to the header hashes.

Any failing check raises; there is no partially valid proof.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from bridge_core.config.runtime import ProtocolParams
from bridge_core.crypto.hashing import to_hex
from bridge_core.merkle.enabled_tree import next_power_of_two
from bridge_core.schemas.commit import SignedBlock
from bridge_core.schemas.errors import (
    BridgeException,
    CapacityExceededException,
    HashMismatchException,
    MalformedInputException,
    ThresholdNotMetException,
)
from bridge_core.schemas.header import HeaderFields
from bridge_core.schemas.proof import AnyBridgeProof, SkipProof, StepProof, TrustOverlap
from bridge_core.schemas.validator import SignedSlot, ValidatorSet, ValidatorSlot
from bridge_core.tendermint.header_tree import (
    TRACKED_FIELDS,
    HeaderField,
    HeaderFieldTree,
    extract_hash,
    extract_height,
    extract_last_block_hash,
    verify_field_proof,
)
from bridge_core.tendermint.validator_set import hash_validator_set, hash_validator_slots
from bridge_core.tendermint.vote import collect_slots, round_present, verify_slot_signatures
from bridge_core.tendermint.voting_power import (
    accumulate,
    exceeds_threshold,
    require_threshold,
    signed_power,
    slots_total_power,
    total_power,
)

logger = logging.getLogger(__name__)


def _require_equal(expected: bytes, actual: bytes, message: str) -> None:
    if expected != actual:
        raise HashMismatchException(message, expected=expected, actual=actual)


def _prove_target(
    trusted_header: HeaderFields,
    target: SignedBlock,
    params: ProtocolParams,
) -> dict[str, Any]:
    """Checks and proof fields shared by step and skip."""
    size = len(target.validator_set)
    if size > params.max_validator_set_size:
        raise CapacityExceededException(
            f"Validator set of {size} exceeds maximum {params.max_validator_set_size}",
            size=size,
            capacity=params.max_validator_set_size,
        )

    trusted_hash = trusted_header.hash()
    target_hash = target.header.hash()
    logger.debug(f"Trusted header {to_hex(trusted_hash)}, target header {to_hex(target_hash)}")

    logger.info(f"Checking commit signatures for height {target.height}")
    slots = collect_slots(
        target.header,
        target.commit,
        target.validator_set,
        slot_count=next_power_of_two(size),
        max_message_bytes=params.max_message_bytes,
    )

    logger.info("Checking voting power threshold")
    accumulated = signed_power(slots)
    total = slots_total_power(slots)
    logger.debug(f"Signed power {accumulated} of {total}")
    require_threshold(
        accumulated,
        total,
        params.threshold_numerator,
        params.threshold_denominator,
    )

    logger.info("Proving header fields")
    tree = HeaderFieldTree(target.header)
    field_proofs = tree.tracked_proofs()
    for field, proof in zip(TRACKED_FIELDS, field_proofs):
        verify_field_proof(proof, target_hash, field)
    height_proof = tree.proof_for(HeaderField.HEIGHT)
    verify_field_proof(height_proof, target_hash, HeaderField.HEIGHT)
    trusted_height_proof = HeaderFieldTree(trusted_header).proof_for(HeaderField.HEIGHT)
    verify_field_proof(trusted_height_proof, trusted_hash, HeaderField.HEIGHT)

    validator_set_hash = hash_validator_slots(slots)
    _require_equal(
        extract_hash(tree.leaf(HeaderField.VALIDATORS_HASH)),
        validator_set_hash,
        "Target validators_hash does not match the signing validator set",
    )

    return {
        "trusted_header_hash": trusted_hash,
        "target_header_hash": target_hash,
        "trusted_height": trusted_header.height,
        "target_height": target.height,
        "validator_slots": slots,
        "validator_set_hash": validator_set_hash,
        "field_proofs": field_proofs,
        "height_proof": height_proof,
        "trusted_height_proof": trusted_height_proof,
        "round_present": round_present(target.commit),
        "accumulated_power": accumulated,
        "total_power": total,
    }


def prove_step(
    trusted_header: HeaderFields,
    target: SignedBlock,
    params: Optional[ProtocolParams] = None,
) -> StepProof:
    """
    Prove target is the block right after trusted_header.

    Args:
        trusted_header: Header already trusted (height N)
        target: Signed block at height N+1
        params: Protocol parameters (defaults: 2/3 threshold)

    Returns:
        StepProof whose prev_header_hash equals the trusted header hash

    Raises:
        MalformedInputException: Heights are not consecutive or input is
            inconsistent
        HashMismatchException: A hash linkage fails
        SignatureInvalidException: A commit signature does not verify
        ThresholdNotMetException: Signed power is below the threshold
    """
    params = params or ProtocolParams()
    logger.info(f"Step {trusted_header.height} -> {target.height}")
    try:
        if target.height != trusted_header.height + 1:
            raise MalformedInputException(
                f"Step target height {target.height} is not trusted height "
                f"{trusted_header.height} + 1"
            )
        fields = _prove_target(trusted_header, target, params)

        logger.info("Linking trusted next_validators_hash")
        trusted_tree = HeaderFieldTree(trusted_header)
        next_vals_proof = trusted_tree.proof_for(HeaderField.NEXT_VALIDATORS_HASH)
        verify_field_proof(
            next_vals_proof,
            fields["trusted_header_hash"],
            HeaderField.NEXT_VALIDATORS_HASH,
        )
        _require_equal(
            extract_hash(next_vals_proof.enc_leaf),
            fields["validator_set_hash"],
            "Trusted next_validators_hash does not match the target validator set",
        )

        last_block_leaf = fields["field_proofs"][0].enc_leaf
        prev_header = extract_last_block_hash(last_block_leaf)
        _require_equal(
            fields["trusted_header_hash"],
            prev_header,
            "Target last_block_id does not point at the trusted header",
        )
    except BridgeException as e:
        logger.warning(f"Step {trusted_header.height} -> {target.height} rejected: [{e.code}] {e.message}")
        raise

    logger.info(f"Step {trusted_header.height} -> {target.height} verified")
    return StepProof(
        **fields,
        trusted_next_validators_proof=next_vals_proof,
        prev_header_hash=prev_header,
    )


def trust_overlap(
    slots: tuple[ValidatorSlot, ...],
    trusted_validators: ValidatorSet,
) -> tuple[int, int]:
    """
    Power, measured in the trusted set, of target signers it contains.

    Signers are matched by public key.

    Returns:
        (overlapping power, trusted set total power)
    """
    signer_keys = {slot.validator.pub_key for slot in slots if isinstance(slot, SignedSlot)}
    powers = [v.voting_power for v in trusted_validators.validators]
    overlap = [v.pub_key in signer_keys for v in trusted_validators.validators]
    return accumulate(powers, overlap), total_power(powers)


def _require_overlap(accumulated: int, trusted_total: int, params: ProtocolParams) -> None:
    if not exceeds_threshold(
        accumulated,
        trusted_total,
        params.trust_numerator,
        params.trust_denominator,
    ):
        raise ThresholdNotMetException(
            f"Signers overlapping the trusted set hold {accumulated}/{trusted_total}, "
            f"below {params.trust_numerator}/{params.trust_denominator}",
            accumulated=accumulated,
            total=trusted_total,
        )


def prove_skip(
    trusted_header: HeaderFields,
    target: SignedBlock,
    params: Optional[ProtocolParams] = None,
    trusted_validators: Optional[ValidatorSet] = None,
) -> SkipProof:
    """
    Prove target descends from trusted_header over any number of blocks.

    Args:
        trusted_header: Header already trusted (height N)
        target: Signed block at height M > N
        params: Protocol parameters
        trusted_validators: Validator set of the trusted header. When given
            it must hash to the trusted validators_hash, and the overlap
            check is applied and recorded in the proof.

    Returns:
        SkipProof

    Raises:
        MalformedInputException: Target is not above the trusted height
        HashMismatchException: A hash linkage fails
        SignatureInvalidException: A commit signature does not verify
        ThresholdNotMetException: Signed or overlapping power too low
    """
    params = params or ProtocolParams()
    logger.info(f"Skip {trusted_header.height} -> {target.height}")
    try:
        if target.height <= trusted_header.height:
            raise MalformedInputException(
                f"Skip target height {target.height} is not above trusted height "
                f"{trusted_header.height}"
            )
        fields = _prove_target(trusted_header, target, params)

        overlap: Optional[TrustOverlap] = None
        if trusted_validators is None:
            logger.info("No trusted validator set given; overlap check skipped")
        else:
            logger.info("Checking overlap with trusted validator set")
            trusted_vals_proof = HeaderFieldTree(trusted_header).proof_for(HeaderField.VALIDATORS_HASH)
            verify_field_proof(
                trusted_vals_proof,
                fields["trusted_header_hash"],
                HeaderField.VALIDATORS_HASH,
            )
            _require_equal(
                extract_hash(trusted_vals_proof.enc_leaf),
                hash_validator_set(trusted_validators.validators),
                "Trusted validator set does not match trusted validators_hash",
            )
            accumulated, trusted_total = trust_overlap(fields["validator_slots"], trusted_validators)
            logger.debug(f"Overlapping power {accumulated} of {trusted_total}")
            _require_overlap(accumulated, trusted_total, params)
            overlap = TrustOverlap(
                accumulated=accumulated,
                trusted_total=trusted_total,
                numerator=params.trust_numerator,
                denominator=params.trust_denominator,
                trusted_validators=trusted_validators.validators,
                trusted_validators_proof=trusted_vals_proof,
            )
    except BridgeException as e:
        logger.warning(f"Skip {trusted_header.height} -> {target.height} rejected: [{e.code}] {e.message}")
        raise

    logger.info(f"Skip {trusted_header.height} -> {target.height} verified")
    return SkipProof(**fields, trust_overlap=overlap)


def verify_bridge_proof(proof: AnyBridgeProof, params: Optional[ProtocolParams] = None) -> None:
    """
    Re-check a step or skip proof from its own contents.

    Uses only hashes, leaves, aunts and slots carried in the proof; this
    is the same set of checks the circuit layer expresses as constraints.

    Raises:
        BridgeException subclass describing the first failed check
    """
    params = params or ProtocolParams()
    target_hash = proof.target_header_hash

    if len(proof.field_proofs) != len(TRACKED_FIELDS):
        raise MalformedInputException(
            f"Expected {len(TRACKED_FIELDS)} field proofs, got {len(proof.field_proofs)}"
        )
    for field, field_proof in zip(TRACKED_FIELDS, proof.field_proofs):
        verify_field_proof(field_proof, target_hash, field)
    verify_field_proof(proof.height_proof, target_hash, HeaderField.HEIGHT)
    if extract_height(proof.height_proof.enc_leaf) != proof.target_height:
        raise MalformedInputException("Height proof does not match target height")
    verify_field_proof(proof.trusted_height_proof, proof.trusted_header_hash, HeaderField.HEIGHT)
    if extract_height(proof.trusted_height_proof.enc_leaf) != proof.trusted_height:
        raise MalformedInputException("Height proof does not match trusted height")

    _require_equal(
        proof.validator_set_hash,
        hash_validator_slots(proof.validator_slots),
        "Validator slots do not hash to the recorded validator set hash",
    )
    _require_equal(
        extract_hash(proof.field_proof(HeaderField.VALIDATORS_HASH).enc_leaf),
        proof.validator_set_hash,
        "Target validators_hash does not match the validator slots",
    )

    verify_slot_signatures(proof.validator_slots, target_hash, proof.round_present)
    accumulated = signed_power(proof.validator_slots)
    total = slots_total_power(proof.validator_slots)
    if (accumulated, total) != (proof.accumulated_power, proof.total_power):
        raise MalformedInputException(
            "Recorded voting power does not match the validator slots",
            details={"accumulated": accumulated, "total": total},
        )
    require_threshold(accumulated, total, params.threshold_numerator, params.threshold_denominator)

    if isinstance(proof, StepProof):
        if proof.target_height != proof.trusted_height + 1:
            raise MalformedInputException("Step proof heights are not consecutive")
        verify_field_proof(
            proof.trusted_next_validators_proof,
            proof.trusted_header_hash,
            HeaderField.NEXT_VALIDATORS_HASH,
        )
        _require_equal(
            extract_hash(proof.trusted_next_validators_proof.enc_leaf),
            proof.validator_set_hash,
            "Trusted next_validators_hash does not match the validator slots",
        )
        prev_header = extract_last_block_hash(proof.field_proof(HeaderField.LAST_BLOCK_ID).enc_leaf)
        _require_equal(proof.prev_header_hash, prev_header, "Recorded prev header does not match last_block_id")
        _require_equal(proof.trusted_header_hash, prev_header, "last_block_id does not point at the trusted header")
    else:
        if proof.target_height <= proof.trusted_height:
            raise MalformedInputException("Skip proof target is not above the trusted height")
        overlap = proof.trust_overlap
        if overlap is not None:
            verify_field_proof(
                overlap.trusted_validators_proof,
                proof.trusted_header_hash,
                HeaderField.VALIDATORS_HASH,
            )
            _require_equal(
                extract_hash(overlap.trusted_validators_proof.enc_leaf),
                hash_validator_set(overlap.trusted_validators),
                "Recorded trusted validator set does not match trusted validators_hash",
            )
            accumulated, trusted_total = trust_overlap(
                proof.validator_slots,
                ValidatorSet(validators=overlap.trusted_validators),
            )
            recorded = (overlap.accumulated, overlap.trusted_total, overlap.numerator, overlap.denominator)
            derived = (accumulated, trusted_total, params.trust_numerator, params.trust_denominator)
            if recorded != derived:
                raise MalformedInputException(
                    "Recorded trust overlap does not match the trusted validator set",
                    details={"accumulated": accumulated, "trusted_total": trusted_total},
                )
            _require_overlap(accumulated, trusted_total, params)


__all__ = [
    "prove_step",
    "prove_skip",
    "trust_overlap",
    "verify_bridge_proof",
]
