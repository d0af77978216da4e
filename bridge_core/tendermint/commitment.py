"""
Module 10 - Data Commitment Aggregator
Merkle commitment over (data_hash, height) pairs of a block window.

Owner: Protocol/Crypto Engineer
Module ID: M10

Leaf layout (64 bytes):

    data_hash (32) || height as 32-byte big-endian integer

The root is taken over a fixed number of slots (the capacity, a
deployment constant); unused slots are disabled with the same enable-bit
reduction the validator set uses, so the root equals the plain Merkle
root over the real leaves.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from bridge_core.crypto.hashing import HASH_SIZE, to_hex
from bridge_core.merkle.enabled_tree import is_power_of_two, padded_root
from bridge_core.schemas.errors import (
    BridgeException,
    CapacityExceededException,
    HashMismatchException,
    MalformedInputException,
)
from bridge_core.schemas.header import HeaderFields
from bridge_core.schemas.proof import DataCommitmentProof, DataCommitmentRange
from bridge_core.tendermint.header_tree import (
    HeaderField,
    HeaderFieldTree,
    extract_hash,
    extract_last_block_hash,
    verify_field_proof,
)

logger = logging.getLogger(__name__)


HEIGHT_BYTES = 32
DATA_COMMITMENT_LEAF_SIZE = HASH_SIZE + HEIGHT_BYTES


def encode_data_commitment_leaf(data_hash: bytes, height: int) -> bytes:
    """
    Encode one (data_hash, height) leaf.

    Example:
        >>> encode_data_commitment_leaf(bytes(32), 1)[-1]
        1
    """
    if len(data_hash) != HASH_SIZE:
        raise MalformedInputException(
            f"Data hash must be {HASH_SIZE} bytes, got {len(data_hash)}"
        )
    if height < 0 or height >= 1 << 63:
        raise MalformedInputException(f"Height out of range: {height}")
    return data_hash + height.to_bytes(HEIGHT_BYTES, "big")


def build_data_commitment(window: DataCommitmentRange, capacity: int) -> bytes:
    """
    Commitment root for a window.

    Args:
        window: Heights [start, end) with their data hashes
        capacity: Slot count, a power of two

    Returns:
        32-byte commitment root

    Raises:
        CapacityExceededException: Window holds more leaves than capacity
        MalformedInputException: capacity is not a power of two
    """
    leaves = [
        encode_data_commitment_leaf(data_hash, height)
        for height, data_hash in zip(window.heights, window.data_hashes)
    ]
    return padded_root(leaves, capacity)


def prove_data_commitment(headers: Sequence[HeaderFields], capacity: int) -> DataCommitmentProof:
    """
    Build a data commitment from a contiguous header chain.

    headers[0] is the start header and headers[-1] the end header. Every
    header is linked to its predecessor through its last_block_id, and
    the data hash of every header except the last is proven against it.

    Raises:
        MalformedInputException: Fewer than two headers, non-contiguous
            heights, or a capacity that is not a power of two
        HashMismatchException: A header does not link to its predecessor
        CapacityExceededException: More data hashes than capacity
    """
    if not is_power_of_two(capacity):
        raise MalformedInputException(
            f"Commitment capacity must be a power of two, got {capacity}",
            details={"capacity": capacity},
        )
    if len(headers) < 2:
        raise MalformedInputException("A data commitment needs a start and an end header")
    start, end = headers[0].height, headers[-1].height
    logger.info(f"Data commitment for heights [{start}, {end}) with capacity {capacity}")
    try:
        if end - start > capacity:
            raise CapacityExceededException(
                f"Window of {end - start} blocks exceeds capacity {capacity}",
                size=end - start,
                capacity=capacity,
            )
        for offset, header in enumerate(headers):
            if header.height != start + offset:
                raise MalformedInputException(
                    f"Header {offset} has height {header.height}, expected {start + offset}"
                )

        trees = [HeaderFieldTree(header) for header in headers]
        header_hashes = tuple(tree.root for tree in trees)

        last_block_id_proofs = []
        for i in range(1, len(trees)):
            proof = trees[i].proof_for(HeaderField.LAST_BLOCK_ID)
            verify_field_proof(proof, header_hashes[i], HeaderField.LAST_BLOCK_ID)
            prev = extract_last_block_hash(proof.enc_leaf)
            if prev != header_hashes[i - 1]:
                raise HashMismatchException(
                    f"Header {start + i} does not link to header {start + i - 1}",
                    expected=header_hashes[i - 1],
                    actual=prev,
                )
            last_block_id_proofs.append(proof)

        data_hash_proofs = []
        data_hashes = []
        for i in range(len(trees) - 1):
            proof = trees[i].proof_for(HeaderField.DATA_HASH)
            verify_field_proof(proof, header_hashes[i], HeaderField.DATA_HASH)
            data_hash_proofs.append(proof)
            data_hashes.append(extract_hash(proof.enc_leaf))

        window = DataCommitmentRange(
            start_height=start,
            start_header=header_hashes[0],
            end_height=end,
            end_header=header_hashes[-1],
            data_hashes=tuple(data_hashes),
        )
        root = build_data_commitment(window, capacity)
    except BridgeException as e:
        logger.warning(f"Data commitment [{start}, {end}) rejected: [{e.code}] {e.message}")
        raise

    logger.info(f"Data commitment [{start}, {end}) root {to_hex(root)}")
    return DataCommitmentProof(
        window=window,
        capacity=capacity,
        header_hashes=header_hashes,
        data_hash_proofs=tuple(data_hash_proofs),
        last_block_id_proofs=tuple(last_block_id_proofs),
        commitment_root=root,
    )


def verify_data_commitment_proof(proof: DataCommitmentProof, capacity: Optional[int] = None) -> None:
    """
    Re-check a data commitment from its proofs alone.

    Args:
        proof: Proof produced by prove_data_commitment
        capacity: Expected capacity; defaults to the one recorded

    Raises:
        BridgeException subclass describing the first failed check
    """
    window = proof.window
    capacity = proof.capacity if capacity is None else capacity
    if capacity != proof.capacity:
        raise MalformedInputException(
            f"Proof built for capacity {proof.capacity}, expected {capacity}"
        )
    count = window.end_height - window.start_height
    if (
        len(proof.header_hashes) != count + 1
        or len(proof.data_hash_proofs) != count
        or len(proof.last_block_id_proofs) != count
    ):
        raise MalformedInputException("Proof lengths do not match the window")
    if proof.header_hashes[0] != window.start_header or proof.header_hashes[-1] != window.end_header:
        raise HashMismatchException("Header chain does not start and end at the window headers")

    for i, link in enumerate(proof.last_block_id_proofs, start=1):
        verify_field_proof(link, proof.header_hashes[i], HeaderField.LAST_BLOCK_ID)
        if extract_last_block_hash(link.enc_leaf) != proof.header_hashes[i - 1]:
            raise HashMismatchException(
                f"Header {window.start_height + i} does not link to its predecessor",
                expected=proof.header_hashes[i - 1],
            )

    for i, data_proof in enumerate(proof.data_hash_proofs):
        verify_field_proof(data_proof, proof.header_hashes[i], HeaderField.DATA_HASH)
        if extract_hash(data_proof.enc_leaf) != window.data_hashes[i]:
            raise HashMismatchException(
                f"Data hash at height {window.start_height + i} differs from its header",
                expected=window.data_hashes[i],
            )

    root = build_data_commitment(window, capacity)
    if root != proof.commitment_root:
        raise HashMismatchException(
            "Commitment root does not match the data hashes",
            expected=proof.commitment_root,
            actual=root,
        )


__all__ = [
    "HEIGHT_BYTES",
    "DATA_COMMITMENT_LEAF_SIZE",
    "encode_data_commitment_leaf",
    "build_data_commitment",
    "prove_data_commitment",
    "verify_data_commitment_proof",
]
