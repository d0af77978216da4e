"""
Module 05 - Header Field Tree
The 14-leaf Merkle tree over a header's encoded fields, and proofs for
the fields the bridge tracks.

Owner: Protocol/Crypto Engineer
Module ID: M05

With 14 leaves the tree is unbalanced, so proof depth depends on the
field. Paths are always derived with path_indices(); for every field a
proof is produced for, the derived path is compared with the known
constant and any other path is rejected.
"""
from __future__ import annotations

from enum import IntEnum

from bridge_core.crypto.hashing import HASH_SIZE
from bridge_core.encoding.protobuf import decode_varint
from bridge_core.merkle.merkle_proofs import InclusionProof, MerkleProver, MerkleVerifier
from bridge_core.merkle.merkle_tree import MerkleTree, path_indices
from bridge_core.schemas.errors import HashMismatchException, MalformedInputException
from bridge_core.schemas.header import HEADER_FIELD_COUNT, HeaderFields


class HeaderField(IntEnum):
    VERSION = 0
    CHAIN_ID = 1
    HEIGHT = 2
    TIME = 3
    LAST_BLOCK_ID = 4
    LAST_COMMIT_HASH = 5
    DATA_HASH = 6
    VALIDATORS_HASH = 7
    NEXT_VALIDATORS_HASH = 8
    CONSENSUS_HASH = 9
    APP_HASH = 10
    LAST_RESULTS_HASH = 11
    EVIDENCE_HASH = 12
    PROPOSER_ADDRESS = 13


# Fields carried in every bridge proof, in proof order.
TRACKED_FIELDS: tuple[HeaderField, ...] = (
    HeaderField.LAST_BLOCK_ID,
    HeaderField.DATA_HASH,
    HeaderField.VALIDATORS_HASH,
    HeaderField.NEXT_VALIDATORS_HASH,
)

# Bottom-up path bits in a 14-leaf tree (True: node is a right child).
EXPECTED_PATHS: dict[HeaderField, tuple[bool, ...]] = {
    HeaderField.HEIGHT: (False, True, False, False),
    HeaderField.LAST_BLOCK_ID: (False, False, True, False),
    HeaderField.DATA_HASH: (False, True, True, False),
    HeaderField.VALIDATORS_HASH: (True, True, True, False),
    HeaderField.NEXT_VALIDATORS_HASH: (False, False, False, True),
}

# BytesValue{value: 32 bytes} and BlockID{hash: 32 bytes}: tag 1, length 32
HASH_LEAF_PREFIX = b"\x0a\x20"
HASH_LEAF_SIZE = len(HASH_LEAF_PREFIX) + HASH_SIZE


def as_field(field: int) -> HeaderField:
    """
    Raises:
        MalformedInputException: If field is not a header field index
    """
    try:
        return HeaderField(field)
    except ValueError as e:
        raise MalformedInputException(
            f"Header field index {field} is out of range",
            details={"field": field},
        ) from e


def expected_path(field: HeaderField) -> tuple[bool, ...]:
    """
    Derive the path for a field and check it against the known constant.

    Raises:
        MalformedInputException: If no proof is ever produced for the
            field, or the derived path differs from the constant
    """
    field = as_field(field)
    if field not in EXPECTED_PATHS:
        raise MalformedInputException(
            f"No proof is produced for header field {field.name}",
            details={"field": int(field)},
        )
    derived = tuple(path_indices(int(field), HEADER_FIELD_COUNT))
    if derived != EXPECTED_PATHS[field]:
        raise MalformedInputException(
            f"Derived path for {field.name} does not match the header tree layout",
            details={"derived": list(derived), "expected": list(EXPECTED_PATHS[field])},
        )
    return derived


class HeaderFieldTree:
    """
    Merkle tree over one header's fields.

    Example:
        >>> tree = HeaderFieldTree(header)
        >>> proof = tree.proof_for(HeaderField.DATA_HASH)
        >>> verify_field_proof(proof, tree.root, HeaderField.DATA_HASH)
    """

    def __init__(self, header: HeaderFields) -> None:
        self.header = header
        self.leaves = header.encode_leaves()
        self._tree = MerkleTree(self.leaves)

    @property
    def root(self) -> bytes:
        return self._tree.root

    def leaf(self, field: HeaderField) -> bytes:
        return self.leaves[int(as_field(field))]

    def proof_for(self, field: HeaderField) -> InclusionProof:
        """
        Inclusion proof for one field (total is always 14).

        Raises:
            MalformedInputException: If the field is not provable or its
                derived path is unexpected
        """
        field = as_field(field)
        path = expected_path(field)
        proof = MerkleProver.prove_from_tree(self._tree, self.leaves, int(field))
        if proof.path != path:
            raise MalformedInputException(
                f"Proof path for {field.name} does not match the header tree layout"
            )
        return proof

    def tracked_proofs(self) -> tuple[InclusionProof, ...]:
        return tuple(self.proof_for(field) for field in TRACKED_FIELDS)


def verify_field_proof(proof: InclusionProof, header_hash: bytes, field: HeaderField) -> None:
    """
    Check a field proof against a header hash.

    Raises:
        MalformedInputException: If the proof is for another position, a
            different tree size, or uses an unexpected path
        HashMismatchException: If the proof does not fold to header_hash
    """
    field = as_field(field)
    if proof.index != int(field) or proof.total != HEADER_FIELD_COUNT:
        raise MalformedInputException(
            f"Proof is for leaf {proof.index}/{proof.total}, expected "
            f"{int(field)}/{HEADER_FIELD_COUNT} ({field.name})"
        )
    if proof.path != expected_path(field):
        raise MalformedInputException(
            f"Proof for {field.name} uses an unexpected path",
            details={"path": list(proof.path)},
        )
    if not MerkleVerifier.verify(proof, header_hash):
        raise HashMismatchException(
            f"{field.name} proof does not match header hash",
            expected=header_hash,
            actual=proof.compute_root(),
            leaf_index=proof.index,
        )


def extract_hash(enc_leaf: bytes) -> bytes:
    """
    The 32-byte hash inside a BytesValue leaf (bytes 2..34).

    Raises:
        MalformedInputException: If the leaf is not a 34-byte hash leaf
    """
    if len(enc_leaf) != HASH_LEAF_SIZE or not enc_leaf.startswith(HASH_LEAF_PREFIX):
        raise MalformedInputException(
            f"Expected a {HASH_LEAF_SIZE}-byte hash leaf, got {len(enc_leaf)} bytes"
        )
    return enc_leaf[2:HASH_LEAF_SIZE]


def extract_last_block_hash(enc_leaf: bytes) -> bytes:
    """
    Previous header hash from a last_block_id leaf.

    The BlockID hash is its first field, so it occupies bytes 2..34; the
    part-set header follows.
    """
    if len(enc_leaf) < HASH_LEAF_SIZE or not enc_leaf.startswith(HASH_LEAF_PREFIX):
        raise MalformedInputException(
            "last_block_id leaf does not start with a 32-byte block hash"
        )
    return enc_leaf[2:HASH_LEAF_SIZE]


def extract_height(enc_leaf: bytes) -> int:
    """Height from an Int64Value leaf (0x08 varint)."""
    if not enc_leaf.startswith(b"\x08"):
        raise MalformedInputException("Height leaf must start with field 1 varint tag")
    height, end = decode_varint(enc_leaf, 1)
    if end != len(enc_leaf) or height == 0 or height >= 1 << 63:
        raise MalformedInputException("Malformed height leaf")
    return height


__all__ = [
    "HeaderField",
    "TRACKED_FIELDS",
    "EXPECTED_PATHS",
    "HASH_LEAF_PREFIX",
    "expected_path",
    "HeaderFieldTree",
    "verify_field_proof",
    "extract_hash",
    "extract_last_block_hash",
    "extract_height",
]
