"""
Module 05 - Header Field Tree Tests
Tests for bridge_core/schemas/header.py leaf encodings and
bridge_core/tendermint/header_tree.py proofs.
"""
from dataclasses import replace

import pytest
from pydantic import ValidationError

from bridge_core.crypto.hashing import sha256
from bridge_core.schemas.errors import HashMismatchException, MalformedInputException
from bridge_core.schemas.header import BlockID, Consensus, PartSetHeader, Timestamp
from bridge_core.tendermint.header_tree import (
    EXPECTED_PATHS,
    TRACKED_FIELDS,
    HeaderField,
    HeaderFieldTree,
    expected_path,
    extract_hash,
    extract_height,
    extract_last_block_hash,
    verify_field_proof,
)

from fixtures.chain import make_header, make_keyring


@pytest.fixture(scope="module")
def header():
    return make_header(11000, make_keyring())


class TestLeafEncoding:
    """Per-field protobuf encodings."""

    def test_fourteen_leaves(self, header):
        """Header encodes to 14 leaves."""
        assert len(header.encode_leaves()) == 14

    def test_hash_fields_are_34_bytes(self, header):
        """Hash leaves are 0a 20 followed by the hash."""
        leaves = header.encode_leaves()
        for field in (HeaderField.DATA_HASH, HeaderField.VALIDATORS_HASH, HeaderField.NEXT_VALIDATORS_HASH):
            leaf = leaves[field]
            assert len(leaf) == 34
            assert leaf[:2] == b"\x0a\x20"

    def test_height_leaf(self, header):
        """Height is an Int64Value."""
        leaf = header.encode_leaves()[HeaderField.HEIGHT]
        assert leaf == b"\x08\xf8\x55"
        assert extract_height(leaf) == 11000

    def test_consensus_encoding(self):
        """Consensus omits zero fields."""
        assert Consensus(block=11, app=0).encode() == b"\x08\x0b"

    def test_timestamp_encoding(self):
        """Timestamp is two int64 varints."""
        ts = Timestamp(seconds=1690380061, nanos=53091307)
        assert ts.encode().hex() == "089dce84a60610ebb7a819"

    def test_block_id_always_writes_part_set_header(self):
        """An empty BlockID still carries its part-set header message."""
        assert BlockID().encode() == b"\x12\x00"

    def test_block_id_layout(self):
        """Hash first, then the part-set header."""
        block_hash = sha256(b"block")
        psh = PartSetHeader(total=1, hash=sha256(b"parts"))
        encoded = BlockID(hash=block_hash, part_set_header=psh).encode()
        assert encoded[:34] == b"\x0a\x20" + block_hash
        assert encoded[34:36] == b"\x12\x24"

    def test_empty_optional_hash_omitted(self, header):
        """Empty BytesValue encodes to nothing."""
        blank = header.model_copy(update={"app_hash": b""})
        assert blank.encode_leaves()[HeaderField.APP_HASH] == b""

    def test_wrong_hash_length_rejected(self, header):
        """Hashes must be 0 or 32 bytes."""
        data = header.model_dump()
        data["data_hash"] = b"\x01" * 31
        with pytest.raises(ValidationError):
            type(header).model_validate(data)

    def test_validators_hash_required(self, header):
        """validators_hash cannot be empty."""
        data = header.model_dump()
        data["validators_hash"] = b""
        with pytest.raises(ValidationError):
            type(header).model_validate(data)


class TestFieldProofs:
    """Proofs for tracked fields."""

    def test_tree_root_is_header_hash(self, header):
        """Tree root equals header.hash()."""
        assert HeaderFieldTree(header).root == header.hash()

    def test_tracked_proofs_verify(self, header):
        """Every tracked field proof verifies with its expected path."""
        tree = HeaderFieldTree(header)
        proofs = tree.tracked_proofs()
        assert [p.index for p in proofs] == [int(f) for f in TRACKED_FIELDS]
        for field, proof in zip(TRACKED_FIELDS, proofs):
            assert proof.path == EXPECTED_PATHS[field]
            assert proof.total == 14
            assert len(proof.aunts) == 4
            verify_field_proof(proof, tree.root, field)

    def test_height_proof(self, header):
        """Height proof verifies and decodes."""
        tree = HeaderFieldTree(header)
        proof = tree.proof_for(HeaderField.HEIGHT)
        verify_field_proof(proof, tree.root, HeaderField.HEIGHT)
        assert extract_height(proof.enc_leaf) == header.height

    def test_untracked_field_rejected(self, header):
        """No proofs for fields outside the known set."""
        with pytest.raises(MalformedInputException):
            HeaderFieldTree(header).proof_for(HeaderField.APP_HASH)
        with pytest.raises(MalformedInputException):
            expected_path(HeaderField.PROPOSER_ADDRESS)

    @pytest.mark.parametrize("field", [14, -1])
    def test_out_of_range_field_rejected(self, header, field):
        """Indices outside the 14 header fields are malformed input."""
        tree = HeaderFieldTree(header)
        with pytest.raises(MalformedInputException) as exc_info:
            tree.proof_for(field)
        assert exc_info.value.details["field"] == field
        with pytest.raises(MalformedInputException):
            expected_path(field)
        with pytest.raises(MalformedInputException):
            verify_field_proof(tree.proof_for(HeaderField.HEIGHT), tree.root, field)
        with pytest.raises(MalformedInputException):
            tree.leaf(field)

    def test_proof_for_wrong_field_rejected(self, header):
        """A data_hash proof cannot stand in for validators_hash."""
        tree = HeaderFieldTree(header)
        proof = tree.proof_for(HeaderField.DATA_HASH)
        with pytest.raises(MalformedInputException):
            verify_field_proof(proof, tree.root, HeaderField.VALIDATORS_HASH)

    def test_proof_against_other_header_fails(self, header):
        """A proof does not verify against another header hash."""
        other = make_header(11001, make_keyring())
        proof = HeaderFieldTree(header).proof_for(HeaderField.DATA_HASH)
        with pytest.raises(HashMismatchException):
            verify_field_proof(proof, other.hash(), HeaderField.DATA_HASH)

    def test_tampered_leaf_fails(self, header):
        """Changing the leaf breaks the proof."""
        tree = HeaderFieldTree(header)
        proof = tree.proof_for(HeaderField.DATA_HASH)
        bad = replace(proof, enc_leaf=b"\x0a\x20" + sha256(b"other data"))
        with pytest.raises(HashMismatchException):
            verify_field_proof(bad, tree.root, HeaderField.DATA_HASH)


class TestExtraction:
    """Reading values back out of leaves."""

    def test_extract_hash(self):
        """Bytes 2..34 of a hash leaf."""
        digest = sha256(b"x")
        assert extract_hash(b"\x0a\x20" + digest) == digest

    def test_extract_hash_wrong_size(self):
        """Only 34-byte hash leaves are accepted."""
        with pytest.raises(MalformedInputException):
            extract_hash(b"\x0a\x20" + b"\x00" * 31)

    def test_extract_last_block_hash(self, header):
        """Previous header hash sits at the start of last_block_id."""
        leaf = HeaderFieldTree(header).leaf(HeaderField.LAST_BLOCK_ID)
        assert extract_last_block_hash(leaf) == header.last_block_id.hash

    def test_extract_height_rejects_trailing_bytes(self):
        """A height leaf must be exactly one varint field."""
        with pytest.raises(MalformedInputException):
            extract_height(b"\x08\x01\x00")
