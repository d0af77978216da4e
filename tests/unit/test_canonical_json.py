"""
Module 01 - Schemas & Canonicalization
File: tests/unit/test_canonical_json.py

Purpose: Unit tests for canonical JSON serialization.
These tests ensure deterministic serialization across runs.
"""

from dataclasses import dataclass
from enum import Enum

import pytest
from pydantic import BaseModel, ConfigDict

from bridge_core.schemas.canonical import (
    canonicalize_value,
    dumps_canonical,
    loads_canonical,
)
from bridge_core.schemas.commit import BlockIDFlag
from bridge_core.schemas.errors import CanonicalizationException
from bridge_core.schemas.header import PartSetHeader


# =============================================================================
# Test Fixtures
# =============================================================================


class SampleEnum(str, Enum):
    """Sample enum for testing."""
    OPTION_A = "option_a"
    OPTION_B = "option_b"


class SampleModel(BaseModel):
    """Sample Pydantic model for testing."""
    model_config = ConfigDict(extra="forbid")

    name: str
    value: int
    optional_field: str | None = None


@dataclass(frozen=True)
class SampleRecord:
    digest: bytes
    height: int


# =============================================================================
# Scalar Values
# =============================================================================


class TestScalars:
    """Tests for scalar canonicalization."""

    def test_bytes_to_hex(self):
        """Bytes become lowercase hex."""
        assert canonicalize_value(b"\xde\xad\xbe\xef") == "deadbeef"
        assert canonicalize_value(bytearray(b"\x01")) == "01"

    def test_bool_stays_bool(self):
        """Booleans are not turned into integers."""
        assert canonicalize_value(True) is True

    def test_enum_value(self):
        """Enums serialize to their value."""
        assert canonicalize_value(SampleEnum.OPTION_B) == "option_b"
        assert canonicalize_value(BlockIDFlag.COMMIT) == 2

    def test_float_rejected(self):
        """Floats have no canonical form here."""
        with pytest.raises(CanonicalizationException):
            canonicalize_value(1.5)

    def test_unknown_type_reports_path(self):
        """Errors carry the path of the bad value."""
        with pytest.raises(CanonicalizationException) as exc_info:
            canonicalize_value({"outer": [1, object()]})
        assert exc_info.value.details["path"] == "outer[1]"


# =============================================================================
# Containers and Models
# =============================================================================


class TestContainers:
    """Tests for dicts, lists, models and dataclasses."""

    def test_none_fields_dropped(self):
        """None values are omitted from dicts."""
        assert canonicalize_value({"a": 1, "b": None}) == {"a": 1}

    def test_tuple_to_list(self):
        """Tuples serialize as lists."""
        assert canonicalize_value((1, b"\x02")) == [1, "02"]

    def test_pydantic_model(self):
        """Models serialize their fields, dropping None."""
        assert canonicalize_value(SampleModel(name="x", value=1)) == {"name": "x", "value": 1}

    def test_schema_model(self):
        """Schema models with bytes fields render hex."""
        psh = PartSetHeader(total=1, hash=bytes(32))
        assert canonicalize_value(psh) == {"total": 1, "hash": "00" * 32}

    def test_dataclass(self):
        """Dataclasses serialize their fields."""
        record = SampleRecord(digest=b"\xff", height=7)
        assert canonicalize_value(record) == {"digest": "ff", "height": 7}


# =============================================================================
# Serialization
# =============================================================================


class TestDumps:
    """Tests for dumps_canonical."""

    def test_sorted_compact(self):
        """Keys sorted, no whitespace."""
        assert dumps_canonical({"b": b"\x01", "a": 1}) == '{"a":1,"b":"01"}'

    def test_key_order_irrelevant(self):
        """Insertion order does not change output."""
        assert dumps_canonical({"x": 1, "y": 2}) == dumps_canonical({"y": 2, "x": 1})

    def test_unicode_kept(self):
        """Non-ASCII text is written as-is."""
        assert dumps_canonical({"chain": "mocha-é"}) == '{"chain":"mocha-é"}'

    def test_loads_round_trip(self):
        """loads_canonical parses what dumps_canonical writes."""
        text = dumps_canonical({"heights": [1, 2], "ok": True})
        assert loads_canonical(text) == {"heights": [1, 2], "ok": True}
