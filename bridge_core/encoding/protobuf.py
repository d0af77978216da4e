"""
Module 03 - Protobuf Wire Primitives
Minimal proto3 wire-format encoding for the messages the bridge hashes.

Owner: Protocol/Crypto Engineer
Module ID: M03

This module provides:
- Varint encoding/decoding (unsigned, 7-bit little-endian groups)
- sfixed64 encoding (8-byte little-endian two's complement)
- Field key construction (field_number << 3 | wire_type)
- Field helpers that follow proto3 zero-value omission

Only the encoder side is needed to rebuild hashed/signed bytes; the
decoder exists for tests and for reading values back out of leaves.
"""
from __future__ import annotations

import struct

from bridge_core.schemas.errors import MalformedInputException


WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LEN = 2

U64_MAX = (1 << 64) - 1
MAX_VARINT_BYTES = 10


def encode_varint(value: int) -> bytes:
    """
    Encode an unsigned integer as a protobuf varint.

    Each byte carries 7 payload bits, least-significant group first; the
    high bit is set iff more bytes follow.

    Args:
        value: Integer in [0, 2^64 - 1]

    Returns:
        1..10 encoded bytes

    Raises:
        MalformedInputException: If value is negative or wider than 64 bits

    Example:
        >>> list(encode_varint(1234567890))
        [210, 133, 216, 204, 4]
    """
    if value < 0 or value > U64_MAX:
        raise MalformedInputException(
            f"Varint value out of unsigned 64-bit range: {value}"
        )
    out = bytearray()
    while True:
        group = value & 0x7F
        value >>= 7
        if value:
            out.append(group | 0x80)
        else:
            out.append(group)
            return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a varint starting at offset.

    Args:
        data: Buffer holding the varint
        offset: Position of the first varint byte

    Returns:
        (value, offset just past the varint)

    Raises:
        MalformedInputException: If the buffer ends mid-varint or the
                                 varint is longer than 10 bytes
    """
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise MalformedInputException(
                f"Truncated varint at offset {offset}"
            )
        if pos - offset >= MAX_VARINT_BYTES:
            raise MalformedInputException(
                f"Varint at offset {offset} exceeds {MAX_VARINT_BYTES} bytes"
            )
        byte = data[pos]
        value |= (byte & 0x7F) << shift
        pos += 1
        if not byte & 0x80:
            break
        shift += 7
    if value > U64_MAX:
        raise MalformedInputException(f"Varint at offset {offset} overflows 64 bits")
    return value, pos


def encode_sfixed64(value: int) -> bytes:
    """Encode a signed 64-bit integer as 8 little-endian bytes."""
    try:
        return struct.pack("<q", value)
    except struct.error as e:
        raise MalformedInputException(
            f"Value out of signed 64-bit range: {value}"
        ) from e


def field_key(field_number: int, wire_type: int) -> bytes:
    return encode_varint((field_number << 3) | wire_type)


def varint_field(field_number: int, value: int) -> bytes:
    """Varint field; zero is omitted (proto3 default)."""
    if value == 0:
        return b""
    return field_key(field_number, WIRE_VARINT) + encode_varint(value)


def int64_field(field_number: int, value: int) -> bytes:
    """
    int64 field encoded as a varint of its two's complement.

    Negative values take the full 10 bytes, matching the reference
    protobuf runtime.
    """
    if value == 0:
        return b""
    return field_key(field_number, WIRE_VARINT) + encode_varint(value & U64_MAX)


def sfixed64_field(field_number: int, value: int) -> bytes:
    """sfixed64 field; zero is omitted."""
    if value == 0:
        return b""
    return field_key(field_number, WIRE_FIXED64) + encode_sfixed64(value)


def bytes_field(field_number: int, value: bytes) -> bytes:
    """Length-delimited bytes/string field; empty is omitted."""
    if not value:
        return b""
    return field_key(field_number, WIRE_LEN) + encode_varint(len(value)) + value


def message_field(field_number: int, payload: bytes) -> bytes:
    """
    Embedded message field, always emitted.

    Used for non-nullable sub-messages, which are written even when
    every inner field is at its default.
    """
    return field_key(field_number, WIRE_LEN) + encode_varint(len(payload)) + payload


def length_prefixed(payload: bytes) -> bytes:
    """Prefix a serialized message with its varint length (delimited form)."""
    return encode_varint(len(payload)) + payload


__all__ = [
    "WIRE_VARINT",
    "WIRE_FIXED64",
    "WIRE_LEN",
    "U64_MAX",
    "encode_varint",
    "decode_varint",
    "encode_sfixed64",
    "field_key",
    "varint_field",
    "int64_field",
    "sfixed64_field",
    "bytes_field",
    "message_field",
    "length_prefixed",
]
