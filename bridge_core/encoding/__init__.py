"""
Protobuf wire-format helpers for hashed and signed Tendermint messages.
"""
from .protobuf import (
    WIRE_VARINT,
    WIRE_FIXED64,
    WIRE_LEN,
    U64_MAX,
    encode_varint,
    decode_varint,
    encode_sfixed64,
    field_key,
    varint_field,
    int64_field,
    sfixed64_field,
    bytes_field,
    message_field,
    length_prefixed,
)

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
