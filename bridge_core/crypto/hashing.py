"""
Module 02 - Hashing Utilities
SHA-256 hashing with Tendermint's RFC-6962 domain separation.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- SHA-256 hashing for raw bytes
- Leaf hashing: sha256(0x00 || leaf_bytes)
- Inner hashing: sha256(0x01 || left || right)
- Empty hash: sha256(b"")
- Hex encoding/decoding with optional 0x prefix

Security/Determinism Notes:
- The 0x00 / 0x01 prefixes are mandatory on every tree hash. Omitting them
  allows a leaf to be confused with an inner node (second preimage).
- All operations are deterministic
"""
from __future__ import annotations

import hashlib


HASH_SIZE: int = 32

LEAF_PREFIX: bytes = b"\x00"
INNER_PREFIX: bytes = b"\x01"


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Args:
        data: Raw bytes to hash

    Returns:
        32-byte SHA-256 digest

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def empty_hash() -> bytes:
    """Root of a tree with no leaves: sha256 of empty input."""
    return sha256(b"")


def leaf_hash(leaf: bytes) -> bytes:
    """
    Hash leaf bytes with the Tendermint leaf prefix.

    Rule: leaf = sha256(0x00 || leaf_bytes)

    Args:
        leaf: Raw leaf bytes (any length, including empty)

    Returns:
        32-byte leaf hash
    """
    return sha256(LEAF_PREFIX + leaf)


def inner_hash(left: bytes, right: bytes) -> bytes:
    """
    Hash two child nodes into their parent.

    Rule: parent = sha256(0x01 || left || right)

    Args:
        left: Left child hash (32 bytes)
        right: Right child hash (32 bytes)

    Returns:
        32-byte parent hash
    """
    return sha256(INNER_PREFIX + left + right)


def to_hex(data: bytes, prefix: bool = True) -> str:
    """
    Convert bytes to a lowercase hexadecimal string.

    Args:
        data: Raw bytes
        prefix: Prepend "0x" when True

    Returns:
        Hex string (e.g., "0x1234abcd")

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    encoded = data.hex()
    return "0x" + encoded if prefix else encoded


def from_hex(hex_string: str) -> bytes:
    """
    Convert a hexadecimal string to bytes.

    Tendermint RPC returns upper-case hex without prefix, relayers use
    lower-case with "0x"; both are accepted.

    Args:
        hex_string: Hex string, with or without 0x prefix

    Returns:
        Decoded bytes

    Raises:
        ValueError: If the string has odd length or contains invalid
                   hex characters

    Example:
        >>> from_hex("0xdeadbeef").hex()
        'deadbeef'
    """
    hex_content = hex_string[2:] if hex_string.startswith(("0x", "0X")) else hex_string

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length, got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


__all__ = [
    "HASH_SIZE",
    "LEAF_PREFIX",
    "INNER_PREFIX",
    "sha256",
    "empty_hash",
    "leaf_hash",
    "inner_hash",
    "to_hex",
    "from_hex",
]
