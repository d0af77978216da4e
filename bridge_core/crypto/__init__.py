"""
Core cryptographic utilities.

Module 02 provides Tendermint tree hashing and Ed25519 verification.
"""
from .hashing import (
    HASH_SIZE,
    sha256,
    empty_hash,
    leaf_hash,
    inner_hash,
    to_hex,
    from_hex,
)
from .signatures import (
    PUBKEY_SIZE,
    SIGNATURE_SIZE,
    sign,
    public_key_from_seed,
    verify,
)

__all__ = [
    "HASH_SIZE",
    "sha256",
    "empty_hash",
    "leaf_hash",
    "inner_hash",
    "to_hex",
    "from_hex",
    "PUBKEY_SIZE",
    "SIGNATURE_SIZE",
    "sign",
    "public_key_from_seed",
    "verify",
]
