"""
Module 02 - Signatures
Ed25519 signing and verification for validator precommits.

Owner: Protocol/Crypto Engineer
Module ID: M02
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat


PUBKEY_SIZE = 32
SIGNATURE_SIZE = 64


def sign(payload: bytes, private_key: bytes) -> bytes:
    """Sign payload with a 32-byte Ed25519 seed. Used to build fixtures."""
    return Ed25519PrivateKey.from_private_bytes(private_key).sign(payload)


def public_key_from_seed(private_key: bytes) -> bytes:
    """Derive the raw 32-byte Ed25519 public key for a seed."""
    public = Ed25519PrivateKey.from_private_bytes(private_key).public_key()
    return public.public_bytes(Encoding.Raw, PublicFormat.Raw)


def verify(payload: bytes, signature: bytes, public_key: bytes) -> bool:
    """
    Verify an Ed25519 signature over payload.

    Malformed keys or signatures verify as False rather than raising; the
    caller decides which error kind a failure maps to.
    """
    if len(public_key) != PUBKEY_SIZE or len(signature) != SIGNATURE_SIZE:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, payload)
    except (InvalidSignature, ValueError):
        return False
    return True


__all__ = [
    "PUBKEY_SIZE",
    "SIGNATURE_SIZE",
    "sign",
    "public_key_from_seed",
    "verify",
]
