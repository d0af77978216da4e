"""
Module 02 - Signature Tests
Tests for bridge_core/crypto/signatures.py
"""
from bridge_core.crypto.hashing import sha256
from bridge_core.crypto.signatures import (
    PUBKEY_SIZE,
    SIGNATURE_SIZE,
    public_key_from_seed,
    sign,
    verify,
)


SEED = sha256(b"validator-0")


class TestEd25519:
    """Sign and verify."""

    def test_sign_and_verify(self):
        """A fresh signature verifies under the derived key."""
        pub = public_key_from_seed(SEED)
        sig = sign(b"precommit", SEED)
        assert len(pub) == PUBKEY_SIZE
        assert len(sig) == SIGNATURE_SIZE
        assert verify(b"precommit", sig, pub)

    def test_deterministic(self):
        """Ed25519 signatures are deterministic."""
        assert sign(b"msg", SEED) == sign(b"msg", SEED)

    def test_wrong_message(self):
        """Signature does not cover a different payload."""
        sig = sign(b"precommit", SEED)
        assert not verify(b"prevote", sig, public_key_from_seed(SEED))

    def test_wrong_key(self):
        """Signature does not verify under another key."""
        sig = sign(b"precommit", SEED)
        other = public_key_from_seed(sha256(b"validator-1"))
        assert not verify(b"precommit", sig, other)

    def test_malformed_inputs_are_false(self):
        """Bad lengths verify as False instead of raising."""
        sig = sign(b"precommit", SEED)
        pub = public_key_from_seed(SEED)
        assert not verify(b"precommit", sig[:63], pub)
        assert not verify(b"precommit", sig, pub[:31])
