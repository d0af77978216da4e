"""
Test fixtures package for bridge tests.

- chain.py: deterministic signed chains built from Ed25519 seeds

Usage:
    from fixtures.chain import make_chain

    def test_something():
        trusted, target = make_chain(2)
"""

from .chain import (
    CHAIN_ID,
    POWERS,
    START_HEIGHT,
    Keyring,
    make_chain,
    make_commit,
    make_header,
    make_keyring,
    make_signed_block,
    validator_seed,
)

__all__ = [
    "CHAIN_ID",
    "POWERS",
    "START_HEIGHT",
    "Keyring",
    "make_chain",
    "make_commit",
    "make_header",
    "make_keyring",
    "make_signed_block",
    "validator_seed",
]
