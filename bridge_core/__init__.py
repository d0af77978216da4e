"""
Tendermint bridge verification core.

Subpackages:
- crypto: tree hashing and Ed25519 signatures
- encoding: protobuf wire primitives
- merkle: Merkle trees, enable-bit reduction and inclusion proofs
- schemas: errors, chain data models, proofs and verification results
- tendermint: header proofs, validator sets, votes, step/skip, data commitments
- config: protocol parameters and runtime configuration
"""

__version__ = "0.1.0"
