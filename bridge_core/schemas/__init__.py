"""
Module 01 - Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
Errors, canonical JSON and verification results are re-exported here.
Chain-data and proof schemas (header, validator, commit, proof) sit on
top of the Merkle layer and are imported from their own modules.
"""

# Error models and exceptions
from .errors import (
    ArithmeticOverflowException,
    BridgeError,
    BridgeException,
    CanonicalizationException,
    CapacityExceededException,
    ConfigException,
    DataSourceException,
    ErrorCodes,
    HashMismatchException,
    MalformedInputException,
    SignatureInvalidException,
    ThresholdNotMetException,
)

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonicalize_value,
    dumps_canonical,
    loads_canonical,
)

# Verification results
from .verification import (
    CheckResult,
    CheckSeverity,
    VerificationResult,
)


__all__ = [
    # Errors
    "ArithmeticOverflowException",
    "BridgeError",
    "BridgeException",
    "CanonicalizationException",
    "CapacityExceededException",
    "ConfigException",
    "DataSourceException",
    "ErrorCodes",
    "HashMismatchException",
    "MalformedInputException",
    "SignatureInvalidException",
    "ThresholdNotMetException",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "canonicalize_value",
    "dumps_canonical",
    "loads_canonical",
    # Verification
    "CheckResult",
    "CheckSeverity",
    "VerificationResult",
]
