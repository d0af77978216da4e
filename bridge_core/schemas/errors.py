"""
Module 01 - Schemas & Canonicalization
File: errors.py

Purpose: Error taxonomy for the bridge verification core.
Defines both Pydantic models for structured error reporting
and Python exceptions for control flow.

Every failure is typed; nothing in the core coerces an ambiguous
input into a default value.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the core."""

    # Input Errors
    MALFORMED_INPUT = "MALFORMED_INPUT"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"

    # Hash & Merkle Errors
    HASH_MISMATCH = "HASH_MISMATCH"

    # Consensus Errors
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    THRESHOLD_NOT_MET = "THRESHOLD_NOT_MET"

    # Bounds Errors
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    ARITHMETIC_OVERFLOW = "ARITHMETIC_OVERFLOW"

    # Orchestration Errors
    DATA_SOURCE_ERROR = "DATA_SOURCE_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"


# =============================================================================
# Pydantic Error Model (Structured Communication)
# =============================================================================

class BridgeError(BaseModel):
    """
    Structured error passed between the pipeline and its callers.

    Produced from a raised BridgeException so that failures can be
    serialized (CLI --json output, verification reports).
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.HASH_MISMATCH],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the caller may retry the whole attempt",
    )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class BridgeException(Exception):
    """
    Base exception for all bridge verification errors.

    Carries structured error information and converts to a
    BridgeError model.
    """

    def __init__(
        self,
        message: str,
        code: str = "BRIDGE_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> BridgeError:
        """Convert this exception to a BridgeError model."""
        return BridgeError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class MalformedInputException(BridgeException):
    """Wrong byte length, missing field or out-of-range index."""

    def __init__(
        self,
        message: str,
        field_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if field_path:
            full_details["field_path"] = field_path
        super().__init__(
            message=message,
            code=ErrorCodes.MALFORMED_INPUT,
            details=full_details,
        )


class CanonicalizationException(BridgeException):
    """Exception raised when canonical serialization fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANONICALIZATION_ERROR,
            details=details,
        )


class HashMismatchException(BridgeException):
    """A computed hash disagrees with an expected or proof-supplied hash."""

    def __init__(
        self,
        message: str,
        expected: bytes | None = None,
        actual: bytes | None = None,
        leaf_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if expected is not None:
            full_details["expected"] = expected.hex()
        if actual is not None:
            full_details["actual"] = actual.hex()
        if leaf_index is not None:
            full_details["leaf_index"] = leaf_index
        super().__init__(
            message=message,
            code=ErrorCodes.HASH_MISMATCH,
            details=full_details,
        )


class SignatureInvalidException(BridgeException):
    """A commit signature does not verify against its validator key."""

    def __init__(
        self,
        message: str,
        validator_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if validator_index is not None:
            full_details["validator_index"] = validator_index
        super().__init__(
            message=message,
            code=ErrorCodes.SIGNATURE_INVALID,
            details=full_details,
        )


class ThresholdNotMetException(BridgeException):
    """Signed voting power is below the required fraction of the total."""

    def __init__(
        self,
        message: str,
        accumulated: int | None = None,
        total: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if accumulated is not None:
            full_details["accumulated"] = accumulated
        if total is not None:
            full_details["total"] = total
        super().__init__(
            message=message,
            code=ErrorCodes.THRESHOLD_NOT_MET,
            details=full_details,
        )


class CapacityExceededException(BridgeException):
    """More leaves than the configured maximum."""

    def __init__(
        self,
        message: str,
        size: int | None = None,
        capacity: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if size is not None:
            full_details["size"] = size
        if capacity is not None:
            full_details["capacity"] = capacity
        super().__init__(
            message=message,
            code=ErrorCodes.CAPACITY_EXCEEDED,
            details=full_details,
        )


class ArithmeticOverflowException(BridgeException):
    """Voting-power arithmetic left the unsigned 64-bit range."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.ARITHMETIC_OVERFLOW,
            details=details,
        )


class DataSourceException(BridgeException):
    """Block data could not be loaded. The caller may re-fetch and retry."""

    def __init__(
        self,
        message: str,
        height: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if height is not None:
            full_details["height"] = height
        super().__init__(
            message=message,
            code=ErrorCodes.DATA_SOURCE_ERROR,
            details=full_details,
            retryable=True,
        )


class ConfigException(BridgeException):
    """Invalid configuration value."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CONFIG_ERROR,
            details=details,
        )


__all__ = [
    "ErrorCodes",
    "BridgeError",
    "BridgeException",
    "MalformedInputException",
    "CanonicalizationException",
    "HashMismatchException",
    "SignatureInvalidException",
    "ThresholdNotMetException",
    "CapacityExceededException",
    "ArithmeticOverflowException",
    "DataSourceException",
    "ConfigException",
]
