"""
Module 07 - Voting Power Verifier
Checked voting-power sums and the supermajority threshold test.

Owner: Protocol/Crypto Engineer
Module ID: M07

Each validator's power fits in 63 bits; sums are held to the unsigned
64-bit range and rejected outside it. The threshold comparison
acc * den >= total * num is evaluated exactly (up to 96-bit products).
"""
from __future__ import annotations

from typing import Sequence

from bridge_core.schemas.errors import (
    ArithmeticOverflowException,
    MalformedInputException,
    ThresholdNotMetException,
)
from bridge_core.schemas.validator import MAX_VOTING_POWER, SignedSlot, ValidatorSlot


U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1

DEFAULT_THRESHOLD: tuple[int, int] = (2, 3)


def checked_add(a: int, b: int) -> int:
    """a + b, raising if the result leaves the unsigned 64-bit range."""
    total = a + b
    if total > U64_MAX:
        raise ArithmeticOverflowException(
            f"Voting power sum overflows 64 bits: {a} + {b}",
            details={"a": a, "b": b},
        )
    return total


def _check_power(power: int, position: int) -> None:
    if not 0 <= power <= MAX_VOTING_POWER:
        raise MalformedInputException(
            f"Voting power at position {position} out of range: {power}",
            details={"position": position},
        )


def accumulate(powers: Sequence[int], enabled: Sequence[bool]) -> int:
    """
    Sum the powers whose flag is set.

    Raises:
        MalformedInputException: On length mismatch or a power outside
            [0, 2^63 - 1]
        ArithmeticOverflowException: If the sum exceeds 2^64 - 1
    """
    if len(powers) != len(enabled):
        raise MalformedInputException(
            f"Got {len(powers)} powers for {len(enabled)} flags"
        )
    acc = 0
    for i, (power, flag) in enumerate(zip(powers, enabled)):
        _check_power(power, i)
        if flag:
            acc = checked_add(acc, power)
    return acc


def total_power(powers: Sequence[int]) -> int:
    """Sum over the whole set; padding positions carry zero."""
    return accumulate(powers, [True] * len(powers))


def signed_power(slots: Sequence[ValidatorSlot]) -> int:
    """Power of the slots holding a verified vote for the block."""
    return accumulate(
        [slot.voting_power for slot in slots],
        [isinstance(slot, SignedSlot) for slot in slots],
    )


def slots_total_power(slots: Sequence[ValidatorSlot]) -> int:
    return total_power([slot.voting_power for slot in slots])


def _check_threshold_params(numerator: int, denominator: int) -> None:
    if not 0 <= numerator <= U32_MAX or not 0 < denominator <= U32_MAX:
        raise MalformedInputException(
            f"Threshold {numerator}/{denominator} must be 32-bit with a positive denominator"
        )
    if numerator > denominator:
        raise MalformedInputException(
            f"Threshold {numerator}/{denominator} exceeds 1"
        )


def exceeds_threshold(
    accumulated: int,
    total: int,
    numerator: int = DEFAULT_THRESHOLD[0],
    denominator: int = DEFAULT_THRESHOLD[1],
) -> bool:
    """
    True iff accumulated / total >= numerator / denominator.

    A set with zero total power never meets a threshold.

    Args:
        accumulated: Power that voted
        total: Power of the whole set
        numerator: Threshold numerator (32-bit)
        denominator: Threshold denominator (32-bit, > 0)

    Raises:
        MalformedInputException: On an invalid threshold fraction
        ArithmeticOverflowException: If either power is outside 64 bits

    Example:
        >>> exceeds_threshold(20, 30), exceeds_threshold(19, 30)
        (True, False)
    """
    _check_threshold_params(numerator, denominator)
    for name, value in (("accumulated", accumulated), ("total", total)):
        if not 0 <= value <= U64_MAX:
            raise ArithmeticOverflowException(
                f"{name} voting power outside 64-bit range: {value}"
            )
    if total == 0:
        return False
    return accumulated * denominator >= total * numerator


def require_threshold(
    accumulated: int,
    total: int,
    numerator: int = DEFAULT_THRESHOLD[0],
    denominator: int = DEFAULT_THRESHOLD[1],
) -> None:
    """Raise ThresholdNotMetException unless exceeds_threshold holds."""
    if not exceeds_threshold(accumulated, total, numerator, denominator):
        raise ThresholdNotMetException(
            f"Voting power {accumulated}/{total} below {numerator}/{denominator}",
            accumulated=accumulated,
            total=total,
            details={"numerator": numerator, "denominator": denominator},
        )


__all__ = [
    "U32_MAX",
    "U64_MAX",
    "DEFAULT_THRESHOLD",
    "checked_add",
    "accumulate",
    "total_power",
    "signed_power",
    "slots_total_power",
    "exceeds_threshold",
    "require_threshold",
]
