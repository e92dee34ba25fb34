"""
Amounts and power-of-two denomination splitting.

Amounts are unsigned 64-bit integers. Arithmetic is checked: any result
outside [0, 2^64 - 1] raises InvalidAmount instead of wrapping.
"""

from __future__ import annotations

from dataclasses import dataclass

from monexo.core.errors import InvalidAmount

MAX_AMOUNT = 2**64 - 1


def _checked(value: int) -> int:
    if value < 0:
        raise InvalidAmount(f"Amount underflow: {value}")
    if value > MAX_AMOUNT:
        raise InvalidAmount("Amount overflow")
    return value


@dataclass(frozen=True, order=True)
class Amount:
    """A bounded non-negative amount in the smallest unit."""
    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise InvalidAmount(f"Amount must be an integer, got {type(self.value).__name__}")
        _checked(self.value)

    def __int__(self) -> int:
        return self.value

    def add(self, other: Amount | int) -> Amount:
        return Amount(_checked(self.value + int(other)))

    def sub(self, other: Amount | int) -> Amount:
        return Amount(_checked(self.value - int(other)))

    def mul(self, other: Amount | int) -> Amount:
        return Amount(_checked(self.value * int(other)))

    def div(self, other: Amount | int) -> Amount:
        divisor = int(other)
        if divisor == 0:
            raise InvalidAmount("Division by zero")
        return Amount(self.value // divisor)

    def split(self) -> list[int]:
        return split(self.value)


def split(amount: int) -> list[int]:
    """
    Decompose an amount into ascending powers of two, one per set bit.

        split(13) == [1, 4, 8]
        split(0)  == []

    Raises:
        InvalidAmount: If the amount is negative or exceeds 2^64 - 1.
    """
    _checked(amount)
    return [1 << i for i in range(amount.bit_length()) if amount >> i & 1]


def checked_sum(amounts) -> int:
    """Sum of amounts; InvalidAmount if the total leaves the u64 range."""
    total = 0
    for a in amounts:
        total = _checked(total + _checked(int(a)))
    return total
