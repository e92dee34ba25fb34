"""
Unit tests for monexo.core.amount: checked arithmetic and denomination split.
"""

import pytest

from monexo.core.amount import MAX_AMOUNT, Amount, checked_sum, split
from monexo.core.errors import InvalidAmount


class TestSplit:

    @pytest.mark.parametrize(
        "amount, expected",
        [
            (0, []),
            (1, [1]),
            (13, [1, 4, 8]),
            (63, [1, 2, 4, 8, 16, 32]),
            (64, [64]),
        ],
    )
    def test_examples(self, amount, expected):
        assert split(amount) == expected

    def test_sum_and_popcount(self):
        for amount in (3, 100, 1023, 123_456_789, MAX_AMOUNT):
            parts = split(amount)
            assert sum(parts) == amount
            assert len(parts) == bin(amount).count("1")
            assert parts == sorted(parts)

    def test_max_amount(self):
        parts = split(MAX_AMOUNT)
        assert len(parts) == 64
        assert parts[-1] == 2**63

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmount):
            split(-1)

    def test_too_large_rejected(self):
        with pytest.raises(InvalidAmount, match="overflow"):
            split(MAX_AMOUNT + 1)


class TestAmount:

    def test_add_sub(self):
        assert Amount(5).add(3) == Amount(8)
        assert Amount(5).sub(Amount(5)) == Amount(0)

    def test_mul_div(self):
        assert Amount(6).mul(7).value == 42
        assert Amount(7).div(2).value == 3

    def test_overflow(self):
        with pytest.raises(InvalidAmount, match="overflow"):
            Amount(MAX_AMOUNT).add(1)

    def test_mul_overflow(self):
        with pytest.raises(InvalidAmount, match="overflow"):
            Amount(2**63).mul(2)

    def test_underflow(self):
        with pytest.raises(InvalidAmount, match="underflow"):
            Amount(1).sub(2)

    def test_division_by_zero(self):
        with pytest.raises(InvalidAmount, match="Division by zero"):
            Amount(1).div(0)

    def test_rejects_non_integer(self):
        with pytest.raises(InvalidAmount):
            Amount(1.5)

    def test_rejects_bool(self):
        with pytest.raises(InvalidAmount):
            Amount(True)

    def test_split_method(self):
        assert Amount(13).split() == [1, 4, 8]

    def test_error_code(self):
        with pytest.raises(InvalidAmount) as exc_info:
            Amount(-1)
        assert exc_info.value.code == 10001


class TestCheckedSum:

    def test_sum(self):
        assert checked_sum([1, 2, 4]) == 7
        assert checked_sum([]) == 0

    def test_overflow(self):
        with pytest.raises(InvalidAmount):
            checked_sum([MAX_AMOUNT, 1])
