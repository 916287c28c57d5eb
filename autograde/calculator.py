"""Accumulator-style calculator used by the calculator assignment.

Reference solution: a single integer value mutated in place by
add/sub/mul/div and read or replaced with get/set.
"""

from __future__ import annotations


class Calculator:
    """Holds one integer, starting at zero.

    Not thread-safe: callers sharing an instance must serialize access.
    """

    def __init__(self) -> None:
        self._value = 0

    def get(self) -> int:
        return self._value

    def set(self, x: int) -> None:
        self._value = x

    def add(self, x: int) -> None:
        self._value += x

    def sub(self, x: int) -> None:
        self._value -= x

    def mul(self, x: int) -> None:
        self._value *= x

    def div(self, x: int) -> None:
        """Divide the value by x, truncating toward zero.

        Python's // floors, so -7 // 2 would give -4; the quotient is computed
        on magnitudes and the sign reapplied to get -3 instead.

        Raises:
            ZeroDivisionError: x is 0. The value is left unchanged.
        """
        if x == 0:
            raise ZeroDivisionError("calculator division by zero")
        quotient = abs(self._value) // abs(x)
        self._value = quotient if (self._value < 0) == (x < 0) else -quotient

    def __repr__(self) -> str:
        return f"Calculator(value={self._value})"
