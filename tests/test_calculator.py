"""Tests for the reference Calculator."""

import pytest

from autograde.calculator import Calculator


@pytest.fixture
def calc():
    return Calculator()


def test_is_zero_initially(calc):
    assert calc.get() == 0


def test_set(calc):
    calc.set(11)
    assert calc.get() == 11


def test_set_accepts_negative(calc):
    calc.set(-5)
    assert calc.get() == -5


def test_add(calc):
    calc.add(2)
    calc.add(3)
    calc.add(4)
    assert calc.get() == 9


def test_sub(calc):
    calc.set(100)
    calc.sub(36)
    assert calc.get() == 64


def test_mul(calc):
    calc.set(6)
    calc.mul(7)
    assert calc.get() == 42


def test_div(calc):
    calc.set(20)
    calc.div(4)
    assert calc.get() == 5


def test_div_by_zero_raises_and_keeps_value(calc):
    calc.set(20)
    with pytest.raises(ZeroDivisionError):
        calc.div(0)
    assert calc.get() == 20


def test_order_matters(calc):
    calc.set(10)
    calc.sub(3)
    calc.mul(2)
    assert calc.get() == 14


@pytest.mark.parametrize("value, divisor, expected", [
    (7, 2, 3),
    (-7, 2, -3),
    (7, -2, -3),
    (-7, -2, 3),
    (1, 3, 0),
    (-1, 3, 0),
    (0, -5, 0),
])
def test_div_truncates_toward_zero(calc, value, divisor, expected):
    calc.set(value)
    calc.div(divisor)
    assert calc.get() == expected


def test_div_exact_on_large_values(calc):
    big = 10 ** 30 + 7
    calc.set(-big)
    calc.div(7)
    assert calc.get() == -(big // 7)


def test_value_stays_int(calc):
    calc.set(9)
    calc.div(2)
    assert isinstance(calc.get(), int)


def test_instances_are_independent():
    a, b = Calculator(), Calculator()
    a.add(5)
    assert b.get() == 0


def test_repr(calc):
    calc.set(3)
    assert repr(calc) == "Calculator(value=3)"
