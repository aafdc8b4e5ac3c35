"""Arithmetic operations over two real numbers.

Each operation is a plain function with no side effects. Inputs are
expected to be finite; filtering non-finite values is the caller's job.
"""
from __future__ import annotations


class DivisionByZeroError(ZeroDivisionError):
    """Raised by divide() when the divisor is exactly zero."""

    def __init__(self, message: str = "division by zero is not allowed") -> None:
        super().__init__(message)


def add(a: float, b: float) -> float:
    return a + b


def subtract(a: float, b: float) -> float:
    return a - b


def multiply(a: float, b: float) -> float:
    return a * b


def divide(a: float, b: float) -> float:
    """Divide a by b.

    Zero is tested with exact equality, so -0.0 is rejected as well.
    """
    if b == 0:
        raise DivisionByZeroError()
    return a / b
