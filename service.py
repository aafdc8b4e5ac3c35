"""Calculator service that records every invocation in a history ledger.

Each call computes the result, records exactly one ledger entry (on
success or failure) and then hands the result or error back unchanged.
"""
from __future__ import annotations

import logging
from typing import Callable, Protocol

import calculator
from calculator import DivisionByZeroError
from history import HistoryBackend, HistoryLedger
from models import HistoryEntry, Operator

logger = logging.getLogger(__name__)


class CalculatorService(Protocol):
    """Capability contract consumed by the HTTP layer."""

    def add(self, a: float, b: float) -> float: ...

    def subtract(self, a: float, b: float) -> float: ...

    def multiply(self, a: float, b: float) -> float: ...

    def divide(self, a: float, b: float) -> float: ...

    def execute(self, operator: Operator, a: float, b: float) -> float: ...

    def get_history(self, limit: int = 0) -> list[HistoryEntry]: ...

    def clear_history(self) -> None: ...


_OPERATIONS: dict[Operator, Callable[[float, float], float]] = {
    Operator.ADD: calculator.add,
    Operator.SUBTRACT: calculator.subtract,
    Operator.MULTIPLY: calculator.multiply,
    Operator.DIVIDE: calculator.divide,
}


class HistoryCalculatorService:
    """Default CalculatorService backed by a HistoryBackend."""

    def __init__(self, history: HistoryBackend | None = None) -> None:
        if history is None:
            history = HistoryLedger()
        self._history = history

    @property
    def history(self) -> HistoryBackend:
        return self._history

    # -- operations ----------------------------------------------------------

    def execute(self, operator: Operator, a: float, b: float) -> float:
        """Run one operation and record it, re-raising arithmetic errors."""
        operator = Operator(operator)
        try:
            result = _OPERATIONS[operator](a, b)
        except DivisionByZeroError as e:
            logger.info("%s(%r, %r) failed: %s", operator.value, a, b, e)
            self._history.record(operator, a, b, 0.0, str(e))
            raise
        self._history.record(operator, a, b, result, "")
        return result

    def add(self, a: float, b: float) -> float:
        return self.execute(Operator.ADD, a, b)

    def subtract(self, a: float, b: float) -> float:
        return self.execute(Operator.SUBTRACT, a, b)

    def multiply(self, a: float, b: float) -> float:
        return self.execute(Operator.MULTIPLY, a, b)

    def divide(self, a: float, b: float) -> float:
        return self.execute(Operator.DIVIDE, a, b)

    # -- history -------------------------------------------------------------

    def get_history(self, limit: int = 0) -> list[HistoryEntry]:
        return self._history.get_history(limit)

    def clear_history(self) -> None:
        self._history.clear()
