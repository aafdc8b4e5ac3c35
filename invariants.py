"""Executable rules over a history snapshot.

Each rule is a named predicate over a newest-first list of entries (as
returned by ``get_history``) plus the ledger capacity. ``check_history``
returns the rules a snapshot breaks, so an empty list means conformance.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from models import HistoryEntry, Operator
from service import _OPERATIONS

Snapshot = list[HistoryEntry]


# ---------------------------------------------------------------------------
# Rule: a named, executable predicate over a snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    """A named rule checked against a history snapshot."""

    id: str
    name: str
    description: str
    check: Callable[[Snapshot, int], bool]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _within_capacity(entries: Snapshot, max_history: int) -> bool:
    return len(entries) <= max_history


def _ids_newest_first(entries: Snapshot, max_history: int) -> bool:
    return all(a.id > b.id for a, b in zip(entries, entries[1:]))


def _ids_non_negative(entries: Snapshot, max_history: int) -> bool:
    return all(e.id >= 0 for e in entries)


def _timestamps_newest_first(entries: Snapshot, max_history: int) -> bool:
    return all(a.timestamp >= b.timestamp for a, b in zip(entries, entries[1:]))


def _failures_have_zero_result(entries: Snapshot, max_history: int) -> bool:
    return all(e.result == 0 for e in entries if not e.ok)


def _failures_are_division_by_zero(entries: Snapshot, max_history: int) -> bool:
    """Only divide can fail, and only for an exactly zero divisor."""
    for e in entries:
        if e.ok:
            continue
        if e.operator != Operator.DIVIDE or e.operand_b != 0:
            return False
        if "division by zero" not in e.error_message.lower():
            return False
    return True


def _successes_match_operation(entries: Snapshot, max_history: int) -> bool:
    """Successful entries hold the result of their operator on their operands."""
    for e in entries:
        if not e.ok or (e.operator == Operator.DIVIDE and e.operand_b == 0):
            continue
        expected = _OPERATIONS[e.operator](e.operand_a, e.operand_b)
        if e.result != expected and not (e.result != e.result and expected != expected):
            return False
    return True


def _zero_divisor_always_fails(entries: Snapshot, max_history: int) -> bool:
    return all(
        not e.ok
        for e in entries
        if e.operator == Operator.DIVIDE and e.operand_b == 0
    )


# ---------------------------------------------------------------------------
# Rule set
# ---------------------------------------------------------------------------

HISTORY_RULES: list[Rule] = [
    Rule(
        id="HIST-CAPACITY",
        name="within_capacity",
        description="Snapshot never holds more than max_history entries",
        check=_within_capacity,
    ),
    Rule(
        id="HIST-ID-ORDER",
        name="ids_newest_first",
        description="Ids strictly decrease from newest to oldest",
        check=_ids_newest_first,
    ),
    Rule(
        id="HIST-ID-RANGE",
        name="ids_non_negative",
        description="Ids are non-negative integers",
        check=_ids_non_negative,
    ),
    Rule(
        id="HIST-TIME-ORDER",
        name="timestamps_newest_first",
        description="Timestamps never increase from newest to oldest",
        check=_timestamps_newest_first,
    ),
    Rule(
        id="HIST-FAIL-RESULT",
        name="failures_have_zero_result",
        description="Failed entries carry a zero result",
        check=_failures_have_zero_result,
    ),
    Rule(
        id="HIST-FAIL-KIND",
        name="failures_are_division_by_zero",
        description="Only divide by an exact zero is recorded as a failure",
        check=_failures_are_division_by_zero,
    ),
    Rule(
        id="HIST-DIV-ZERO",
        name="zero_divisor_always_fails",
        description="Every divide by zero is recorded with an error message",
        check=_zero_divisor_always_fails,
    ),
    Rule(
        id="HIST-RESULT",
        name="successes_match_operation",
        description="Successful entries carry the operator applied to their operands",
        check=_successes_match_operation,
    ),
]


def check_history(entries: Snapshot, max_history: int) -> list[Rule]:
    """Return the rules a newest-first snapshot violates, in rule order."""
    return [rule for rule in HISTORY_RULES if not rule.check(entries, max_history)]
