"""Tests for the bounded history ledger."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from pydantic import ValidationError

import history
from history import DEFAULT_MAX_HISTORY, HistoryLedger
from models import Operator


def _fill(ledger: HistoryLedger, n: int) -> None:
    for i in range(n):
        ledger.record(Operator.ADD, float(i), 0.0, float(i))


class TestConstruction:

    def test_default_capacity(self):
        assert HistoryLedger().max_history == DEFAULT_MAX_HISTORY == 1000

    def test_custom_capacity(self):
        assert HistoryLedger(max_history=3).max_history == 3

    @pytest.mark.parametrize("bad", [0, -1, -1000])
    def test_non_positive_capacity_keeps_default(self, bad):
        assert HistoryLedger(max_history=bad).max_history == DEFAULT_MAX_HISTORY

    def test_starts_empty(self, ledger):
        assert ledger.count() == 0
        assert ledger.get_history() == []


class TestRecord:

    def test_record_returns_entry(self, ledger):
        entry = ledger.record(Operator.ADD, 1, 2, 3)
        assert entry.id == 0
        assert entry.operator == Operator.ADD
        assert entry.operand_a == 1
        assert entry.operand_b == 2
        assert entry.result == 3
        assert entry.error_message == ""
        assert entry.ok

    def test_record_accepts_operator_name(self, ledger):
        entry = ledger.record("multiply", 3, 7, 21)
        assert entry.operator == Operator.MULTIPLY

    def test_record_failure(self, ledger):
        entry = ledger.record(
            Operator.DIVIDE, 5, 0, 0, "division by zero is not allowed"
        )
        assert not entry.ok
        assert entry.result == 0

    def test_ids_are_sequential(self, ledger):
        ids = [ledger.record(Operator.ADD, i, i, 2 * i).id for i in range(5)]
        assert ids == [0, 1, 2, 3, 4]

    def test_timestamps_are_set_and_ordered(self, ledger):
        _fill(ledger, 10)
        entries = ledger.get_history()
        assert all(e.timestamp.tzinfo is not None for e in entries)
        assert all(
            a.timestamp >= b.timestamp for a, b in zip(entries, entries[1:])
        )

    def test_timestamp_never_moves_backwards(self, ledger, monkeypatch):
        first = ledger.record(Operator.ADD, 1, 1, 2)
        earlier = first.timestamp - timedelta(hours=1)
        monkeypatch.setattr(history, "_utcnow", lambda: earlier)
        second = ledger.record(Operator.ADD, 2, 2, 4)
        assert second.timestamp == first.timestamp

    def test_entries_are_immutable(self, ledger):
        entry = ledger.record(Operator.ADD, 1, 2, 3)
        with pytest.raises(ValidationError):
            entry.result = 42


class TestGetHistory:

    def test_newest_first(self, ledger):
        _fill(ledger, 5)
        assert [e.operand_a for e in ledger.get_history()] == [4, 3, 2, 1, 0]

    def test_limit_returns_most_recent(self, ledger):
        _fill(ledger, 5)
        assert [e.operand_a for e in ledger.get_history(3)] == [4, 3, 2]

    def test_limit_equal_to_size(self, ledger):
        _fill(ledger, 5)
        assert len(ledger.get_history(5)) == 5

    @pytest.mark.parametrize("limit", [0, -1, 6, 1000])
    def test_out_of_range_limit_returns_all(self, ledger, limit):
        _fill(ledger, 5)
        assert [e.id for e in ledger.get_history(limit)] == [4, 3, 2, 1, 0]

    def test_snapshot_unaffected_by_record(self, ledger):
        _fill(ledger, 2)
        snapshot = ledger.get_history()
        ledger.record(Operator.ADD, 9, 9, 18)
        assert [e.id for e in snapshot] == [1, 0]

    def test_snapshot_unaffected_by_clear(self, ledger):
        _fill(ledger, 2)
        snapshot = ledger.get_history()
        ledger.clear()
        assert len(snapshot) == 2

    def test_mutating_snapshot_does_not_touch_ledger(self, ledger):
        _fill(ledger, 3)
        snapshot = ledger.get_history()
        snapshot.clear()
        assert ledger.count() == 3


class TestEviction:

    def test_capacity_three_keeps_last_three(self):
        ledger = HistoryLedger(max_history=3)
        _fill(ledger, 5)
        entries = ledger.get_history(10)
        assert [e.id for e in entries] == [4, 3, 2]
        assert [e.operand_a for e in entries] == [4, 3, 2]

    def test_never_exceeds_capacity(self):
        ledger = HistoryLedger(max_history=7)
        for i in range(50):
            ledger.record(Operator.SUBTRACT, i, 1, i - 1)
            assert ledger.count() <= 7

    def test_ids_not_reused_after_eviction(self):
        ledger = HistoryLedger(max_history=2)
        _fill(ledger, 4)
        assert ledger.record(Operator.ADD, 0, 0, 0).id == 4


class TestClear:

    def test_clear_empties(self, ledger):
        _fill(ledger, 3)
        ledger.clear()
        assert ledger.get_history() == []
        assert len(ledger) == 0

    def test_clear_is_idempotent(self, ledger):
        _fill(ledger, 3)
        ledger.clear()
        ledger.clear()
        assert ledger.get_history() == []

    def test_clear_on_empty_ledger(self, ledger):
        ledger.clear()
        assert ledger.get_history() == []

    def test_ids_continue_after_clear(self, ledger):
        _fill(ledger, 3)
        ledger.clear()
        assert ledger.record(Operator.ADD, 1, 1, 2).id == 3


class TestConcurrency:

    def test_concurrent_records_are_gap_free(self):
        threads, per_thread = 16, 100
        ledger = HistoryLedger(max_history=threads * per_thread)

        def worker(t: int) -> None:
            for i in range(per_thread):
                ledger.record(Operator.ADD, float(t), float(i), float(t + i))

        with ThreadPoolExecutor(max_workers=threads) as pool:
            list(pool.map(worker, range(threads)))

        entries = ledger.get_history()
        assert len(entries) == threads * per_thread
        assert sorted(e.id for e in entries) == list(range(threads * per_thread))
        assert [e.id for e in entries] == sorted(
            (e.id for e in entries), reverse=True
        )
        submitted = sorted(
            (float(t), float(i)) for t in range(threads) for i in range(per_thread)
        )
        recorded = sorted((e.operand_a, e.operand_b) for e in entries)
        assert recorded == submitted

    def test_concurrent_records_respect_capacity(self):
        ledger = HistoryLedger(max_history=10)

        def worker(t: int) -> None:
            for i in range(200):
                ledger.record(Operator.MULTIPLY, t, i, t * i)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(worker, range(8)))

        entries = ledger.get_history()
        assert len(entries) == 10
        assert [e.id for e in entries] == list(range(1599, 1589, -1))

    def test_reads_and_clears_during_writes(self):
        ledger = HistoryLedger(max_history=50)

        def writer(t: int) -> None:
            for i in range(300):
                ledger.record(Operator.ADD, t, i, t + i)

        def reader(_: int) -> None:
            for _ in range(300):
                snapshot = ledger.get_history(20)
                assert len(snapshot) <= 20
                ids = [e.id for e in snapshot]
                assert ids == sorted(ids, reverse=True)
                assert len(set(ids)) == len(ids)

        def clearer(_: int) -> None:
            for _ in range(50):
                ledger.clear()

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(writer, t) for t in range(4)]
            futures += [pool.submit(reader, t) for t in range(3)]
            futures.append(pool.submit(clearer, 0))
            for f in futures:
                f.result()

        assert ledger.count() <= 50
        assert ledger.record(Operator.ADD, 0, 0, 0).id == 1200
