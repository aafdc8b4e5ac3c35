"""Bounded, thread-safe history ledger.

The ledger keeps every recorded invocation in allocation order (oldest
first) and never holds more than ``max_history`` entries. When an append
pushes it over capacity, the oldest entries are dropped in one slice.

A single lock guards the entry list, the id counter and the last issued
timestamp, so ``record``, ``get_history`` and ``clear`` never observe a
partially applied mutation.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Protocol

from models import HistoryEntry, Operator, _utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 1000


class HistoryBackend(Protocol):
    """Storage contract used by the calculator service."""

    def record(
        self,
        operator: Operator,
        a: float,
        b: float,
        result: float = 0.0,
        error_message: str = "",
    ) -> HistoryEntry: ...

    def get_history(self, limit: int = 0) -> list[HistoryEntry]: ...

    def clear(self) -> None: ...

    def count(self) -> int: ...


class HistoryLedger:
    """In-memory ledger with FIFO eviction."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        if max_history <= 0:
            logger.warning(
                "Ignoring non-positive max_history=%d, keeping %d",
                max_history,
                DEFAULT_MAX_HISTORY,
            )
            max_history = DEFAULT_MAX_HISTORY
        self._max_history = max_history
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] = []
        self._next_id = 0
        self._last_timestamp: datetime | None = None

    @property
    def max_history(self) -> int:
        return self._max_history

    # -- mutation ------------------------------------------------------------

    def record(
        self,
        operator: Operator,
        a: float,
        b: float,
        result: float = 0.0,
        error_message: str = "",
    ) -> HistoryEntry:
        """Append a new entry and trim the oldest ones past capacity."""
        with self._lock:
            now = _utcnow()
            # Wall clock may step backwards; timestamps must not.
            if self._last_timestamp is not None and now < self._last_timestamp:
                now = self._last_timestamp
            entry = HistoryEntry(
                id=self._next_id,
                timestamp=now,
                operator=Operator(operator),
                operand_a=a,
                operand_b=b,
                result=result,
                error_message=error_message,
            )
            self._next_id += 1
            self._last_timestamp = now

            self._entries.append(entry)
            excess = len(self._entries) - self._max_history
            if excess > 0:
                del self._entries[:excess]
                logger.debug("Evicted %d history entries", excess)
            return entry

    def clear(self) -> None:
        """Drop every stored entry. Ids keep counting from where they were."""
        with self._lock:
            dropped = len(self._entries)
            self._entries = []
        logger.info("History cleared (%d entries dropped)", dropped)

    # -- reads ---------------------------------------------------------------

    def get_history(self, limit: int = 0) -> list[HistoryEntry]:
        """Return up to ``limit`` most recent entries, newest first.

        A non-positive limit, or one larger than the stored count, returns
        everything. The returned list is a fresh copy; entries are frozen.
        """
        with self._lock:
            size = len(self._entries)
            if limit <= 0 or limit > size:
                limit = size
            return self._entries[size - limit :][::-1]

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count()
