"""
Append-only per-vessel measurement history.

New logs are concatenated with the vessel's stored history and the result is
kept sorted newest-first. Entries are never mutated or removed here.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping

from tankgauge_app.models import MeasurementLog
from tankgauge_app.repositories.history_repository import (
    HistoryReadError,
    MeasurementHistoryRepository,
)

_LOG = logging.getLogger(__name__)


def _sort_key(log: MeasurementLog) -> datetime:
    """Comparable timestamp: aware values are normalised to naive UTC."""
    ts = log.date_time
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def merge_history(
    existing: Iterable[MeasurementLog],
    new_logs: Iterable[MeasurementLog],
) -> List[MeasurementLog]:
    """Existing + new logs, sorted descending by timestamp (stable for equal timestamps)."""
    return sorted([*existing, *new_logs], key=_sort_key, reverse=True)


class MeasurementHistoryService:
    """
    Merges new logs into a vessel's persisted history.

    Read-merge-write for one vessel is serialised by a per-vessel lock, so
    concurrent appends to the same vessel within a process do not lose
    entries. Across processes the last writer wins.
    """

    def __init__(self, repository: MeasurementHistoryRepository) -> None:
        self._repo = repository
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, vessel_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(vessel_id)
            if lock is None:
                lock = self._locks[vessel_id] = threading.Lock()
            return lock

    def history(self, vessel_id: str) -> List[MeasurementLog]:
        return self._repo.get(vessel_id)

    def append(self, vessel_id: str, new_logs: Iterable[MeasurementLog]) -> List[MeasurementLog]:
        """
        Merge new_logs into the vessel's history and store the result.

        Raises:
            HistoryReadError: stored history is unreadable; nothing is written
        """
        new_logs = list(new_logs)
        with self._lock_for(vessel_id):
            merged = merge_history(self._repo.get(vessel_id), new_logs)
            self._repo.put(vessel_id, merged)
        _LOG.debug("Merged %d new log(s) into history of vessel %s (%d total)",
                   len(new_logs), vessel_id, len(merged))
        return merged

    def append_all(
        self, logs_by_vessel: Mapping[str, Iterable[MeasurementLog]]
    ) -> Dict[str, HistoryReadError]:
        """Append per vessel; vessels whose history cannot be read are skipped and returned."""
        failures: Dict[str, HistoryReadError] = {}
        for vessel_id, logs in logs_by_vessel.items():
            try:
                self.append(vessel_id, logs)
            except HistoryReadError as exc:
                _LOG.error("History of vessel %s left unchanged: %s", vessel_id, exc)
                failures[vessel_id] = exc
        return failures
