"""
Per-vessel measurement history storage (key/value, JSON payload).

Each vessel's history is one ordered list stored under "<prefix>_<vesselId>".
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List, Protocol

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, Session

from tankgauge_app.config.limits import HISTORY_KEY_PREFIX
from tankgauge_app.models import MeasurementLog
from tankgauge_app.repositories.database import Base


@dataclass(slots=True)
class HistoryReadError(Exception):
    """Stored history cannot be fully read; it must not be rewritten."""
    message: str
    key: str = ""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


def history_key(prefix: str, vessel_id: str) -> str:
    return f"{prefix}_{vessel_id}"


class MeasurementHistoryRepository(Protocol):
    def get(self, vessel_id: str) -> List[MeasurementLog]:
        """Raises HistoryReadError when the stored history cannot be fully read."""
        ...

    def put(self, vessel_id: str, logs: List[MeasurementLog]) -> None: ...


class InMemoryHistoryRepository:
    """Dict-backed history, e.g. for tests or a single session."""

    def __init__(self, prefix: str = HISTORY_KEY_PREFIX) -> None:
        self._prefix = prefix
        self._data: Dict[str, List[MeasurementLog]] = {}

    def get(self, vessel_id: str) -> List[MeasurementLog]:
        return list(self._data.get(history_key(self._prefix, vessel_id), []))

    def put(self, vessel_id: str, logs: List[MeasurementLog]) -> None:
        self._data[history_key(self._prefix, vessel_id)] = list(logs)

    def keys(self) -> List[str]:
        return list(self._data)


class MeasurementHistoryORM(Base):
    __tablename__ = "measurement_history"

    storage_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload_json: Mapped[str] = mapped_column(Text, default="[]")


class SqlHistoryRepository:
    """History stored as a JSON list per vessel key in SQLite."""

    def __init__(self, db: Session, prefix: str = HISTORY_KEY_PREFIX) -> None:
        self._db = db
        self._prefix = prefix

    def _parse_logs(self, key: str, json_str: str) -> List[MeasurementLog]:
        try:
            data = json.loads(json_str) if json_str else []
        except json.JSONDecodeError as exc:
            raise HistoryReadError(f"History {key!r} is not valid JSON: {exc}", key=key) from None
        if not isinstance(data, list):
            raise HistoryReadError(f"History {key!r} is not a list", key=key)
        logs: List[MeasurementLog] = []
        for index, item in enumerate(data):
            try:
                logs.append(MeasurementLog.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise HistoryReadError(
                    f"History {key!r} entry {index} is unreadable: {exc!r}", key=key
                ) from None
        return logs

    def _serialize_logs(self, logs: List[MeasurementLog]) -> str:
        return json.dumps([log.to_dict() for log in logs], ensure_ascii=False)

    def get(self, vessel_id: str) -> List[MeasurementLog]:
        """
        Stored history for the vessel.

        Raises:
            HistoryReadError: the payload or any entry cannot be read
        """
        key = history_key(self._prefix, vessel_id)
        obj = self._db.get(MeasurementHistoryORM, key)
        if obj is None:
            return []
        return self._parse_logs(key, obj.payload_json)

    def put(self, vessel_id: str, logs: List[MeasurementLog]) -> None:
        key = history_key(self._prefix, vessel_id)
        obj = self._db.get(MeasurementHistoryORM, key)
        if obj is None:
            obj = MeasurementHistoryORM(storage_key=key)
            self._db.add(obj)
        obj.payload_json = self._serialize_logs(logs)
        self._db.commit()
