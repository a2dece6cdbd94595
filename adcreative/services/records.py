"""Append-only record storage keyed by record kind and project."""

from __future__ import annotations

import datetime as dt
import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

GUIDELINES = "visual_guidelines"
TEMPLATES = "ad_templates"
GENERATED_ADS = "generated_ads"


class RecordStore(Protocol):
    def insert(self, kind: str, record: dict[str, Any]) -> None:
        ...

    def list_latest(self, kind: str, project_id: str) -> list[dict[str, Any]]:
        ...

    def list_all(self, kind: str) -> list[dict[str, Any]]:
        ...


_EPOCH = dt.datetime.min.replace(tzinfo=dt.timezone.utc)


def _created_at(record: dict[str, Any]) -> dt.datetime:
    value = record.get("created_at")
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = dt.datetime.fromisoformat(text)
        except ValueError:
            return _EPOCH
    if not isinstance(value, dt.datetime):
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def _newest_first(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # Insertion order breaks ties between identical timestamps.
    indexed = list(enumerate(records))
    indexed.sort(key=lambda item: (_created_at(item[1]), item[0]), reverse=True)
    return [record for _, record in indexed]


class MemoryRecordStore:
    """Process-local store; the default when ``CREATIVE_DATA_DIR`` is unset."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, list[dict[str, Any]]] = {}

    def insert(self, kind: str, record: dict[str, Any]) -> None:
        with self._lock:
            self._records.setdefault(kind, []).append(dict(record))

    def list_all(self, kind: str) -> list[dict[str, Any]]:
        with self._lock:
            records = [dict(item) for item in self._records.get(kind, [])]
        return _newest_first(records)

    def list_latest(self, kind: str, project_id: str) -> list[dict[str, Any]]:
        return [r for r in self.list_all(kind) if r.get("project_id") == project_id]


class JsonRecordStore:
    """One JSON array file per record kind under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, kind: str) -> Path:
        safe = re.sub(r"[^0-9A-Za-z_-]", "_", kind) or "records"
        return self.directory / f"{safe}.json"

    def _read(self, kind: str) -> list[dict[str, Any]]:
        path = self._path(kind)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError:
            logger.error("records.file.corrupt", extra={"path": str(path)})
            raise
        if not isinstance(payload, list):
            return []
        return [item for item in payload if isinstance(item, dict)]

    def _write(self, kind: str, records: list[dict[str, Any]]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(kind)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(records, handle, ensure_ascii=False, indent=2, default=str)
        tmp.replace(path)

    def insert(self, kind: str, record: dict[str, Any]) -> None:
        with self._lock:
            records = self._read(kind)
            records.append(dict(record))
            self._write(kind, records)

    def list_all(self, kind: str) -> list[dict[str, Any]]:
        with self._lock:
            records = self._read(kind)
        return _newest_first(records)

    def list_latest(self, kind: str, project_id: str) -> list[dict[str, Any]]:
        return [r for r in self.list_all(kind) if r.get("project_id") == project_id]


def build_record_store(data_dir: Path | None) -> RecordStore:
    if data_dir:
        logger.info("records.store.json", extra={"directory": str(data_dir)})
        return JsonRecordStore(data_dir)
    return MemoryRecordStore()


__all__ = [
    "GENERATED_ADS",
    "GUIDELINES",
    "JsonRecordStore",
    "MemoryRecordStore",
    "RecordStore",
    "TEMPLATES",
    "build_record_store",
]
