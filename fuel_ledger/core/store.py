from __future__ import annotations

import logging
import threading
import uuid

from fuel_ledger.core.records import build_entry, entry_to_record, normalize_record
from fuel_ledger.models.entries import Entry

logger = logging.getLogger(__name__)


class EntryStore:
    """In-memory holder for fuel and adjustment records.

    Writes are validated through ``build_entry``; reads go through the
    tolerant normalizer so seeded historical records load as-is.
    """

    def __init__(self, records: list[dict] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, dict] = {}
        for raw in records or []:
            record = dict(raw)
            record_id = str(record.get("id") or record.get("_id") or uuid.uuid4().hex)
            record["id"] = record_id
            self._records[record_id] = record

    def snapshot(self) -> list[dict]:
        with self._lock:
            return [dict(record) for record in self._records.values()]

    def list_entries(self) -> list[Entry]:
        entries = [normalize_record(record) for record in self.snapshot()]
        return sorted(entries, key=lambda entry: entry.date, reverse=True)

    def get(self, entry_id: str) -> Entry:
        with self._lock:
            record = self._records.get(entry_id)
        if record is None:
            raise KeyError(entry_id)
        return normalize_record(record)

    def create(self, payload: dict) -> Entry:
        entry = build_entry(payload, entry_id=uuid.uuid4().hex)
        with self._lock:
            self._records[entry.id] = entry_to_record(entry)
        logger.debug("entry created: id=%s type=%s", entry.id, entry.recordType)
        return entry

    def update(self, entry_id: str, payload: dict) -> Entry:
        entry = build_entry(payload, entry_id=entry_id)
        with self._lock:
            if entry_id not in self._records:
                raise KeyError(entry_id)
            self._records[entry_id] = entry_to_record(entry)
        logger.debug("entry updated: id=%s type=%s", entry_id, entry.recordType)
        return entry

    def delete(self, entry_id: str) -> None:
        with self._lock:
            if self._records.pop(entry_id, None) is None:
                raise KeyError(entry_id)
        logger.debug("entry deleted: id=%s", entry_id)
