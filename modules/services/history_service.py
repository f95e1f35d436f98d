"""Generation history tracking."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from modules.errors import PersistenceCorruption
from modules.services.storage_service import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "qr_history_v1"
HISTORY_LIMIT = 50


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Snapshot of one past generation: its text and PNG half."""

    id: int
    text: str
    generated_at: datetime
    png_data_url: str

    def to_record(self) -> Dict[str, Any]:
        """Return the persisted JSON record."""
        return {
            "id": self.id,
            "text": self.text,
            "generatedAt": _format_timestamp(self.generated_at),
            "pngDataUrl": self.png_data_url,
        }

    @classmethod
    def from_record(cls, record: Any) -> "HistoryEntry":
        """Build an entry from a persisted record, raising ValueError if invalid."""
        if not isinstance(record, dict):
            raise ValueError(f"History record must be an object, got {type(record).__name__}")
        entry_id = record.get("id")
        text = record.get("text")
        generated_at = record.get("generatedAt")
        png_data_url = record.get("pngDataUrl")
        if isinstance(entry_id, bool) or not isinstance(entry_id, int):
            raise ValueError(f"Invalid history id: {entry_id!r}")
        if not isinstance(text, str) or not isinstance(png_data_url, str):
            raise ValueError("History record is missing text or image data")
        if not isinstance(generated_at, str):
            raise ValueError(f"Invalid history timestamp: {generated_at!r}")
        return cls(
            id=entry_id,
            text=text,
            generated_at=_parse_timestamp(generated_at),
            png_data_url=png_data_url,
        )


def _decode_payload(raw: str) -> List[Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PersistenceCorruption(f"History payload is not valid JSON: {exc}") from exc
    except RecursionError as exc:
        raise PersistenceCorruption("History payload is nested too deeply") from exc
    if not isinstance(data, list):
        raise PersistenceCorruption(f"History payload must be a JSON array, got {type(data).__name__}")
    return data


class GenerationHistoryService:
    """Newest-first, size-bounded history persisted in a key-value store.

    Every mutation rewrites the whole collection under ``key``; ``clear``
    removes the key so the next ``load`` behaves like a first run.
    """

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY, limit: int = HISTORY_LIMIT) -> None:
        self.store = store
        self.key = key
        self.limit = limit
        self._entries: List[HistoryEntry] = []
        self._lock = threading.RLock()
        self._last_id = 0

    @property
    def entries(self) -> List[HistoryEntry]:
        """Return a copy of the entries, newest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, index: int) -> Optional[HistoryEntry]:
        """Return the entry at ``index`` or None when out of range."""
        with self._lock:
            if 0 <= index < len(self._entries):
                return self._entries[index]
            return None

    def get_by_id(self, entry_id: int) -> Optional[HistoryEntry]:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return entry
            return None

    def load(self) -> List[HistoryEntry]:
        """Read the stored history; absent or corrupt data yields an empty list."""
        raw = self.store.get(self.key)
        entries: List[HistoryEntry] = []
        if raw is not None:
            try:
                records = _decode_payload(raw)
            except PersistenceCorruption as exc:
                logger.warning("Discarding stored history: %s", exc)
                records = []
            for record in records:
                try:
                    entries.append(HistoryEntry.from_record(record))
                except ValueError as exc:
                    logger.warning("Skipping malformed history record: %s", exc)

        with self._lock:
            self._entries = entries[: self.limit]
            self._last_id = max((entry.id for entry in self._entries), default=0)
        logger.info("Loaded %d history entries", len(self._entries))
        return self.entries

    def persist(self) -> bool:
        """Write the full collection to the store, replacing the prior value.

        A failed write is logged and reported through the return value; the
        in-memory collection stays authoritative and the next mutation
        rewrites the whole payload again.
        """
        with self._lock:
            payload = json.dumps([entry.to_record() for entry in self._entries], ensure_ascii=False)
            try:
                self.store.set(self.key, payload)
            except OSError:
                logger.exception("Failed to persist %d history entries", len(self._entries))
                return False
        return True

    def next_id(self, now: Optional[float] = None) -> int:
        """Return a millisecond timestamp id, strictly above any id handed out."""
        millis = int((time.time() if now is None else now) * 1000)
        with self._lock:
            self._last_id = max(millis, self._last_id + 1)
            return self._last_id

    def create_entry(self, text: str, png_data_url: str) -> HistoryEntry:
        """Build an entry stamped with a fresh id and the current UTC time."""
        return HistoryEntry(
            id=self.next_id(),
            text=text,
            generated_at=datetime.now(timezone.utc),
            png_data_url=png_data_url,
        )

    def insert_front(self, entry: HistoryEntry) -> None:
        """Prepend an entry, evict beyond the cap and persist."""
        with self._lock:
            self._entries = [entry, *self._entries][: self.limit]
            self._last_id = max(self._last_id, entry.id)
            self.persist()

    def clear(self) -> None:
        """Drop every entry and remove the stored payload."""
        with self._lock:
            self._entries = []
            try:
                self.store.remove(self.key)
            except OSError:
                logger.exception("Failed to remove stored history")
        logger.info("History cleared")

    def select_for_replay(self, entry: HistoryEntry) -> str:
        """Return the text to seed the form with; the entry stays in place."""
        return entry.text
