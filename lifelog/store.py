"""
In-memory entry store with full-snapshot persistence.

Entries live in an ordered list; every mutation rewrites the whole JSON
snapshot. Callers only ever see copies, all writes go through update()
with a mutator so a change is a single step under the store lock.

Also hands out per-entry locks so pipeline runs on the same entry are
serialized while runs on different entries overlap freely.
"""

import json
import logging
import os
import threading
import time
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from .errors import EntryNotFoundError
from .models import Entry, utcnow_iso

logger = logging.getLogger(__name__)

Mutator = Callable[[Entry], None]


class EntryStore:
    """Ordered collection of entries persisted as a JSON snapshot.

    Passing path=None keeps the store purely in memory.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._entries: list[Entry] = []
        self._lock = threading.RLock()
        self._entry_locks: dict[int, threading.Lock] = {}
        self._last_id = 0
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self):
        if not self.path or not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._entries = [Entry.from_dict(item) for item in raw]
        except (ValueError, TypeError) as e:
            logger.error(f"Could not read entry snapshot {self.path}, starting empty: {e}")
            self._entries = []
            return
        if self._entries:
            self._last_id = max(e.id for e in self._entries)
        logger.info(f"Loaded {len(self._entries)} entries from {self.path}")

    def _save(self):
        """Write the full snapshot atomically (temp file + replace)."""
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([e.to_dict() for e in self._entries], indent=2)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(payload, encoding="utf-8")
        os.replace(tmp, self.path)

    # ------------------------------------------------------------------
    # Ids and locks
    # ------------------------------------------------------------------

    def next_id(self) -> int:
        """Creation-time id in milliseconds, strictly increasing."""
        with self._lock:
            candidate = int(time.time() * 1000)
            if candidate <= self._last_id:
                candidate = self._last_id + 1
            self._last_id = candidate
            return candidate

    def entry_lock(self, entry_id: int) -> threading.Lock:
        """Lock serializing enrichment runs for one entry."""
        with self._lock:
            lock = self._entry_locks.get(entry_id)
            if lock is None:
                lock = self._entry_locks[entry_id] = threading.Lock()
            return lock

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _index(self, entry_id: int) -> int:
        for idx, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return idx
        raise EntryNotFoundError(entry_id)

    def _find(self, entry_id: int) -> Entry:
        return self._entries[self._index(entry_id)]

    def create(self, entry: Entry) -> Entry:
        with self._lock:
            if any(e.id == entry.id for e in self._entries):
                raise ValueError(f"Duplicate entry id: {entry.id}")
            self._entries.append(entry.copy())
            self._last_id = max(self._last_id, entry.id)
            self._save()
            return entry.copy()

    def get(self, entry_id: int) -> Entry:
        with self._lock:
            return self._find(entry_id).copy()

    def exists(self, entry_id: int) -> bool:
        with self._lock:
            return any(e.id == entry_id for e in self._entries)

    def update(self, entry_id: int, change: Union[Mutator, Mapping[str, Any]]) -> Entry:
        """Apply a mutator (or a mapping of field values) and persist.

        The mutator runs on a working copy; the stored entry is only
        replaced if it returns without raising.
        """
        with self._lock:
            idx = self._index(entry_id)
            working = self._entries[idx].copy()
            if callable(change):
                change(working)
            else:
                for key, value in change.items():
                    if not hasattr(working, key) or key == "id":
                        raise AttributeError(f"Unknown entry field: {key}")
                    setattr(working, key, value)
            working.updated_at = utcnow_iso()
            self._entries[idx] = working
            self._save()
            return working.copy()

    def delete(self, entry_id: int) -> Entry:
        """Remove an entry and its stored audio file."""
        with self._lock:
            entry = self._entries.pop(self._index(entry_id))
            self._entry_locks.pop(entry_id, None)
            self._save()
        if entry.audio_ref:
            try:
                Path(entry.audio_ref).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove audio for entry {entry_id}: {e}")
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_all(self) -> list[Entry]:
        with self._lock:
            return [e.copy() for e in self._entries]

    def list_between(self, start: datetime, end: datetime) -> list[Entry]:
        """Entries recorded within [start, end]."""
        return [e for e in self.list_all() if start <= e.recorded_at <= end]

    def list_for_dates(self, first: date, last: date) -> list[Entry]:
        """Entries whose calendar day falls within [first, last]."""
        return [e for e in self.list_all() if first <= e.day <= last]

    def list_for_date(self, day: date) -> list[Entry]:
        return self.list_for_dates(day, day)

    def recent(self, limit: int = 100) -> list[Entry]:
        with self._lock:
            return [e.copy() for e in self._entries[-limit:]] if limit > 0 else []

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
