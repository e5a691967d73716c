"""
Event Store

Durable per-event lifecycle records: one JSON file per event id in the
configured events directory. A record answers "has this notification
already fired?" and survives restarts.

All public operations share one coarse lock. Event counts are small (tens),
so a single writer at a time is plenty, and readers never see a partially
written file because every write goes to a temp file that is fsynced and
then renamed over the target.
"""

import json
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional
from urllib.parse import quote, unquote

from taskvoice.errors import CorruptEvent, EventNotFound, StorageWriteFailed
from taskvoice.events import CalendarEvent, LocalEvent
from taskvoice.logger import get_logger


RECORD_SUFFIX = ".json"

# Singleton instance
_instance: Optional["EventStore"] = None


def get_event_store(config=None) -> Optional["EventStore"]:
    """Get or create the singleton EventStore.

    Call with config on first invocation (from startup code).
    Call with no args from scripts/modules to retrieve the existing instance.
    """
    global _instance
    if _instance is None and config is not None:
        _instance = EventStore(config.get("events.path", "data/events"), config)
    return _instance


class EventStore:
    """File-backed store of LocalEvent records keyed by event id."""

    def __init__(self, events_path, config=None):
        self.events_path = Path(events_path)
        self.logger = get_logger(__name__, config)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _record_path(self, event_id: str) -> Path:
        # Calendar UIDs may contain '/', ':' or '@'; keep them out of the path
        return self.events_path / (quote(event_id, safe="") + RECORD_SUFFIX)

    @staticmethod
    def _id_from_path(path: Path) -> str:
        return unquote(path.name[:-len(RECORD_SUFFIX)])

    def _record_files(self) -> List[Path]:
        if not self.events_path.is_dir():
            return []
        return sorted(p for p in self.events_path.iterdir()
                      if p.is_file() and p.name.endswith(RECORD_SUFFIX)
                      and not p.name.startswith("."))

    # ------------------------------------------------------------------
    # Low-level read / write
    # ------------------------------------------------------------------

    def _read(self, event_id: str, path: Path) -> LocalEvent:
        try:
            with open(path) as f:
                raw = f.read()
        except FileNotFoundError:
            raise EventNotFound(event_id)
        except OSError as e:
            raise CorruptEvent(event_id, f"unreadable: {e}") from e

        try:
            return LocalEvent.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptEvent(event_id, str(e)) from e

    def _write(self, record: LocalEvent):
        """Atomically persist a record (temp file + fsync + rename + directory fsync)."""
        path = self._record_path(record.id)
        payload = json.dumps(record.to_dict(), indent=1)
        tmp_path = None
        try:
            self.events_path.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.events_path,
                                            prefix=".", suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
            self._sync_directory()
        except OSError as e:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass  # already gone
            raise StorageWriteFailed(f"failed to save event {record.id!r}: {e}") from e

    def _sync_directory(self):
        """fsync the events directory so renames and unlinks survive power loss."""
        fd = os.open(self.events_path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def save(self, event: CalendarEvent) -> LocalEvent:
        """Upsert an event, carrying forward flags from an existing record."""
        if not event.id:
            raise ValueError("cannot store an event without an id")

        record = LocalEvent(event=event)
        with self._lock:
            try:
                existing = self._read(event.id, self._record_path(event.id))
                record.copy_flags_from(existing)
            except EventNotFound:
                pass
            except CorruptEvent as e:
                self.logger.warning(f"Replacing corrupt record, flags reset: {e}")

            self._write(record)
        return record

    def load(self, event_id: str) -> LocalEvent:
        """Load one record. Raises EventNotFound or CorruptEvent."""
        with self._lock:
            return self._read(event_id, self._record_path(event_id))

    def load_all(self, now: datetime) -> List[LocalEvent]:
        """Today's unfinished records, with times normalized to each event's zone.

        Corrupt records are logged and skipped.
        """
        events = []
        with self._lock:
            for path in self._record_files():
                event_id = self._id_from_path(path)
                try:
                    record = self._read(event_id, path)
                except EventNotFound:
                    continue  # deleted between listing and reading
                except CorruptEvent as e:
                    self.logger.warning(f"Skipping event record {path.name}: {e}")
                    continue

                record = record.normalized(self.logger)
                if not record.scheduled_for_today(now) or record.is_finished(now):
                    continue
                events.append(record)

        self.logger.debug(f"Loaded {len(events)} event(s) for today")
        return events

    def list_ids(self) -> List[str]:
        with self._lock:
            return [self._id_from_path(p) for p in self._record_files()]

    def delete_missing(self, keep_ids: Iterable[str]) -> List[str]:
        """Delete every record whose id is not in keep_ids. Returns removed ids."""
        keep = set(keep_ids)
        removed = []
        with self._lock:
            for path in self._record_files():
                event_id = self._id_from_path(path)
                if event_id in keep:
                    continue
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise StorageWriteFailed(f"failed to remove event {event_id!r}: {e}") from e
                removed.append(event_id)
            if removed:
                try:
                    self._sync_directory()
                except OSError as e:
                    raise StorageWriteFailed(f"failed to sync {self.events_path}: {e}") from e

        for event_id in removed:
            self.logger.info(f"Removed event {event_id!r} (no longer in calendar)")
        return removed

    def update_flags(self, event_id: str,
                     mutation: Callable[[LocalEvent], None]) -> LocalEvent:
        """Read-modify-write one record's lifecycle flags under the store lock."""
        with self._lock:
            record = self._read(event_id, self._record_path(event_id))
            mutation(record)
            self._write(record)
        return record
