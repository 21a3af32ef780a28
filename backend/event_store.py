"""
Append-only event log backing mock-draft history, watchlists and sessions.

Each line in the log file is a JSON object:
  {"seq": int, "ts": float, "type": "mock_draft.created"|..., "payload": {...}}

On server start the events are replayed into MemStorage to rebuild the
records. Malformed lines (e.g. a torn final write) are skipped.
"""

import json
import logging
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

EVENT_TYPES = (
    "mock_draft.created",
    "mock_draft.updated",
    "mock_draft.deleted",
    "mock_pick.added",
    "watchlist.added",
    "watchlist.removed",
    "session.saved",
    "session.deleted",
)


class EventStore:
    """Append-only JSONL event log. One instance per storage."""

    def __init__(self):
        self._path: Optional[Path] = None
        self._seq: int = 0
        self._file = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self, path: str):
        """Open (or create) the event log file. Resumes after the highest seq on disk."""
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._seq = max((e.get("seq", 0) for e in self.replay()), default=0)
        self._file = open(self._path, "a", encoding="utf-8")

    def append(self, event_type: str, payload: dict):
        """Append an event to the log. Flushes immediately for durability."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        if not self._file:
            return
        self._seq += 1
        record = {
            "seq": self._seq,
            "ts": time.time(),
            "type": event_type,
            "payload": payload,
        }
        self._file.write(json.dumps(record, default=str) + "\n")
        self._file.flush()

    def replay(self) -> list[dict]:
        """Read all events from disk, sorted by sequence number."""
        if not self._path or not self._path.exists():
            return []
        events = []
        skipped = 0
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    skipped += 1
        if skipped:
            logger.warning("Skipped %d malformed lines in %s", skipped, self._path)
        return sorted(events, key=lambda e: e.get("seq", 0))

    def clear(self):
        """Clear the event log (for testing or a fresh start)."""
        if self._file:
            self._file.close()
        if self._path and self._path.exists():
            self._path.unlink()
        self._seq = 0
        if self._path:
            self._file = open(self._path, "a", encoding="utf-8")

    def close(self):
        """Close the file handle."""
        if self._file:
            self._file.close()
            self._file = None
