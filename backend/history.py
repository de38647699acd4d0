"""
In-memory history of solve attempts, most recent first.

History lives for the lifetime of the process only. The session's completion
handler is the only writer; readers get tuple snapshots.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from models import HistoryEntry, Modality, SolveResponse, SolverMode

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryStore:

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._entries: list[HistoryEntry] = []

    def record(
        self,
        mode: SolverMode,
        query: str,
        result: SolveResponse,
        source: Modality,
    ) -> HistoryEntry:
        """Create a new entry and put it at the front."""
        created_at = self._clock()
        # Keep most-recent-first ordering even if the clock steps backwards
        if self._entries and created_at < self._entries[0].created_at:
            created_at = self._entries[0].created_at

        entry = HistoryEntry(
            id=uuid.uuid4().hex,
            created_at=created_at,
            mode=mode,
            query=query,
            result=result,
            source=source,
        )
        self._entries.insert(0, entry)
        logger.debug(f"Recorded history entry {entry.id} ({len(self._entries)} total)")
        return entry

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def clear(self) -> None:
        self._entries.clear()
        logger.info("History cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)
