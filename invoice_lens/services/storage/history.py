"""
In-memory history of completed extractions for the running session.
Nothing is persisted; the store is cleared when the app shuts down.
"""
from datetime import datetime
from typing import Dict, Optional, Sequence

from ..invoice_types import ExtractedRecord, HistoryEntry


class HistoryStore:
    def __init__(self):
        self._entries: Dict[int, HistoryEntry] = {}
        self._last_id = 0

    def _next_id(self, created_at: datetime) -> int:
        """Creation time in ms, bumped if two entries land in the same millisecond."""
        entry_id = max(int(created_at.timestamp() * 1000), self._last_id + 1)
        self._last_id = entry_id
        return entry_id

    def record(
        self,
        record: ExtractedRecord,
        filename: str,
        page_images: Sequence[bytes] = (),
        page_media_type: str = "image/png",
        page_count: Optional[int] = None,
    ) -> HistoryEntry:
        """Snapshot a finished extraction and return the new entry"""
        created_at = datetime.now()
        entry = HistoryEntry(
            id=self._next_id(created_at),
            record=record,
            created_at=created_at,
            timestamp=created_at.strftime("%m/%d/%Y, %I:%M:%S %p"),
            filename=filename,
            page_count=page_count if page_count is not None else len(page_images),
            page_images=tuple(page_images),
            page_media_type=page_media_type,
        )
        self._entries[entry.id] = entry
        return entry

    def get(self, entry_id: int) -> Optional[HistoryEntry]:
        return self._entries.get(entry_id)

    def list(self) -> list[HistoryEntry]:
        """All entries, newest first"""
        return sorted(self._entries.values(), key=lambda e: e.id, reverse=True)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
