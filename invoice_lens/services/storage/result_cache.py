"""
Extraction results keyed by the SHA-256 of the uploaded file.

Lets a re-upload of the same document skip the model round trips while
the entry is fresh.
"""
import hashlib
import time
from typing import Callable, Dict, NamedTuple, Optional, Sequence

from ..invoice_types import ExtractedRecord


class CachedResult(NamedTuple):
    record: ExtractedRecord
    page_images: Sequence[bytes]
    page_media_type: str
    stored_at: float


def file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class ResultCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._results: Dict[str, CachedResult] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, digest: str) -> Optional[CachedResult]:
        cached = self._results.get(digest)
        if cached is None:
            return None
        if self._expired(cached, self._clock()):
            del self._results[digest]
            return None
        return cached

    def _expired(self, cached: CachedResult, now: float) -> bool:
        return now - cached.stored_at >= self.ttl_seconds

    def purge_expired(self) -> int:
        """Drop every stale entry; returns how many were removed."""
        now = self._clock()
        stale = [digest for digest, cached in self._results.items() if self._expired(cached, now)]
        for digest in stale:
            del self._results[digest]
        return len(stale)

    def put(
        self,
        digest: str,
        record: ExtractedRecord,
        page_images: Sequence[bytes],
        page_media_type: str = "image/png",
    ) -> None:
        if not self.enabled:
            return
        self.purge_expired()
        self._results[digest] = CachedResult(record, tuple(page_images), page_media_type, self._clock())

    def clear(self) -> None:
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)
