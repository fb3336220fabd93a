"""
Tests for the session history store and the upload result cache.
"""

import pytest
from pydantic import ValidationError

from invoice_lens.services.invoice_types import ExtractedRecord
from invoice_lens.services.storage.history import HistoryStore
from invoice_lens.services.storage.result_cache import ResultCache, file_hash


@pytest.fixture
def store():
    return HistoryStore()


def test_record_creates_entry(store):
    record = ExtractedRecord(invoice_number="INV-1")
    entry = store.record(record, "invoice.pdf", [b"page1", b"page2"])

    assert entry.filename == "invoice.pdf"
    assert entry.page_count == 2
    assert entry.page_images == (b"page1", b"page2")
    assert entry.record.invoice_number == "INV-1"
    assert entry.id >= int(entry.created_at.timestamp() * 1000)
    assert store.get(entry.id) is entry


def test_ids_strictly_increase(store):
    ids = [store.record(ExtractedRecord(), f"f{i}.png", [b"x"]).id for i in range(5)]
    assert ids == sorted(set(ids))


def test_list_is_newest_first(store):
    first = store.record(ExtractedRecord(), "first.png", [b"x"])
    second = store.record(ExtractedRecord(), "second.png", [b"x"])

    assert [e.id for e in store.list()] == [second.id, first.id]


def test_entries_are_immutable(store):
    entry = store.record(ExtractedRecord(invoice_number="A"), "a.png", [b"x"])

    with pytest.raises(ValidationError):
        entry.filename = "b.png"
    with pytest.raises(ValidationError):
        entry.record.invoice_number = "B"


def test_clear(store):
    store.record(ExtractedRecord(), "a.png", [b"x"])
    store.clear()

    assert len(store) == 0
    assert store.list() == []


def test_missing_entry(store):
    assert store.get(12345) is None


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_hit_within_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=60, clock=clock)
    digest = file_hash(b"pdf bytes")
    cache.put(digest, ExtractedRecord(invoice_number="C-1"), [b"page"])

    clock.now += 59
    cached = cache.get(digest)

    assert cached.record.invoice_number == "C-1"
    assert cached.page_images == (b"page",)


def test_cache_expires():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=60, clock=clock)
    digest = file_hash(b"pdf bytes")
    cache.put(digest, ExtractedRecord(invoice_number="C-1"), [b"page"])

    clock.now += 60

    assert cache.get(digest) is None


def test_disabled_cache_stores_nothing():
    cache = ResultCache(ttl_seconds=0)
    digest = file_hash(b"x")
    cache.put(digest, ExtractedRecord(invoice_number="C-1"), [])

    assert not cache.enabled
    assert cache.get(digest) is None


def test_cache_put_evicts_stale_entries():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=60, clock=clock)
    old = file_hash(b"old upload")
    cache.put(old, ExtractedRecord(invoice_number="C-1"), [b"page"])

    clock.now += 61
    new = file_hash(b"new upload")
    cache.put(new, ExtractedRecord(invoice_number="C-2"), [b"page"])

    assert len(cache) == 1
    assert cache.get(new).record.invoice_number == "C-2"
