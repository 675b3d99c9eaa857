"""
Tests for the first-page cache and the browsing feed.
"""
import asyncio

import pytest

from services.note_query import NoteFilters, NotePage
from services.notes_cache import NotesCache
from services.notes_feed import NotesFeed

PAGE_SIZE = 3


def note(i):
    return {"id": f"n{i}", "title": f"Note {i}"}


class FakeSource:
    """Serves `total` notes in pages; records every query it receives."""

    def __init__(self, total=7, recent=None):
        self.total = total
        self.recent = recent if recent is not None else [note(100 + i) for i in range(5)]
        self.queries = []
        self.fail = False
        self.gate = None

    async def fetch_page(self, query):
        self.queries.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("backend unavailable")
        start = query.page * query.page_size
        notes = [note(i) for i in range(start, min(start + query.page_size, self.total))]
        return NotePage(notes=notes, has_more=len(notes) == query.page_size)

    async def fetch_recent(self, college_domain=None, limit=24):
        return list(self.recent)


def test_cache_returns_copies():
    cache = NotesCache()
    cache.set(("k",), [note(1)])
    got = cache.get(("k",))
    got.append(note(2))
    got[0]["title"] = "Edited"
    assert cache.get(("k",)) == [note(1)]
    assert ("k",) in cache and len(cache) == 1
    assert cache.invalidate(("k",))
    assert not cache.invalidate(("k",))
    assert cache.get(("k",)) is None


async def test_pages_append_until_short_page():
    source = FakeSource(total=7)
    feed = NotesFeed(source, page_size=PAGE_SIZE)

    await feed.search()
    assert [n["id"] for n in feed.notes] == ["n0", "n1", "n2"]
    assert feed.has_more

    await feed.load_more()
    await feed.load_more()
    assert len(feed.notes) == 7
    assert feed.page == 2
    assert not feed.has_more

    await feed.load_more()
    assert len(source.queries) == 3


async def test_first_page_served_from_cache():
    source = FakeSource()
    cache = NotesCache()
    feed = NotesFeed(source, cache=cache, page_size=PAGE_SIZE)
    filters = NoteFilters(subject_id="math-101")

    await feed.fetch_notes(0, filters, reset=True)
    await feed.fetch_notes(0, filters, reset=True)
    assert len(source.queries) == 1
    assert [n["id"] for n in feed.notes] == ["n0", "n1", "n2"]


async def test_entering_query_invalidates_its_cache_entry():
    source = FakeSource()
    cache = NotesCache()
    feed = NotesFeed(source, cache=cache, page_size=PAGE_SIZE)

    await feed.search(NoteFilters(subject_id="math-101"))
    await feed.search(NoteFilters(subject_id="phys-201"))
    await feed.search(NoteFilters(subject_id="math-101"))
    assert len(source.queries) == 3


async def test_refresh_bypasses_cache():
    source = FakeSource()
    feed = NotesFeed(source, page_size=PAGE_SIZE)
    await feed.search()
    await feed.refresh()
    assert len(source.queries) == 2


async def test_stale_response_is_discarded():
    source = FakeSource()
    source.gate = asyncio.Event()
    feed = NotesFeed(source, page_size=PAGE_SIZE)

    slow = asyncio.create_task(feed.fetch_notes(0, NoteFilters(subject_id="old"), reset=True))
    await asyncio.sleep(0)
    feed.set_query(NoteFilters(subject_id="new"))
    source.gate.set()
    await slow

    assert feed.notes == []
    assert NoteFilters(subject_id="old").key() not in [key[3] for key in feed.cache._entries]


async def test_error_and_retry():
    source = FakeSource()
    source.fail = True
    feed = NotesFeed(source, page_size=PAGE_SIZE)

    await feed.search()
    assert feed.error == "backend unavailable"
    assert not feed.loading

    source.fail = False
    await feed.retry()
    assert feed.error is None
    assert len(feed.notes) == PAGE_SIZE


async def test_suggestions_shown_while_first_page_loads():
    source = FakeSource(recent=[note(100 + i) for i in range(5)])
    source.gate = asyncio.Event()
    feed = NotesFeed(source, page_size=PAGE_SIZE)

    pending = asyncio.create_task(feed.search())
    await asyncio.sleep(0)
    await feed.suggestion_task

    assert feed.loading
    shown = feed.visible_notes
    assert len(shown) == PAGE_SIZE
    assert {n["id"] for n in shown} <= {f"n{100 + i}" for i in range(5)}

    source.gate.set()
    await pending
    assert [n["id"] for n in feed.visible_notes] == ["n0", "n1", "n2"]


async def test_search_mode_is_part_of_identity():
    source = FakeSource()
    cache = NotesCache()
    browse = NotesFeed(source, cache=cache, page_size=PAGE_SIZE)
    search = NotesFeed(source, cache=cache, search_mode=True, page_size=PAGE_SIZE)

    await browse.fetch_notes(0, search_text="limits", reset=True)
    await search.fetch_notes(0, search_text="limits", reset=True)
    assert len(source.queries) == 2
    assert source.queries[1].search_mode


async def test_cancelled_fetch_clears_loading():
    source = FakeSource()
    source.gate = asyncio.Event()
    feed = NotesFeed(source, page_size=PAGE_SIZE)

    task = asyncio.create_task(feed.search())
    await asyncio.sleep(0)
    assert feed.loading

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert not feed.loading

    source.gate = None
    await feed.load_more()
    assert [n["id"] for n in feed.notes] == ["n3", "n4", "n5"]


async def test_new_query_drops_previous_suggestions():
    source = FakeSource()
    source.gate = asyncio.Event()
    feed = NotesFeed(source, page_size=PAGE_SIZE)

    first = asyncio.create_task(feed.search(college_domain="old.edu"))
    await asyncio.sleep(0)
    await feed.suggestion_task
    assert feed.random_notes

    feed.set_query(college_domain="new.edu")
    assert feed.random_notes == []
    assert feed.visible_notes == []

    source.gate.set()
    await first
    assert feed.notes == []
