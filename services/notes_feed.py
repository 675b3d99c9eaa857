"""
Browsing feed over the note query layer.

Keeps the loaded pages of the active query, serves page zero from the
session cache, appends further pages, and shows shuffled recent notes as a
placeholder while the first page of a query is loading.
"""
import asyncio
import random
from typing import Any, Dict, List, Optional, Protocol, Tuple

from core.logging import get_logger
from services.note_query import (
    NOTES_PER_PAGE, RANDOM_SUGGESTION_LIMIT, NoteFilters, NotePage, NoteQuery
)
from services.notes_cache import NotesCache

logger = get_logger("notes_feed")


class NotesSource(Protocol):
    async def fetch_page(self, query: NoteQuery) -> NotePage:
        ...

    async def fetch_recent(self, college_domain: Optional[str] = None, limit: int = RANDOM_SUGGESTION_LIMIT) -> List[Dict[str, Any]]:
        ...


class NotesFeed:
    """State of one browsing session's note list."""

    def __init__(
        self,
        source: NotesSource,
        cache: Optional[NotesCache] = None,
        search_mode: bool = False,
        page_size: int = NOTES_PER_PAGE,
        suggestion_limit: int = RANDOM_SUGGESTION_LIMIT,
    ):
        self.source = source
        self.cache = cache if cache is not None else NotesCache()
        self.search_mode = search_mode
        self.page_size = page_size
        self.suggestion_limit = suggestion_limit

        self.notes: List[Dict[str, Any]] = []
        self.random_notes: List[Dict[str, Any]] = []
        self.page = 0
        self.has_more = True
        self.loading = False
        self.error: Optional[str] = None
        self.suggestion_task: Optional[asyncio.Task] = None

        self._query: Optional[NoteQuery] = None
        self._active: Optional[Tuple] = None
        self._last_request: Optional[Tuple[int, bool]] = None

    @property
    def query(self) -> Optional[NoteQuery]:
        return self._query

    @property
    def visible_notes(self) -> List[Dict[str, Any]]:
        """Primary results, or the random placeholder while the first page is still loading."""
        if self.loading and not self.notes and self.random_notes:
            return self.random_notes
        return self.notes

    def _make_query(self, page: int, filters: Optional[NoteFilters], search_text: str, college_domain: Optional[str]) -> NoteQuery:
        return NoteQuery(
            college_domain=college_domain,
            filters=filters or NoteFilters(),
            search_text=search_text or "",
            search_mode=self.search_mode,
            page=page,
            page_size=self.page_size,
        )

    def set_query(self, filters: Optional[NoteFilters] = None, search_text: str = "", college_domain: Optional[str] = None) -> NoteQuery:
        """
        Make a query identity the active one.

        The cached first page under the new key is deleted so the next fetch
        goes to the backend. Entering a different identity drops the random
        placeholder of the previous one.
        """
        query = self._make_query(0, filters, search_text, college_domain)
        if query.identity() != self._active:
            self.random_notes = []
            if self.suggestion_task is not None and not self.suggestion_task.done():
                self.suggestion_task.cancel()
        self.cache.invalidate(query.key())
        self._query = query
        self._active = query.identity()
        return query

    async def fetch_notes(
        self,
        page_number: int,
        filters: Optional[NoteFilters] = None,
        search_text: str = "",
        college_domain: Optional[str] = None,
        reset: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Fetch one page and merge it into the feed.

        Args:
            page_number: Zero-based page
            filters: Listing filters
            search_text: Free text, used when the feed is in search mode
            college_domain: Caller's college domain, if known
            reset: Replace the loaded notes instead of appending

        Returns:
            The notes held by the feed after the fetch
        """
        query = self._make_query(page_number, filters, search_text, college_domain)
        if query.identity() != self._active:
            self.set_query(query.filters, query.search_text, query.college_domain)
        identity = self._active
        self._last_request = (page_number, reset)

        if page_number == 0 and reset:
            cached = self.cache.get(query.key())
            if cached is not None:
                self._apply(cached, page_number, reset=True)
                return self.notes

        self.loading = True
        self.error = None
        try:
            page = await self.source.fetch_page(query)
        except asyncio.CancelledError:
            if identity == self._active:
                self.loading = False
            raise
        except Exception as e:
            if identity == self._active:
                self.loading = False
                self.error = str(e) or type(e).__name__
                logger.warning("Error fetching notes", page=page_number, error=self.error)
            return self.notes

        if identity != self._active:
            logger.debug("Discarding stale notes response", page=page_number)
            return self.notes

        if page_number == 0:
            self.cache.set(query.key(), page.notes)
        self._apply(page.notes, page_number, reset)
        return self.notes

    def _apply(self, notes: List[Dict[str, Any]], page_number: int, reset: bool) -> None:
        self.notes = list(notes) if reset else self.notes + list(notes)
        self.page = page_number
        self.has_more = len(notes) == self.page_size
        self.loading = False
        self.error = None

    async def search(self, filters: Optional[NoteFilters] = None, search_text: str = "", college_domain: Optional[str] = None) -> List[Dict[str, Any]]:
        """Enter a query and load its first page, showing suggestions meanwhile."""
        query = self.set_query(filters, search_text, college_domain)
        if not self.notes:
            self.start_suggestions(college_domain)
        return await self.fetch_notes(0, query.filters, query.search_text, college_domain, reset=True)

    async def refresh(self) -> List[Dict[str, Any]]:
        """Reload the first page of the active query from the backend."""
        query = self._query or self.set_query()
        self.cache.invalidate(query.key())
        if not self.notes:
            self.start_suggestions(query.college_domain)
        return await self.fetch_notes(0, query.filters, query.search_text, query.college_domain, reset=True)

    async def load_more(self) -> List[Dict[str, Any]]:
        if self._query is None or not self.has_more or self.loading:
            return self.notes
        query = self._query
        return await self.fetch_notes(self.page + 1, query.filters, query.search_text, query.college_domain, reset=False)

    async def retry(self) -> List[Dict[str, Any]]:
        """Repeat the last request after an error."""
        if self._query is None or self._last_request is None:
            return await self.refresh()
        page_number, reset = self._last_request
        query = self._query
        return await self.fetch_notes(page_number, query.filters, query.search_text, query.college_domain, reset=reset)

    def start_suggestions(self, college_domain: Optional[str] = None) -> asyncio.Task:
        """Fetch recent notes in the background as a shuffled placeholder."""
        if self.suggestion_task is not None and not self.suggestion_task.done():
            return self.suggestion_task
        self.suggestion_task = asyncio.create_task(self._load_suggestions(college_domain))
        return self.suggestion_task

    async def _load_suggestions(self, college_domain: Optional[str]) -> None:
        try:
            recent = await self.source.fetch_recent(college_domain, self.suggestion_limit)
        except Exception as e:
            logger.debug("Random suggestions unavailable", error=str(e))
            return
        shuffled = list(recent)
        random.shuffle(shuffled)
        self.random_notes = shuffled[:self.page_size]
