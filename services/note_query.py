"""
Note listing query layer.

Filters are captured in immutable filter objects and translated once
into a single SQLAlchemy statement; fetched rows are flattened into display
records carrying uploader and subject names.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from core.config import (
    settings, DEFAULT_SUBJECT_NAME, DEFAULT_SUBJECT_COLOR, DEFAULT_UPLOADER_NAME
)
from core.sanitize import LIKE_ESCAPE_CHAR, escape_like, sanitize_search_query, sanitize_tags
from models.models import Note, NoteTag, LISTABLE_VISIBILITIES

NOTES_PER_PAGE = settings.notes_per_page
RANDOM_SUGGESTION_LIMIT = settings.random_suggestion_limit


@dataclass(frozen=True)
class NoteFilters:
    """Conjunctive listing filters; unset fields do not constrain the result."""

    subject_id: Optional[str] = None
    semester: Optional[str] = None
    year: Optional[int] = None
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.year is not None and (isinstance(self.year, bool) or not isinstance(self.year, int) or self.year <= 0):
            raise ValueError("year must be a positive integer")
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags or ()))

    @classmethod
    def from_params(
        cls,
        subject_id: Optional[str] = None,
        semester: Optional[str] = None,
        year: Optional[int] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> "NoteFilters":
        """Build filters from raw request values, dropping blanks and sanitizing tags."""
        return cls(
            subject_id=(subject_id or "").strip() or None,
            semester=(semester or "").strip() or None,
            year=year,
            tags=frozenset(sanitize_tags(tags)),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.subject_id or self.semester or self.year or self.tags)

    def key(self) -> Tuple:
        return (self.subject_id, self.semester, self.year, tuple(sorted(self.tags)))


@dataclass(frozen=True)
class NoteQuery:
    """Full identity of one listing request."""

    college_domain: Optional[str] = None
    filters: NoteFilters = field(default_factory=NoteFilters)
    search_text: str = ""
    search_mode: bool = False
    page: int = 0
    page_size: int = NOTES_PER_PAGE

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("page must not be negative")
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")
        object.__setattr__(self, "search_text", (self.search_text or "").strip())

    def identity(self) -> Tuple:
        """Key of the logical query, independent of the page."""
        return (self.college_domain, self.search_mode, self.search_text, self.filters.key())

    def key(self) -> Tuple:
        return self.identity() + (self.page,)

    def with_page(self, page: int) -> "NoteQuery":
        return NoteQuery(
            college_domain=self.college_domain,
            filters=self.filters,
            search_text=self.search_text,
            search_mode=self.search_mode,
            page=page,
            page_size=self.page_size,
        )

    def search_pattern(self) -> Optional[str]:
        """Escaped ILIKE pattern for the search text, or None when search is inactive."""
        if not self.search_mode:
            return None
        cleaned = sanitize_search_query(self.search_text)
        if not cleaned:
            return None
        return f"%{escape_like(cleaned)}%"

    def predicates(self) -> List[Any]:
        """Every active predicate of this query; the statement ANDs them."""
        predicates = [Note.visibility.in_(LISTABLE_VISIBILITIES)]
        if self.college_domain:
            predicates.append(Note.college_domain == self.college_domain)

        filters = self.filters
        if filters.subject_id:
            predicates.append(Note.subject_id == filters.subject_id)
        if filters.semester:
            predicates.append(Note.semester == filters.semester)
        if filters.year is not None:
            predicates.append(Note.year_of_study == filters.year)
        if filters.tags:
            predicates.append(Note.tag_rows.any(NoteTag.tag.in_(sorted(filters.tags))))

        pattern = self.search_pattern()
        if pattern:
            predicates.append(or_(
                Note.title.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                Note.description.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
            ))
        return predicates


def notes_select():
    """Base note select with uploader and subject joined in."""
    return select(Note).options(joinedload(Note.uploader), joinedload(Note.subject))


def build_notes_statement(query: NoteQuery, read_filter=None):
    stmt = notes_select().where(*query.predicates())
    if read_filter is not None:
        stmt = stmt.where(read_filter)
    return (
        stmt.order_by(Note.created_at.desc(), Note.id.desc())
        .offset(query.page * query.page_size)
        .limit(query.page_size)
    )


def uploader_display_name(uploader) -> str:
    if uploader is None:
        return DEFAULT_UPLOADER_NAME
    if uploader.full_name and uploader.full_name.strip():
        return uploader.full_name.strip()
    if uploader.email and "@" in uploader.email:
        local = uploader.email.split("@", 1)[0]
        if local:
            return local
    return DEFAULT_UPLOADER_NAME


def to_display_note(note: Note) -> Dict[str, Any]:
    """Flatten a note and its joined uploader/subject into a display record."""
    subject = note.subject
    return {
        "id": note.id,
        "title": note.title,
        "description": note.description,
        "subject_id": note.subject_id,
        "uploader_id": note.uploader_id,
        "file_name": note.file_name,
        "file_path": note.file_path,
        "file_size": note.file_size,
        "file_type": note.file_type,
        "mime_type": note.mime_type,
        "semester": note.semester,
        "year_of_study": note.year_of_study,
        "tags": sorted(row.tag for row in note.tag_rows),
        "visibility": note.visibility.value if note.visibility is not None else None,
        "college_domain": note.college_domain,
        "download_count": note.download_count or 0,
        "is_verified": note.is_verified,
        "is_flagged": note.is_flagged,
        "created_at": note.created_at,
        "updated_at": note.updated_at,
        "uploader_name": uploader_display_name(note.uploader),
        "subject_name": subject.name if subject is not None and subject.name else DEFAULT_SUBJECT_NAME,
        "subject_color": subject.color if subject is not None and subject.color else DEFAULT_SUBJECT_COLOR,
    }


@dataclass
class NotePage:
    notes: List[Dict[str, Any]]
    has_more: bool


class NoteQueryService:
    """Runs listing queries against the database."""

    def __init__(self, db: AsyncSession, read_filter=None):
        self.db = db
        self.read_filter = read_filter

    async def fetch_page(self, query: NoteQuery) -> NotePage:
        result = await self.db.execute(build_notes_statement(query, self.read_filter))
        notes = [to_display_note(note) for note in result.unique().scalars().all()]
        return NotePage(notes=notes, has_more=len(notes) == query.page_size)

    async def fetch_recent(self, college_domain: Optional[str] = None, limit: int = RANDOM_SUGGESTION_LIMIT) -> List[Dict[str, Any]]:
        """Most recent listable notes, honouring only the visibility and domain rule."""
        query = NoteQuery(college_domain=college_domain, page_size=limit)
        result = await self.db.execute(build_notes_statement(query, self.read_filter))
        return [to_display_note(note) for note in result.unique().scalars().all()]
