"""
Note operations: create, read, update, delete and download issuance.
"""
import asyncio
import mimetypes
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.backend import BackendClient
from core.config import DEFAULT_COLLEGE_DOMAIN
from core.exceptions import (
    AuthenticationException, AuthorizationException, BadRequestException, ResourceNotFoundException
)
from core.file_utils import create_signed_url, delete_stored_file, split_extension, validate_storage_path
from core.logging import get_logger
from core.sanitize import validate_uuid
from models.models import Note, NoteDownload, Subject
from schemas.note import NoteCreate, NoteUpdate
from services.note_query import notes_select, to_display_note

logger = get_logger("notes")

DOWNLOAD_URL_EXPIRES_IN = 3600

_NOT_NULL_FIELDS = {"title", "visibility"}


def guess_mime_type(file_name: str) -> str:
    return mimetypes.guess_type(file_name)[0] or "application/octet-stream"


class NoteService:
    """Note operations on behalf of one backend client."""

    def __init__(self, client: BackendClient):
        self.client = client
        self.db = client.db
        self.storage = client.storage

    async def _load(self, note_id: str) -> Optional[Note]:
        stmt = (
            notes_select()
            .where(Note.id == note_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def _get_readable(self, note_id: str) -> Note:
        if not validate_uuid(note_id):
            raise ResourceNotFoundException("Note not found")
        try:
            note = await self._load(note_id)
        except SQLAlchemyError as e:
            logger.error("Error fetching note", note_id=note_id, error=str(e))
            raise BadRequestException(f"Failed to fetch note: {e.__class__.__name__}")
        if note is None or not self.client.can_read_note(note):
            raise ResourceNotFoundException("Note not found")
        return note

    async def _get_modifiable(self, note_id: str) -> Note:
        note = await self._get_readable(note_id)
        if not self.client.can_modify_note(note):
            logger.warning("Note modification denied", note_id=note_id, user_id=self.client.user_id)
            raise AuthorizationException("You can only modify your own notes")
        return note

    async def check_subject(self, subject_id: Optional[str]) -> None:
        if subject_id and await self.db.get(Subject, subject_id) is None:
            raise BadRequestException(f"Unknown subject: {subject_id}")

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Constraint violation", action=action, error=str(e.orig))
            raise BadRequestException(f"Failed to {action}: constraint violation")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error", action=action, error=str(e))
            raise BadRequestException(f"Failed to {action}")

    def resolve_college_domain(self, requested: Optional[str]) -> str:
        """Owning domain for a new note; restricted clients cannot write into another college."""
        own = self.client.college_domain
        if requested and own and requested != own and not self.client.elevated:
            raise AuthorizationException("Notes can only be shared with your own college")
        return requested or own or DEFAULT_COLLEGE_DOMAIN

    async def insert_note(self, data: NoteCreate, college_domain: str) -> str:
        """Insert and commit one note row; returns the new note id."""
        note = Note(
            title=data.title.strip(),
            description=data.description or None,
            subject_id=data.subject_id or None,
            uploader_id=self.client.user_id,
            file_name=data.file_name,
            file_path=data.file_path,
            file_size=data.file_size,
            file_type=(data.file_type or split_extension(data.file_name) or "bin").lower(),
            mime_type=data.mime_type or guess_mime_type(data.file_name),
            semester=data.semester or None,
            year_of_study=data.year_of_study,
            visibility=data.visibility,
            college_domain=college_domain,
        )
        note.set_tags(data.tags)
        self.db.add(note)
        await self._commit("create note")
        return note.id

    async def create_note(self, data: NoteCreate) -> Dict[str, Any]:
        """
        Register an already uploaded file as a note.

        Raises:
            BadRequestException: Invalid path, unknown subject or database error
            AuthorizationException: Path outside the caller's folder or foreign college
        """
        if not self.client.is_authenticated and not self.client.elevated:
            raise AuthenticationException("Authentication required to create notes")
        if not validate_storage_path(data.file_path):
            raise BadRequestException("Invalid file path")
        if not self.client.owns_storage_path(data.file_path):
            raise AuthorizationException("File path is outside your upload folder")

        college_domain = self.resolve_college_domain(data.college_domain)
        await self.check_subject(data.subject_id)

        note_id = await self.insert_note(data, college_domain)
        logger.info("Note created", note_id=note_id, uploader_id=self.client.user_id, college_domain=college_domain)
        return await self.get_note(note_id)

    async def get_note(self, note_id: str) -> Dict[str, Any]:
        return to_display_note(await self._get_readable(note_id))

    async def update_note(self, note_id: str, changes: NoteUpdate) -> Dict[str, Any]:
        note = await self._get_modifiable(note_id)
        fields = changes.model_dump(exclude_unset=True)

        if "subject_id" in fields:
            await self.check_subject(fields["subject_id"])

        for name, value in fields.items():
            if name == "tags":
                note.set_tags(value or [])
            elif value is None and name in _NOT_NULL_FIELDS:
                continue
            else:
                setattr(note, name, value)
        note.updated_at = func.now()

        await self._commit("update note")
        logger.info("Note updated", note_id=note_id, fields=sorted(fields))
        return await self.get_note(note_id)

    async def delete_note(self, note_id: str) -> None:
        """Delete the note row, then remove its stored file (best effort)."""
        note = await self._get_modifiable(note_id)
        file_path = note.file_path

        await self.db.delete(note)
        await self._commit("delete note")
        logger.info("Note deleted", note_id=note_id, user_id=self.client.user_id)

        if file_path:
            await asyncio.to_thread(delete_stored_file, self.storage, file_path)

    async def create_download(self, note_id: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> Dict[str, str]:
        """
        Issue a one-hour signed URL for a note's file and log the download.

        Returns:
            dict: ``download_url`` and ``filename`` (the note title)
        """
        note = await self._get_readable(note_id)
        title = note.title
        url = await asyncio.to_thread(create_signed_url, self.storage, note.file_path, DOWNLOAD_URL_EXPIRES_IN)

        try:
            self.db.add(NoteDownload(
                note_id=note_id,
                user_id=self.client.user_id,
                ip_address=ip_address or "unknown",
                user_agent=(user_agent or "unknown")[:500],
            ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Error tracking download", note_id=note_id, error=str(e))

        return {"download_url": url, "filename": title}

    async def list_own_notes(self) -> Dict[str, Any]:
        """All notes uploaded by the caller, private ones included."""
        if not self.client.is_authenticated:
            raise AuthenticationException("Authentication required")
        stmt = (
            notes_select()
            .where(Note.uploader_id == self.client.user_id)
            .order_by(Note.created_at.desc(), Note.id.desc())
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Error fetching own notes", user_id=self.client.user_id, error=str(e))
            raise BadRequestException("Failed to fetch notes")
        notes: List[Dict[str, Any]] = [to_display_note(n) for n in result.unique().scalars().all()]
        return {
            "notes": notes,
            "summary": {
                "note_count": len(notes),
                "total_downloads": sum(n["download_count"] for n in notes),
            },
        }
