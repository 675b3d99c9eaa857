"""
Batch upload of note files.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.backend import BackendClient
from core.exceptions import APIException, BadRequestException
from core.file_utils import delete_stored_file, generate_file_path, split_extension, validate_file
from core.logging import get_logger
from core.storage import StorageError
from models.models import NoteVisibilityEnum
from schemas.note import NoteCreate
from services.note_service import NoteService, guess_mime_type

logger = get_logger("uploads")


@dataclass
class UploadedFile:
    file_name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class UploadMetadata:
    """Form fields shared by every file of one batch."""
    title: str
    description: Optional[str] = None
    subject_id: Optional[str] = None
    semester: Optional[str] = None
    year_of_study: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    visibility: NoteVisibilityEnum = NoteVisibilityEnum.public


@dataclass
class UploadResult:
    notes: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.notes)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def should_reset_form(self) -> bool:
        return self.succeeded > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "notes": self.notes,
            "errors": self.errors,
            "should_reset_form": self.should_reset_form,
        }


class UploadFailed(Exception):
    pass


class UploadService:
    """
    Uploads several files concurrently, one storage write then one metadata
    insert per file. A failed file never aborts the others.
    """

    def __init__(self, client: BackendClient):
        self.client = client
        self.notes = NoteService(client)
        self._db_lock = asyncio.Lock()

    async def upload_batch(self, files: List[UploadedFile], metadata: UploadMetadata) -> UploadResult:
        if not files:
            raise BadRequestException("Please select at least one file to upload")
        if not metadata.title or not metadata.title.strip():
            raise BadRequestException("Please provide a title for your notes")

        college_domain = self.notes.resolve_college_domain(None)
        await self.notes.check_subject(metadata.subject_id)

        result = UploadResult()
        accepted: List[UploadedFile] = []
        for upload in files:
            validation = validate_file(upload.file_name, upload.size)
            if validation.is_valid:
                accepted.append(upload)
            else:
                result.errors.append({"file_name": upload.file_name, "error": validation.error})

        outcomes = await asyncio.gather(
            *(self._upload_one(upload, metadata, college_domain) for upload in accepted),
            return_exceptions=True,
        )
        for upload, outcome in zip(accepted, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, (UploadFailed, APIException)):
                    logger.error("Unexpected upload failure", file_name=upload.file_name, exc_info=outcome)
                message = getattr(outcome, "detail", None) or str(outcome)
                result.errors.append({"file_name": upload.file_name, "error": message})
            else:
                result.notes.append(outcome)

        logger.info(
            "Batch upload finished",
            user_id=self.client.user_id,
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result

    async def _upload_one(self, upload: UploadedFile, metadata: UploadMetadata, college_domain: str) -> Dict[str, Any]:
        path = generate_file_path(self.client.user_id, upload.file_name, college_domain)
        content_type = upload.content_type or guess_mime_type(upload.file_name)
        try:
            await asyncio.to_thread(self.client.storage.upload, path, upload.content, content_type)
        except StorageError as e:
            raise UploadFailed(f"Failed to upload {upload.file_name}: {e}")

        data = NoteCreate(
            title=metadata.title,
            description=metadata.description,
            subject_id=metadata.subject_id,
            semester=metadata.semester,
            year_of_study=metadata.year_of_study,
            tags=metadata.tags,
            visibility=metadata.visibility,
            file_name=upload.file_name,
            file_path=path,
            file_size=upload.size,
            file_type=split_extension(upload.file_name),
            mime_type=content_type,
            college_domain=college_domain,
        )
        async with self._db_lock:
            try:
                note_id = await self._insert_note(data, college_domain)
            except APIException as e:
                await asyncio.to_thread(delete_stored_file, self.client.storage, path)
                raise UploadFailed(f"Failed to save note metadata: {e.detail}")
            return await self.notes.get_note(note_id)

    async def _insert_note(self, data: NoteCreate, college_domain: str) -> str:
        return await self.notes.insert_note(data, college_domain)
