"""
Note-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from core.sanitize import sanitize_tags
from models.models import NoteVisibilityEnum


class NoteBase(BaseModel):
    """Mutable note metadata."""
    title: str = Field(..., min_length=1, max_length=255, description="Note title")
    description: Optional[str] = Field(None, description="Free-text description")
    subject_id: Optional[str] = Field(None, description="Subject id, e.g. math-101")
    semester: Optional[str] = Field(None, max_length=50)
    year_of_study: Optional[int] = Field(None, gt=0, description="Year of study (positive)")
    tags: Optional[List[str]] = Field(None, description="Tags; order and duplicates are ignored")
    visibility: NoteVisibilityEnum = Field(NoteVisibilityEnum.public)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, value):
        if value is None:
            return None
        return sanitize_tags(value)


class NoteCreate(NoteBase):
    """Schema for registering an uploaded file as a note."""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    file_size: int = Field(0, ge=0)
    file_type: Optional[str] = Field(None, description="File extension; derived from file_name when omitted")
    mime_type: Optional[str] = None
    college_domain: Optional[str] = Field(None, description="Owning college domain; defaults to the uploader's")


class NoteUpdate(BaseModel):
    """Partial update; only the fields sent are changed."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    subject_id: Optional[str] = None
    semester: Optional[str] = Field(None, max_length=50)
    year_of_study: Optional[int] = Field(None, gt=0)
    tags: Optional[List[str]] = None
    visibility: Optional[NoteVisibilityEnum] = None

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, value):
        if value is None:
            return None
        return sanitize_tags(value)


class NoteRead(BaseModel):
    """A note joined with its uploader and subject display fields."""
    id: str
    title: str
    description: Optional[str] = None
    subject_id: Optional[str] = None
    uploader_id: Optional[str] = None
    file_name: str
    file_path: str
    file_size: int
    file_type: str
    mime_type: str
    semester: Optional[str] = None
    year_of_study: Optional[int] = None
    tags: List[str] = []
    visibility: NoteVisibilityEnum
    college_domain: str
    download_count: int = 0
    is_verified: bool = False
    is_flagged: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    uploader_name: str
    subject_name: str
    subject_color: str


class NoteResponse(BaseModel):
    note: NoteRead


class Pagination(BaseModel):
    page: int
    limit: int
    hasMore: bool


class NoteListResponse(BaseModel):
    notes: List[NoteRead]
    pagination: Pagination


class NoteDeleteResponse(BaseModel):
    message: str


class DownloadResponse(BaseModel):
    download_url: str
    filename: str


class UploadError(BaseModel):
    file_name: str
    error: str


class UploadBatchResponse(BaseModel):
    succeeded: int
    failed: int
    notes: List[NoteRead]
    errors: List[UploadError]
    should_reset_form: bool


class MyNotesSummary(BaseModel):
    note_count: int
    total_downloads: int


class MyNotesResponse(BaseModel):
    notes: List[NoteRead]
    summary: MyNotesSummary
