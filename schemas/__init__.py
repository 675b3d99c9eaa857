# Schemas package for Pydantic models
from .user import UserCreate, UserRead, UserUpdate, CollegeEmailRequest
from .auth import LoginRequest, LoginResponse, RegisterResponse
from .subject import SubjectRead
from .file import SignedUrlRequest, SignedUrlResponse
from .note import (
    NoteCreate, NoteUpdate, NoteRead, NoteResponse, NoteListResponse,
    NoteDeleteResponse, DownloadResponse, UploadBatchResponse, MyNotesResponse
)
from .site import SiteConfig

__all__ = [
    "UserCreate", "UserRead", "UserUpdate", "CollegeEmailRequest",
    "LoginRequest", "LoginResponse", "RegisterResponse",
    "SubjectRead",
    "SignedUrlRequest", "SignedUrlResponse",
    "NoteCreate", "NoteUpdate", "NoteRead", "NoteResponse", "NoteListResponse",
    "NoteDeleteResponse", "DownloadResponse", "UploadBatchResponse", "MyNotesResponse",
    "SiteConfig",
]
