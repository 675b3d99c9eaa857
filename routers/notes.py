"""
Note catalog routes: listing, CRUD, batch upload and downloads.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from core.backend import BackendClient, get_user_client
from core.exceptions import BadRequestException, _error_body
from core.logging import get_logger
from core.middleware import client_host_of
from core.sanitize import sanitize_tags
from models.models import NoteVisibilityEnum
from schemas.note import (
    NoteCreate, NoteUpdate, NoteResponse, NoteListResponse, NoteDeleteResponse,
    DownloadResponse, UploadBatchResponse
)
from services.note_query import NOTES_PER_PAGE, NoteFilters, NoteQuery, NoteQueryService
from services.note_service import NoteService
from services.upload_service import UploadedFile, UploadMetadata, UploadService

router = APIRouter(prefix="/api/notes", tags=["Notes"])

logger = get_logger("notes")


@router.get("", response_model=NoteListResponse)
async def list_notes(
    page: int = Query(0, ge=0, description="Zero-based page number"),
    search: Optional[str] = Query(None, description="Case-insensitive match on title and description"),
    subject_id: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    year: Optional[int] = Query(None, gt=0, description="Year of study"),
    tags: Optional[str] = Query(None, description="Comma-separated; matches notes with any of the tags"),
    client: BackendClient = Depends(get_user_client),
):
    """
    List public and college-only notes, newest first.

    When the caller belongs to a college, only that college's notes are listed.
    Pages hold at most 12 notes; `hasMore` is true when a page is full.
    """
    filters = NoteFilters.from_params(subject_id=subject_id, semester=semester, year=year, tags=tags)
    query = NoteQuery(
        college_domain=client.college_domain,
        filters=filters,
        search_text=search or "",
        search_mode=bool(search and search.strip()),
        page=page,
        page_size=NOTES_PER_PAGE,
    )

    try:
        result = await NoteQueryService(client.db, client.note_read_filter()).fetch_page(query)
    except SQLAlchemyError as e:
        logger.error("Error fetching notes", error=str(e), page=page)
        raise BadRequestException("Failed to fetch notes")

    return {
        "notes": result.notes,
        "pagination": {"page": page, "limit": query.page_size, "hasMore": result.has_more},
    }


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    note_data: NoteCreate,
    client: BackendClient = Depends(get_user_client),
):
    """Register a file already written to storage as a note owned by the caller."""
    note = await NoteService(client).create_note(note_data)
    return {"note": note}


@router.post(
    "/upload",
    response_model=UploadBatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "No file could be uploaded"}},
)
async def upload_notes(
    files: List[UploadFile] = File(...),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    subject_id: Optional[str] = Form(None),
    semester: Optional[str] = Form(None),
    year_of_study: Optional[int] = Form(None, gt=0),
    tags: Optional[str] = Form(None, description="Comma-separated tags"),
    visibility: NoteVisibilityEnum = Form(NoteVisibilityEnum.public),
    client: BackendClient = Depends(get_user_client),
):
    """
    Upload one or more files sharing the same note metadata.

    Files are processed concurrently. The response counts successes and
    failures; it is 201 when at least one file was stored and 400 otherwise.
    """
    uploads = []
    for upload in files:
        content = await upload.read()
        uploads.append(UploadedFile(
            file_name=upload.filename or "file",
            content=content,
            content_type=upload.content_type,
        ))

    metadata = UploadMetadata(
        title=title,
        description=description or None,
        subject_id=subject_id or None,
        semester=semester or None,
        year_of_study=year_of_study,
        tags=sanitize_tags(tags),
        visibility=visibility,
    )
    result = await UploadService(client).upload_batch(uploads, metadata)

    if result.succeeded == 0:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(
                "UploadFailed",
                "All uploads failed",
                status.HTTP_400_BAD_REQUEST,
                result=jsonable_encoder(result.to_dict()),
            ),
        )
    return result.to_dict()


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: str,
    client: BackendClient = Depends(get_user_client),
):
    note = await NoteService(client).get_note(note_id)
    return {"note": note}


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: str,
    changes: NoteUpdate,
    client: BackendClient = Depends(get_user_client),
):
    """Partially update a note's metadata. Only the owner or an admin may do this."""
    note = await NoteService(client).update_note(note_id, changes)
    return {"note": note}


@router.delete("/{note_id}", response_model=NoteDeleteResponse)
async def delete_note(
    note_id: str,
    client: BackendClient = Depends(get_user_client),
):
    """Delete a note and, best effort, its stored file."""
    await NoteService(client).delete_note(note_id)
    return {"message": "Note deleted successfully"}


@router.post("/{note_id}/download", response_model=DownloadResponse)
async def download_note(
    note_id: str,
    request: Request,
    client: BackendClient = Depends(get_user_client),
):
    """Issue a one-hour signed download URL and record the download."""
    ip_address = request.headers.get("X-Real-IP") or client_host_of(request)
    return await NoteService(client).create_download(
        note_id,
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent"),
    )
