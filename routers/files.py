"""
Signed URL routes for stored files.
"""
import asyncio
from fastapi import APIRouter, Depends

from core.backend import BackendClient, get_admin_client
from core.exceptions import BadRequestException
from core.file_utils import validate_storage_path
from core.logging import get_logger
from core.security import get_current_active_user
from core.storage import StorageError
from models.models import User
from schemas.file import SignedUrlRequest, SignedUrlResponse

router = APIRouter(prefix="/api/files", tags=["Files"])

logger = get_logger("files")


@router.post("/signed-url", response_model=SignedUrlResponse)
async def create_signed_url(
    request: SignedUrlRequest,
    current_user: User = Depends(get_current_active_user),
    client: BackendClient = Depends(get_admin_client),
):
    """
    Issue a time-limited URL for an arbitrary stored object.

    - **path**: must not contain `..` or `//` and may only use `[a-zA-Z0-9/_.-]`
    - **expiresIn**: lifetime in seconds (default 3600)
    """
    if not request.path:
        raise BadRequestException("File path is required")
    if not validate_storage_path(request.path):
        logger.warning("Rejected signed URL path", path=request.path, user_id=current_user.id)
        raise BadRequestException("Invalid file path")

    try:
        url = await asyncio.to_thread(client.storage.create_signed_url, request.path, request.expiresIn)
    except StorageError as e:
        logger.error("Error creating signed URL", path=request.path, error=str(e))
        raise BadRequestException(str(e))

    return {"signedUrl": url}
