"""
Profile routes for the authenticated user.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.backend import BackendClient, get_user_client
from core.config import settings
from core.exceptions import DatabaseException
from core.logging import get_logger
from core.security import get_current_active_user, get_email_domain, is_academic_email
from db_config import get_async_db
from models.models import User
from schemas.note import MyNotesResponse
from schemas.user import CollegeEmailRequest, UserRead, UserUpdate
from services.note_service import NoteService

router = APIRouter(prefix="/users", tags=["Users"])

logger = get_logger("users")


async def _save(db: AsyncSession, user: User, action: str) -> None:
    user_id = user.id
    try:
        await db.commit()
        await db.refresh(user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Profile change failed", action=action, user_id=user_id, error=str(e))
        raise DatabaseException(f"Failed to {action}")


@router.get("/me", response_model=UserRead)
async def get_profile(current_user: User = Depends(get_current_active_user)):
    """
    Get current authenticated user's profile.
    """
    return current_user


@router.put("/me", response_model=UserRead)
async def update_profile(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Update current authenticated user's profile. Only the fields sent are changed.
    """
    update_data = user_update.model_dump(exclude_unset=True)
    logger.info("User profile update request", user_id=current_user.id, fields=sorted(update_data))

    for field, value in update_data.items():
        setattr(current_user, field, value)

    await _save(db, current_user, "update profile")
    return current_user


@router.post("/me/college-email", response_model=UserRead)
async def verify_college_email(
    request: CollegeEmailRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Record a verified college email and switch the user's college domain to it.
    """
    college_email = request.college_email.strip().lower()
    domain = get_email_domain(college_email)
    configured = (settings.college_email_domain or "").strip().lower().lstrip("@")

    if not (is_academic_email(college_email) or (configured and domain == configured)):
        logger.warning("College email rejected", user_id=current_user.id, domain=domain)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid college email format"
        )

    current_user.college_email = college_email
    current_user.college_domain = domain
    current_user.is_verified = True
    await _save(db, current_user, "verify college email")

    logger.info("College email verified", user_id=current_user.id, college_domain=domain)
    return current_user


@router.get("/me/notes", response_model=MyNotesResponse)
async def list_my_notes(client: BackendClient = Depends(get_user_client)):
    """
    All notes uploaded by the caller, including private ones, with totals.
    """
    return await NoteService(client).list_own_notes()
