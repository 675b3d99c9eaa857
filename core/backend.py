"""
Backend client factory.

A BackendClient bundles a database session and the object storage client
with the identity it acts for. Restricted clients are bound to the calling
user and apply row-level read/write rules; elevated clients use the
service credentials and bypass them for server-side administrative work.
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import BackendConfigurationException
from core.logging import get_logger
from core.security import get_current_active_user
from core.storage import StorageClient, get_storage_client
from db_config import get_async_db
from models.models import Note, NoteVisibilityEnum, User, UserRoleEnum

logger = get_logger("backend")


class BackendClient:
    """Database + storage handle scoped to one identity."""

    def __init__(self, db: AsyncSession, storage: StorageClient, user: Optional[User] = None, elevated: bool = False):
        self.db = db
        self.storage = storage
        self.elevated = elevated
        # Plain values so they survive session rollbacks
        self.user_id: Optional[str] = user.id if user is not None else None
        self.college_domain: Optional[str] = user.college_domain if user is not None else None
        self.is_admin: bool = user is not None and user.role == UserRoleEnum.admin

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def note_read_filter(self):
        """
        Row-level read rule for notes, or None for elevated clients.

        A note is readable by its owner, by an admin of the same college,
        by anyone when public, and by same-college users when college_only.
        """
        if self.elevated:
            return None
        if not self.is_authenticated:
            return Note.visibility == NoteVisibilityEnum.public

        rules = [
            Note.uploader_id == self.user_id,
            Note.visibility == NoteVisibilityEnum.public,
        ]
        if self.college_domain:
            rules.append(and_(
                Note.visibility == NoteVisibilityEnum.college_only,
                Note.college_domain == self.college_domain,
            ))
            if self.is_admin:
                rules.append(Note.college_domain == self.college_domain)
        return or_(*rules)

    def can_read_note(self, note: Note) -> bool:
        if self.elevated or note.visibility == NoteVisibilityEnum.public:
            return True
        if not self.is_authenticated:
            return False
        if note.uploader_id == self.user_id:
            return True
        same_domain = bool(self.college_domain) and note.college_domain == self.college_domain
        if note.visibility == NoteVisibilityEnum.college_only and same_domain:
            return True
        return self.is_admin and same_domain

    def can_modify_note(self, note: Note) -> bool:
        """Owners may modify their notes; admins may modify any note."""
        if self.elevated or self.is_admin:
            return True
        return self.is_authenticated and note.uploader_id == self.user_id

    def owns_storage_path(self, path: str) -> bool:
        """Restricted clients may only reference objects under their own user prefix."""
        if self.elevated:
            return True
        if not self.is_authenticated:
            return False
        segments = path.split("/")
        return len(segments) > 2 and segments[1] == self.user_id

    async def ping(self) -> int:
        """Round-trip to the relational backend; returns the user count."""
        result = await self.db.execute(select(func.count(User.id)))
        return result.scalar_one()


def create_user_client(db: AsyncSession, user: User) -> BackendClient:
    return BackendClient(db, get_storage_client(), user=user)


def create_admin_client(db: AsyncSession) -> BackendClient:
    """
    Elevated client for server-side operations.

    Raises:
        BackendConfigurationException: If no service credentials are configured
    """
    if not settings.has_storage_credentials:
        logger.error("Elevated backend client requested without service credentials")
        raise BackendConfigurationException()
    return BackendClient(db, get_storage_client(), elevated=True)


async def get_user_client(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
) -> BackendClient:
    return create_user_client(db, current_user)


async def get_admin_client(db: AsyncSession = Depends(get_async_db)) -> BackendClient:
    return create_admin_client(db)


async def get_backend_client(db: AsyncSession = Depends(get_async_db)) -> BackendClient:
    """Anonymous client; only public rows are visible through it."""
    return BackendClient(db, get_storage_client())
