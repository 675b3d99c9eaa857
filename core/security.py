"""
Security utilities for password hashing, JWT token handling and college email checks.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from core.config import settings
from core.logging import security_logger
from db_config import get_async_db
from models.models import User

logger = security_logger

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# HTTP Bearer token scheme
security = HTTPBearer()

# Common domain patterns of educational institutions
ACADEMIC_DOMAIN_PATTERNS = [
    re.compile(r"\.edu$"),
    re.compile(r"\.edu\."),
    re.compile(r"\.ac\."),
    re.compile(r"\.edu\.au$"),
    re.compile(r"\.edu\.ca$"),
    re.compile(r"\.ac\.uk$"),
    re.compile(r"\.uni-.*\.de$"),
    re.compile(r"\.univ-.*\.fr$"),
]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against its hash.

    Args:
        plain_password: The plain text password
        hashed_password: The hashed password to verify against

    Returns:
        bool: True if password matches, False otherwise
    """
    try:
        result = pwd_context.verify(plain_password, hashed_password)
        logger.debug("Password verification completed", success=result)
        return result
    except ValueError as e:
        logger.error("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    """Hash a plain password."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: The claims to encode; ``sub`` carries the user id
        expires_delta: Optional custom expiration time

    Returns:
        str: The encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))

    to_encode.update({"exp": expire, "iat": now})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    logger.info("Access token created",
               user_id=data.get("sub"),
               expires_at=expire.isoformat())
    return encoded_jwt


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Returns:
        dict: The decoded token payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        logger.debug("Token verified successfully", user_id=payload.get("sub"))
        return payload
    except JWTError as e:
        logger.warning("Token verification failed", error=str(e))
        return None


def get_email_domain(email: Optional[str]) -> Optional[str]:
    """Lower-cased domain part of an email address, or None."""
    if not email or "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].strip().lower()
    return domain or None


def is_academic_email(email: Optional[str]) -> bool:
    """Whether the email domain looks like an educational institution."""
    domain = get_email_domain(email)
    if not domain:
        return False
    return any(pattern.search(domain) for pattern in ACADEMIC_DOMAIN_PATTERNS)


def is_allowed_signup_email(email: str) -> bool:
    """Enforce COLLEGE_EMAIL_DOMAIN when it is configured."""
    required = (settings.college_email_domain or "").strip().lower().lstrip("@")
    if not required:
        return True
    return email.strip().lower().endswith(f"@{required}")


async def _user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    payload = verify_token(token)
    if payload is None:
        return None
    user_id = payload.get("sub")
    if user_id is None:
        logger.warning("Token missing subject claim")
        return None
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(token: HTTPAuthorizationCredentials = Depends(security), db: AsyncSession = Depends(get_async_db)) -> User:
    """
    Get the current user from the JWT token.

    Raises:
        HTTPException: If authentication fails
    """
    user = await _user_from_token(token.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Check if the current user is active.

    Raises:
        HTTPException: If user is not active
    """
    if not current_user.is_active:
        logger.warning("Inactive user attempted access",
                      email=current_user.email,
                      user_id=current_user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return current_user
