"""
Authentication routes for user registration and login.
"""
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    get_email_domain,
    is_academic_email,
    is_allowed_signup_email,
)
from core.config import settings
from core.logging import get_logger
from db_config import get_async_db
from models.models import User, UserRoleEnum
from schemas.user import UserCreate
from schemas.auth import LoginRequest, LoginResponse, RegisterResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Initialize logger for auth operations
logger = get_logger("auth")


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, db: AsyncSession = Depends(get_async_db)):
    """
    Register a new user.

    - **email**: Must be unique; must use the configured college domain when one is set
    - **password**: Minimum 6 characters
    - **full_name**: Optional display name
    """
    email = user_data.email.strip().lower()
    logger.info("User registration attempt", email=email)

    if not is_allowed_signup_email(email):
        logger.warning("Registration failed - email outside college domain", email=email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Please use your college email address (@{settings.college_email_domain.lstrip('@')})"
        )

    existing = await db.execute(select(User.id).where(func.lower(User.email) == email))
    if existing.scalar_one_or_none() is not None:
        logger.warning("Registration failed - email already exists", email=email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    domain = get_email_domain(email)
    is_college_email = is_academic_email(email) or bool(settings.college_email_domain)

    db_user = User(
        email=email,
        password_hash=get_password_hash(user_data.password),
        full_name=(user_data.full_name or "").strip() or None,
        college_domain=domain,
        college_email=email if is_college_email else None,
        is_verified=is_college_email,
        role=UserRoleEnum.student,
        is_active=True,
    )

    try:
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
    except IntegrityError as e:
        await db.rollback()
        logger.error("Registration failed - database integrity error", email=email, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    logger.info("User registered successfully",
               user_id=db_user.id,
               email=db_user.email,
               college_domain=db_user.college_domain)

    return {"message": "User registered successfully", "user": db_user}


@router.post("/login", response_model=LoginResponse)
async def login_user(login_data: LoginRequest, db: AsyncSession = Depends(get_async_db)):
    """
    Login user and return a bearer JWT.
    """
    email = login_data.email.strip().lower()
    logger.info("Login attempt", email=email)

    result = await db.execute(select(User).where(func.lower(User.email) == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning("Login failed - invalid credentials", email=email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning("Login failed - account deactivated", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated"
        )

    access_token_expires = timedelta(minutes=settings.jwt_access_token_expire_minutes)
    access_token = create_access_token(data={"sub": user.id}, expires_delta=access_token_expires)

    user_id = user.id

    # Last-login tracking never blocks a successful login
    try:
        user.last_login_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("Could not update last login", user_id=user_id, error=str(e))
        await db.refresh(user)

    logger.info("Login successful", user_id=user.id, role=user.role.value)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user,
        "expires_in": settings.jwt_access_token_expire_minutes * 60,
    }
