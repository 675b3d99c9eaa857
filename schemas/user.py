"""
User-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from models.models import UserRoleEnum


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr = Field(..., description="User's email address")
    full_name: Optional[str] = Field(None, max_length=255, description="User's display name")


class UserCreate(UserBase):
    """Schema for creating a new user."""
    password: str = Field(..., min_length=6, description="User's password (min 6 characters)")


class UserRead(UserBase):
    """Schema for reading user data (excludes sensitive information)."""
    id: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    major: Optional[str] = None
    year_of_study: Optional[int] = None
    college_email: Optional[str] = None
    college_domain: Optional[str] = None
    role: UserRoleEnum
    is_verified: bool
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Schema for updating profile fields."""
    full_name: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=2000)
    major: Optional[str] = Field(None, max_length=100)
    year_of_study: Optional[int] = Field(None, gt=0)


class CollegeEmailRequest(BaseModel):
    """Schema for verifying a college email address."""
    college_email: EmailStr
