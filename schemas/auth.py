"""
Authentication-related Pydantic schemas.
"""
from pydantic import BaseModel, EmailStr, Field

from schemas.user import UserRead


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Password")


class LoginResponse(BaseModel):
    """Login response schema."""
    access_token: str
    token_type: str
    user: UserRead
    expires_in: int = Field(..., description="Token expiration time in seconds")


class RegisterResponse(BaseModel):
    """Registration response schema."""
    message: str
    user: UserRead
