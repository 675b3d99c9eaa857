"""
File-related Pydantic schemas for request/response validation.
"""
from typing import Optional
from pydantic import BaseModel, Field


class SignedUrlRequest(BaseModel):
    """Request for a signed URL to a stored object."""
    path: Optional[str] = Field(None, description="Object path inside the notes bucket")
    expiresIn: int = Field(3600, ge=1, le=7 * 24 * 3600, description="Lifetime of the URL in seconds")


class SignedUrlResponse(BaseModel):
    signedUrl: str
