"""
Subject-related Pydantic schemas for request/response validation.
"""
from typing import Optional
from pydantic import BaseModel


class SubjectRead(BaseModel):
    """Schema for reading subject data."""
    id: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    color: str
    college_domain: str

    class Config:
        from_attributes = True
