"""
Subject listing routes.
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy import select

from core.backend import BackendClient, get_user_client
from core.config import DEFAULT_COLLEGE_DOMAIN
from models.models import Subject
from schemas.subject import SubjectRead

router = APIRouter(prefix="/api/subjects", tags=["Subjects"])


@router.get("", response_model=List[SubjectRead])
async def list_subjects(client: BackendClient = Depends(get_user_client)):
    """
    Active subjects available to the caller: those of their college plus the shared ones.
    """
    domains = {DEFAULT_COLLEGE_DOMAIN}
    if client.college_domain:
        domains.add(client.college_domain)

    result = await client.db.execute(
        select(Subject)
        .where(Subject.is_active.is_(True), Subject.college_domain.in_(sorted(domains)))
        .order_by(Subject.name)
    )
    return result.scalars().all()
