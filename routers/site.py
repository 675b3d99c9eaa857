"""
Public branding and upload limits for clients.
"""
from fastapi import APIRouter

from core.config import settings
from schemas.site import SiteConfig

router = APIRouter(prefix="/api", tags=["Site"])


@router.get("/config", response_model=SiteConfig)
async def get_site_config():
    return {
        "app_name": settings.app_name,
        "college_name": settings.college_name,
        "brand_logo_url": settings.brand_logo_url,
        "college_email_domain": settings.college_email_domain,
        "max_file_size": settings.max_file_size,
        "allowed_file_types": settings.allowed_extensions,
        "notes_per_page": settings.notes_per_page,
        "search_debounce_ms": settings.search_debounce_ms,
    }
