"""
Public site configuration schema.
"""
from typing import List, Optional
from pydantic import BaseModel


class SiteConfig(BaseModel):
    app_name: str
    college_name: str
    brand_logo_url: Optional[str] = None
    college_email_domain: Optional[str] = None
    max_file_size: int
    allowed_file_types: List[str]
    notes_per_page: int
    search_debounce_ms: int
