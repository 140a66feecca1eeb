"""
Pydantic schemas for catalog entries consumed by the sitemap
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Union
from datetime import date, datetime

class CatalogImage(BaseModel):
    """One image attached to a catalog entry"""

    full_url: str = Field(
        ...,
        min_length=1,
        description="Stored filename of the full-size image, relative to the image path",
        example="0b6c1f0e-5a8e-4d47-9f7e-2b1d3c4e5f60.jpg"
    )

    caption: str = Field(
        "",
        description="Image caption",
        example="Oil on canvas, 2019"
    )

    title: str = Field(
        "",
        description="Image title",
        example="Harbour at Dusk"
    )

    @validator('caption', 'title', pre=True)
    def none_to_empty(cls, v):
        """Catalog rows may carry NULL captions or titles"""
        return "" if v is None else v

class CatalogEntry(BaseModel):
    """A publishable page as supplied by the catalog source"""

    path: str = Field(
        ...,
        min_length=1,
        description="Site-relative path or absolute URL of the page",
        example="/piece/42"
    )

    last_modified: Optional[Union[datetime, date]] = Field(
        None,
        description="When the page content last changed (a date or a timestamp)"
    )

    images: List[CatalogImage] = Field(
        default_factory=list,
        description="Images shown on the page, in display order"
    )

    @validator('path')
    def validate_path(cls, v):
        """Reject whitespace-only paths"""
        if not v.strip():
            raise ValueError("Path must not be blank")
        return v.strip()

class SitemapStatus(BaseModel):
    """Schema for the sitemap cache status endpoint"""

    state: str = Field(..., description="Cache state (idle, building, ready, failed)")
    built_at: Optional[datetime] = Field(None, description="When the cached payload was built")
    size_bytes: Optional[int] = Field(None, description="Compressed payload size")
    build_count: int = Field(0, description="Number of builds started since process start")
    last_error: Optional[str] = Field(None, description="Cause of the most recent failed build")
