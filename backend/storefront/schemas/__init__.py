"""
Pydantic schemas for API request/response validation
"""

from .catalog import CatalogImage, CatalogEntry, SitemapStatus

__all__ = [
    "CatalogImage", "CatalogEntry", "SitemapStatus"
]
