"""
Sitemap cache status endpoints
"""

from fastapi import APIRouter, Depends

from storefront.api.deps import get_sitemap_cache
from storefront.schemas.catalog import SitemapStatus
from storefront.sitemap.cache import SitemapCache

router = APIRouter()

@router.get("/status", response_model=SitemapStatus)
async def sitemap_status(cache: SitemapCache = Depends(get_sitemap_cache)):
    """
    Current state of the sitemap cache
    """
    return SitemapStatus(**cache.snapshot())
