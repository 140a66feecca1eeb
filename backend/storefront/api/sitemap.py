"""
Crawler-facing endpoints: sitemap.xml and robots.txt
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import FileResponse
from pathlib import Path
import logging

from storefront.api.deps import get_sitemap_cache
from storefront.core.config import settings
from storefront.sitemap.cache import SitemapCache
from storefront.sitemap.errors import SitemapBuildFailed

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/sitemap.xml", response_class=Response)
async def get_sitemap(cache: SitemapCache = Depends(get_sitemap_cache)):
    """
    Gzip-compressed XML sitemap of every publishable page.

    Served from the in-process cache; the first request after start-up
    builds it.
    """
    try:
        payload = await cache.get_payload()
    except SitemapBuildFailed as e:
        logger.error(f"Sitemap unavailable ({e.cause.__class__.__name__}): {e.cause}")
        return Response(status_code=500)

    return Response(
        content=payload.content,
        media_type="application/xml",
        headers={"Content-Encoding": "gzip"},
    )

@router.get("/robots.txt", response_class=FileResponse)
async def get_robots():
    """robots.txt from the static directory"""
    robots_path = Path(settings.STATIC_DIR) / "robots.txt"
    if not robots_path.is_file():
        raise HTTPException(status_code=404, detail="robots.txt not found")
    return FileResponse(robots_path, media_type="text/plain;charset=UTF-8")
