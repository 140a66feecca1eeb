"""
Shared FastAPI dependencies
"""

from fastapi import HTTPException, Request

from storefront.sitemap.cache import SitemapCache

def get_sitemap_cache(request: Request) -> SitemapCache:
    """
    Dependency returning the application's sitemap cache
    """
    cache = getattr(request.app.state, "sitemap_cache", None)
    if cache is None:
        raise HTTPException(status_code=503, detail="Sitemap cache is not initialised")
    return cache
