"""
Sitemap generation and caching
"""

from .builder import CatalogSource, SitemapImage, SitemapRecord, build_records, fetch_catalog
from .cache import CachedPayload, CacheState, SitemapCache
from .errors import (
    BuildResult, BuildTimeout, CatalogUnavailable, CompressionAborted,
    EncodingAborted, SitemapBuildFailed, SitemapError
)
from .pipeline import build_sitemap

__all__ = [
    "CatalogSource", "SitemapImage", "SitemapRecord", "build_records", "fetch_catalog",
    "CachedPayload", "CacheState", "SitemapCache",
    "BuildResult", "BuildTimeout", "CatalogUnavailable", "CompressionAborted",
    "EncodingAborted", "SitemapBuildFailed", "SitemapError",
    "build_sitemap",
]
