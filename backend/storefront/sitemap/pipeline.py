"""
Sitemap pipeline: catalog -> records -> XML stream -> gzip stream
"""

import logging
import time

from fastapi.concurrency import run_in_threadpool

from storefront.core.config import Settings
from storefront.sitemap.builder import CatalogSource, build_records, fetch_catalog
from storefront.sitemap.compression import compress_document
from storefront.sitemap.encoder import encode_sitemap
from storefront.sitemap.errors import BuildResult, SitemapError

logger = logging.getLogger(__name__)

def render_sitemap(entries, settings: Settings) -> bytes:
    """Encode and compress already-fetched entries (blocking)"""
    records = build_records(
        entries,
        base_url=settings.APP_URL,
        image_path=settings.SITEMAP_IMAGE_PATH,
        license_url=settings.SITEMAP_IMAGE_LICENSE,
    )
    return compress_document(encode_sitemap(records), level=settings.SITEMAP_COMPRESSION_LEVEL)

async def build_sitemap(source: CatalogSource, settings: Settings) -> BuildResult:
    """
    Run the whole pipeline once.

    Never raises for pipeline failures: the outcome, including which stage
    failed, is carried by the returned BuildResult.
    """
    start_time = time.time()
    try:
        entries = await fetch_catalog(source)
        content = await run_in_threadpool(render_sitemap, entries, settings)
    except SitemapError as e:
        logger.error(f"Sitemap build failed ({e.kind}): {e}")
        return BuildResult.failure(e)

    logger.info(
        f"Sitemap built: {len(entries)} entries, {len(content)} bytes compressed "
        f"in {time.time() - start_time:.3f}s"
    )
    return BuildResult.success(content)
