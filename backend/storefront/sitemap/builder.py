"""
Document builder: catalog entries -> sitemap records.

The catalog is read with a single call. Records are produced lazily, in
catalog order, so the encoder can start writing before the last one exists.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Iterator, List, Optional, Protocol, Sequence, Union
from urllib.parse import urljoin

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from storefront.schemas.catalog import CatalogEntry
from storefront.sitemap.errors import CatalogUnavailable

logger = logging.getLogger(__name__)

class CatalogSource(Protocol):
    """Anything that can list the publishable pages of the site"""

    def fetch_entries(self) -> Sequence[Union[CatalogEntry, dict]]:
        ...

@dataclass(frozen=True)
class SitemapImage:
    loc: str
    caption: str
    title: str
    license: str

@dataclass(frozen=True)
class SitemapRecord:
    url: str
    last_modified: Optional[Union[datetime, date]] = None
    images: List[SitemapImage] = field(default_factory=list)

async def fetch_catalog(source: CatalogSource) -> List[CatalogEntry]:
    """
    Call the catalog source once and validate what it returned.

    Synchronous sources run in the threadpool; coroutine sources are awaited.

    Raises:
        CatalogUnavailable: the call failed or an entry is malformed
    """
    try:
        if inspect.iscoroutinefunction(source.fetch_entries):
            raw_entries = await source.fetch_entries()
        else:
            raw_entries = await run_in_threadpool(source.fetch_entries)
    except Exception as e:
        logger.error(f"Catalog source {type(source).__name__} failed: {e}")
        raise CatalogUnavailable(f"Catalog source failed: {e}") from e

    if raw_entries is None:
        raise CatalogUnavailable("Catalog source returned no entry list")

    entries = []
    for position, raw in enumerate(raw_entries):
        try:
            entries.append(_as_entry(raw))
        except (ValidationError, TypeError) as e:
            raise CatalogUnavailable(f"Malformed catalog entry at position {position}: {e}") from e

    logger.info(f"Catalog returned {len(entries)} entries")
    return entries

def _as_entry(raw: Any) -> CatalogEntry:
    if isinstance(raw, CatalogEntry):
        return raw
    return CatalogEntry.model_validate(raw)

def image_url(base_url: str, image_path: str, filename: str) -> str:
    """Absolute URL of an uploaded image: {base_url}/{image_path}/{filename}"""
    return f"{base_url.rstrip('/')}/{image_path.strip('/')}/{filename.lstrip('/')}"

def build_records(
    entries: Iterable[CatalogEntry],
    base_url: str,
    image_path: str,
    license_url: str,
) -> Iterator[SitemapRecord]:
    """
    Yield one record per entry, in the order given.

    Page paths are resolved against ``base_url``; absolute URLs pass through.
    A page whose URL was already emitted is skipped so each ``<loc>`` appears once.
    """
    seen = set()
    for entry in entries:
        url = urljoin(base_url, entry.path)
        if url in seen:
            logger.warning(f"Skipping duplicate sitemap URL {url}")
            continue
        seen.add(url)

        images = [
            SitemapImage(
                loc=image_url(base_url, image_path, image.full_url),
                caption=image.caption,
                title=image.title,
                license=license_url,
            )
            for image in entry.images
        ]
        yield SitemapRecord(url=url, last_modified=entry.last_modified, images=images)
