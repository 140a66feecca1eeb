"""
Streaming sitemap XML encoder.

Produces the document as a sequence of UTF-8 chunks: the prolog and opening
``<urlset>`` first, then one chunk per ``<url>``, then the closing tag.
"""

import re
from datetime import date, datetime, timezone
from typing import Iterable, Iterator, List, Union
from xml.sax.saxutils import escape

from storefront.sitemap.builder import SitemapRecord
from storefront.sitemap.errors import EncodingAborted

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NS = "http://www.google.com/schemas/sitemap-image/1.1"

URLSET_OPEN = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<urlset xmlns="{SITEMAP_NS}" xmlns:image="{IMAGE_NS}">'
).encode("utf-8")
URLSET_CLOSE = b"</urlset>"

_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Characters outside the XML 1.0 Char production, including lone surrogates
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

def _text(value: str, field_name: str) -> str:
    match = _INVALID_XML_CHARS.search(value)
    if match:
        raise EncodingAborted(
            f"{field_name} contains a character not allowed in XML: {match.group()!r}"
        )
    return escape(value, _ENTITIES)

def format_lastmod(value: Union[datetime, date]) -> str:
    """W3C datetime: dates as YYYY-MM-DD, datetimes in UTC to the second"""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="seconds")
    return value.isoformat()

def encode_record(record: SitemapRecord) -> bytes:
    if not record.url:
        raise EncodingAborted("Sitemap record has an empty URL")

    parts: List[str] = ["<url>", f"<loc>{_text(record.url, 'loc')}</loc>"]
    if record.last_modified is not None:
        parts.append(f"<lastmod>{format_lastmod(record.last_modified)}</lastmod>")
    for image in record.images:
        parts.append("<image:image>")
        parts.append(f"<image:loc>{_text(image.loc, 'image loc')}</image:loc>")
        if image.caption:
            parts.append(f"<image:caption>{_text(image.caption, 'caption')}</image:caption>")
        if image.title:
            parts.append(f"<image:title>{_text(image.title, 'title')}</image:title>")
        parts.append(f"<image:license>{_text(image.license, 'license')}</image:license>")
        parts.append("</image:image>")
    parts.append("</url>")

    try:
        return "".join(parts).encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingAborted(f"Record {record.url} is not encodable as UTF-8: {e}") from e

def encode_sitemap(records: Iterable[SitemapRecord]) -> Iterator[bytes]:
    """
    Encode records into sitemap XML, one chunk at a time.

    The opening chunk is yielded before the first record is pulled. If the
    record stream raises, EncodingAborted is raised and ``</urlset>`` is never
    yielded; whatever was produced so far must be thrown away.
    """
    yield URLSET_OPEN

    count = 0
    iterator = iter(records)
    while True:
        try:
            record = next(iterator)
        except StopIteration:
            break
        except EncodingAborted:
            raise
        except Exception as e:
            raise EncodingAborted(f"Record stream failed after {count} records: {e}") from e

        yield encode_record(record)
        count += 1

    yield URLSET_CLOSE
