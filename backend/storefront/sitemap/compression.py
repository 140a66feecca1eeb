"""
Incremental gzip compression of the sitemap byte stream
"""

import io
import logging
import zlib
from typing import BinaryIO, Iterable, Iterator, Optional

from storefront.sitemap.errors import CompressionAborted, SitemapError

logger = logging.getLogger(__name__)

# wbits for a gzip container (header + trailer) around raw deflate
GZIP_WBITS = 16 + zlib.MAX_WBITS

def gzip_stream(chunks: Iterable[bytes], level: int = 9) -> Iterator[bytes]:
    """
    Compress ``chunks`` as they arrive and yield gzip blocks.

    The header carries no mtime or filename, so equal input gives equal output.
    Typed pipeline errors from upstream propagate unchanged; anything else
    becomes CompressionAborted.
    """
    try:
        compressor = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
    except (ValueError, zlib.error) as e:
        raise CompressionAborted(f"Cannot start gzip stream: {e}") from e

    try:
        for chunk in chunks:
            block = compressor.compress(chunk)
            if block:
                yield block
        yield compressor.flush(zlib.Z_FINISH)
    except SitemapError:
        raise
    except Exception as e:
        raise CompressionAborted(f"Compression stream failed: {e}") from e

def compress_to(chunks: Iterable[bytes], sink: BinaryIO, level: int = 9) -> int:
    """Write the gzip stream for ``chunks`` into ``sink``; returns bytes written"""
    written = 0
    for block in gzip_stream(chunks, level):
        try:
            sink.write(block)
        except (OSError, ValueError) as e:
            raise CompressionAborted(f"Writing compressed output failed: {e}") from e
        written += len(block)
    return written

def compress_document(chunks: Iterable[bytes], level: int = 9,
                      sink: Optional[io.BytesIO] = None) -> bytes:
    """
    Compress a whole document into memory and return the payload.

    Nothing is returned unless the stream completed; on failure the partial
    buffer is discarded.
    """
    buffer = sink if sink is not None else io.BytesIO()
    written = compress_to(chunks, buffer, level)
    logger.debug(f"Compressed sitemap stream to {written} bytes")
    return buffer.getvalue()
