"""
Error kinds and the build result type for the sitemap pipeline
"""

from dataclasses import dataclass
from typing import Optional

class SitemapError(Exception):
    """Base class for sitemap pipeline failures"""
    kind = "sitemap_error"

class CatalogUnavailable(SitemapError):
    """The catalog source failed or returned malformed entries"""
    kind = "catalog_unavailable"

class EncodingAborted(SitemapError):
    """The XML stream was cut short; no closing tag was written"""
    kind = "encoding_aborted"

class CompressionAborted(SitemapError):
    """The gzip stream or its output sink failed"""
    kind = "compression_aborted"

class BuildTimeout(SitemapError):
    """The build exceeded the configured time limit"""
    kind = "build_timeout"

class SitemapBuildFailed(SitemapError):
    """
    Raised to request handlers when a build they waited on failed.

    The specific failure is available as ``cause`` (and as ``__cause__``).
    """
    kind = "build_failed"

    def __init__(self, cause: BaseException):
        super().__init__(f"Sitemap build failed: {cause}")
        self.cause = cause

@dataclass(frozen=True)
class BuildResult:
    """Outcome of one pipeline run: either compressed content or an error"""

    content: Optional[bytes] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, content: bytes) -> "BuildResult":
        return cls(content=content)

    @classmethod
    def failure(cls, error: BaseException) -> "BuildResult":
        return cls(error=error)
