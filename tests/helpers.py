"""
Shared fakes for the sitemap tests.
"""

import gzip
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from storefront.core.config import Settings

SM = "{http://www.sitemaps.org/schemas/sitemap/0.9}"
IMG = "{http://www.google.com/schemas/sitemap-image/1.1}"

BASE_URL = "https://shop.example.com"


def make_settings(**overrides):
    """Settings isolated from the environment and any .env file."""
    values = {
        "APP_URL": BASE_URL,
        "SITEMAP_IMAGE_PATH": "static/uploads",
        "SITEMAP_IMAGE_LICENSE": "https://creativecommons.org/licenses/by/4.0/",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def example_catalog():
    """Two pages: one without images, one piece with an escaped caption."""
    return [
        {
            "path": "/about",
            "last_modified": datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            "images": [],
        },
        {
            "path": "/piece/42",
            "last_modified": datetime(2020, 2, 3, tzinfo=timezone.utc),
            "images": [{"full_url": "p.jpg", "caption": "A & B", "title": "X"}],
        },
    ]


class FakeCatalogSource:
    """Synchronous catalog source that counts calls and can be told to fail."""

    def __init__(self, entries=None, error=None):
        self.entries = entries if entries is not None else example_catalog()
        self.error = error
        self.calls = 0

    def fetch_entries(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.entries)


def parse_payload(content):
    """Decompress a cached payload and parse it as XML."""
    return ET.fromstring(gzip.decompress(content))
