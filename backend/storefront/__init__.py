"""
Storefront backend: catalog pages, sitemap generation and static assets
"""

__version__ = "1.0.0"
