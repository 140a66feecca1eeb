"""
Main API router that includes all endpoint routers
"""

from fastapi import APIRouter

from storefront.api.api_v1.endpoints import sitemap

# Create main API router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(sitemap.router, prefix="/sitemap", tags=["sitemap"])
