"""
FastAPI main application module for the storefront backend
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from functools import partial
from typing import Optional
import time
import logging

from storefront.core.config import settings
from storefront.core.database import SessionLocal
from storefront.core.database_utils import create_all_tables, check_database_connection
from storefront.api.api_v1.api import api_router
from storefront.api.sitemap import router as sitemap_router
from storefront.services.catalog import DatabaseCatalogSource
from storefront.sitemap.builder import CatalogSource
from storefront.sitemap.cache import SitemapCache
from storefront.sitemap.pipeline import build_sitemap

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

def create_app(catalog_source: Optional[CatalogSource] = None) -> FastAPI:
    """
    Build the application.

    Args:
        catalog_source: pages to list in the sitemap; defaults to the
            database-backed catalog, which also enables the database checks
            on startup
    """
    app = FastAPI(
        title="Storefront API",
        description="Portfolio shop backend: catalog pages, sitemap and static assets",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(sitemap_router, tags=["crawlers"])

    # Uploaded images referenced from the sitemap
    app.mount("/static", StaticFiles(directory=settings.STATIC_DIR, check_dir=False), name="static")

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": "1.0.0"
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": "Storefront API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "sitemap": "/sitemap.xml"
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred"
            }
        )

    # Startup event
    @app.on_event("startup")
    async def startup_event():
        """Initialize application on startup"""
        logger.info("Starting Storefront API...")

        source = catalog_source
        if source is None:
            if not check_database_connection():
                logger.error("Failed to connect to database")
                raise Exception("Database connection failed")

            # Create database tables in development
            if settings.ENVIRONMENT == "development":
                try:
                    create_all_tables()
                    logger.info("Database tables created/verified successfully")
                except Exception as e:
                    logger.error(f"Failed to create database tables: {e}")
                    raise

            source = DatabaseCatalogSource(SessionLocal, static_pages=settings.SITEMAP_STATIC_PAGES)

        app.state.sitemap_cache = SitemapCache(
            partial(build_sitemap, source, settings),
            ttl_seconds=settings.SITEMAP_CACHE_TTL_SECONDS,
            build_timeout=settings.SITEMAP_BUILD_TIMEOUT_SECONDS,
        )
        logger.info("Application startup complete")

    # Shutdown event
    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on application shutdown"""
        logger.info("Shutting down Storefront API...")

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
