"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_HOSTS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Public base URL of the site, used for every absolute URL in the sitemap
    APP_URL: str = "http://localhost:3000"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Static files (robots.txt, uploaded images)
    STATIC_DIR: str = "static"

    # Sitemap Configuration
    SITEMAP_IMAGE_PATH: str = "static/uploads"
    SITEMAP_IMAGE_LICENSE: str = "https://creativecommons.org/licenses/by/4.0/"
    SITEMAP_STATIC_PAGES: List[str] = ["/", "/about", "/commissions", "/wheretofind"]
    SITEMAP_COMPRESSION_LEVEL: int = 9
    SITEMAP_CACHE_TTL_SECONDS: Optional[float] = None  # None = cache for process lifetime
    SITEMAP_BUILD_TIMEOUT_SECONDS: Optional[float] = None  # None = no limit

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()

# Validate required settings in production
if settings.ENVIRONMENT == "production":
    required_settings = [
        "APP_URL",
        "DATABASE_URL",
    ]

    missing_settings = []
    for setting in required_settings:
        if not getattr(settings, setting):
            missing_settings.append(setting)

    if missing_settings:
        raise ValueError(f"Missing required production settings: {', '.join(missing_settings)}")

    if "localhost" in settings.APP_URL or "127.0.0.1" in settings.APP_URL:
        raise ValueError("APP_URL must point at the public site in production")

# Database URL for SQLAlchemy
DATABASE_URL = settings.DATABASE_URL
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)
