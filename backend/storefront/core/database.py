"""
Database configuration and session management
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
import logging

from storefront.core.config import settings, DATABASE_URL

logger = logging.getLogger(__name__)

engine_options = {
    "pool_pre_ping": True,
    "echo": settings.DEBUG,  # Log SQL queries in debug mode
}
if DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared with the threadpool
    engine_options["connect_args"] = {"check_same_thread": False}
else:
    engine_options.update(pool_recycle=300, pool_size=10, max_overflow=20)

engine = create_engine(DATABASE_URL, **engine_options)

# Create SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False  # Keep objects accessible after commit
)

if settings.DEBUG:
    @event.listens_for(engine, "checkout")
    def receive_checkout(dbapi_connection, connection_record, connection_proxy):
        """Log when connection is checked out from pool"""
        logger.debug("Connection checked out from pool")

    @event.listens_for(engine, "checkin")
    def receive_checkin(dbapi_connection, connection_record):
        """Log when connection is returned to pool"""
        logger.debug("Connection returned to pool")

