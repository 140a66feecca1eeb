"""
Catalog source backed by the pieces table
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.models.piece import Piece
from storefront.schemas.catalog import CatalogEntry, CatalogImage
from storefront.sitemap.errors import CatalogUnavailable

logger = logging.getLogger(__name__)

class DatabaseCatalogSource:
    """Lists every publishable page: static pages, galleries and pieces"""

    def __init__(self, session_factory: Callable[[], Session],
                 static_pages: Optional[Sequence[str]] = None):
        """
        Initialize the catalog source

        Args:
            session_factory: callable returning a new SQLAlchemy session
            static_pages: site-relative paths always listed first
        """
        self.session_factory = session_factory
        self.static_pages = list(static_pages or [])

    def fetch_entries(self) -> List[CatalogEntry]:
        """
        Read the catalog in one pass

        Returns:
            Static pages, then one gallery page per collection, then one page
            per published piece (oldest first)
        """
        db = self.session_factory()
        try:
            pieces = (
                db.query(Piece)
                .filter(Piece.is_published.is_(True))
                .order_by(Piece.created_at, Piece.id)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load pieces for the catalog: {e}")
            raise CatalogUnavailable(f"Failed to load pieces: {e}") from e
        finally:
            db.close()

        entries = [CatalogEntry(path=path) for path in self.static_pages]
        entries.extend(self._gallery_entries(pieces))
        entries.extend(self._piece_entry(piece) for piece in pieces)
        return entries

    @staticmethod
    def _gallery_entries(pieces: List[Piece]) -> List[CatalogEntry]:
        newest: Dict[str, Optional[datetime]] = {}
        for piece in pieces:
            if not piece.collection:
                continue
            current = newest.get(piece.collection)
            if current is None or (piece.updated_at and piece.updated_at > current):
                newest[piece.collection] = piece.updated_at

        return [
            CatalogEntry(path=f"/gallery/{collection}", last_modified=last_modified)
            for collection, last_modified in newest.items()
        ]

    @staticmethod
    def _piece_entry(piece: Piece) -> CatalogEntry:
        images = [
            CatalogImage(full_url=filename, caption=piece.caption, title=piece.title)
            for filename in piece.get_image_filenames("big")
        ]
        return CatalogEntry(path=piece.get_path(), last_modified=piece.updated_at, images=images)
