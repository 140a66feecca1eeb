"""
Piece model for published artworks shown in the gallery and shop
"""

from sqlalchemy import Column, String, Text, Boolean, JSON
from sqlalchemy.orm import validates
from typing import Optional, List

from storefront.models.base import BaseModel

class Piece(BaseModel):
    """
    Piece model representing a single artwork with its uploaded images
    """
    __tablename__ = "pieces"

    title = Column(
        String(500),
        nullable=False,
        index=True,
        comment="Piece title"
    )

    caption = Column(
        Text,
        nullable=True,
        comment="Caption shown under the piece and used for image metadata"
    )

    collection = Column(
        String(255),
        nullable=True,
        index=True,
        comment="Gallery collection slug (lower case)"
    )

    # Uploaded images, e.g. [{"big": "<uuid>.jpg", "small": "<uuid>-sm.jpg"}]
    images = Column(
        JSON,
        default=lambda: [],
        nullable=False,
        comment="Uploaded image filenames per size"
    )

    is_published = Column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
        comment="Whether the piece is publicly listed"
    )

    __table_args__ = (
        {"comment": "Artworks with uploaded images"}
    )

    @validates('collection')
    def validate_collection(self, key: str, collection: Optional[str]) -> Optional[str]:
        """Collections are addressed by lower-case slug"""
        if collection:
            return collection.strip().lower()
        return collection

    def get_image_filenames(self, size: str = "big") -> List[str]:
        """Get stored filenames for one image size, skipping missing entries"""
        filenames = []
        for image in self.images or []:
            filename = image.get(size) if isinstance(image, dict) else None
            if filename:
                filenames.append(filename)
        return filenames

    def get_path(self) -> str:
        """Site-relative path of the piece page"""
        return f"/piece/{self.id}"

