"""
Database models package
"""

from .base import Base, BaseModel
from .piece import Piece

__all__ = [
    "Base", "BaseModel", "Piece"
]
