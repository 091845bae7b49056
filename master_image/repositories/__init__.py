"""Repository implementations for data access."""

from .photo import PhotoRepository

__all__ = ["PhotoRepository"]
