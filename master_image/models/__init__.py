"""Database models for the master image service."""

from .db import Base, Photo

__all__ = ["Base", "Photo"]
