"""Image engine abstraction and the Pillow implementation."""

from .base import ImageEngine, ImageFormat, ImageMetadata, ImageOperation
from .pillow import PillowEngine

__all__ = ["ImageEngine", "ImageFormat", "ImageMetadata", "ImageOperation", "PillowEngine"]
