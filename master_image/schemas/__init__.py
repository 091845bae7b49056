"""Pydantic schemas for configuration, records and API responses."""

from .photo import PhotoResponse, PhotoValidationResponse
from .record import ImageRecord, ImageValidationError, RecordRef
from .storage import ColumnCapabilities, StorageConfig

__all__ = [
    "ColumnCapabilities",
    "StorageConfig",
    "ImageRecord",
    "RecordRef",
    "ImageValidationError",
    "PhotoResponse",
    "PhotoValidationResponse",
]
