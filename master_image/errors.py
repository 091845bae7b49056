"""Exceptions raised by the master image service."""

from pathlib import Path
from typing import Optional


class MasterImageError(Exception):
    """Base exception for master image errors."""
    pass


class ConfigError(MasterImageError):
    """Raised when a storage configuration cannot work at all."""
    pass


class StorageError(MasterImageError):
    """Base exception for storage-related errors."""
    pass


class ImageNotFoundError(StorageError, FileNotFoundError):
    """Raised when a stored or cached image does not exist."""
    pass


class DecodeError(MasterImageError):
    """Raised by an image engine when bytes cannot be decoded."""
    pass


class TransportError(MasterImageError):
    """Raised when a remote image cannot be fetched."""
    pass


class InvalidStateError(MasterImageError):
    """Raised when an orchestrator operation is not allowed in its current state."""
    pass


class MasterImageNotFoundError(MasterImageError):
    """Raised when a record has no master image and no default is configured.

    Attributes:
        expected_path: Where the master image should have been, for
            filesystem-backed records. None for blob-backed records.
    """

    def __init__(self, expected_path: Optional[Path] = None):
        self.expected_path = expected_path
        message = "Master image was not found for this record"
        if expected_path is not None:
            message += f"\nExpected image to be at:\n  {expected_path}"
        super().__init__(message)
