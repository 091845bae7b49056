"""Storage backends for master images."""
import logging

from master_image.schemas import StorageConfig

from .base import MasterStore
from .blob import BlobBackend
from .local import FilesystemBackend

logger = logging.getLogger(__name__)


def create_master_store(config: StorageConfig) -> MasterStore:
    """Pick the backend the configuration asks for."""
    if config.is_blob_backed:
        logger.debug("Using blob backend for master images")
        return BlobBackend()
    return FilesystemBackend(config)


__all__ = ["MasterStore", "FilesystemBackend", "BlobBackend", "create_master_store"]
