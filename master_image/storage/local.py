"""Local filesystem implementation of MasterStore."""
import logging
from pathlib import Path
from typing import Optional

from master_image.errors import ImageNotFoundError, StorageError
from master_image.paths import resolve_file_path
from master_image.schemas import ImageRecord, StorageConfig

from .base import MasterStore

logger = logging.getLogger(__name__)


class FilesystemBackend(MasterStore):
    """Stores master images as files named after the record id.

    Paths come from ``resolve_file_path``; see ``master_image.paths``.
    """

    def __init__(self, config: StorageConfig):
        self.config = config
        logger.debug(f"Initialized FilesystemBackend with directory: {config.directory}")

    def path_for(self, record: ImageRecord) -> Path:
        """Master image path of a record.

        Raises:
            ValueError: If the record has no id yet.
        """
        if record.id is None:
            raise ValueError("Record has no id yet; master image path is unknown")
        return resolve_file_path(self.config, record.id, record.created_at)

    def write_path(self, path: Path, content: bytes) -> None:
        """Write bytes to ``path``, creating parent directories as needed."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            logger.debug(f"Saved master image to: {path}")
        except Exception as e:
            logger.error(f"Failed to save master image to {path}: {e}")
            raise StorageError(f"Failed to save image: {e}")

    def read_path(self, path: Path) -> bytes:
        if not path.exists():
            logger.warning(f"Master image not found: {path}")
            raise ImageNotFoundError(f"Image not found: {path}")

        try:
            content = path.read_bytes()
            logger.debug(f"Successfully read master image from: {path}")
            return content
        except Exception as e:
            logger.error(f"Failed to read master image from {path}: {e}")
            raise StorageError(f"Failed to read image: {e}")

    def delete_path(self, path: Path) -> None:
        """Remove ``path``; absent files are ignored."""
        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Deleted master image: {path}")
        except Exception as e:
            logger.error(f"Failed to delete master image {path}: {e}")
            raise StorageError(f"Failed to delete image: {e}")

    def path_exists(self, path: Path) -> bool:
        return path.is_file()

    def write(self, record: ImageRecord, content: bytes) -> None:
        if not content:
            raise ValueError("Image content cannot be empty")
        self.write_path(self.path_for(record), content)

    def read(self, record: ImageRecord) -> bytes:
        if record.id is None:
            raise ImageNotFoundError("Record has no id yet; nothing is stored for it")
        return self.read_path(self.path_for(record))

    def delete(self, record: ImageRecord) -> None:
        if record.id is None:
            return
        self.delete_path(self.path_for(record))

    def exists(self, record: ImageRecord) -> bool:
        if record.id is None:
            return False
        return self.path_exists(self.path_for(record))

    def location(self, record: ImageRecord) -> Optional[Path]:
        if record.id is None:
            return None
        return self.path_for(record)
