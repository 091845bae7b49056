"""MasterStore that keeps image bytes in a column of the record itself."""
import logging
from pathlib import Path
from typing import Optional

from master_image.errors import ImageNotFoundError
from master_image.schemas import ImageRecord

from .base import MasterStore

logger = logging.getLogger(__name__)

BLOB_FIELD = "image_file_data"


class BlobBackend(MasterStore):
    """Reads and assigns the record's blob field.

    Writing the row is left to whoever persists the record, and the blob
    goes away with the row, so ``delete`` has nothing to do.
    """

    def __init__(self, field: str = BLOB_FIELD):
        self.field = field

    def write(self, record: ImageRecord, content: bytes) -> None:
        if not content:
            raise ValueError("Image content cannot be empty")
        setattr(record, self.field, content)
        logger.debug(f"Assigned {len(content)} bytes to {self.field}")

    def read(self, record: ImageRecord) -> bytes:
        content = getattr(record, self.field, None)
        if not content:
            logger.warning(f"No image data in {self.field} for record {record.id}")
            raise ImageNotFoundError(f"No image data stored for record {record.id}")
        return content

    def delete(self, record: ImageRecord) -> None:
        pass

    def exists(self, record: ImageRecord) -> bool:
        return bool(getattr(record, self.field, None))

    def location(self, record: ImageRecord) -> Optional[Path]:
        return None
