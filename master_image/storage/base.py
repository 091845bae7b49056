"""Master image store interface."""

from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from master_image.schemas import ImageRecord


@runtime_checkable
class MasterStore(Protocol):
    """Abstract interface for master image persistence.

    One master image belongs to one record. Implementations decide where
    its bytes live: on the filesystem, in a column of the record, etc.
    """

    def write(self, record: ImageRecord, content: bytes) -> None:
        """Store the master image bytes for a record.

        Raises:
            StorageError: If the image cannot be saved.
        """
        ...

    def read(self, record: ImageRecord) -> bytes:
        """Return the master image bytes for a record.

        Raises:
            ImageNotFoundError: If the record has no stored image.
            StorageError: If the image exists but cannot be read.
        """
        ...

    def delete(self, record: ImageRecord) -> None:
        """Remove the master image of a record, if the backend owns it."""
        ...

    def exists(self, record: ImageRecord) -> bool:
        """Check whether a master image is stored for a record."""
        ...

    def location(self, record: ImageRecord) -> Optional[Path]:
        """Where the image is expected to live, for diagnostics. None if not a file."""
        ...
