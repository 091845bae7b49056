"""Photo repository: persists photo rows and drives the image lifecycle hooks."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from master_image.models import Photo
from master_image.orchestrator import MasterImageOrchestrator
from master_image.schemas import ImageValidationError

logger = logging.getLogger(__name__)


class PhotoRepository:
    """SQLAlchemy-based storage for photo records.

    The repository owns the row and its columns. The orchestrator passed to
    ``save`` and ``delete`` owns the image, and is called at each lifecycle
    point in order.
    """

    def __init__(self, db: Session):
        """Initialize the repository with a database session.

        Args:
            db: SQLAlchemy session for database operations
        """
        self.db = db

    def get(self, photo_id: int) -> Optional[Photo]:
        return self.db.get(Photo, photo_id)

    def save(self, photo: Photo, images: MasterImageOrchestrator) -> list[ImageValidationError]:
        """Validate and persist a photo together with its image.

        Returns:
            The validation errors. When the list is not empty nothing was
            written.
        """
        errors = images.before_validate()
        if errors:
            logger.info(f"Photo not saved, {len(errors)} validation error(s)")
            return errors

        for column, value in images.before_persist().items():
            setattr(photo, column, value)
        if photo.created_at is None:
            photo.created_at = datetime.now(timezone.utc)

        try:
            self.db.add(photo)
            # Assigns the id the image path depends on
            self.db.flush()
            images.after_persist()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save photo: {e}")
            raise

        self.db.refresh(photo)
        logger.info(f"Saved photo {photo.id}")
        return []

    def delete(self, photo: Photo, images: MasterImageOrchestrator) -> None:
        """Delete a photo row, then its image."""
        photo_id = photo.id
        try:
            self.db.delete(photo)
            self.db.flush()
            images.after_destroy()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete photo {photo_id}: {e}")
            raise

        logger.info(f"Deleted photo {photo_id}")

    def count(self) -> int:
        return self.db.query(Photo).count()
