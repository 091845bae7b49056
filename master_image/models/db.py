"""SQLAlchemy database models."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import declarative_base

# Create the declarative base
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Photo(Base):
    """A record owning one master image.

    The image columns are filled from values the orchestrator computes.
    ``image_file_data`` is only used when images are stored in the
    database instead of on disk.
    """
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Drives the date-partitioned image directory
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    image_filename = Column(String, nullable=True)
    image_width = Column(Integer, nullable=True)
    image_height = Column(Integer, nullable=True)
    image_file_data = Column(LargeBinary, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Photo(id={self.id}, filename={self.image_filename}, "
            f"size={self.image_width}x{self.image_height})>"
        )
