"""Record references and validation results."""

from datetime import datetime
from typing import Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field


@runtime_checkable
class ImageRecord(Protocol):
    """Anything that owns a master image.

    The id may be unset before the record is first persisted.
    """

    id: Optional[Union[int, str]]
    created_at: Optional[datetime]


class RecordRef(BaseModel):
    """Plain record reference for callers without an ORM row at hand."""

    id: Optional[Union[int, str]] = Field(
        default=None,
        description="Record identifier, unset until the record is persisted"
    )
    created_at: Optional[datetime] = Field(
        default=None,
        description="Creation time, used for date-partitioned directories"
    )
    image_file_data: Optional[bytes] = Field(
        default=None,
        description="Master image bytes for blob-backed records"
    )


class ImageValidationError(BaseModel):
    """A validation problem to show next to a form field. Never raised."""

    field: str = Field(..., description="Form field the message belongs to")
    message: str = Field(..., description="Human readable message")

    def __str__(self) -> str:
        return f"{self.field} {self.message}"
