"""Photo-related Pydantic schemas for API responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .record import ImageValidationError


class PhotoResponse(BaseModel):
    """A stored photo record and the image metadata kept in its columns."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "examples": [
                {
                    "id": 123,
                    "created_at": "2007-11-24T10:00:00",
                    "image_filename": "photo.jpg",
                    "image_width": 1024,
                    "image_height": 768,
                }
            ]
        }
    )

    id: int = Field(..., description="Photo identifier")
    created_at: Optional[datetime] = Field(None, description="When the photo was created")
    image_filename: Optional[str] = Field(None, description="Original filename of the upload")
    image_width: Optional[int] = Field(None, description="Master image width in pixels", ge=0)
    image_height: Optional[int] = Field(None, description="Master image height in pixels", ge=0)


class PhotoValidationResponse(BaseModel):
    """Returned when an upload fails validation.

    ``image_file_temp`` identifies a readable image that was cached during
    this attempt. A form can send it back so the user does not have to
    upload the same file again.
    """

    errors: List[ImageValidationError] = Field(..., description="Validation errors")
    image_file_temp: Optional[str] = Field(
        None,
        description="Temp token of the cached upload, if any"
    )
