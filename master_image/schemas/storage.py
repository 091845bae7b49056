"""Storage configuration for a record type that owns a master image."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from master_image.engine import ImageFormat, ImageOperation
from master_image.errors import ConfigError


class ColumnCapabilities(BaseModel):
    """Which image columns the record's schema actually has.

    Supplied by the caller, who knows its own schema. ``is_blob_backed``
    selects the blob backend instead of the filesystem.
    """

    model_config = ConfigDict(frozen=True)

    has_width_column: bool = False
    has_height_column: bool = False
    has_filename_column: bool = False
    is_blob_backed: bool = False


class StorageConfig(BaseModel):
    """Immutable configuration shared by every record of one type.

    Relative paths (``directory``, ``temp_root``, ``default_image_path``)
    are resolved against ``base_path``.
    """

    model_config = ConfigDict(frozen=True)

    base_path: Path = Field(
        default=Path("."),
        description="Base directory relative paths are resolved against"
    )
    directory: Optional[Path] = Field(
        default=None,
        description="Where master images are stored (filesystem backend)"
    )
    use_date_directories: bool = Field(
        default=True,
        description="Partition the image directory by creation year/month/day"
    )
    storage_format: ImageFormat = Field(
        default=ImageFormat.PNG,
        description="Format master images are stored in"
    )
    require_image: bool = Field(
        default=True,
        description="Whether a record without an image fails validation"
    )
    missing_image_message: str = Field(
        default="is required",
        description="Validation message when no image was supplied"
    )
    invalid_image_message: str = Field(
        default="was not a readable image",
        description="Validation message when the supplied image cannot be read"
    )
    jpg_quality: int = Field(
        default=85,
        ge=0,
        le=100,
        description="Quality used whenever JPEG output is produced"
    )
    default_image_path: Optional[Path] = Field(
        default=None,
        description="Placeholder image used when a record has no master image"
    )
    preprocess_pipeline: tuple = Field(
        default=(),
        description="Operations applied to every upload before it is stored"
    )
    columns: ColumnCapabilities = Field(
        default_factory=ColumnCapabilities,
        description="Image columns present on the record"
    )
    temp_root: Path = Field(
        default=Path("tmp/master_image"),
        description="Directory for pending uploads kept across form redisplays"
    )

    @field_validator("storage_format", mode="before")
    @classmethod
    def validate_storage_format(cls, v: str | ImageFormat) -> ImageFormat:
        """Only lossless PNG or compact JPEG make sense for masters."""
        image_format = ImageFormat.coerce(v)
        if image_format not in (ImageFormat.PNG, ImageFormat.JPG):
            raise ValueError("storage_format must be png or jpg")
        return image_format

    @field_validator("preprocess_pipeline", mode="before")
    @classmethod
    def parse_preprocess_pipeline(cls, v) -> tuple:
        """Accept ImageOperation instances or their text form."""
        if v is None:
            return ()
        if isinstance(v, (str, ImageOperation)):
            v = [v]
        operations = []
        for item in v:
            if isinstance(item, ImageOperation):
                operations.append(item)
            elif isinstance(item, str):
                operations.append(ImageOperation.parse(item))
            else:
                raise ValueError(f"Not an image operation: {item!r}")
        return tuple(operations)

    @model_validator(mode="after")
    def require_storage_location(self) -> "StorageConfig":
        if self.directory is None and not self.columns.is_blob_backed:
            raise ConfigError(
                "No place to put images! Set a directory for filesystem storage "
                "or declare the record blob-backed"
            )
        return self

    @property
    def is_blob_backed(self) -> bool:
        return self.columns.is_blob_backed

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against ``base_path``."""
        return self.base_path / path

    @property
    def temp_directory(self) -> Path:
        return self.resolve(self.temp_root)
