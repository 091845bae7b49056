"""Filesystem locations of master images."""

from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from master_image.errors import ConfigError
from master_image.schemas import StorageConfig


def resolve_directory(config: StorageConfig, created_at: Optional[Union[date, datetime]] = None) -> Path:
    """Return the directory holding master images for a record.

    With date directories enabled and a creation time known, the image
    directory gains ``year/month/day`` segments, e.g. ``images/2008/3/30``.
    Otherwise it is the configured directory itself.

    Raises:
        ConfigError: If no image directory is configured.
    """
    if config.directory is None:
        raise ConfigError("No image directory was defined, cannot generate path")

    directory = config.resolve(config.directory)
    if config.use_date_directories and created_at is not None:
        return directory / str(created_at.year) / str(created_at.month) / str(created_at.day)
    return directory


def resolve_file_path(
    config: StorageConfig,
    record_id: Union[int, str],
    created_at: Optional[Union[date, datetime]] = None,
) -> Path:
    """Return the master image path for a record, e.g. ``images/2007/11/24/123.png``."""
    return resolve_directory(config, created_at) / f"{record_id}.{config.storage_format.value}"
