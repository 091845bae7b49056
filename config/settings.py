"""Application settings and configuration."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from master_image.schemas import ColumnCapabilities, StorageConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(
        default="Master Image Service",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    environment: Literal["local", "dev", "stage", "prod"] = Field(
        default="local",
        description="Deployment environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Master image storage
    storage_type: Literal["filesystem", "blob"] = Field(
        default="filesystem",
        description="Keep master images as files or in the photos table"
    )
    base_path: Path = Field(
        default=Path("."),
        description="Base directory that relative storage paths resolve against"
    )
    image_directory: Optional[Path] = Field(
        default=Path("data/images"),
        description="Directory for master image files"
    )
    temp_root: Path = Field(
        default=Path("tmp/master_image"),
        description="Directory for uploads kept across form redisplays"
    )
    use_date_directories: bool = Field(
        default=True,
        description="Partition image directories by creation date"
    )
    storage_format: Literal["png", "jpg"] = Field(
        default="png",
        description="Format master images are stored in"
    )
    require_image: bool = Field(
        default=True,
        description="Reject records without an image"
    )
    missing_image_message: str = Field(
        default="is required",
        description="Validation message for a missing image"
    )
    invalid_image_message: str = Field(
        default="was not a readable image",
        description="Validation message for an unreadable image"
    )
    jpg_quality: int = Field(
        default=85,
        ge=0,
        le=100,
        description="JPEG quality for stored and rendered images"
    )
    default_image_path: Optional[Path] = Field(
        default=None,
        description="Placeholder image for records without one"
    )
    preprocess_pipeline: list[str] = Field(
        default=[],
        description='Operations applied to uploads before storage, e.g. ["resize:1024x768"]'
    )

    @field_validator("base_path", "temp_root", mode="before")
    @classmethod
    def resolve_storage_path(cls, v: str | Path) -> Path:
        """Ensure storage paths are Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    # Network Configuration
    fetch_timeout: float = Field(
        default=10.0,
        description="Timeout for fetching images by URL (seconds)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///data/db.sqlite3",
        description="Database connection URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements (for debugging)"
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Path to log file (if None, logs to stdout only)"
    )

    # Performance Configuration
    max_upload_size: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        description="Maximum file upload size in bytes"
    )
    image_worker_count: int = Field(
        default=2,
        ge=1,
        description="Maximum number of images decoded or encoded at once"
    )

    @property
    def log_level_numeric(self) -> int:
        """Get numeric log level."""
        return getattr(logging, self.log_level)

    def storage_config(self) -> StorageConfig:
        """Build the storage configuration for photo records."""
        return StorageConfig(
            base_path=self.base_path,
            directory=self.image_directory,
            use_date_directories=self.use_date_directories,
            storage_format=self.storage_format,
            require_image=self.require_image,
            missing_image_message=self.missing_image_message,
            invalid_image_message=self.invalid_image_message,
            jpg_quality=self.jpg_quality,
            default_image_path=self.default_image_path,
            preprocess_pipeline=self.preprocess_pipeline,
            temp_root=self.temp_root,
            columns=ColumnCapabilities(
                has_width_column=True,
                has_height_column=True,
                has_filename_column=True,
                is_blob_backed=self.storage_type == "blob",
            ),
        )

    def configure_logging(self) -> None:
        """Configure logging based on settings."""
        import sys

        # Base logging configuration
        handlers: list[logging.Handler] = []

        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        handlers.append(console_handler)

        # File handler if specified
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file)
            handlers.append(file_handler)

        # Configure formatter
        if self.log_json:
            # JSON formatter for structured logging
            import json

            class JSONFormatter(logging.Formatter):
                def format(self, record: logging.LogRecord) -> str:
                    log_obj = {
                        "timestamp": self.formatTime(record),
                        "level": record.levelname,
                        "logger": record.name,
                        "message": record.getMessage(),
                        "module": record.module,
                        "function": record.funcName,
                        "line": record.lineno,
                    }
                    if record.exc_info:
                        log_obj["exception"] = self.formatException(record.exc_info)
                    return json.dumps(log_obj)

            formatter = JSONFormatter()
        else:
            formatter = logging.Formatter(self.log_format)

        # Apply formatter to all handlers
        for handler in handlers:
            handler.setFormatter(formatter)

        # Configure root logger
        logging.basicConfig(
            level=self.log_level_numeric,
            handlers=handlers,
            force=True,
        )

        if self.debug:
            logging.getLogger("master_image").setLevel(logging.DEBUG)
        else:
            # Pillow and httpx are chatty at DEBUG
            logging.getLogger("PIL").setLevel(logging.WARNING)
            logging.getLogger("httpx").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
