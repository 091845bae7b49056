"""In-process value types shared by the ingestion, rendering and orchestration layers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from master_image.engine import ImageEngine, ImageFormat


class ClassificationKind(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class Classification:
    """Outcome of one ingestion attempt."""

    kind: ClassificationKind
    reason: Optional[str] = None

    @classmethod
    def valid(cls) -> "Classification":
        return cls(ClassificationKind.VALID)

    @classmethod
    def invalid(cls, reason: str) -> "Classification":
        return cls(ClassificationKind.INVALID, reason)

    @classmethod
    def transport_failure(cls, reason: str) -> "Classification":
        return cls(ClassificationKind.TRANSPORT_FAILURE, reason)

    @property
    def is_valid(self) -> bool:
        return self.kind is ClassificationKind.VALID


class MasterImage:
    """A decoded image handle together with its metadata.

    The handle belongs to whoever produced it and must be released when the
    operation that needed it is over, either with ``release()`` or by using
    the image as a context manager.
    """

    def __init__(
        self,
        handle: Any,
        engine: ImageEngine,
        width: int,
        height: int,
        format: Optional[ImageFormat] = None,
    ):
        self.handle = handle
        self.engine = engine
        self.width = width
        self.height = height
        self.format = format

    @classmethod
    def from_handle(cls, handle: Any, engine: ImageEngine) -> "MasterImage":
        """Wrap a handle, reading its metadata through the engine."""
        metadata = engine.metadata(handle)
        image_format = None
        if metadata.format:
            try:
                image_format = ImageFormat.coerce(metadata.format)
            except ValueError:
                image_format = None
        return cls(handle, engine, metadata.width, metadata.height, image_format)

    @property
    def released(self) -> bool:
        return self.handle is None

    def refresh(self) -> None:
        """Re-read dimensions after the handle was changed in place."""
        metadata = self.engine.metadata(self.handle)
        self.width = metadata.width
        self.height = metadata.height

    def release(self) -> None:
        if self.handle is not None:
            self.engine.release(self.handle)
            self.handle = None

    def __enter__(self) -> "MasterImage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"<MasterImage({self.width}x{self.height}, format={self.format})>"
