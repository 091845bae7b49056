"""Image engine interface and the value types it works with."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class ImageFormat(str, Enum):
    """Formats an image can be stored or rendered in."""

    PNG = "png"
    JPG = "jpg"
    GIF = "gif"

    @property
    def is_lossy(self) -> bool:
        """Whether a quality setting applies when encoding."""
        return self is ImageFormat.JPG

    @property
    def media_type(self) -> str:
        return {
            ImageFormat.PNG: "image/png",
            ImageFormat.JPG: "image/jpeg",
            ImageFormat.GIF: "image/gif",
        }[self]

    @classmethod
    def coerce(cls, value: "str | ImageFormat") -> "ImageFormat":
        """Accept enum members, "jpeg" and upper-case names."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized == "jpeg":
            normalized = "jpg"
        return cls(normalized)


@dataclass(frozen=True)
class ImageMetadata:
    """Dimensions (and source format, when known) of a decoded image."""

    width: int
    height: int
    format: Optional[str] = None


_OPERATION_ARITY = {
    "resize": 2,
    "crop": 4,
    "rotate": 1,
    "flip": 1,
    "grayscale": 0,
}


@dataclass(frozen=True)
class ImageOperation:
    """A single engine operation, e.g. ``ImageOperation("resize", (320, 240))``.

    Operations can also be written as text, which is how they appear in
    settings and query strings::

        resize:1024x768
        crop:0,0,200,100
        rotate:90
        flip:horizontal
        grayscale
    """

    name: str
    args: tuple = ()

    def __post_init__(self):
        if self.name not in _OPERATION_ARITY:
            raise ValueError(f"Unknown image operation: {self.name}")
        expected = _OPERATION_ARITY[self.name]
        if len(self.args) != expected:
            raise ValueError(
                f"Operation {self.name} takes {expected} argument(s), got {len(self.args)}"
            )

    @classmethod
    def parse(cls, text: str) -> "ImageOperation":
        """Build an operation from its text form."""
        name, _, raw = text.strip().partition(":")
        name = name.strip().lower()
        raw = raw.strip()

        try:
            if name == "resize":
                width, height = raw.lower().split("x")
                args = (int(width), int(height))
            elif name == "crop":
                args = tuple(int(part) for part in raw.split(","))
            elif name == "rotate":
                args = (float(raw),)
            elif name == "flip":
                args = (raw.lower() or "horizontal",)
            else:
                args = ()
        except ValueError as e:
            raise ValueError(f"Malformed image operation {text!r}: {e}") from e

        return cls(name, args)

    def __str__(self) -> str:
        if self.name == "resize":
            return f"resize:{self.args[0]}x{self.args[1]}"
        if self.args:
            return f"{self.name}:{','.join(str(arg) for arg in self.args)}"
        return self.name


@runtime_checkable
class ImageEngine(Protocol):
    """Abstract image engine.

    The service never touches pixels directly. Decoding, encoding and
    transformations all go through an engine implementing this contract.
    Handles are opaque to callers.
    """

    def decode(self, content: bytes) -> Any:
        """Decode raw bytes into an image handle.

        Raises:
            DecodeError: If the bytes cannot be decoded. The message carries
                the engine's own description of the failure.
        """
        ...

    def encode(self, handle: Any, format: ImageFormat, quality: Optional[int] = None) -> bytes:
        """Encode a handle into bytes of the given format."""
        ...

    def metadata(self, handle: Any) -> ImageMetadata:
        """Return the dimensions of a handle."""
        ...

    def apply_op(self, handle: Any, op: ImageOperation) -> Any:
        """Apply one operation and return the resulting handle."""
        ...

    def release(self, handle: Any) -> None:
        """Free the buffers held by a handle."""
        ...
