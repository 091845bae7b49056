"""Pillow implementation of ImageEngine."""
import io
import logging
import struct
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from master_image.errors import DecodeError

from .base import ImageEngine, ImageFormat, ImageMetadata, ImageOperation

logger = logging.getLogger(__name__)

_PILLOW_FORMATS = {
    ImageFormat.PNG: "PNG",
    ImageFormat.JPG: "JPEG",
    ImageFormat.GIF: "GIF",
}

# Modes Pillow can write as-is; anything else is converted first
_WRITABLE_MODES = {
    ImageFormat.PNG: ("1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"),
    ImageFormat.GIF: ("1", "L", "P", "RGB", "RGBA"),
}


class PillowEngine(ImageEngine):
    """Image engine backed by Pillow.

    Images with an alpha channel are flattened against ``background`` when
    encoded to JPEG, which has no transparency.
    """

    def __init__(self, background: tuple[int, int, int] = (255, 255, 255)):
        self.background = background

    def decode(self, content: bytes) -> Image.Image:
        if not content:
            raise DecodeError("cannot identify image file: no data")

        try:
            image = Image.open(io.BytesIO(content))
            # Force the pixel data in now so truncated files fail here
            image.load()
        except UnidentifiedImageError as e:
            raise DecodeError(str(e)) from e
        except (OSError, SyntaxError, ValueError, EOFError, struct.error) as e:
            raise DecodeError(str(e)) from e

        logger.debug(f"Decoded {image.format} image {image.width}x{image.height}")
        return image

    def encode(self, handle: Image.Image, format: ImageFormat, quality: Optional[int] = None) -> bytes:
        format = ImageFormat.coerce(format)
        image = ImageOps.exif_transpose(handle)
        buffer = io.BytesIO()

        try:
            if format is ImageFormat.JPG:
                flattened = self._flatten(image)
                save_kwargs = {"quality": quality} if quality is not None else {}
                flattened.save(buffer, _PILLOW_FORMATS[format], **save_kwargs)
                if flattened is not image:
                    flattened.close()
            else:
                normalized = self._normalize(image, format)
                normalized.save(buffer, _PILLOW_FORMATS[format])
                if normalized is not image:
                    normalized.close()
        finally:
            if image is not handle:
                image.close()

        return buffer.getvalue()

    def metadata(self, handle: Image.Image) -> ImageMetadata:
        source_format = handle.format.lower() if handle.format else None
        if source_format == "jpeg":
            source_format = "jpg"
        return ImageMetadata(width=handle.width, height=handle.height, format=source_format)

    def apply_op(self, handle: Image.Image, op: ImageOperation) -> Image.Image:
        if op.name == "resize":
            return ImageOps.contain(handle, op.args)
        if op.name == "crop":
            x, y, width, height = op.args
            return handle.crop((x, y, x + width, y + height))
        if op.name == "rotate":
            # Clockwise, growing the canvas to fit
            return handle.rotate(-op.args[0], expand=True)
        if op.name == "flip":
            direction = op.args[0]
            if direction == "horizontal":
                return ImageOps.mirror(handle)
            if direction == "vertical":
                return ImageOps.flip(handle)
            raise ValueError(f"Unknown flip direction: {direction}")
        if op.name == "grayscale":
            return ImageOps.grayscale(handle)
        raise ValueError(f"Unsupported image operation: {op.name}")

    def release(self, handle: Image.Image) -> None:
        handle.close()

    def _flatten(self, image: Image.Image) -> Image.Image:
        """Return an RGB version of ``image`` suitable for JPEG."""
        if image.mode in ("RGB", "L"):
            return image
        if image.mode in ("RGBA", "LA", "P"):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, self.background)
            background.paste(rgba, mask=rgba.getchannel("A"))
            rgba.close()
            return background
        return image.convert("RGB")

    def _normalize(self, image: Image.Image, format: ImageFormat) -> Image.Image:
        """Return a version of ``image`` in a mode ``format`` can store, e.g. CMYK to RGB."""
        if image.mode in _WRITABLE_MODES[format]:
            return image
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        return image.convert("RGBA" if has_alpha else "RGB")
