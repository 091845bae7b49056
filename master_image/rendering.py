"""Transforming decoded images and exporting them as bytes."""
import logging
from typing import Any, Callable, Optional, Sequence, Union

from master_image.engine import ImageEngine, ImageFormat, ImageOperation
from master_image.types import MasterImage

logger = logging.getLogger(__name__)

Transform = Union[Sequence[ImageOperation], Callable[[Any], Any]]


class RenderPipeline:
    """Runs transforms and encodes images through an image engine."""

    def __init__(self, engine: ImageEngine):
        self.engine = engine

    def apply(self, image: MasterImage, transform: Transform) -> MasterImage:
        """Apply ``transform`` to ``image``.

        ``transform`` is either a sequence of engine operations or a callable
        taking a handle and returning the transformed handle.

        Returns ``image`` itself when the transform worked in place, otherwise
        a new MasterImage. The input handle is never released here; it still
        belongs to the caller. Intermediate handles are released as soon as
        the next one exists.
        """
        handle = image.handle
        if callable(transform):
            handle = transform(handle)
        else:
            for op in transform:
                transformed = self.engine.apply_op(handle, op)
                if handle is not image.handle and transformed is not handle:
                    self.engine.release(handle)
                handle = transformed

        if handle is image.handle:
            image.refresh()
            result = image
        else:
            result = MasterImage.from_handle(handle, self.engine)
            result.format = image.format
        logger.debug(f"Transformed image to {result.width}x{result.height}")
        return result

    def export(
        self,
        image: MasterImage,
        format: Union[str, ImageFormat],
        quality: Optional[int] = None,
    ) -> bytes:
        """Encode ``image`` in ``format``.

        ``quality`` only matters for lossy formats (JPEG); other formats
        are encoded without it.
        """
        image_format = ImageFormat.coerce(format)
        if image_format.is_lossy:
            content = self.engine.encode(image.handle, image_format, quality)
        else:
            content = self.engine.encode(image.handle, image_format, None)
        logger.debug(f"Exported {image_format.value} image, {len(content)} bytes")
        return content
