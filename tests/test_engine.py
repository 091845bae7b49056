"""Unit tests for the Pillow image engine."""

import io

import pytest
from PIL import Image as PILImage

from master_image.engine import ImageEngine, ImageFormat, ImageMetadata, ImageOperation, PillowEngine
from master_image.errors import DecodeError
from tests.conftest import make_image_bytes, make_noise_bytes


@pytest.fixture
def engine():
    return PillowEngine()


def open_bytes(content: bytes) -> PILImage.Image:
    return PILImage.open(io.BytesIO(content))


class TestDecode:
    """Test PillowEngine.decode."""

    def test_decode_png(self, engine, png_bytes):
        handle = engine.decode(png_bytes)

        assert handle.size == (100, 60)
        assert engine.metadata(handle) == ImageMetadata(width=100, height=60, format="png")

    def test_decode_jpeg_reports_jpg(self, engine, jpeg_bytes):
        handle = engine.decode(jpeg_bytes)

        assert engine.metadata(handle).format == "jpg"

    def test_decode_garbage(self, engine, corrupt_bytes):
        with pytest.raises(DecodeError, match="cannot identify image file"):
            engine.decode(corrupt_bytes)

    def test_decode_empty(self, engine):
        with pytest.raises(DecodeError):
            engine.decode(b"")

    def test_decode_truncated(self, engine, truncated_png_bytes):
        """Test that truncated pixel data fails at decode time."""
        with pytest.raises(DecodeError):
            engine.decode(truncated_png_bytes)

    def test_implements_protocol(self, engine):
        assert isinstance(engine, ImageEngine)


class TestEncode:
    """Test PillowEngine.encode."""

    def test_encode_png(self, engine, png_bytes):
        content = engine.encode(engine.decode(png_bytes), ImageFormat.PNG)

        assert open_bytes(content).format == "PNG"

    def test_encode_jpg(self, engine, png_bytes):
        content = engine.encode(engine.decode(png_bytes), ImageFormat.JPG, 85)

        output = open_bytes(content)
        assert output.format == "JPEG"
        assert output.size == (100, 60)

    def test_encode_gif(self, engine, png_bytes):
        content = engine.encode(engine.decode(png_bytes), "gif")

        assert open_bytes(content).format == "GIF"

    @pytest.mark.parametrize("format,pillow_format", [(ImageFormat.PNG, "PNG"), (ImageFormat.GIF, "GIF")])
    def test_cmyk_converted_for_lossless_formats(self, engine, format, pillow_format):
        cmyk = make_image_bytes(size=(40, 30), color=(0, 255, 255, 0), format="JPEG", mode="CMYK")
        handle = engine.decode(cmyk)
        assert handle.mode == "CMYK"

        output = open_bytes(engine.encode(handle, format))

        assert output.format == pillow_format
        assert output.size == (40, 30)

    def test_png_keeps_writable_mode(self, engine):
        content = engine.encode(engine.decode(make_image_bytes(mode="L", color=128)), ImageFormat.PNG)

        assert open_bytes(content).mode == "L"

    def test_jpg_flattens_alpha(self, engine):
        """Test that transparent images can still be written as JPEG."""
        rgba = make_image_bytes(mode="RGBA", color=(255, 0, 0, 0))

        content = engine.encode(engine.decode(rgba), ImageFormat.JPG, 90)

        output = open_bytes(content)
        assert output.mode == "RGB"
        # Fully transparent pixels end up as the white background
        assert output.getpixel((50, 30))[0] > 240
        assert output.getpixel((50, 30))[2] > 240

    def test_quality_affects_jpg_size(self, engine):
        handle = engine.decode(make_noise_bytes())

        low = engine.encode(handle, ImageFormat.JPG, 10)
        high = engine.encode(handle, ImageFormat.JPG, 95)

        assert len(low) < len(high)

    def test_exif_orientation_is_applied(self, engine):
        """Test that an EXIF rotation is baked into the pixels and stripped."""
        img = PILImage.new("RGB", (100, 60), color="blue")
        exif = PILImage.Exif()
        exif[0x0112] = 6  # rotate 90 degrees clockwise
        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", exif=exif.tobytes())

        content = engine.encode(engine.decode(buffer.getvalue()), ImageFormat.JPG, 85)

        output = open_bytes(content)
        assert output.size == (60, 100)
        assert output.getexif().get(0x0112) is None

    def test_encode_does_not_close_handle(self, engine, png_bytes):
        handle = engine.decode(png_bytes)

        engine.encode(handle, ImageFormat.JPG, 85)

        assert handle.size == (100, 60)
        handle.getpixel((0, 0))


class TestApplyOp:
    """Test PillowEngine.apply_op."""

    @pytest.fixture
    def handle(self, engine, png_bytes):
        return engine.decode(png_bytes)

    def test_resize_keeps_aspect_ratio(self, engine, handle):
        result = engine.apply_op(handle, ImageOperation("resize", (50, 50)))

        assert result.size == (50, 30)

    def test_resize_can_enlarge(self, engine, handle):
        result = engine.apply_op(handle, ImageOperation("resize", (200, 200)))

        assert result.size == (200, 120)

    def test_crop(self, engine, handle):
        result = engine.apply_op(handle, ImageOperation("crop", (10, 10, 20, 30)))

        assert result.size == (20, 30)

    def test_rotate(self, engine, handle):
        result = engine.apply_op(handle, ImageOperation("rotate", (90.0,)))

        assert result.size == (60, 100)

    def test_grayscale(self, engine, handle):
        result = engine.apply_op(handle, ImageOperation("grayscale"))

        assert result.mode == "L"

    @pytest.mark.parametrize("direction", ["horizontal", "vertical"])
    def test_flip(self, engine, handle, direction):
        result = engine.apply_op(handle, ImageOperation("flip", (direction,)))

        assert result.size == (100, 60)

    def test_flip_unknown_direction(self, engine, handle):
        with pytest.raises(ValueError, match="Unknown flip direction"):
            engine.apply_op(handle, ImageOperation("flip", ("sideways",)))

    def test_original_handle_untouched(self, engine, handle):
        engine.apply_op(handle, ImageOperation("resize", (10, 10)))

        assert handle.size == (100, 60)


class TestImageOperation:
    """Test ImageOperation parsing."""

    @pytest.mark.parametrize("text, expected", [
        ("resize:1024x768", ImageOperation("resize", (1024, 768))),
        ("RESIZE:320X240", ImageOperation("resize", (320, 240))),
        ("crop:0,0,200,100", ImageOperation("crop", (0, 0, 200, 100))),
        ("rotate:90", ImageOperation("rotate", (90.0,))),
        ("flip:vertical", ImageOperation("flip", ("vertical",))),
        ("flip", ImageOperation("flip", ("horizontal",))),
        ("grayscale", ImageOperation("grayscale")),
    ])
    def test_parse(self, text, expected):
        assert ImageOperation.parse(text) == expected

    @pytest.mark.parametrize("text", [
        "blur:3",
        "resize:big",
        "resize:100",
        "crop:1,2,3",
        "rotate:left",
    ])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            ImageOperation.parse(text)

    def test_str_roundtrip(self):
        assert str(ImageOperation.parse("resize:320x240")) == "resize:320x240"
        assert str(ImageOperation("grayscale")) == "grayscale"

    def test_wrong_arity(self):
        with pytest.raises(ValueError, match="takes 2 argument"):
            ImageOperation("resize", (1,))


class TestImageFormat:
    """Test ImageFormat helpers."""

    @pytest.mark.parametrize("value, expected", [
        ("png", ImageFormat.PNG),
        ("JPG", ImageFormat.JPG),
        ("jpeg", ImageFormat.JPG),
        (ImageFormat.GIF, ImageFormat.GIF),
    ])
    def test_coerce(self, value, expected):
        assert ImageFormat.coerce(value) is expected

    def test_coerce_unknown(self):
        with pytest.raises(ValueError):
            ImageFormat.coerce("bmp")

    def test_only_jpg_is_lossy(self):
        assert ImageFormat.JPG.is_lossy
        assert not ImageFormat.PNG.is_lossy
        assert not ImageFormat.GIF.is_lossy
