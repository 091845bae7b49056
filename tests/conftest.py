"""Shared fixtures: generated images and storage configurations."""

import io

import pytest
from PIL import Image as PILImage

from master_image.schemas import ColumnCapabilities, RecordRef, StorageConfig


def make_image_bytes(size=(100, 60), color="red", format="PNG", mode="RGB") -> bytes:
    """Encode a solid-color image."""
    img = PILImage.new(mode, size, color=color)
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=format)
    return img_bytes.getvalue()


def make_noise_bytes(size=(200, 200), format="PNG", **save_kwargs) -> bytes:
    """Encode an image full of noise, which compresses badly on purpose."""
    img = PILImage.effect_noise(size, 64).convert("RGB")
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=format, **save_kwargs)
    return img_bytes.getvalue()


@pytest.fixture
def png_bytes():
    """A 100x60 red PNG."""
    return make_image_bytes()


@pytest.fixture
def jpeg_bytes():
    """A 100x60 red JPEG."""
    return make_image_bytes(format="JPEG")


@pytest.fixture
def corrupt_bytes():
    return b"this is definitely not an image"


@pytest.fixture
def truncated_png_bytes():
    """A PNG cut off in the middle of its pixel data."""
    content = make_noise_bytes()
    return content[: len(content) * 2 // 3]


@pytest.fixture
def all_columns():
    return ColumnCapabilities(
        has_width_column=True,
        has_height_column=True,
        has_filename_column=True,
    )


@pytest.fixture
def storage_config(tmp_path, all_columns):
    """Filesystem storage under a temporary directory."""
    return StorageConfig(
        directory=tmp_path / "images",
        temp_root=tmp_path / "tmp",
        columns=all_columns,
    )


@pytest.fixture
def blob_config(tmp_path):
    """Blob storage; only the temp cache touches the filesystem."""
    return StorageConfig(
        temp_root=tmp_path / "tmp",
        columns=ColumnCapabilities(
            has_width_column=True,
            has_height_column=True,
            is_blob_backed=True,
        ),
    )


@pytest.fixture
def record():
    return RecordRef()
