"""Unit tests for storage module."""

from datetime import datetime
from pathlib import Path
from typing import Protocol

import pytest

from master_image.errors import ImageNotFoundError, StorageError
from master_image.schemas import ColumnCapabilities, RecordRef, StorageConfig
from master_image.storage import BlobBackend, FilesystemBackend, MasterStore, create_master_store


class TestMasterStore:
    """Test MasterStore interface."""

    def test_interface_protocol(self):
        """Test that MasterStore is a proper Protocol."""
        assert issubclass(MasterStore, Protocol)

    def test_interface_methods_defined(self):
        for name in ("write", "read", "delete", "exists", "location"):
            assert hasattr(MasterStore, name)

    def test_runtime_checkable(self):
        """Test that MasterStore can be used with isinstance at runtime."""
        class MemoryStore:
            def write(self, record, content): ...
            def read(self, record): ...
            def delete(self, record): ...
            def exists(self, record): ...
            def location(self, record): ...

        assert isinstance(MemoryStore(), MasterStore)

    def test_non_compliant_class(self):
        """Test that non-compliant classes don't match the protocol."""
        class BadStore:
            def write(self, record, content):
                pass
            # Missing everything else

        assert not isinstance(BadStore(), MasterStore)

    def test_backends_implement_protocol(self, storage_config):
        assert isinstance(FilesystemBackend(storage_config), MasterStore)
        assert isinstance(BlobBackend(), MasterStore)


class TestCreateMasterStore:
    """Test backend selection."""

    def test_filesystem(self, storage_config):
        assert isinstance(create_master_store(storage_config), FilesystemBackend)

    def test_blob(self, blob_config):
        assert isinstance(create_master_store(blob_config), BlobBackend)


class TestFilesystemBackend:
    """Test FilesystemBackend implementation."""

    @pytest.fixture
    def backend(self, storage_config):
        return FilesystemBackend(storage_config)

    @pytest.fixture
    def saved_record(self):
        return RecordRef(id=123, created_at=datetime(2007, 11, 24))

    def test_path_for(self, backend, saved_record, tmp_path):
        assert backend.path_for(saved_record) == tmp_path / "images" / "2007" / "11" / "24" / "123.png"

    def test_write_creates_directories(self, backend, saved_record):
        """Test that date directories are created on write."""
        backend.write(saved_record, b"image bytes")

        path = backend.path_for(saved_record)
        assert path.is_file()
        assert path.read_bytes() == b"image bytes"

    def test_roundtrip(self, backend, saved_record):
        original_content = b"test image data \x00\x01\x02"

        backend.write(saved_record, original_content)

        assert backend.read(saved_record) == original_content

    def test_read_not_found(self, backend, saved_record):
        """Test ImageNotFoundError for a record without a stored image."""
        with pytest.raises(ImageNotFoundError, match="Image not found"):
            backend.read(saved_record)

    def test_not_found_is_file_not_found(self, backend, saved_record):
        with pytest.raises(FileNotFoundError):
            backend.read(saved_record)

    def test_exists(self, backend, saved_record):
        assert not backend.exists(saved_record)

        backend.write(saved_record, b"data")

        assert backend.exists(saved_record)

    def test_delete(self, backend, saved_record):
        backend.write(saved_record, b"data")

        backend.delete(saved_record)

        assert not backend.path_for(saved_record).exists()

    def test_delete_missing_is_noop(self, backend, saved_record):
        """Test that deleting an absent file does not raise."""
        backend.delete(saved_record)

    def test_write_empty_content(self, backend, saved_record):
        with pytest.raises(ValueError, match="Image content cannot be empty"):
            backend.write(saved_record, b"")

    def test_unsaved_record(self, backend):
        """Test behaviour for a record that has no id yet."""
        unsaved = RecordRef()

        with pytest.raises(ValueError, match="no id yet"):
            backend.write(unsaved, b"data")
        with pytest.raises(ImageNotFoundError):
            backend.read(unsaved)
        assert not backend.exists(unsaved)
        assert backend.location(unsaved) is None
        backend.delete(unsaved)

    def test_location(self, backend, saved_record):
        assert backend.location(saved_record) == backend.path_for(saved_record)

    def test_path_level_operations(self, backend, tmp_path):
        path = tmp_path / "somewhere" / "else" / "1.png"

        backend.write_path(path, b"data")
        assert backend.path_exists(path)
        assert backend.read_path(path) == b"data"

        backend.delete_path(path)
        assert not backend.path_exists(path)

    def test_write_storage_error(self, backend, saved_record, monkeypatch):
        """Test StorageError when save fails."""
        def mock_write_bytes(self, content):
            raise IOError("Simulated write failure")

        monkeypatch.setattr(Path, "write_bytes", mock_write_bytes)

        with pytest.raises(StorageError, match="Failed to save image"):
            backend.write(saved_record, b"data")

    def test_read_storage_error(self, backend, saved_record, monkeypatch):
        """Test StorageError when read fails."""
        backend.write(saved_record, b"data")

        def mock_read_bytes(self):
            raise IOError("Simulated read failure")

        monkeypatch.setattr(Path, "read_bytes", mock_read_bytes)

        with pytest.raises(StorageError, match="Failed to read image"):
            backend.read(saved_record)

    def test_distinct_records_distinct_paths(self, backend):
        first = RecordRef(id=1, created_at=datetime(2024, 5, 1))
        second = RecordRef(id=2, created_at=datetime(2024, 5, 1))

        backend.write(first, b"one")
        backend.write(second, b"two")

        assert backend.read(first) == b"one"
        assert backend.read(second) == b"two"


class TestBlobBackend:
    """Test BlobBackend implementation."""

    @pytest.fixture
    def backend(self):
        return BlobBackend()

    def test_write_sets_blob_field(self, backend):
        record = RecordRef(id=1)

        backend.write(record, b"image bytes")

        assert record.image_file_data == b"image bytes"

    def test_read(self, backend):
        record = RecordRef(id=1, image_file_data=b"image bytes")

        assert backend.read(record) == b"image bytes"

    @pytest.mark.parametrize("data", [None, b""])
    def test_read_empty_blob(self, backend, data):
        """Test that an unset or empty blob counts as not found."""
        record = RecordRef(id=1, image_file_data=data)

        with pytest.raises(ImageNotFoundError):
            backend.read(record)

    def test_exists(self, backend):
        assert not backend.exists(RecordRef(id=1))
        assert backend.exists(RecordRef(id=1, image_file_data=b"x"))

    def test_delete_is_noop(self, backend, monkeypatch):
        """Test that delete leaves the blob alone and never touches the filesystem."""
        def fail(*args, **kwargs):
            raise AssertionError("filesystem access")

        monkeypatch.setattr(Path, "unlink", fail)
        monkeypatch.setattr(Path, "is_file", fail)
        record = RecordRef(id=1, image_file_data=b"image bytes")

        backend.delete(record)

        assert record.image_file_data == b"image bytes"

    def test_location_is_none(self, backend):
        assert backend.location(RecordRef(id=1)) is None

    def test_custom_field(self):
        class Row:
            id = 1
            created_at = None
            picture = None

        row = Row()
        backend = BlobBackend(field="picture")
        backend.write(row, b"data")

        assert backend.read(row) == b"data"

    def test_blob_config_needs_no_directory(self):
        config = StorageConfig(columns=ColumnCapabilities(is_blob_backed=True))

        assert isinstance(create_master_store(config), BlobBackend)
