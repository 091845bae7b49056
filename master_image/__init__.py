"""Master image lifecycle: ingestion, validation, storage and rendering of one image per record."""

__version__ = "0.1.0"
