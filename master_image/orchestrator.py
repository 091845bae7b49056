"""Lifecycle of the master image attached to one record.

A record goes through four lifecycle points, and whoever persists it calls the
matching hook explicitly:

1. ``before_validate``: report missing or unreadable images.
2. ``before_persist``: preprocess the upload and compute column values. The
   record may not have an id yet.
3. ``after_persist``: write the image file, now that the id is known.
4. ``after_destroy``: remove the image file.

An orchestrator serves a single record and a single request; it holds no
locks and must not be shared between threads.
"""
import logging
from enum import Enum
from typing import Any, Optional, Union

from master_image.engine import ImageEngine, ImageFormat, PillowEngine
from master_image.errors import (
    ImageNotFoundError,
    InvalidStateError,
    MasterImageNotFoundError,
    StorageError,
)
from master_image.ingestion import BytesSource, ImageSource, SourceIngestor, UrlSource
from master_image.rendering import RenderPipeline, Transform
from master_image.schemas import ImageRecord, ImageValidationError, StorageConfig
from master_image.storage import MasterStore, create_master_store
from master_image.temp_cache import TempCache, TempToken
from master_image.types import Classification, MasterImage

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    EMPTY = "empty"
    INGESTING = "ingesting"
    INVALID = "invalid"
    VALIDATED = "validated"
    PERSISTED = "persisted"
    DELETED = "deleted"


class MasterImageOrchestrator:
    """Coordinates ingestion, validation, storage and rendering for one record.

    Collaborators default to what ``config`` describes: the Pillow engine,
    the backend selected by ``config.columns.is_blob_backed`` and a temp
    cache under ``config.temp_directory``.
    """

    def __init__(
        self,
        config: StorageConfig,
        record: ImageRecord,
        *,
        engine: Optional[ImageEngine] = None,
        store: Optional[MasterStore] = None,
        temp_cache: Optional[TempCache] = None,
        ingestor: Optional[SourceIngestor] = None,
        pipeline: Optional[RenderPipeline] = None,
    ):
        self.config = config
        self.record = record
        self.engine = engine or PillowEngine()
        self.store = store or create_master_store(config)
        self.temp_cache = temp_cache or TempCache(config.temp_directory)
        self.ingestor = ingestor or SourceIngestor(self.engine)
        self.pipeline = pipeline or RenderPipeline(self.engine)

        self._state = OrchestratorState.EMPTY
        self._pending: Optional[MasterImage] = None
        self._output: Optional[MasterImage] = None
        self._filename: Optional[str] = None
        self._temp_token: Optional[TempToken] = None
        self._image_file_url: Optional[str] = None
        self._failure: Optional[Classification] = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def pending_image(self) -> Optional[MasterImage]:
        """The upload waiting to be stored, if any."""
        return self._pending

    @property
    def temp_token(self) -> Optional[TempToken]:
        """Token of the cached upload, for a form to send back on redisplay."""
        return self._temp_token

    @property
    def image_file_url(self) -> Optional[str]:
        return self._image_file_url

    @property
    def failure_reason(self) -> Optional[str]:
        return self._failure.reason if self._failure else None

    def set_source(self, source: ImageSource, *, cache: bool = True) -> OrchestratorState:
        """Ingest a new image for the record.

        A readable image becomes the pending image and, unless ``cache`` is
        false, its bytes are kept in the temp cache. An unreadable image or a
        failed download only marks the orchestrator invalid. Any other
        failure propagates.
        """
        if self._state is OrchestratorState.DELETED:
            raise InvalidStateError("Cannot assign an image to a deleted record")

        if isinstance(source, BytesSource) and not source.content:
            logger.debug("Ignoring empty upload")
            return self._state

        self._state = OrchestratorState.INGESTING
        self.release()
        self._failure = None
        if cache:
            self._discard_temp()

        try:
            result = self.ingestor.ingest(source)
        except Exception as e:
            logger.error(f"Image ingestion failed for record {self.record.id}: {e}")
            self._state = OrchestratorState.EMPTY
            raise

        if not result.ok:
            self._failure = result.classification
            self._state = OrchestratorState.INVALID
            logger.info(f"Image for record {self.record.id} is invalid: {result.classification.reason}")
            return self._state

        if cache:
            try:
                self._temp_token = self.temp_cache.save(result.content, result.filename)
            except StorageError as e:
                logger.error(f"Could not cache upload for record {self.record.id}: {e}")
                result.image.release()
                self._state = OrchestratorState.EMPTY
                raise
        self._pending = result.image
        self._filename = result.filename
        self._state = OrchestratorState.VALIDATED
        return self._state

    def set_source_url(self, url: Optional[str]) -> OrchestratorState:
        """Fetch the image at ``url``. An empty URL means nothing was submitted."""
        self._image_file_url = url or None
        if not url:
            return self._state
        return self.set_source(UrlSource(url))

    def set_temp_token(self, token: Union[TempToken, str, None]) -> OrchestratorState:
        """Restore an upload cached during an earlier, failed submission.

        Ignored when an image was uploaded in this request, or when the
        cached file is gone.
        """
        if self._pending is not None or not token:
            return self._state

        if not isinstance(token, TempToken):
            token = TempToken.from_string(token)
        try:
            content = self.temp_cache.load(token)
        except ImageNotFoundError:
            logger.warning(f"Cached upload {token} is gone; ignoring it")
            return self._state

        self.set_source(BytesSource(content, token.original_filename), cache=False)
        if self._state is OrchestratorState.VALIDATED:
            self._temp_token = token
        return self._state

    def has_image(self) -> bool:
        if self._pending is not None or self._output is not None:
            return True
        return self.store.exists(self.record)

    def validate(self) -> list[ImageValidationError]:
        """Validation errors for the image. Does not change any state."""
        field = "image_file_url" if self._image_file_url else "image_file"

        if self._state is OrchestratorState.INVALID:
            return [ImageValidationError(field=field, message=self.config.invalid_image_message)]
        if self.config.require_image and not self.has_image():
            return [ImageValidationError(field=field, message=self.config.missing_image_message)]
        return []

    def column_values(self) -> dict[str, Any]:
        """Image attributes for the columns the record declares."""
        if self._pending is None:
            return {}

        columns = self.config.columns
        values: dict[str, Any] = {}
        if columns.has_width_column:
            values["image_width"] = self._pending.width
        if columns.has_height_column:
            values["image_height"] = self._pending.height
        if columns.has_filename_column and self._filename:
            values["image_filename"] = self._filename
        return values

    def commit_pre_persist(self) -> None:
        """Preprocess the pending image and, for blob storage, assign its bytes.

        Runs before the record's columns are written, so the width and
        height in ``column_values`` reflect the preprocessed image.
        """
        if self._pending is None:
            return

        if self.config.preprocess_pipeline:
            processed = self.pipeline.apply(self._pending, self.config.preprocess_pipeline)
            if processed is not self._pending:
                self._pending.release()
                self._pending = processed
            logger.debug(f"Preprocessed image to {self._pending.width}x{self._pending.height}")

        self._pending.format = self.config.storage_format

        if self.config.is_blob_backed:
            self.store.write(self.record, self._encode_master())

    def commit_post_persist(self) -> None:
        """Write the pending image to disk and drop the cached upload.

        Does nothing when no image was assigned in this cycle.

        Raises:
            ValueError: If a filesystem-backed record still has no id.
        """
        if self._pending is None:
            return

        if not self.config.is_blob_backed:
            if self.record.id is None:
                raise ValueError("Record must be persisted before its image can be written")
            self.store.write(self.record, self._encode_master())

        self._discard_temp()
        self._release_pending()
        self._state = OrchestratorState.PERSISTED
        logger.info(f"Stored master image for record {self.record.id}")

    def load_or_default(self) -> MasterImage:
        """Return the image to render from.

        Preference order: the current output image, the pending upload, the
        stored master image, the configured default image.

        Raises:
            MasterImageNotFoundError: If there is nothing to fall back to.
        """
        if self._output is not None:
            return self._output
        if self._pending is not None:
            return self._pending

        try:
            content = self.store.read(self.record)
        except ImageNotFoundError:
            return self._load_default()

        self._output = MasterImage.from_handle(self.engine.decode(content), self.engine)
        return self._output

    def operate(self, transform: Transform) -> MasterImage:
        """Transform the current image and keep the result as the output image."""
        base = self.load_or_default()
        result = self.pipeline.apply(base, transform)
        if result is not base and base is self._output:
            base.release()
        if result is not self._pending:
            self._output = result
        return result

    def render(
        self,
        transform: Optional[Transform] = None,
        format: Union[str, ImageFormat] = ImageFormat.JPG,
        quality: Optional[int] = None,
    ) -> bytes:
        """Produce derived image bytes, releasing the decoded buffers afterwards.

        ``quality`` defaults to the configured JPEG quality and is ignored
        for lossless formats.
        """
        base = self.load_or_default()
        result = self.pipeline.apply(base, transform) if transform else base
        try:
            return self.pipeline.export(
                result,
                format,
                self.config.jpg_quality if quality is None else quality,
            )
        finally:
            if result is not base:
                result.release()
            if base is self._output:
                self._release_output()

    def on_delete(self) -> None:
        """Remove the stored master image along with the record."""
        self.store.delete(self.record)
        self._discard_temp()
        self.release()
        self._state = OrchestratorState.DELETED
        logger.info(f"Deleted master image for record {self.record.id}")

    def release(self) -> None:
        """Free every decoded buffer held by this orchestrator."""
        self._release_pending()
        self._release_output()

    # Lifecycle hooks, called by whoever persists the record

    def before_validate(self) -> list[ImageValidationError]:
        return self.validate()

    def before_persist(self) -> dict[str, Any]:
        self.commit_pre_persist()
        return self.column_values()

    def after_persist(self) -> None:
        self.commit_post_persist()

    def after_destroy(self) -> None:
        self.on_delete()

    def _encode_master(self) -> bytes:
        return self.pipeline.export(self._pending, self.config.storage_format, self.config.jpg_quality)

    def _load_default(self) -> MasterImage:
        if self.config.default_image_path is None:
            raise MasterImageNotFoundError(self.store.location(self.record))

        path = self.config.resolve(self.config.default_image_path)
        logger.info(f"No master image for record {self.record.id}; using default {path}")
        self._output = MasterImage.from_handle(self.engine.decode(path.read_bytes()), self.engine)
        return self._output

    def _discard_temp(self) -> None:
        if self._temp_token is not None:
            self.temp_cache.delete(self._temp_token)
            self._temp_token = None

    def _release_pending(self) -> None:
        if self._pending is not None:
            self._pending.release()
            self._pending = None

    def _release_output(self) -> None:
        if self._output is not None:
            self._output.release()
            self._output = None
