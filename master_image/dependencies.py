"""FastAPI dependency injection configuration."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from config import Settings, get_settings
from master_image.db import get_db
from master_image.engine import ImageEngine, PillowEngine
from master_image.ingestion import HttpFetcher, SourceIngestor
from master_image.orchestrator import MasterImageOrchestrator
from master_image.repositories import PhotoRepository
from master_image.schemas import ImageRecord, StorageConfig
from master_image.storage import MasterStore, create_master_store
from master_image.temp_cache import TempCache

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[ImageRecord], MasterImageOrchestrator]


# Global instances shared by all requests
_image_engine: ImageEngine | None = None
_image_executor: ThreadPoolExecutor | None = None


def get_storage_config(settings: Settings = Depends(get_settings)) -> StorageConfig:
    """Storage configuration for photo records."""
    return settings.storage_config()


def get_image_engine() -> ImageEngine:
    global _image_engine
    if _image_engine is None:
        _image_engine = PillowEngine()
        logger.info("Created Pillow image engine")
    return _image_engine


def get_image_executor(settings: Settings = Depends(get_settings)) -> ThreadPoolExecutor:
    """Worker pool bounding how many images are decoded or encoded at once.

    Image work is CPU and memory heavy, so requests queue here instead of
    each running on its own thread.
    """
    global _image_executor
    if _image_executor is None:
        _image_executor = ThreadPoolExecutor(
            max_workers=settings.image_worker_count,
            thread_name_prefix="image-worker",
        )
        logger.info(f"Created image worker pool with {settings.image_worker_count} worker(s)")
    return _image_executor


def shutdown_image_executor() -> None:
    global _image_executor
    if _image_executor is not None:
        _image_executor.shutdown(wait=True)
        _image_executor = None


def get_master_store(config: StorageConfig = Depends(get_storage_config)) -> MasterStore:
    return create_master_store(config)


def get_temp_cache(config: StorageConfig = Depends(get_storage_config)) -> TempCache:
    return TempCache(config.temp_directory)


def get_source_ingestor(
    settings: Settings = Depends(get_settings),
    engine: ImageEngine = Depends(get_image_engine),
) -> SourceIngestor:
    return SourceIngestor(engine, fetcher=HttpFetcher(timeout=settings.fetch_timeout))


def get_orchestrator_factory(
    config: StorageConfig = Depends(get_storage_config),
    engine: ImageEngine = Depends(get_image_engine),
    store: MasterStore = Depends(get_master_store),
    temp_cache: TempCache = Depends(get_temp_cache),
    ingestor: SourceIngestor = Depends(get_source_ingestor),
) -> OrchestratorFactory:
    """Return a callable building an orchestrator for a photo record."""

    def build(record: ImageRecord) -> MasterImageOrchestrator:
        return MasterImageOrchestrator(
            config,
            record,
            engine=engine,
            store=store,
            temp_cache=temp_cache,
            ingestor=ingestor,
        )

    return build


def get_photo_repository(db: Session = Depends(get_db)) -> PhotoRepository:
    return PhotoRepository(db)
