import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, get_settings
from master_image.db import init_db
from master_image.dependencies import (
    OrchestratorFactory,
    get_image_executor,
    get_orchestrator_factory,
    get_photo_repository,
    shutdown_image_executor,
)
from master_image.engine import ImageFormat, ImageOperation
from master_image.errors import MasterImageNotFoundError
from master_image.ingestion import BytesSource
from master_image.models import Photo
from master_image.repositories import PhotoRepository
from master_image.schemas import PhotoResponse, PhotoValidationResponse

# Get settings and configure logging before anything else
settings = get_settings()
settings.configure_logging()

# Create logger for this module
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage type: {settings.storage_type}")
    logger.info(f"Image directory: {settings.image_directory}")

    init_db()

    yield

    # Shutdown
    shutdown_image_executor()
    logger.info("Shutting down application")


# Create FastAPI app with settings
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Simple health-check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": settings.app_version,
    }


@app.get("/config")
def get_config(current: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Get current configuration (non-sensitive values only)."""
    return {
        "app_name": current.app_name,
        "app_version": current.app_version,
        "environment": current.environment,
        "storage_type": current.storage_type,
        "storage_format": current.storage_format,
        "use_date_directories": current.use_date_directories,
        "require_image": current.require_image,
        "jpg_quality": current.jpg_quality,
        "preprocess_pipeline": current.preprocess_pipeline,
        "max_upload_size": current.max_upload_size,
    }


@app.post(
    "/photos",
    status_code=201,
    response_model=PhotoResponse,
    responses={422: {"model": PhotoValidationResponse}},
)
def create_photo(
    image_file: Optional[UploadFile] = File(None),
    image_file_url: Optional[str] = Form(None),
    image_file_temp: Optional[str] = Form(None),
    current: Settings = Depends(get_settings),
    repository: PhotoRepository = Depends(get_photo_repository),
    build_orchestrator: OrchestratorFactory = Depends(get_orchestrator_factory),
    executor: ThreadPoolExecutor = Depends(get_image_executor),
):
    """Create a photo from an upload, a URL, or a previously cached upload.

    On validation failure the response carries the errors and, when a
    readable image was received, the ``image_file_temp`` token to send back
    with the corrected form.
    """
    content = image_file.file.read() if image_file is not None else b""
    if len(content) > current.max_upload_size:
        raise HTTPException(
            status_code=413,
            detail=f"Upload exceeds the maximum size of {current.max_upload_size} bytes"
        )

    photo = Photo()
    images = build_orchestrator(photo)

    def ingest_and_save():
        try:
            if content:
                images.set_source(BytesSource(content, image_file.filename or "upload"))
            else:
                images.set_source_url(image_file_url)
            images.set_temp_token(image_file_temp)
            return repository.save(photo, images)
        finally:
            images.release()

    errors = executor.submit(ingest_and_save).result()

    if errors:
        token = images.temp_token
        body = PhotoValidationResponse(
            errors=errors,
            image_file_temp=str(token) if token else None,
        )
        return JSONResponse(status_code=422, content=body.model_dump())

    return PhotoResponse.model_validate(photo)


@app.get("/photos/{photo_id}", response_model=PhotoResponse)
def get_photo(
    photo_id: int,
    repository: PhotoRepository = Depends(get_photo_repository),
) -> PhotoResponse:
    photo = repository.get(photo_id)
    if photo is None:
        raise HTTPException(status_code=404, detail=f"Photo {photo_id} not found")
    return PhotoResponse.model_validate(photo)


@app.get("/photos/{photo_id}/image.{format}")
def render_photo(
    photo_id: int,
    format: ImageFormat,
    op: List[str] = Query(default=[]),
    quality: Optional[int] = Query(default=None, ge=0, le=100),
    repository: PhotoRepository = Depends(get_photo_repository),
    build_orchestrator: OrchestratorFactory = Depends(get_orchestrator_factory),
    executor: ThreadPoolExecutor = Depends(get_image_executor),
) -> Response:
    """Render a photo's master image, optionally transformed.

    Operations are passed as repeated ``op`` parameters, e.g.
    ``?op=resize:320x240&op=grayscale``.
    """
    photo = repository.get(photo_id)
    if photo is None:
        raise HTTPException(status_code=404, detail=f"Photo {photo_id} not found")

    try:
        operations = [ImageOperation.parse(text) for text in op]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    images = build_orchestrator(photo)
    try:
        content = executor.submit(images.render, operations or None, format, quality).result()
    except MasterImageNotFoundError as e:
        logger.warning(f"Render failed for photo {photo_id}: {e}")
        raise HTTPException(status_code=404, detail="Master image not found")
    finally:
        images.release()

    return Response(content=content, media_type=format.media_type)


@app.delete("/photos/{photo_id}", status_code=204)
def delete_photo(
    photo_id: int,
    repository: PhotoRepository = Depends(get_photo_repository),
    build_orchestrator: OrchestratorFactory = Depends(get_orchestrator_factory),
) -> Response:
    photo = repository.get(photo_id)
    if photo is None:
        raise HTTPException(status_code=404, detail=f"Photo {photo_id} not found")

    repository.delete(photo, build_orchestrator(photo))
    return Response(status_code=204)
