"""Turning uploaded, local or remote bytes into decoded master images."""
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

import httpx

from master_image.engine import ImageEngine
from master_image.errors import DecodeError, TransportError
from master_image.types import Classification, MasterImage

logger = logging.getLogger(__name__)

# Engine failure messages that mean "the input is not a usable image".
# Pillow wording first, then ImageMagick's for engines built on it.
INVALID_IMAGE_SIGNATURES = (
    "cannot identify image file",
    "image file is truncated",
    "truncated file read",
    "broken data stream",
    "broken png file",
    "not enough data",
    "unrecognized data stream",
    "improper image header",
    "no decode delegate for this image format",
    "unabletoopenblob",
)


@dataclass(frozen=True)
class BytesSource:
    """Image bytes already in memory, e.g. a form upload."""

    content: bytes
    filename: str = "upload"


@dataclass(frozen=True)
class FileSource:
    """A local file, given as a path or an open binary file."""

    file: Union[str, Path, BinaryIO]
    name: Optional[str] = None

    @property
    def filename(self) -> str:
        if self.name:
            return self.name
        if isinstance(self.file, (str, Path)):
            return Path(self.file).name
        return Path(getattr(self.file, "name", "upload")).name

    def read(self) -> bytes:
        if isinstance(self.file, (str, Path)):
            return Path(self.file).read_bytes()
        if self.file.seekable():
            self.file.seek(0)
        return self.file.read()


@dataclass(frozen=True)
class UrlSource:
    """An image to fetch over HTTP(S)."""

    url: str

    @property
    def is_http(self) -> bool:
        return self.url.startswith(("http://", "https://"))


ImageSource = Union[BytesSource, FileSource, UrlSource]


@dataclass(frozen=True)
class FetchedImage:
    """Bytes downloaded from a URL, paired with the name they go by."""

    content: bytes
    filename: str


@dataclass
class IngestionResult:
    """What came out of ingesting a source.

    ``image`` is set only when ``classification`` is valid. ``content`` and
    ``filename`` describe the raw input, so it can be cached for a retry.
    """

    classification: Classification
    image: Optional[MasterImage] = None
    content: bytes = b""
    filename: str = "upload"

    @property
    def ok(self) -> bool:
        return self.classification.is_valid


class HttpFetcher:
    """Downloads remote images with httpx.

    Every transport problem (connection errors, timeouts, HTTP error
    statuses) is reported as ``TransportError``. Nothing is retried.
    """

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def fetch(self, url: str, timeout: Optional[float] = None) -> FetchedImage:
        """Fetch ``url``.

        Raises:
            TransportError: If the image could not be downloaded.
        """
        timeout = self.timeout if timeout is None else timeout
        logger.debug(f"Fetching image from: {url}")
        start_time = time.time()

        try:
            with httpx.Client(timeout=timeout, transport=self.transport, follow_redirects=True) as client:
                response = client.get(url)
                if response.status_code != 200:
                    logger.warning(f"Image fetch returned {response.status_code} for {url}")
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Failed to fetch image from {url}: {e}")
            raise TransportError(f"Failed to fetch {url}: {e}") from e

        elapsed_time = time.time() - start_time
        logger.info(f"Fetched {len(response.content)} bytes from {url} in {elapsed_time:.2f}s")
        return FetchedImage(content=response.content, filename=url)


class SourceIngestor:
    """Decodes image sources and classifies the failures.

    Only failures matching ``invalid_signatures`` are turned into an
    ``Invalid`` classification; any other engine error propagates as is.
    """

    def __init__(
        self,
        engine: ImageEngine,
        fetcher: Optional[HttpFetcher] = None,
        invalid_signatures: tuple[str, ...] = INVALID_IMAGE_SIGNATURES,
    ):
        self.engine = engine
        self.fetcher = fetcher or HttpFetcher()
        self.invalid_signatures = tuple(signature.lower() for signature in invalid_signatures)

    def ingest(self, source: ImageSource) -> IngestionResult:
        if isinstance(source, UrlSource):
            if not source.is_http:
                logger.info(f"Rejected non-HTTP image URL: {source.url}")
                return IngestionResult(
                    Classification.invalid(f"not an http(s) URL: {source.url}"),
                    filename=source.url,
                )
            try:
                fetched = self.fetcher.fetch(source.url)
            except TransportError as e:
                return IngestionResult(Classification.transport_failure(str(e)), filename=source.url)
            return self._decode(fetched.content, fetched.filename)

        if isinstance(source, FileSource):
            try:
                content = source.read()
            except OSError as e:
                logger.info(f"Unable to open image file {source.filename}: {e}")
                return IngestionResult(
                    Classification.invalid(f"unable to open {source.filename}: {e}"),
                    filename=source.filename,
                )
            return self._decode(content, source.filename)

        return self._decode(source.content, source.filename)

    def is_invalid_input(self, error: DecodeError) -> bool:
        """Whether a decode failure is a known bad-input signature."""
        message = str(error).lower()
        return any(signature in message for signature in self.invalid_signatures)

    def _decode(self, content: bytes, filename: str) -> IngestionResult:
        try:
            handle = self.engine.decode(content)
        except DecodeError as e:
            if not self.is_invalid_input(e):
                logger.error(f"Unexpected decode failure for {filename}: {e}")
                raise
            logger.info(f"Rejected unreadable image {filename}: {e}")
            return IngestionResult(Classification.invalid(str(e)), content=content, filename=filename)

        image = MasterImage.from_handle(handle, self.engine)
        logger.debug(f"Ingested {filename} as {image}")
        return IngestionResult(Classification.valid(), image=image, content=content, filename=filename)
