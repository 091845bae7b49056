"""Temporary storage for uploads that are waiting on a successful save.

When a form fails validation for reasons unrelated to the image, the image
that was uploaded should not have to be sent again. Its bytes are kept here
under a unique token that the form can echo back.
"""
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from master_image.errors import ImageNotFoundError, StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class TempToken:
    """Handle to a cached upload.

    ``token`` is the name of the cached file; it embeds a random prefix so
    concurrent uploads of identically named files never collide.
    """

    token: str
    original_filename: str

    @classmethod
    def from_string(cls, token: str) -> "TempToken":
        """Rebuild a token from the string a form sent back."""
        _, _, original = token.partition("_")
        return cls(token=token, original_filename=original or token)

    def __str__(self) -> str:
        return self.token


def _basename(filename: str) -> str:
    """Last component of a path or URL, with unsafe characters replaced."""
    name = filename.replace("\\", "/").split("?", 1)[0].rstrip("/").split("/")[-1]
    name = _UNSAFE_CHARS.sub("_", name)
    return name or "upload"


class TempCache:
    """Stores pending uploads as files under a dedicated root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def save(self, content: bytes, original_filename: str) -> TempToken:
        """Cache ``content`` and return the token that retrieves it.

        Raises:
            StorageError: If the file cannot be written.
        """
        basename = _basename(original_filename)
        token = TempToken(token=f"{uuid.uuid4().hex}_{basename}", original_filename=basename)
        path = self.root / token.token

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            logger.error(f"Failed to cache upload {basename}: {e}")
            raise StorageError(f"Failed to cache upload: {e}")

        logger.debug(f"Cached upload {basename} as {path}")
        return token

    def path_for(self, token: Union[TempToken, str]) -> Path:
        """Location of a cached upload.

        Raises:
            ImageNotFoundError: If the token is not a plain file name.
        """
        name = str(token)
        if not name or name != Path(name).name or name in (".", ".."):
            raise ImageNotFoundError(f"Invalid temp token: {name!r}")
        return self.root / name

    def load(self, token: Union[TempToken, str]) -> bytes:
        """Return the cached bytes for a token.

        Raises:
            ImageNotFoundError: If nothing is cached under the token.
        """
        path = self.path_for(token)
        if not path.is_file():
            logger.warning(f"Temp image not found: {token}")
            raise ImageNotFoundError(f"Temp image not found: {token}")
        return path.read_bytes()

    def delete(self, token: Union[TempToken, str]) -> None:
        """Remove a cached upload. Missing files are ignored."""
        try:
            path = self.path_for(token)
        except ImageNotFoundError:
            return

        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Deleted temp image: {path}")
        except OSError as e:
            logger.warning(f"Could not delete temp image {path}: {e}")
