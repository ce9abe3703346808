import mimetypes
from dataclasses import dataclass
from typing import IO, Optional

from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.core.files import File
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage

from apps.common import get_logger

from .exceptions import ImageNotFound, ImageStorageError

logger = get_logger(__name__).bind(component="catalog", layer="storage")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class StoredImage:
    name: str
    stream: IO[bytes]
    content_type: str
    size: int


class ImageStorage:
    """
    Image files on local disk under ``UPLOAD_DIR``, served from ``UPLOAD_URL``.

    Backed by Django's ``FileSystemStorage``, which never overwrites: a name
    that is already taken gets a random suffix. All I/O failures surface as
    ``ImageStorageError`` and lookups of missing or unreadable files as
    ``ImageNotFound``.
    """

    def __init__(self, location: Optional[str] = None, base_url: Optional[str] = None):
        # Unset values follow settings at call time
        self._location = location
        self._base_url = base_url

    @property
    def location(self) -> str:
        return str(self._location or settings.UPLOAD_DIR)

    @property
    def base_url(self) -> str:
        return self._base_url if self._base_url is not None else settings.UPLOAD_URL

    @property
    def _storage(self) -> FileSystemStorage:
        return FileSystemStorage(location=self.location, base_url=self.base_url)

    @property
    def log(self):
        return logger.bind(location=self.location)

    def save(self, name: str, content) -> str:
        if isinstance(content, (bytes, bytearray)):
            content = ContentFile(bytes(content), name=name)
        elif not isinstance(content, File):
            content = File(content, name=name)
        try:
            stored = self._storage.save(name, content)
        except (OSError, SuspiciousFileOperation) as exc:
            self.log.exception("Storing file failed", file=name)
            raise ImageStorageError("An error occurred while storing the file") from exc
        self.log.info("Stored file", file=stored)
        return stored

    def size(self, name: str) -> int:
        try:
            return self._storage.size(name)
        except OSError as exc:
            raise ImageStorageError("An error occurred while reading the file") from exc

    def exists(self, name: str) -> bool:
        try:
            return self._storage.exists(name)
        except SuspiciousFileOperation:
            return False

    def delete(self, name: str) -> bool:
        """Remove a file; returns ``False`` when it was already gone."""
        if not self.exists(name):
            self.log.warning("File to delete is missing on disk", file=name)
            return False
        try:
            self._storage.delete(name)
        except OSError as exc:
            self.log.exception("Deleting file failed", file=name)
            raise ImageStorageError("An error occurred while deleting the file") from exc
        self.log.info("Deleted file", file=name)
        return True

    def open(self, name: str) -> StoredImage:
        if not self.exists(name):
            self.log.warning("File not found", file=name)
            raise ImageNotFound(f"File not found: {name}")
        try:
            size = self._storage.size(name)
            stream = self._storage.open(name, "rb")
        except OSError as exc:
            self.log.warning("File could not be read", file=name, error=str(exc))
            raise ImageNotFound(f"File not found: {name}") from exc
        content_type, _ = mimetypes.guess_type(name)
        return StoredImage(
            name=name,
            stream=stream,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            size=size,
        )

    def url(self, name: str) -> str:
        return self._storage.url(name)
