# gasbora/services/images.py
from __future__ import annotations

import logging
import time
from pathlib import PurePosixPath
from dataclasses import dataclass
from typing import Callable, Iterable

from ..backends.base import DataBackend
from ..config import settings
from ..errors import (
    CapacityExceeded, Conflict, GasboraError, ImageTooLarge, InvalidImageType,
    PermissionDenied, TransportError, UploadFailed,
)

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


@dataclass
class ImageFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        name = self.filename or ""
        if "." in name:
            ext = name.rsplit(".", 1)[1].strip().lower()
            if ext and ext.isalnum():
                return ext
        return ALLOWED_TYPES.get(self.content_type, "bin")


class ImageSet:
    """
    Ordered image URLs of one listing. Index 0 is the display image;
    there is no separate "main" field to keep in sync.
    """

    def __init__(self, urls: Iterable[str] = (), limit: int | None = None):
        self.limit = limit if limit is not None else settings.MAX_IMAGES
        self._urls = [u for u in urls if u]
        if len(self._urls) > self.limit:
            raise CapacityExceeded(f"A listing can have at most {self.limit} images")

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self):
        return iter(self._urls)

    @property
    def urls(self) -> list[str]:
        return list(self._urls)

    @property
    def main(self) -> str | None:
        return self._urls[0] if self._urls else None

    @property
    def legacy_image_url(self) -> str | None:
        return self.main

    @property
    def is_full(self) -> bool:
        return len(self._urls) >= self.limit

    def ensure_room(self) -> None:
        if self.is_full:
            raise CapacityExceeded(f"A listing can have at most {self.limit} images")

    def append(self, url: str) -> None:
        self.ensure_room()
        self._urls.append(url)

    def remove_at(self, index: int) -> str:
        if not 0 <= index < len(self._urls):
            raise IndexError(f"no image at position {index}")
        return self._urls.pop(index)


def check_image(file: ImageFile, max_bytes: int | None = None) -> None:
    max_bytes = max_bytes if max_bytes is not None else settings.MAX_IMAGE_BYTES
    if file.content_type not in ALLOWED_TYPES:
        raise InvalidImageType()
    if file.size > max_bytes:
        raise ImageTooLarge(f"Please upload an image smaller than {max_bytes // (1024 * 1024)}MB.")


def storage_path(owner_id: str, file: ImageFile, clock: Callable[[], int] = time.time_ns) -> str:
    return f"{owner_id}/{clock()}.{file.extension}"


def owns_path(path: str, owner_id: str) -> bool:
    """True when ``path`` lies inside the owner's namespace (``{owner_id}/...``)."""
    parts = PurePosixPath(path).parts
    return len(parts) > 1 and parts[0] == owner_id and ".." not in parts


async def upload_image(backend: DataBackend, file: ImageFile, owner_id: str,
                       max_bytes: int | None = None,
                       clock: Callable[[], int] = time.time_ns) -> str:
    """Store one image under the owner's namespace and return its public URL."""
    check_image(file, max_bytes)
    path = storage_path(owner_id, file, clock)
    try:
        url = await backend.upload_object(path, file.data, file.content_type)
    except (TransportError, Conflict) as e:
        logger.error("upload failed owner=%s path=%s: %s", owner_id, path, e)
        raise UploadFailed(e.message) from e
    logger.info("image uploaded owner=%s path=%s", owner_id, path)
    return url


async def add_image(backend: DataBackend, images: ImageSet, file: ImageFile, owner_id: str,
                    max_bytes: int | None = None,
                    clock: Callable[[], int] = time.time_ns) -> str:
    # room and file checks first, nothing is sent when either fails
    images.ensure_room()
    url = await upload_image(backend, file, owner_id, max_bytes=max_bytes, clock=clock)
    images.append(url)
    return url


async def remove_image(backend: DataBackend, url: str, owner_id: str) -> bool:
    """
    Best-effort delete of a stored image.

    Returns True only when the remote object was deleted. URLs that do not
    point into our bucket are skipped; remote failures are logged and leave
    an orphaned object behind. An object outside ``owner_id``'s namespace
    raises ``PermissionDenied`` before any call is made.
    """
    path = backend.object_path(url)
    if not path:
        logger.info("skip remote delete for foreign url %s", url)
        return False
    if not owns_path(path, owner_id):
        logger.warning("refused delete of %s for owner=%s", path, owner_id)
        raise PermissionDenied("You can only remove your own images")
    try:
        await backend.delete_object(path)
    except (GasboraError, OSError) as e:
        logger.warning("could not delete stored image %s: %s", path, e)
        return False
    return True


async def drop_image(backend: DataBackend, images: ImageSet, index: int, owner_id: str) -> bool:
    url = images.remove_at(index)
    try:
        return await remove_image(backend, url, owner_id)
    except PermissionDenied:
        # someone else's file: drop the reference, leave the object alone
        return False
