"""
Local photo storage.

Photos are written under ``<base_path>/<YYYY-MM-DD>/<uuid>.<ext>`` and served
from ``photo_base_url``. Writes are blocking; callers run ``save`` in a
thread pool.
"""

import uuid
from datetime import datetime
from pathlib import Path

from gatekeeper.core.logging import get_logger
from gatekeeper.domain.models import utc_now

logger = get_logger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class StorageError(Exception):
    """Raised when a photo cannot be written."""


class ImageStorage:
    """
    Date-partitioned photo store.

    Example:
        storage = ImageStorage("./storage/photos", "/photos")
        path = storage.save(image_bytes, "image/jpeg")   # "2026-10-19/3f2c....jpg"
        storage.url_for(path)                             # "/photos/2026-10-19/3f2c....jpg"
    """

    def __init__(self, base_path: str | Path, base_url: str = "/photos"):
        self._base_path = Path(base_path)
        self._base_url = base_url.rstrip("/")

    def save(
        self,
        image_bytes: bytes,
        content_type: str | None = None,
        timestamp: datetime | None = None,
    ) -> str:
        """
        Write a photo.

        Args:
            image_bytes: Encoded image.
            content_type: MIME type, used for the file extension.
            timestamp: Capture time, used for the date folder.

        Returns:
            str: Path relative to the storage root.

        Raises:
            StorageError: If the file cannot be written.
        """
        ts = timestamp or utc_now()
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type or "", "jpg")
        relative = Path(ts.strftime("%Y-%m-%d")) / f"{uuid.uuid4().hex}.{extension}"
        target = self._base_path / relative

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image_bytes)
        except OSError as e:
            logger.error("photo_save_failed", path=str(target), error=str(e))
            raise StorageError(f"Failed to store photo: {e}") from e

        logger.debug("photo_saved", path=relative.as_posix(), size=len(image_bytes))
        return relative.as_posix()

    def url_for(self, relative_path: str) -> str:
        return f"{self._base_url}/{relative_path}"
