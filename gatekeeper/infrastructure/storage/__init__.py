"""Photo storage package."""

from gatekeeper.infrastructure.storage.storage import ImageStorage, StorageError

__all__ = ["ImageStorage", "StorageError"]
