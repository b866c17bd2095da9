import base64
import logging
import shutil
import uuid
from pathlib import Path

from worldweaver.core.config import settings

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


class StorageError(Exception):
    pass


class ImageStorage:
    """Stores images under a local directory that the app serves as static files."""

    def __init__(self, root: str | Path | None = None, url_prefix: str | None = None):
        self.root = Path(root or settings.STORAGE_DIR).resolve()
        self.url_prefix = (url_prefix or settings.STORAGE_URL_PREFIX).rstrip("/")

    def _resolve(self, relative_path: str) -> Path:
        target = (self.root / relative_path).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError(f"Path escapes storage root: {relative_path}")
        return target

    def save(self, prefix: str, data: bytes, content_type: str = "image/png", filename: str | None = None) -> str:
        """Write bytes and return the storage-relative path."""
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type.lower())
        if extension is None:
            raise StorageError(f"Unsupported image type: {content_type}")
        name = filename or f"{uuid.uuid4().hex}.{extension}"
        relative_path = f"{prefix.strip('/')}/{name}"
        target = self._resolve(relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored %s bytes at %s", len(data), relative_path)
        return relative_path

    def save_base64(self, prefix: str, b64_data: str, content_type: str = "image/png") -> str:
        try:
            data = base64.b64decode(b64_data, validate=True)
        except (ValueError, TypeError) as e:
            raise StorageError(f"Invalid base64 image payload: {e}") from e
        return self.save(prefix, data, content_type)

    def delete(self, relative_path: str) -> bool:
        target = self._resolve(relative_path)
        if not target.exists():
            return False
        target.unlink()
        return True

    def delete_prefix(self, prefix: str) -> bool:
        """Remove every file stored under a prefix such as `maps/<world_id>`."""
        target = self._resolve(prefix.strip("/"))
        if target == self.root or not target.is_dir():
            return False
        shutil.rmtree(target)
        logger.info("Removed stored files under %s", prefix)
        return True

    def public_url(self, relative_path: str | None) -> str | None:
        if not relative_path:
            return None
        return f"{self.url_prefix}/{relative_path.lstrip('/')}"


def get_storage() -> ImageStorage:
    return ImageStorage()
