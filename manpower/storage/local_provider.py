"""
Local filesystem storage provider.

Objects are written under ``<base_dir>/<bucket>/<path>`` and served by the
application's ``/files`` static mount, so the public URL of an object is
``<public_base_url>/files/<bucket>/<path>``.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from manpower.core.config import settings

from .provider import StorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """Filesystem-backed storage used in development and tests."""

    def __init__(self, base_dir: Optional[str] = None, public_base_url: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.storage_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    def _get_path(self, bucket: str, path: str) -> Path:
        """Get the local filesystem path for a given object."""
        clean_key = path.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / bucket / clean_key

    def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        target = self._get_path(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as f:
            f.write(data)
        logger.info("Stored object %s/%s (%d bytes, %s)", bucket, path, len(data), content_type)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/files/{quote(bucket)}/{quote(path.lstrip('/'))}"

    def exists(self, bucket: str, path: str) -> bool:
        return self._get_path(bucket, path).exists()

    def delete(self, bucket: str, path: str) -> None:
        """Delete an object; deleting a missing object is not an error."""
        target = self._get_path(bucket, path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("Object %s/%s already absent", bucket, path)
