from typing import Optional


class StorageProvider:
    """Object storage addressed by ``(bucket, path)`` pairs."""

    def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    def get_public_url(self, bucket: str, path: str) -> str:
        raise NotImplementedError

    def exists(self, bucket: str, path: str) -> bool:
        raise NotImplementedError

    def delete(self, bucket: str, path: str) -> None:
        raise NotImplementedError
