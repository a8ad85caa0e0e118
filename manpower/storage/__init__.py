from .local_provider import LocalStorageProvider
from .provider import StorageProvider

__all__ = ["StorageProvider", "LocalStorageProvider"]
