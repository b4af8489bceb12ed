"""Storage module - provides interface and implementations for state persistence."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .memory_storage import MemoryStorage


def create_storage(config) -> StorageInterface:
    """Build the storage backend selected by ``config.storage_type``."""
    if config.storage_type == "local":
        return LocalStorage(config.local_storage_path)
    if config.storage_type == "memory":
        return MemoryStorage()
    raise ValueError(f"Unsupported storage type: {config.storage_type}")


__all__ = ['StorageInterface', 'LocalStorage', 'MemoryStorage', 'create_storage']
