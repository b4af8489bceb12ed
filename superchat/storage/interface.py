"""
Storage Interface - Abstract base class for durable key-value blob stores.
The session store serializes its state through this interface only.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageInterface(ABC):
    """
    Contract shared by all storage implementations.
    Keys are relative, slash-separated names (e.g. "superchat-storage.json").
    """

    @abstractmethod
    async def save(self, key: str, content: bytes | str) -> bool:
        """
        Store content under ``key``, replacing any previous value.

        Returns:
            bool: True if the write succeeded, False otherwise
        """
        pass

    @abstractmethod
    async def load(self, key: str) -> Optional[bytes]:
        """
        Read the value stored under ``key``.

        Returns:
            Optional[bytes]: The stored bytes, or None if the key is absent
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if a value is stored under ``key``."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove the value stored under ``key``.

        Returns:
            bool: True if a value was removed
        """
        pass
