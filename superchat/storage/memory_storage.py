"""
In-memory Storage Implementation.
Nothing survives the process; used for tests and ephemeral runs.
"""

from typing import Dict, Optional

from .interface import StorageInterface


class MemoryStorage(StorageInterface):
    """Dict-backed storage."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}

    async def save(self, key: str, content: bytes | str) -> bool:
        if isinstance(content, str):
            content = content.encode('utf-8')
        self._data[key] = content
        return True

    async def load(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def exists(self, key: str) -> bool:
        return key in self._data

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None
