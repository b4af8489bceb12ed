"""
Local Filesystem Storage Implementation.
Each key maps to one file below a base directory.
"""

import logging
import os
import aiofiles
from pathlib import Path
from typing import Optional

from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Local filesystem storage.
    Writes go to a temporary sibling file first and are then renamed into place.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Args:
            base_dir: Directory holding all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Resolve a key to a path inside the base directory."""
        full_path = (self.base_dir / key).resolve()

        if full_path != self.base_dir and self.base_dir not in full_path.parents:
            raise ValueError(f"Invalid key: {key} - path traversal detected")

        return full_path

    async def save(self, key: str, content: bytes | str) -> bool:
        """Write content atomically."""
        try:
            full_path = self._get_full_path(key)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = full_path.with_name(full_path.name + ".tmp")

            if isinstance(content, str):
                async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                    await f.write(content)
            else:
                async with aiofiles.open(tmp_path, 'wb') as f:
                    await f.write(content)

            os.replace(tmp_path, full_path)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Error saving {key}: {e}")
            return False

    async def load(self, key: str) -> Optional[bytes]:
        """Read a file, or None when it does not exist."""
        try:
            full_path = self._get_full_path(key)
            if not full_path.exists():
                return None

            async with aiofiles.open(full_path, 'rb') as f:
                return await f.read()
        except (OSError, ValueError) as e:
            logger.error(f"Error loading {key}: {e}")
            return None

    async def exists(self, key: str) -> bool:
        try:
            return self._get_full_path(key).exists()
        except ValueError:
            return False

    async def delete(self, key: str) -> bool:
        try:
            full_path = self._get_full_path(key)
            if full_path.exists():
                full_path.unlink()
                return True
            return False
        except (OSError, ValueError) as e:
            logger.error(f"Error deleting {key}: {e}")
            return False
