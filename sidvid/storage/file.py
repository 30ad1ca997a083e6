"""
File Storage Backend
====================

One pretty-printed JSON file per key under a base directory:
``sessions/abc`` is stored at ``{base}/sessions/abc.json``.

Writes go to a temporary sibling file that is then atomically renamed over
the target, so readers never observe a partial document.
"""

import os
import asyncio
import shutil
import logging
from pathlib import Path
from typing import Optional, List, Any, Union

import aiofiles
import aiofiles.os

from .adapter import StorageAdapter, encode_document, decode_document
from ..core.exceptions import NotFound
from ..core.security import validate_storage_key

logger = logging.getLogger(__name__)

SUFFIX = ".json"
TMP_SUFFIX = ".tmp"


class FileStorageAdapter(StorageAdapter):
    """Filesystem-tree store."""

    def __init__(self, base_path: Union[str, Path] = ".sidvid"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    def storage_type(self) -> str:
        return "file"

    def _path_for(self, key: str) -> Path:
        validate_storage_key(key)
        return self.base_path / f"{key}{SUFFIX}"

    async def save(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        text = encode_document(key, value, indent=2)

        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}{TMP_SUFFIX}")

        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(text)
                await f.flush()
            await aiofiles.os.replace(tmp_path, path)
        except Exception:
            if tmp_path.exists():
                await aiofiles.os.remove(tmp_path)
            logger.error(f"Failed to save {key}; removed temporary file")
            raise

        logger.debug(f"Saved {key} to {path}")

    async def load(self, key: str) -> Any:
        path = self._path_for(key)
        if not path.exists():
            raise NotFound(f"load: key not found: {key}", resource_type="document", resource_id=key)

        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            text = await f.read()
        return decode_document(key, text)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        if not path.exists():
            return

        await aiofiles.os.remove(path)
        self._prune_empty_parents(path.parent)
        logger.debug(f"Deleted {key}")

    def _prune_empty_parents(self, directory: Path) -> None:
        """Remove now-empty directories between ``directory`` and the base."""
        base = self.base_path.resolve()
        current = directory.resolve()
        while current != base and base in current.parents:
            try:
                current.rmdir()
            except OSError:
                # Not empty
                break
            current = current.parent

    def _scan_keys(self) -> List[str]:
        keys = []
        for path in self.base_path.rglob(f"*{SUFFIX}"):
            if path.is_file():
                keys.append(path.relative_to(self.base_path).as_posix()[: -len(SUFFIX)])
        return sorted(keys)

    async def list(self, prefix: Optional[str] = None) -> List[str]:
        if not self.base_path.exists():
            return []

        keys = await asyncio.to_thread(self._scan_keys)
        return [k for k in keys if prefix is None or k.startswith(prefix)]

    async def clear(self) -> None:
        if self.base_path.exists():
            await asyncio.to_thread(shutil.rmtree, self.base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cleared file store at {self.base_path}")
