"""
Blob Store
==========

Content-addressed storage for generated image bytes.

Images live under one directory per owner (session or project id) and are
named by the first 16 hex characters of their SHA-256, so saving the same
bytes twice yields the same path.
"""

import shutil
import asyncio
import hashlib
import logging
from pathlib import Path
from typing import List, Union

import aiofiles

from ..core.exceptions import NotFound, SecurityError
from ..core.security import PathValidator, validate_storage_key

logger = logging.getLogger(__name__)


class BlobStore:
    """
    Filesystem blob store.

    Usage:
        blobs = BlobStore(".sidvid/images")
        path = await blobs.save("session-1", png_bytes)  # "session-1/9f86d081884c7d65.png"
        data = await blobs.load(path)
    """

    def __init__(self, base_path: Union[str, Path] = ".sidvid/images"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._validator = PathValidator(self.base_path)

    def _owner_dir(self, owner_id: str) -> Path:
        validate_storage_key(owner_id)
        if "/" in owner_id:
            raise SecurityError(
                f"Invalid blob owner id: {owner_id!r}",
                attempted_path=owner_id,
                security_type="invalid_key",
            )
        return self.base_path / owner_id

    @staticmethod
    def content_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()[:16]

    async def save(self, owner_id: str, data: bytes, extension: str = ".png") -> str:
        """
        Persist image bytes for an owner.

        Returns:
            Relative path ``{owner_id}/{hash}{extension}``
        """
        if not extension.startswith("."):
            extension = f".{extension}"

        owner_dir = self._owner_dir(owner_id)
        relative = f"{owner_id}/{self.content_hash(data)}{extension}"
        path = self._validator.validate_image(relative)
        owner_dir.mkdir(parents=True, exist_ok=True)

        if not path.exists():
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
            logger.debug(f"Saved blob {relative} ({len(data)} bytes)")
        return relative

    def resolve(self, relative_path: str) -> Path:
        """Absolute path of a stored blob (validated against the store root)."""
        return self._validator.validate_image(relative_path)

    async def load(self, relative_path: str) -> bytes:
        path = self.resolve(relative_path)
        if not path.is_file():
            raise NotFound(
                f"load_blob: image not found: {relative_path}",
                resource_type="blob",
                resource_id=relative_path,
            )
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    def list_owner(self, owner_id: str) -> List[str]:
        directory = self._owner_dir(owner_id)
        if not directory.is_dir():
            return []
        return sorted(f"{owner_id}/{p.name}" for p in directory.iterdir() if p.is_file())

    async def delete_owner(self, owner_id: str) -> bool:
        """Remove every blob of an owner. Returns False if there was nothing to remove."""
        directory = self._owner_dir(owner_id)
        if not directory.exists():
            return False
        await asyncio.to_thread(shutil.rmtree, directory)
        logger.info(f"Deleted blob directory for {owner_id}")
        return True

    def owner_exists(self, owner_id: str) -> bool:
        return self._owner_dir(owner_id).is_dir()
