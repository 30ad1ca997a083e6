"""
Storage Adapter
===============

Key -> JSON document persistence contract shared by every backend.

Keys are "/"-separated names such as ``sessions/abc-123``. Values are
plain JSON-compatible structures; richer types (datetimes, id-keyed maps)
are converted by the caller before they reach the store.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, List, Any

from ..core.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


class StorageAdapter(ABC):
    """
    Abstract base class for storage backends.

    ``save`` must have fully committed the document before it returns, so a
    subsequent ``load`` in the same process observes it.
    """

    @property
    @abstractmethod
    def storage_type(self) -> str:
        """Short backend name, e.g. ``memory`` or ``file``."""
        pass

    @abstractmethod
    async def save(self, key: str, value: Any) -> None:
        """Write (or overwrite) the document under ``key``."""
        pass

    @abstractmethod
    async def load(self, key: str) -> Any:
        """
        Read the document under ``key``.

        Raises:
            NotFound: If the key is absent
            StorageError: If the stored document cannot be decoded
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is a no-op."""
        pass

    @abstractmethod
    async def list(self, prefix: Optional[str] = None) -> List[str]:
        """Sorted keys, optionally restricted to those starting with ``prefix``."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every document."""
        pass

    async def exists(self, key: str) -> bool:
        return key in await self.list(key)


def encode_document(key: str, value: Any, indent: Optional[int] = None) -> str:
    """Serialize a document, rejecting values JSON cannot represent."""
    try:
        return json.dumps(value, indent=indent)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"save: value for {key} is not JSON-serializable: {e}",
            field="value",
        ) from e


def decode_document(key: str, text: str) -> Any:
    """Parse a stored document."""
    try:
        return json.loads(text)
    except ValueError as e:
        logger.error(f"Stored document {key} is corrupt: {e}")
        raise StorageError(f"load: stored document {key} is not valid JSON", key=key) from e
