"""In-memory storage backend."""

import logging
from typing import Optional, List, Any, Dict

from .adapter import StorageAdapter, encode_document, decode_document
from ..core.exceptions import NotFound

logger = logging.getLogger(__name__)


class MemoryStorageAdapter(StorageAdapter):
    """
    Dictionary-backed store.

    Documents are held as JSON text, so every ``save`` and ``load`` works
    on a deep copy and callers never alias stored state.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}

    @property
    def storage_type(self) -> str:
        return "memory"

    async def save(self, key: str, value: Any) -> None:
        self._data[key] = encode_document(key, value)

    async def load(self, key: str) -> Any:
        if key not in self._data:
            raise NotFound(f"load: key not found: {key}", resource_type="document", resource_id=key)
        return decode_document(key, self._data[key])

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self, prefix: Optional[str] = None) -> List[str]:
        return sorted(k for k in self._data if prefix is None or k.startswith(prefix))

    async def clear(self) -> None:
        self._data.clear()
