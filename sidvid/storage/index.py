"""
Summary Index
=============

One document per namespace (``index/sessions``, ``index/projects``)
mapping each aggregate id to the summary metadata used for listing, so a
directory listing does not have to load every aggregate.
"""

import logging
from typing import Dict, Any

from .adapter import StorageAdapter
from ..core.exceptions import NotFound

logger = logging.getLogger(__name__)


class SummaryIndex:
    """Id -> summary index stored through a StorageAdapter."""

    def __init__(self, storage: StorageAdapter, namespace: str):
        self.storage = storage
        self.namespace = namespace
        self.key = f"index/{namespace}"

    async def read(self) -> Dict[str, Dict[str, Any]]:
        try:
            document = await self.storage.load(self.key)
        except NotFound:
            return {}
        return dict(document.get("entries") or {})

    async def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        await self.storage.save(self.key, {"entries": entries})

    async def upsert(self, entry_id: str, summary: Dict[str, Any]) -> None:
        entries = await self.read()
        entries[entry_id] = summary
        await self._write(entries)

    async def remove(self, entry_id: str) -> bool:
        entries = await self.read()
        if entries.pop(entry_id, None) is None:
            return False
        await self._write(entries)
        return True

    async def clear(self) -> None:
        await self.storage.delete(self.key)
