"""
Session Directory
=================

Shared bookkeeping for the session and project managers: an in-memory
cache of open aggregates, the namespace's summary index, and deletion of
an aggregate together with its blobs.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, List, Any

from .session import Session
from ..api.factory import JobRouter
from ..core.config import Config
from ..core.exceptions import NotFound, StorageError
from ..core.security import validate_storage_key
from ..storage.adapter import StorageAdapter
from ..storage.blobs import BlobStore
from ..storage.index import SummaryIndex
from ..utils.serialization import datetime_from_str

logger = logging.getLogger(__name__)


class SessionDirectory:
    """Base class for managers of one aggregate namespace."""

    NAMESPACE = "sessions"
    RESOURCE_TYPE = "session"

    def __init__(
        self,
        storage: StorageAdapter,
        blobs: Optional[BlobStore] = None,
        story_writer=None,
        image_generator=None,
        router: Optional[JobRouter] = None,
        config: Optional[Config] = None,
        auto_save: Optional[bool] = None,
    ):
        self.storage = storage
        self.blobs = blobs
        self.story_writer = story_writer
        self.image_generator = image_generator
        self.router = router or JobRouter()
        self.config = config or Config()
        self.auto_save = self.config.session.auto_save if auto_save is None else auto_save
        self.index = SummaryIndex(storage, self.NAMESPACE)
        self._cache: Dict[str, Session] = {}

    def _new(self, aggregate_id: str, name: Optional[str] = None) -> Session:
        return Session(
            aggregate_id,
            self.storage,
            story_writer=self.story_writer,
            image_generator=self.image_generator,
            router=self.router,
            blobs=self.blobs,
            config=self.config,
            name=name,
            namespace=self.NAMESPACE,
            auto_save=self.auto_save,
        )

    def _not_found(self, operation: str, aggregate_id: str) -> NotFound:
        return NotFound(
            f"{operation}: {self.RESOURCE_TYPE} not found: {aggregate_id}",
            resource_type=self.RESOURCE_TYPE,
            resource_id=aggregate_id,
        )

    def _key(self, aggregate_id: str) -> str:
        return f"{self.NAMESPACE}/{aggregate_id}"

    async def _fetch(self, aggregate_id: str, operation: str) -> Session:
        """Return the cached aggregate, loading it from storage on a miss."""
        cached = self._cache.get(aggregate_id)
        if cached is not None:
            return cached

        validate_storage_key(aggregate_id)
        aggregate = self._new(aggregate_id)
        try:
            await aggregate.load()
        except NotFound:
            raise self._not_found(operation, aggregate_id) from None

        self._cache[aggregate_id] = aggregate
        return aggregate

    async def _stored_ids(self) -> List[str]:
        prefix = f"{self.NAMESPACE}/"
        return [key[len(prefix):] for key in await self.storage.list(prefix)]

    async def _summaries(self) -> List[Dict[str, Any]]:
        """
        Summaries of every stored aggregate plus unsaved cached ones.

        The index is preferred; documents missing from it are read directly,
        and unreadable documents are skipped.
        """
        indexed = await self.index.read()
        summaries: Dict[str, Dict[str, Any]] = {}

        for aggregate_id in await self._stored_ids():
            if aggregate_id in self._cache:
                summaries[aggregate_id] = self._cache[aggregate_id].metadata()
            elif aggregate_id in indexed:
                summaries[aggregate_id] = indexed[aggregate_id]
            else:
                aggregate = self._new(aggregate_id)
                try:
                    await aggregate.load()
                except StorageError as e:
                    logger.warning(f"Skipping unreadable {self.RESOURCE_TYPE} {aggregate_id}: {e}")
                    continue
                summaries[aggregate_id] = aggregate.metadata()

        for aggregate_id, aggregate in self._cache.items():
            summaries.setdefault(aggregate_id, aggregate.metadata())

        return list(summaries.values())

    @staticmethod
    def _sorted(summaries: List[Dict[str, Any]], field: str) -> List[Dict[str, Any]]:
        return sorted(summaries, key=lambda s: datetime_from_str(s.get(field), datetime.min), reverse=True)

    async def _remove(self, aggregate_id: str, operation: str) -> None:
        """
        Delete an aggregate's document, blob directory and index entry.

        Raises:
            NotFound: Neither cached nor stored
        """
        validate_storage_key(aggregate_id)
        cached = self._cache.pop(aggregate_id, None)
        stored = await self.storage.exists(self._key(aggregate_id))
        if cached is None and not stored:
            raise self._not_found(operation, aggregate_id)

        await self.storage.delete(self._key(aggregate_id))
        await self.index.remove(aggregate_id)
        if self.blobs is not None:
            await self.blobs.delete_owner(aggregate_id)
        logger.info(f"Deleted {self.RESOURCE_TYPE} {aggregate_id}")
