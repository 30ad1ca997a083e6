"""
Storage
=======

Storage-agnostic persistence for sessions and projects:
- StorageAdapter contract with memory, file, and embedded backends
- BlobStore for content-addressed image bytes
- SummaryIndex for id -> summary listing documents
"""

import logging
from typing import Optional

from .adapter import StorageAdapter
from .memory import MemoryStorageAdapter
from .file import FileStorageAdapter
from .embedded import EmbeddedStorageAdapter
from .blobs import BlobStore
from .index import SummaryIndex
from ..core.config import StorageConfig
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def create_storage(config: Optional[StorageConfig] = None) -> StorageAdapter:
    """
    Build the configured storage backend.

    Args:
        config: Storage settings (defaults to ``StorageConfig()``)

    Returns:
        StorageAdapter instance
    """
    config = config or StorageConfig()

    if config.backend == "memory":
        storage: StorageAdapter = MemoryStorageAdapter()
    elif config.backend == "file":
        storage = FileStorageAdapter(config.base_path)
    elif config.backend == "embedded":
        storage = EmbeddedStorageAdapter(
            config.base_path,
            db_name=config.db_name,
            kind=config.embedded_kind,
        )
    else:
        raise ConfigurationError(
            f"Invalid storage backend: {config.backend}",
            config_key="storage.backend",
        )

    logger.info(f"Using {storage.storage_type} storage")
    return storage


__all__ = [
    "StorageAdapter",
    "MemoryStorageAdapter",
    "FileStorageAdapter",
    "EmbeddedStorageAdapter",
    "BlobStore",
    "SummaryIndex",
    "create_storage",
]
