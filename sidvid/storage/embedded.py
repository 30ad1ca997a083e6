"""
Embedded Storage Backend
========================

Single-file database store for environments without a document tree.

Two kinds are available:
- ``sqlite``: an indexed ``documents`` table (preferred; falls back to
  ``dbm`` when the database file cannot be opened)
- ``dbm``: a flat key-value file; keys are prefixed with ``{db_name}:``

Database calls are blocking, so each operation opens its own connection
inside ``asyncio.to_thread`` and operations are serialized by a lock.
"""

import dbm
import asyncio
import sqlite3
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Any, Union

from .adapter import StorageAdapter, encode_document, decode_document
from ..core.exceptions import NotFound, ConfigurationError

logger = logging.getLogger(__name__)

KINDS = ("sqlite", "dbm")


class EmbeddedStorageAdapter(StorageAdapter):
    """Embedded database store (sqlite table or dbm file)."""

    def __init__(
        self,
        base_path: Union[str, Path] = ".sidvid",
        db_name: str = "sidvid",
        kind: str = "sqlite",
    ):
        if kind not in KINDS:
            raise ConfigurationError(
                f"Invalid embedded store kind: {kind}",
                config_key="storage.embedded_kind",
            )

        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.db_name = db_name
        self.kind = kind
        self._lock = asyncio.Lock()

        if kind == "sqlite":
            self.db_path = self.base_path / f"{db_name}.sqlite3"
            try:
                self._init_db()
            except sqlite3.Error as e:
                logger.warning(f"SQLite store unavailable at {self.db_path} ({e}); falling back to dbm")
                self.kind = "dbm"

        if self.kind == "dbm":
            self.db_path = self.base_path / db_name

    @property
    def storage_type(self) -> str:
        return self.kind

    # -------------------------------------------------------------------------
    # sqlite
    # -------------------------------------------------------------------------

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def _sqlite_save(self, key: str, text: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO documents (key, value, updated_at) VALUES (?, ?, ?)",
                (key, text, datetime.now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def _sqlite_load(self, key: str) -> Optional[str]:
        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute("SELECT value FROM documents WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def _sqlite_delete(self, key: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("DELETE FROM documents WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def _sqlite_keys(self) -> List[str]:
        conn = sqlite3.connect(self.db_path)
        try:
            rows = conn.execute("SELECT key FROM documents ORDER BY key").fetchall()
        finally:
            conn.close()
        return [row[0] for row in rows]

    def _sqlite_clear(self) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("DELETE FROM documents")
            conn.commit()
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # dbm
    # -------------------------------------------------------------------------

    def _prefixed(self, key: str) -> str:
        return f"{self.db_name}:{key}"

    def _dbm_save(self, key: str, text: str) -> None:
        with dbm.open(str(self.db_path), "c") as db:
            db[self._prefixed(key)] = text.encode("utf-8")

    def _dbm_load(self, key: str) -> Optional[str]:
        with dbm.open(str(self.db_path), "c") as db:
            value = db.get(self._prefixed(key))
        return value.decode("utf-8") if value is not None else None

    def _dbm_delete(self, key: str) -> None:
        with dbm.open(str(self.db_path), "c") as db:
            prefixed = self._prefixed(key)
            if prefixed in db:
                del db[prefixed]

    def _dbm_keys(self) -> List[str]:
        marker = f"{self.db_name}:"
        with dbm.open(str(self.db_path), "c") as db:
            raw = [k.decode("utf-8") for k in db.keys()]
        return sorted(k[len(marker):] for k in raw if k.startswith(marker))

    def _dbm_clear(self) -> None:
        marker = f"{self.db_name}:".encode("utf-8")
        with dbm.open(str(self.db_path), "c") as db:
            for k in [k for k in db.keys() if k.startswith(marker)]:
                del db[k]

    # -------------------------------------------------------------------------
    # StorageAdapter
    # -------------------------------------------------------------------------

    async def _run(self, operation: str, *args):
        func = getattr(self, f"_{self.kind}_{operation}")
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    async def save(self, key: str, value: Any) -> None:
        await self._run("save", key, encode_document(key, value))

    async def load(self, key: str) -> Any:
        text = await self._run("load", key)
        if text is None:
            raise NotFound(f"load: key not found: {key}", resource_type="document", resource_id=key)
        return decode_document(key, text)

    async def delete(self, key: str) -> None:
        await self._run("delete", key)

    async def list(self, prefix: Optional[str] = None) -> List[str]:
        keys = await self._run("keys")
        return [k for k in keys if prefix is None or k.startswith(prefix)]

    async def clear(self) -> None:
        await self._run("clear")
        logger.info(f"Cleared {self.kind} store at {self.db_path}")
