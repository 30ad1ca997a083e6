"""
Session Manager
===============

Directory of sessions with an "active" pointer, JSON export/import, and
an auto-save switch applied to sessions it creates or loads.
"""

import json
import logging
from typing import Optional, List, Dict, Any

from .directory import SessionDirectory
from .session import Session, SESSION_NAMESPACE
from ..core.exceptions import ValidationError
from ..core.security import validate_storage_key
from ..utils.ids import generate_id

logger = logging.getLogger(__name__)


class SessionManager(SessionDirectory):
    """
    Creates, loads, lists and deletes sessions.

    Usage:
        manager = SessionManager(storage, blobs=blobs, story_writer=writer)
        session = manager.create_session("Lighthouse")
        await manager.save_session(session.id)
        same = await manager.load_session(session.id)
    """

    NAMESPACE = SESSION_NAMESPACE
    RESOURCE_TYPE = "session"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active_session_id: Optional[str] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_session(self, name: Optional[str] = None) -> Session:
        """Create an empty session and make it active. Nothing is written yet."""
        session = self._new(generate_id("session"), name)
        self._cache[session.id] = session
        self.active_session_id = session.id
        logger.info(f"Created session {session.id}")
        return session

    async def load_session(self, session_id: str) -> Session:
        """
        Return a session from the cache or from storage.

        Raises:
            NotFound: No such session
        """
        return await self._fetch(session_id, "load_session")

    async def save_session(self, session_id: str) -> None:
        session = await self._fetch(session_id, "save_session")
        await session.save()

    async def delete_session(self, session_id: str) -> None:
        """Remove the session document, its blob directory and its index entry."""
        await self._remove(session_id, "delete_session")
        if self.active_session_id == session_id:
            self.active_session_id = None

    async def delete_all_sessions(self) -> None:
        for session_id in set(await self._stored_ids()) | set(self._cache):
            await self._remove(session_id, "delete_all_sessions")
        await self.index.clear()
        self.active_session_id = None

    # -------------------------------------------------------------------------
    # Listing and active pointer
    # -------------------------------------------------------------------------

    def list_sessions(self) -> List[Dict[str, Any]]:
        """Metadata of open (cached) sessions, most recently updated first."""
        return self._sorted([s.metadata() for s in self._cache.values()], "updated_at")

    async def list_all_sessions(self) -> List[Dict[str, Any]]:
        """Metadata of every stored session, most recently updated first."""
        return self._sorted(await self._summaries(), "updated_at")

    def set_active_session(self, session_id: str) -> None:
        """
        Raises:
            NotFound: The session is not open in this manager
        """
        if session_id not in self._cache:
            raise self._not_found("set_active_session", session_id)
        self.active_session_id = session_id

    def get_active_session(self) -> Optional[Session]:
        if self.active_session_id is None:
            return None
        return self._cache.get(self.active_session_id)

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    async def export_session(self, session_id: str) -> str:
        """Serialize one session as pretty-printed JSON."""
        session = await self._fetch(session_id, "export_session")
        return json.dumps(session.to_dict(), indent=2)

    async def _import_document(self, data: Dict[str, Any]) -> Session:
        session_id = data.get("id") if isinstance(data, dict) else None
        if not session_id:
            raise ValidationError("import_session: session data has no id", field="id")
        validate_storage_key(session_id)

        session = self._new(session_id)
        session.apply_dict(data)
        await session.save()
        self._cache[session_id] = session
        logger.info(f"Imported session {session_id}")
        return session

    async def import_session(self, payload: str) -> Session:
        """
        Store a session exported by ``export_session``. An existing session
        with the same id is replaced.

        Raises:
            ValidationError: Payload is not JSON or has no ``id``
        """
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValidationError(f"import_session: invalid JSON: {e}") from e
        return await self._import_document(data)

    async def export_all_sessions(self) -> str:
        documents = []
        for session_id in await self._stored_ids():
            documents.append(await self.storage.load(self._key(session_id)))
        return json.dumps(documents, indent=2)

    async def import_all_sessions(self, payload: str) -> List[Session]:
        """Import a JSON array of sessions, skipping entries without an id."""
        try:
            documents = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValidationError(f"import_all_sessions: invalid JSON: {e}") from e
        if not isinstance(documents, list):
            raise ValidationError("import_all_sessions: expected a JSON array")

        imported = []
        for data in documents:
            if not isinstance(data, dict) or not data.get("id"):
                logger.warning("Skipping imported session without an id")
                continue
            imported.append(await self._import_document(data))
        return imported

    # -------------------------------------------------------------------------
    # Auto-save
    # -------------------------------------------------------------------------

    def enable_auto_save(self) -> None:
        self.auto_save = True
        for session in self._cache.values():
            session.auto_save = True

    def disable_auto_save(self) -> None:
        self.auto_save = False
        for session in self._cache.values():
            session.auto_save = False
