"""
Sessions
========

The aggregate root and its directories:
- Session: story history, artifacts, pipelines, blobs and persistence
- SessionManager: sessions with an active pointer and JSON export/import
- ProjectManager: uniquely named projects with a current pointer
"""

from .session import Session, SESSION_NAMESPACE, PROJECT_NAMESPACE
from .directory import SessionDirectory
from .session_manager import SessionManager
from .project_manager import ProjectManager, DEFAULT_PROJECT_NAME

__all__ = [
    "Session",
    "SESSION_NAMESPACE",
    "PROJECT_NAMESPACE",
    "SessionDirectory",
    "SessionManager",
    "ProjectManager",
    "DEFAULT_PROJECT_NAME",
]
