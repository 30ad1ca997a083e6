"""
Project Manager
===============

Directory of named projects with a "current" pointer.

Project names are unique: new projects get ``Name (1)``, ``Name (2)``...
when the requested name is taken, and renaming onto a taken name fails.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from .directory import SessionDirectory
from .session import Session, PROJECT_NAMESPACE
from ..core.exceptions import StorageError, ValidationError
from ..utils.ids import generate_id

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "My Project"


class ProjectManager(SessionDirectory):
    """
    Creates, lists, renames, switches and deletes projects.

    Usage:
        manager = ProjectManager(storage, blobs=blobs)
        project = await manager.create_project("Trailer")
        await manager.switch_project(project.id)
    """

    NAMESPACE = PROJECT_NAMESPACE
    RESOURCE_TYPE = "project"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.current_project_id: Optional[str] = None

    async def _load_all(self) -> List[Session]:
        """Bring every readable stored project into the cache."""
        for project_id in await self._stored_ids():
            if project_id in self._cache:
                continue
            try:
                await self._fetch(project_id, "list_projects")
            except StorageError as e:
                logger.warning(f"Skipping unreadable project {project_id}: {e}")
        return list(self._cache.values())

    @staticmethod
    def _unique_name(name: str, taken: set) -> str:
        if name not in taken:
            return name
        counter = 1
        while f"{name} ({counter})" in taken:
            counter += 1
        return f"{name} ({counter})"

    async def create_project(self, name: str = DEFAULT_PROJECT_NAME) -> Session:
        """Create a project with a unique name and make it current."""
        taken = {p.name for p in await self._load_all()}
        unique = self._unique_name(name or DEFAULT_PROJECT_NAME, taken)

        project = self._new(generate_id("proj"), unique)
        self._cache[project.id] = project
        self.current_project_id = project.id

        if self.auto_save:
            await project.save()
        logger.info(f"Created project {project.id} ({unique})")
        return project

    async def get_project(self, project_id: str) -> Session:
        """
        Raises:
            NotFound: No such project
        """
        return await self._fetch(project_id, "get_project")

    async def list_projects(self) -> List[Dict[str, Any]]:
        """Summaries of every project, most recently opened first."""
        projects = await self._load_all()
        return self._sorted([p.metadata() for p in projects], "last_opened_at")

    async def update_project(self, project: Session) -> Session:
        """Register changes made to a project object and persist them if auto-save is on."""
        if project.id not in self._cache:
            await self._fetch(project.id, "update_project")
        project.touch()
        self._cache[project.id] = project
        if self.auto_save:
            await project.save()
        return project

    async def rename_project(self, project_id: str, new_name: str) -> Session:
        """
        Raises:
            NotFound: No such project
            ValidationError: Empty name, or another project already uses it
        """
        project = await self.get_project(project_id)
        if not new_name or not new_name.strip():
            raise ValidationError("rename_project: name must not be empty", field="name")
        if new_name == project.name:
            return project

        taken = {p.name for p in await self._load_all() if p.id != project_id}
        if new_name in taken:
            raise ValidationError(
                f"rename_project: a project named '{new_name}' already exists",
                field="name",
                value=new_name,
                constraint="unique",
            )

        project.set_name(new_name)
        return await self.update_project(project)

    async def switch_project(self, project_id: str) -> Session:
        """Make a project current and stamp its ``last_opened_at``."""
        project = await self.get_project(project_id)
        project.last_opened_at = datetime.now()
        await self.update_project(project)
        self.current_project_id = project_id
        return project

    async def delete_project(self, project_id: str) -> None:
        """Remove the project document, its blob directory and its index entry."""
        await self._remove(project_id, "delete_project")
        if self.current_project_id == project_id:
            self.current_project_id = None

    async def get_current_project(self) -> Optional[Session]:
        if self.current_project_id is None:
            return None
        return await self.get_project(self.current_project_id)
