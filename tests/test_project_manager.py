"""
Tests for ProjectManager.
"""

from datetime import datetime, timedelta

import pytest

from sidvid.core.exceptions import NotFound, ValidationError
from sidvid.session import ProjectManager
from sidvid.session.project_manager import DEFAULT_PROJECT_NAME


@pytest.fixture
def manager(memory_storage, blobs, story_writer, image_service, router):
    return ProjectManager(
        memory_storage,
        blobs=blobs,
        story_writer=story_writer,
        image_generator=image_service,
        router=router,
        auto_save=True,
    )


class TestCreate:

    @pytest.mark.asyncio
    async def test_default_name_and_current(self, manager, memory_storage):
        project = await manager.create_project()

        assert project.name == DEFAULT_PROJECT_NAME
        assert project.id.startswith("proj-")
        assert project.namespace == "projects"
        assert manager.current_project_id == project.id
        assert await memory_storage.exists(f"projects/{project.id}")

    @pytest.mark.asyncio
    async def test_unique_names(self, manager):
        names = [(await manager.create_project()).name for _ in range(3)]
        assert names == ["My Project", "My Project (1)", "My Project (2)"]

    @pytest.mark.asyncio
    async def test_unique_against_stored_projects(self, manager, memory_storage):
        await manager.create_project("Trailer")

        other = ProjectManager(memory_storage)
        project = await other.create_project("Trailer")

        assert project.name == "Trailer (1)"

    @pytest.mark.asyncio
    async def test_without_auto_save_nothing_is_written(self, memory_storage):
        manager = ProjectManager(memory_storage, auto_save=False)
        project = await manager.create_project("Draft")

        assert not await memory_storage.exists(f"projects/{project.id}")
        assert [p["name"] for p in await manager.list_projects()] == ["Draft"]


class TestRename:

    @pytest.mark.asyncio
    async def test_rename(self, manager, memory_storage):
        project = await manager.create_project("Trailer")

        await manager.rename_project(project.id, "Teaser")

        stored = await memory_storage.load(f"projects/{project.id}")
        assert stored["name"] == "Teaser"

    @pytest.mark.asyncio
    async def test_rename_to_taken_name(self, manager):
        await manager.create_project("Trailer")
        teaser = await manager.create_project("Teaser")

        with pytest.raises(ValidationError):
            await manager.rename_project(teaser.id, "Trailer")
        assert teaser.name == "Teaser"

    @pytest.mark.asyncio
    async def test_rename_to_same_name_is_noop(self, manager):
        project = await manager.create_project("Trailer")
        updated_at = project.updated_at

        await manager.rename_project(project.id, "Trailer")

        assert project.updated_at == updated_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   "])
    async def test_rename_to_empty(self, manager, name):
        project = await manager.create_project("Trailer")
        with pytest.raises(ValidationError):
            await manager.rename_project(project.id, name)


class TestSwitchAndList:

    @pytest.mark.asyncio
    async def test_switch_moves_project_to_front(self, manager):
        first = await manager.create_project("First")
        second = await manager.create_project("Second")
        second.last_opened_at = datetime.now() - timedelta(minutes=1)
        first.last_opened_at = datetime.now() - timedelta(minutes=2)

        await manager.switch_project(first.id)

        assert manager.current_project_id == first.id
        assert [p["name"] for p in await manager.list_projects()] == ["First", "Second"]
        assert await manager.get_current_project() is first

    @pytest.mark.asyncio
    async def test_switch_unknown(self, manager):
        with pytest.raises(NotFound):
            await manager.switch_project("proj-missing")

    @pytest.mark.asyncio
    async def test_list_reads_stored_projects(self, manager, memory_storage):
        await manager.create_project("Trailer")

        listed = await ProjectManager(memory_storage).list_projects()

        assert [p["name"] for p in listed] == ["Trailer"]

    @pytest.mark.asyncio
    async def test_unreadable_project_is_skipped(self, manager, memory_storage):
        good = await manager.create_project("Good")
        await memory_storage.save("projects/broken", {"current_story_index": 5})

        other = ProjectManager(memory_storage, auto_save=True)
        listed = await other.list_projects()
        created = await other.create_project("Good")
        await other.rename_project(created.id, "Second")

        assert [p["name"] for p in listed] == ["Good"]
        assert created.name == "Good (1)"
        assert {p["id"] for p in await other.list_projects()} == {good.id, created.id}

    @pytest.mark.asyncio
    async def test_update_project_persists(self, manager, memory_storage):
        project = await manager.create_project("Trailer")
        await project.generate_story("A keeper and a whale")

        await manager.update_project(project)

        stored = await memory_storage.load(f"projects/{project.id}")
        assert len(stored["story_history"]) == 1


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_current(self, manager, memory_storage, blobs):
        project = await manager.create_project("Trailer")
        await project.save_image(b"png-bytes")

        await manager.delete_project(project.id)

        assert manager.current_project_id is None
        assert await manager.get_current_project() is None
        assert not await memory_storage.exists(f"projects/{project.id}")
        assert not blobs.owner_exists(project.id)
        with pytest.raises(NotFound):
            await manager.get_project(project.id)

    @pytest.mark.asyncio
    async def test_delete_unknown(self, manager):
        with pytest.raises(NotFound):
            await manager.delete_project("proj-missing")

    @pytest.mark.asyncio
    async def test_deleted_name_can_be_reused(self, manager):
        project = await manager.create_project("Trailer")
        await manager.delete_project(project.id)

        again = await manager.create_project("Trailer")

        assert again.name == "Trailer"
