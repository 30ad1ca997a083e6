"""
Tests for the storage backends, blob store and summary index.
"""

from datetime import datetime

import aiofiles.os
import pytest

from sidvid.core.config import StorageConfig
from sidvid.core.exceptions import NotFound, SecurityError, StorageError, ValidationError
from sidvid.models.artifacts import Character
from sidvid.storage import (
    BlobStore,
    EmbeddedStorageAdapter,
    FileStorageAdapter,
    MemoryStorageAdapter,
    SummaryIndex,
    create_storage,
)
from sidvid.utils.serialization import datetime_to_str, datetime_from_str, history_to_pairs, pairs_to_history


@pytest.fixture(params=["memory", "file", "sqlite", "dbm"])
def storage(request, tmp_path):
    if request.param == "memory":
        return MemoryStorageAdapter()
    if request.param == "file":
        return FileStorageAdapter(tmp_path / "docs")
    return EmbeddedStorageAdapter(tmp_path / "db", db_name="test", kind=request.param)


def session_snapshot():
    created = datetime(2026, 3, 1, 9, 30, 15, 123456)
    mara = Character(id="char-1", name="Mara", description="keeper")
    enhanced = Character(id="char-1", name="Mara", description="keeper", enhanced_description="weathered keeper")
    return {
        "id": "session-1",
        "name": "Lighthouse",
        "current_story_index": 0,
        "character_history": history_to_pairs({"char-1": [mara, enhanced]}, Character.to_dict),
        "created_at": datetime_to_str(created),
        "updated_at": datetime_to_str(created),
        "nested": {"list": [1, 2.5, None, True, "text"]},
    }


class TestStorageContract:

    @pytest.mark.asyncio
    async def test_round_trip(self, storage):
        snapshot = session_snapshot()
        await storage.save("sessions/session-1", snapshot)

        loaded = await storage.load("sessions/session-1")

        assert loaded == snapshot
        history = pairs_to_history(loaded["character_history"], Character.from_dict)
        assert [c.enhanced_description for c in history["char-1"]] == [None, "weathered keeper"]
        assert datetime_from_str(loaded["created_at"]) == datetime(2026, 3, 1, 9, 30, 15, 123456)

    @pytest.mark.asyncio
    async def test_load_missing(self, storage):
        with pytest.raises(NotFound):
            await storage.load("sessions/missing")

    @pytest.mark.asyncio
    async def test_overwrite(self, storage):
        await storage.save("sessions/a", {"v": 1})
        await storage.save("sessions/a", {"v": 2})
        assert await storage.load("sessions/a") == {"v": 2}

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, storage):
        await storage.save("sessions/a", {"v": 1})
        await storage.delete("sessions/a")
        await storage.delete("sessions/a")

        assert not await storage.exists("sessions/a")

    @pytest.mark.asyncio
    async def test_list_with_prefix(self, storage):
        await storage.save("sessions/a", {})
        await storage.save("sessions/b", {})
        await storage.save("projects/c", {})

        assert await storage.list("sessions/") == ["sessions/a", "sessions/b"]
        assert sorted(await storage.list()) == ["projects/c", "sessions/a", "sessions/b"]

    @pytest.mark.asyncio
    async def test_clear(self, storage):
        await storage.save("sessions/a", {})
        await storage.clear()
        assert await storage.list() == []

    @pytest.mark.asyncio
    async def test_unserializable_value(self, storage):
        with pytest.raises(ValidationError):
            await storage.save("sessions/a", {"when": datetime.now()})


class TestMemoryStorage:

    @pytest.mark.asyncio
    async def test_no_aliasing(self):
        storage = MemoryStorageAdapter()
        value = {"items": [1]}
        await storage.save("k", value)

        value["items"].append(2)
        loaded = await storage.load("k")
        loaded["items"].append(3)

        assert await storage.load("k") == {"items": [1]}


class TestFileStorage:

    @pytest.mark.asyncio
    async def test_one_json_file_per_key(self, tmp_path):
        storage = FileStorageAdapter(tmp_path)
        await storage.save("sessions/abc", {"id": "abc"})

        path = tmp_path / "sessions" / "abc.json"
        assert path.is_file()
        assert not list(tmp_path.rglob("*.tmp"))

    @pytest.mark.asyncio
    async def test_failed_replace_removes_temporary_file(self, tmp_path, monkeypatch):
        storage = FileStorageAdapter(tmp_path)

        async def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(aiofiles.os, "replace", failing_replace)

        with pytest.raises(OSError):
            await storage.save("sessions/abc", {"id": "abc"})

        assert not list(tmp_path.rglob("*.tmp"))
        assert not (tmp_path / "sessions" / "abc.json").exists()

    @pytest.mark.asyncio
    async def test_delete_prunes_empty_parents(self, tmp_path):
        storage = FileStorageAdapter(tmp_path)
        await storage.save("projects/p1/meta", {})

        await storage.delete("projects/p1/meta")

        assert not (tmp_path / "projects").exists()
        assert tmp_path.exists()

    @pytest.mark.asyncio
    async def test_traversal_key_rejected(self, tmp_path):
        storage = FileStorageAdapter(tmp_path / "docs")
        with pytest.raises(SecurityError):
            await storage.save("../escape", {})

    @pytest.mark.asyncio
    async def test_corrupt_document(self, tmp_path):
        storage = FileStorageAdapter(tmp_path)
        (tmp_path / "broken.json").write_text("{not json")

        with pytest.raises(StorageError):
            await storage.load("broken")


class TestEmbeddedStorage:

    @pytest.mark.asyncio
    async def test_dbm_keys_are_namespaced(self, tmp_path):
        first = EmbeddedStorageAdapter(tmp_path, db_name="first", kind="dbm")
        second = EmbeddedStorageAdapter(tmp_path, db_name="second", kind="dbm")

        await first.save("sessions/a", {"owner": "first"})
        await second.save("sessions/a", {"owner": "second"})

        assert (await first.load("sessions/a"))["owner"] == "first"
        assert await second.list() == ["sessions/a"]

    def test_storage_type(self, tmp_path):
        assert EmbeddedStorageAdapter(tmp_path, kind="sqlite").storage_type == "sqlite"

    @pytest.mark.asyncio
    async def test_falls_back_to_dbm_when_sqlite_cannot_open(self, tmp_path):
        # A directory where the database file should be
        (tmp_path / "sidvid.sqlite3").mkdir()

        storage = EmbeddedStorageAdapter(tmp_path, kind="sqlite")
        await storage.save("sessions/a", {"id": "a"})

        assert storage.storage_type == "dbm"
        assert await storage.load("sessions/a") == {"id": "a"}
        assert await storage.list("sessions/") == ["sessions/a"]


class TestCreateStorage:

    def test_memory(self):
        assert create_storage(StorageConfig(backend="memory")).storage_type == "memory"

    def test_file(self, tmp_path):
        storage = create_storage(StorageConfig(backend="file", base_path=str(tmp_path)))
        assert isinstance(storage, FileStorageAdapter)

    def test_embedded(self, tmp_path):
        storage = create_storage(StorageConfig(backend="embedded", base_path=str(tmp_path), embedded_kind="dbm"))
        assert storage.storage_type == "dbm"


class TestBlobStore:

    @pytest.mark.asyncio
    async def test_content_addressed(self, blobs):
        first = await blobs.save("session-1", b"png-bytes")
        second = await blobs.save("session-1", b"png-bytes")

        assert first == second
        assert first == f"session-1/{BlobStore.content_hash(b'png-bytes')}.png"
        assert await blobs.load(first) == b"png-bytes"
        assert blobs.list_owner("session-1") == [first]

    @pytest.mark.asyncio
    async def test_extension_normalized(self, blobs):
        path = await blobs.save("session-1", b"jpeg-bytes", extension="jpg")
        assert path.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_delete_owner(self, blobs):
        await blobs.save("session-1", b"a")
        await blobs.save("session-2", b"b")

        assert await blobs.delete_owner("session-1") is True
        assert await blobs.delete_owner("session-1") is False
        assert not blobs.owner_exists("session-1")
        assert blobs.owner_exists("session-2")

    @pytest.mark.asyncio
    async def test_invalid_owner(self, blobs):
        with pytest.raises(SecurityError):
            await blobs.save("../other", b"a")
        with pytest.raises(SecurityError):
            await blobs.save("a/b", b"a")

    @pytest.mark.asyncio
    async def test_non_image_extension(self, blobs):
        with pytest.raises(SecurityError):
            await blobs.save("session-1", b"a", extension=".exe")

    @pytest.mark.asyncio
    async def test_load_missing(self, blobs):
        with pytest.raises(NotFound):
            await blobs.load("session-1/0000000000000000.png")


class TestSummaryIndex:

    @pytest.mark.asyncio
    async def test_upsert_remove(self, memory_storage):
        index = SummaryIndex(memory_storage, "sessions")

        assert await index.read() == {}

        await index.upsert("s1", {"name": "One"})
        await index.upsert("s2", {"name": "Two"})
        await index.upsert("s1", {"name": "Uno"})

        assert await index.read() == {"s1": {"name": "Uno"}, "s2": {"name": "Two"}}
        assert await index.remove("s2") is True
        assert await index.remove("s2") is False
        assert await memory_storage.list("index/") == ["index/sessions"]

        await index.clear()
        assert await index.read() == {}
