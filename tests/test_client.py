"""
Tests for the SidVid client wiring.
"""

import pytest

from sidvid import SidVid
from sidvid.api.base import JobStatus
from sidvid.api.factory import ProviderKind
from sidvid.api.flux_kontext import FluxKontextClient
from sidvid.api.kling import KlingClient
from sidvid.api.mock import MockVideoClient
from sidvid.core.config import Config
from sidvid.core.exceptions import ConfigurationError
from sidvid.session import ProjectManager, SessionManager
from sidvid.storage import BlobStore, MemoryStorageAdapter


@pytest.fixture
def memory_config():
    return Config.from_dict({"storage": {"backend": "memory"}, "mock": {"duration_seconds": 10}})


@pytest.fixture
def sidvid(memory_config, tmp_path, story_writer, image_service):
    return SidVid(
        memory_config,
        blobs=BlobStore(tmp_path / "images"),
        story_writer=story_writer,
        image_generator=image_service,
    )


class TestWiring:

    def test_configured_storage(self, sidvid):
        assert isinstance(sidvid.storage, MemoryStorageAdapter)

    def test_mock_provider_from_config(self, sidvid):
        mock = sidvid.router.client_for(ProviderKind.MOCK)

        assert isinstance(mock, MockVideoClient)
        assert mock.duration_seconds == 10

    def test_kling_requires_kie_key(self, sidvid):
        with pytest.raises(ConfigurationError):
            sidvid.router.client_for(ProviderKind.KLING)

    def test_kling_registered_with_kie_key(self, tmp_path, story_writer, image_service):
        config = Config.from_dict({"storage": {"backend": "memory"}, "kie": {"api_key": "kie-test"}})
        sidvid = SidVid(config, blobs=BlobStore(tmp_path), story_writer=story_writer, image_generator=image_service)

        kling = sidvid.router.client_for(ProviderKind.KLING)

        assert isinstance(kling, KlingClient)
        assert kling.api_key == "kie-test"

    def test_reference_images_client(self, sidvid):
        client = sidvid.reference_images

        assert isinstance(client, FluxKontextClient)
        assert client.reference_model == "flux-kontext-max"
        assert sidvid.reference_images is client

    def test_managers_share_services(self, sidvid):
        sessions = sidvid.session_manager()
        projects = sidvid.project_manager()

        assert isinstance(sessions, SessionManager)
        assert isinstance(projects, ProjectManager)
        assert sessions.storage is projects.storage is sidvid.storage
        assert sessions.router is sidvid.router

    def test_from_config_file(self, tmp_path, story_writer, image_service):
        path = tmp_path / "sidvid.yaml"
        path.write_text("storage:\n  backend: memory\nvideo:\n  duration: 10\n", encoding="utf-8")

        sidvid = SidVid.from_config_file(path, story_writer=story_writer, image_generator=image_service)

        assert sidvid.config.video.duration == 10
        assert isinstance(sidvid.storage, MemoryStorageAdapter)


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_story_to_video(self, sidvid, clock):
        sidvid.router.register_client(
            ProviderKind.MOCK,
            MockVideoClient(duration_seconds=10, clock=clock, sleep=clock.sleep, poll_interval=2),
        )

        async with sidvid:
            session = sidvid.session_manager().create_session("Lighthouse")
            await session.generate_story("A keeper and a whale")
            session.initialize_scene_pipeline()
            await session.generate_all_pending_slots()
            session.initialize_video_pipeline()
            await session.generate_video()
            result = await session.wait_for_video()

        assert result.status == JobStatus.COMPLETED
        assert session.video_pipeline.progress == 100
