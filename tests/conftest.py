"""
Pytest Configuration and Fixtures

Shared fakes and fixtures for all tests.
"""

import json
from types import SimpleNamespace
from typing import List, Optional

import httpx
import pytest

from sidvid.api.base import BaseJobClient, JobResult, JobStatus
from sidvid.api.factory import JobRouter, ProviderKind
from sidvid.api.mock import MockVideoClient
from sidvid.core.config import Config
from sidvid.models.artifacts import ImageResult
from sidvid.models.story import Story, StoryScene, StoryCharacter
from sidvid.storage.blobs import BlobStore
from sidvid.storage.memory import MemoryStorageAdapter


class FakeClock:
    """Monotonic clock whose ``sleep`` advances simulated time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedClient(BaseJobClient):
    """Job client whose status observations come from a fixed script."""

    def __init__(self, statuses, **kwargs):
        super().__init__(**kwargs)
        self.statuses = list(statuses)
        self.polls = 0

    @property
    def provider_name(self) -> str:
        return "Scripted"

    async def create_task(self, **task_input) -> str:
        return "job-1"

    async def get_status(self, job_id: str) -> JobResult:
        status = self.statuses[min(self.polls, len(self.statuses) - 1)]
        self.polls += 1
        return JobResult(
            job_id=job_id,
            status=status,
            result_url="https://video.test/out.mp4" if status == JobStatus.COMPLETED else None,
            error_message="nsfw prompt" if status == JobStatus.FAILED else None,
        )


class FakeImageService:
    """Image service returning predictable URLs; descriptions containing ``fail_on`` raise."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.scene_calls = []
        self.character_calls = []

    async def generate_scene(self, description, **options):
        self.scene_calls.append((description, options))
        if self.fail_on and self.fail_on in description:
            raise RuntimeError("content policy violation")
        return ImageResult(
            image_url=f"https://images.test/scene-{len(self.scene_calls)}.png",
            revised_prompt=f"revised: {description}",
        )

    async def generate_character(self, description, **options):
        self.character_calls.append((description, options))
        return ImageResult(image_url=f"https://images.test/character-{len(self.character_calls)}.png")


def make_story(title: str = "The Lighthouse", scenes: int = 3, characters=("Mara", "Whale")) -> Story:
    return Story(
        title=title,
        scenes=tuple(
            StoryScene(number=i + 1, description=f"{title} scene {i + 1}", title=f"Part {i + 1}")
            for i in range(scenes)
        ),
        raw_text=json.dumps({"title": title}),
        characters=tuple(StoryCharacter(name=name, description=f"{name} description") for name in characters),
    )


class FakeStoryWriter:
    """Story writer that returns numbered versions of a canned story."""

    def __init__(self, scenes: int = 3):
        self.scenes = scenes
        self.calls = []

    async def generate_story(self, prompt, scenes=5, style=None, video_length="5s"):
        self.calls.append(("generate", prompt, scenes, video_length))
        return make_story(title=prompt, scenes=self.scenes)

    async def edit_story(self, story, edit_prompt, video_length="5s"):
        self.calls.append(("edit", edit_prompt))
        return make_story(title=f"{story.title} (edited)", scenes=story.scene_count, characters=("Mara",))

    async def expand_story(self, story, video_length="5s"):
        self.calls.append(("expand", story.title))
        return make_story(title=f"{story.title} (expanded)", scenes=story.scene_count)

    async def enhance_description(self, description):
        self.calls.append(("enhance", description))
        return f"Enhanced: {description}"


def openai_completion(content: Optional[str]):
    """Shape of an ``AsyncOpenAI`` chat completion."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def openai_image(url: Optional[str], revised_prompt: Optional[str] = None):
    """Shape of an ``AsyncOpenAI`` images response."""
    return SimpleNamespace(data=[SimpleNamespace(url=url, revised_prompt=revised_prompt)])


def kie_response(data=None, code: int = 200, msg: str = "success") -> httpx.Response:
    return httpx.Response(200, json={"code": code, "msg": msg, "data": data})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_storage():
    return MemoryStorageAdapter()


@pytest.fixture
def blobs(tmp_path):
    return BlobStore(tmp_path / "images")


@pytest.fixture
def image_service():
    return FakeImageService()


@pytest.fixture
def story_writer():
    return FakeStoryWriter()


@pytest.fixture
def mock_video(clock):
    return MockVideoClient(duration_seconds=30.0, clock=clock, sleep=clock.sleep, poll_interval=5.0)


@pytest.fixture
def router(mock_video):
    return JobRouter({ProviderKind.MOCK: mock_video})


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def story():
    return make_story()
