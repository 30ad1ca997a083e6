"""
Session
=======

The aggregate root for one user's creative work.

A session owns:
- the story history and the index of the current story
- character and scene artifacts, each with an append-only per-id history
- the scene pipeline and the video pipeline
- generated image blobs (one blob directory per session id)

The same aggregate backs both sessions (``sessions/{id}``) and projects
(``projects/{id}``); only the storage namespace differs.

A session is a single logical actor: callers must not mutate one session
from several tasks at once.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..api.factory import JobRouter
from ..api.base import JobResult
from ..core.config import Config
from ..core.exceptions import NotFound, InvalidState, ConfigurationError, StorageError
from ..models.artifacts import Character, SceneArtifact
from ..models.story import Story
from ..storage.adapter import StorageAdapter
from ..storage.blobs import BlobStore
from ..storage.index import SummaryIndex
from ..utils.ids import generate_id
from ..utils.serialization import (
    datetime_to_str,
    datetime_from_str,
    history_to_pairs,
    pairs_to_history,
)
from ..workflow.scene_pipeline import ScenePipeline, SceneSlot
from ..workflow.video_pipeline import VideoPipeline

logger = logging.getLogger(__name__)

SESSION_NAMESPACE = "sessions"
PROJECT_NAMESPACE = "projects"

DEFAULT_IMPROVE_PROMPT = "Improve this story and make it more engaging"


class Session:
    """
    Session aggregate.

    Usage:
        session = Session("abc", storage, story_writer=writer, image_generator=images)
        await session.generate_story("A lighthouse keeper befriends a whale", scenes=3)
        session.initialize_scene_pipeline()
        await session.generate_all_pending_slots()
        await session.save()
    """

    def __init__(
        self,
        session_id: str,
        storage: StorageAdapter,
        story_writer=None,
        image_generator=None,
        router: Optional[JobRouter] = None,
        blobs: Optional[BlobStore] = None,
        config: Optional[Config] = None,
        name: Optional[str] = None,
        namespace: str = SESSION_NAMESPACE,
        auto_save: bool = False,
    ):
        """
        Args:
            session_id: Stable id (also the blob directory name)
            storage: Document store
            story_writer: Language-model service (``StoryWriter`` or compatible)
            image_generator: Image service (``ImageGenerator`` or compatible)
            router: Job router for video jobs
            blobs: Blob store for generated image bytes
            config: Defaults for story, image and video options
            name: Display name
            namespace: ``sessions`` or ``projects``
            auto_save: Save after every asynchronous mutation
        """
        self.id = session_id
        self.name = name
        self.description: Optional[str] = None
        self.namespace = namespace
        self.storage = storage
        self.story_writer = story_writer
        self.image_generator = image_generator
        self.router = router or JobRouter()
        self.blobs = blobs
        self.config = config or Config()
        self.auto_save = auto_save

        # Story state
        self.story_history: List[Story] = []
        self.current_story_index: int = -1

        # Artifacts: flat "current" lists plus id -> history (most recent last)
        self.characters: List[Character] = []
        self.character_history: Dict[str, List[Character]] = {}
        self.scenes: List[SceneArtifact] = []
        self.scene_history: Dict[str, List[SceneArtifact]] = {}

        # Pipelines
        self.scene_pipeline: Optional[ScenePipeline] = None
        self.video_pipeline: Optional[VideoPipeline] = None

        # Metadata
        now = datetime.now()
        self.created_at = now
        self.updated_at = now
        self.last_opened_at = now

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.id}"

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def set_name(self, name: str) -> None:
        self.name = name
        self.touch()

    async def _auto_save(self) -> None:
        if self.auto_save:
            await self.save()

    def _require_service(self, service, name: str, operation: str):
        if service is None:
            raise ConfigurationError(f"{operation}: no {name} configured for session {self.id}")
        return service

    # =========================================================================
    # Story
    # =========================================================================

    @property
    def current_story(self) -> Optional[Story]:
        if self.current_story_index < 0:
            return None
        return self.story_history[self.current_story_index]

    def get_story_history(self) -> List[Story]:
        return list(self.story_history)

    def _push_story(self, story: Story) -> None:
        self.story_history.append(story)
        self.current_story_index = len(self.story_history) - 1

    def _derive_artifacts(self, story: Story) -> None:
        """Replace characters and scenes with fresh ids taken from ``story``."""
        self.characters = [
            Character(id=generate_id("char"), name=c.name, description=c.description)
            for c in story.characters
        ]
        self.character_history = {c.id: [c] for c in self.characters}

        self.scenes = [
            SceneArtifact(
                id=generate_id("scene"),
                title=scene.title or f"Scene {scene.number}",
                description=scene.description,
            )
            for scene in story.scenes
        ]
        self.scene_history = {s.id: [s] for s in self.scenes}

    async def generate_story(
        self,
        prompt: str,
        scenes: Optional[int] = None,
        style: Optional[str] = None,
        video_length: Optional[str] = None,
    ) -> Story:
        """Draft a new story, append it to history, and re-derive artifacts."""
        writer = self._require_service(self.story_writer, "story writer", "generate_story")
        story = await writer.generate_story(
            prompt,
            scenes=scenes or self.config.story.default_scenes,
            style=style,
            video_length=video_length or self.config.story.video_length,
        )

        self._push_story(story)
        self._derive_artifacts(story)
        self.touch()
        logger.info(f"Session {self.id}: story version {self.current_story_index} generated")
        await self._auto_save()
        return story

    async def improve_story(self, edit_prompt: Optional[str] = None) -> Story:
        """Edit the current story into a new version."""
        current = self.current_story
        if current is None:
            raise InvalidState(
                f"improve_story: session {self.id} has no story. Generate a story first.",
                operation="improve_story",
            )
        writer = self._require_service(self.story_writer, "story writer", "improve_story")

        story = await writer.edit_story(
            current,
            edit_prompt or DEFAULT_IMPROVE_PROMPT,
            video_length=self.config.story.video_length,
        )

        self._push_story(story)
        self._derive_artifacts(story)
        self.touch()
        logger.info(f"Session {self.id}: story version {self.current_story_index} improved")
        await self._auto_save()
        return story

    async def expand_story(self) -> Story:
        """Append a more detailed version of the current story. Artifacts are kept."""
        current = self.current_story
        if current is None:
            raise InvalidState(
                f"expand_story: session {self.id} has no story. Generate a story first.",
                operation="expand_story",
            )
        writer = self._require_service(self.story_writer, "story writer", "expand_story")

        story = await writer.expand_story(current, video_length=self.config.story.video_length)

        self._push_story(story)
        self.touch()
        await self._auto_save()
        return story

    def revert_to_story(self, index: int) -> Story:
        """
        Make ``index`` the current story and discard every later version.

        Raises:
            NotFound: If ``index`` is not a valid history position
        """
        if index < 0 or index >= len(self.story_history):
            raise NotFound(
                f"revert_to_story: session {self.id} has no story version {index}",
                resource_type="story_version",
                resource_id=index,
            )

        discarded = len(self.story_history) - index - 1
        self.story_history = self.story_history[: index + 1]
        self.current_story_index = index
        self.touch()

        if discarded:
            logger.info(f"Session {self.id}: discarded {discarded} story versions after {index}")
        return self.story_history[index]

    def branch_from_history(self, index: int) -> Story:
        """Continue from an earlier version. Later versions are discarded, as in ``revert_to_story``."""
        return self.revert_to_story(index)

    # =========================================================================
    # Characters
    # =========================================================================

    def get_character(self, character_id: str) -> Character:
        for character in self.characters:
            if character.id == character_id:
                return character
        raise NotFound(
            f"Character not found: {character_id} (session {self.id})",
            resource_type="character",
            resource_id=character_id,
        )

    def get_character_history(self, character_id: str) -> List[Character]:
        if character_id not in self.character_history:
            raise NotFound(
                f"Character not found: {character_id} (session {self.id})",
                resource_type="character",
                resource_id=character_id,
            )
        return list(self.character_history[character_id])

    def _record_character(self, updated: Character) -> Character:
        self.characters = [updated if c.id == updated.id else c for c in self.characters]
        self.character_history.setdefault(updated.id, []).append(updated)
        self.touch()
        return updated

    async def enhance_character(self, character_id: str, prompt: Optional[str] = None) -> Character:
        """Append a version of the character with a richer description."""
        character = self.get_character(character_id)
        writer = self._require_service(self.story_writer, "story writer", "enhance_character")

        source = f"{character.description}. Additionally: {prompt}" if prompt else character.description
        enhanced = await writer.enhance_description(source)

        updated = self._record_character(replace(character, enhanced_description=enhanced))
        await self._auto_save()
        return updated

    async def generate_character_image(
        self,
        character_id: str,
        style: Optional[str] = None,
        size: str = "1024x1024",
        quality: Optional[str] = None,
    ) -> Character:
        """Append a version of the character carrying a rendered portrait."""
        character = self.get_character(character_id)
        images = self._require_service(self.image_generator, "image generator", "generate_character_image")

        result = await images.generate_character(
            character.effective_description,
            style=style or self.config.images.character_style,
            size=size,
            quality=quality or self.config.images.quality,
        )

        updated = self._record_character(
            replace(character, image_url=result.image_url, revised_prompt=result.revised_prompt)
        )
        await self._auto_save()
        return updated

    # =========================================================================
    # Scenes
    # =========================================================================

    def get_scene(self, scene_id: str) -> SceneArtifact:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        raise NotFound(
            f"Scene not found: {scene_id} (session {self.id})",
            resource_type="scene",
            resource_id=scene_id,
        )

    def get_scene_history(self, scene_id: str) -> List[SceneArtifact]:
        if scene_id not in self.scene_history:
            raise NotFound(
                f"Scene not found: {scene_id} (session {self.id})",
                resource_type="scene",
                resource_id=scene_id,
            )
        return list(self.scene_history[scene_id])

    def _record_scene(self, updated: SceneArtifact) -> SceneArtifact:
        self.scenes = [updated if s.id == updated.id else s for s in self.scenes]
        self.scene_history.setdefault(updated.id, []).append(updated)
        self.touch()
        return updated

    async def enhance_scene(self, scene_id: str, prompt: Optional[str] = None) -> SceneArtifact:
        scene = self.get_scene(scene_id)
        writer = self._require_service(self.story_writer, "story writer", "enhance_scene")

        source = f"{scene.description}. Additionally: {prompt}" if prompt else scene.description
        enhanced = await writer.enhance_description(source)

        updated = self._record_scene(replace(scene, enhanced_description=enhanced))
        await self._auto_save()
        return updated

    async def generate_scene_image(
        self,
        scene_id: str,
        style: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        size: Optional[str] = None,
        quality: Optional[str] = None,
    ) -> SceneArtifact:
        scene = self.get_scene(scene_id)
        images = self._require_service(self.image_generator, "image generator", "generate_scene_image")

        result = await images.generate_scene(
            scene.effective_description,
            style=style or self.config.images.style,
            aspect_ratio=aspect_ratio or self.config.images.aspect_ratio,
            size=size,
            quality=quality or self.config.images.quality,
        )

        updated = self._record_scene(
            replace(scene, image_url=result.image_url, revised_prompt=result.revised_prompt)
        )
        await self._auto_save()
        return updated

    # =========================================================================
    # Scene pipeline
    # =========================================================================

    def initialize_scene_pipeline(self) -> ScenePipeline:
        """Build a fresh scene pipeline from the current story."""
        self.scene_pipeline = ScenePipeline.initialize(self.current_story, self.current_story_index)
        self.touch()
        return self.scene_pipeline

    def _require_scene_pipeline(self, operation: str) -> ScenePipeline:
        if self.scene_pipeline is None:
            raise InvalidState(
                f"{operation}: session {self.id} has no scene pipeline. Initialize it first.",
                operation=operation,
            )
        return self.scene_pipeline

    @property
    def scene_pipeline_is_stale(self) -> bool:
        return self.scene_pipeline is not None and self.scene_pipeline.is_stale(self.current_story_index)

    def _character_lookup(self) -> Dict[str, Character]:
        return {c.id: c for c in self.characters}

    def _slot_image_options(self, options: Dict[str, Any]) -> Dict[str, Any]:
        merged = {
            "style": self.config.images.style,
            "aspect_ratio": self.config.images.aspect_ratio,
            "size": self.config.images.size,
            "quality": self.config.images.quality,
        }
        merged.update({k: v for k, v in options.items() if v is not None})
        return merged

    def assign_characters_to_slot(self, slot_id: str, character_ids: List[str]) -> SceneSlot:
        pipeline = self._require_scene_pipeline("assign_characters")
        slot = pipeline.assign_characters(slot_id, character_ids, self._character_lookup())
        self.touch()
        return slot

    def set_slot_description(self, slot_id: str, text: Optional[str]) -> SceneSlot:
        pipeline = self._require_scene_pipeline("set_description_override")
        slot = pipeline.set_description_override(slot_id, text)
        self.touch()
        return slot

    def add_slot(self, after_slot_id: Optional[str] = None) -> SceneSlot:
        slot = self._require_scene_pipeline("add_slot").add_slot(after_slot_id)
        self.touch()
        return slot

    def remove_slot(self, slot_id: str) -> SceneSlot:
        slot = self._require_scene_pipeline("remove_slot").remove_slot(slot_id)
        self.touch()
        return slot

    def reorder_slots(self, slot_ids: List[str]) -> None:
        self._require_scene_pipeline("reorder").reorder(slot_ids)
        self.touch()

    def clone_slot(self, slot_id: str) -> SceneSlot:
        slot = self._require_scene_pipeline("clone_slot").clone_slot(slot_id)
        self.touch()
        return slot

    async def generate_slot_image(self, slot_id: str, **options) -> SceneSlot:
        """Render one slot. Failures are recorded on the slot, not raised."""
        pipeline = self._require_scene_pipeline("generate_slot")
        images = self._require_service(self.image_generator, "image generator", "generate_slot")

        slot = await pipeline.generate_slot(
            slot_id, images, self._character_lookup(), **self._slot_image_options(options)
        )
        self.touch()
        await self._auto_save()
        return slot

    async def generate_all_pending_slots(self, **options) -> List[SceneSlot]:
        """Render every pending slot sequentially."""
        pipeline = self._require_scene_pipeline("generate_all_pending")
        images = self._require_service(self.image_generator, "image generator", "generate_all_pending")

        slots = await pipeline.generate_all_pending(
            images, self._character_lookup(), **self._slot_image_options(options)
        )
        self.touch()
        await self._auto_save()
        return slots

    async def regenerate_slot(self, slot_id: str, **options) -> SceneSlot:
        pipeline = self._require_scene_pipeline("regenerate_slot")
        images = self._require_service(self.image_generator, "image generator", "regenerate_slot")

        slot = await pipeline.regenerate_slot(
            slot_id, images, self._character_lookup(), **self._slot_image_options(options)
        )
        self.touch()
        await self._auto_save()
        return slot

    def clear_scene_pipeline(self) -> None:
        self.scene_pipeline = None
        self.touch()

    # =========================================================================
    # Video pipeline
    # =========================================================================

    def initialize_video_pipeline(self) -> VideoPipeline:
        """Snapshot completed scene slots into a fresh video pipeline."""
        story = self.current_story
        self.video_pipeline = VideoPipeline.initialize(
            self.scene_pipeline,
            story_title=story.title if story else None,
        )
        self.touch()
        return self.video_pipeline

    def _require_video_pipeline(self, operation: str) -> VideoPipeline:
        if self.video_pipeline is None:
            raise InvalidState(
                f"{operation}: session {self.id} has no video pipeline. Initialize it first.",
                operation=operation,
            )
        return self.video_pipeline

    async def generate_video(
        self,
        prompt: Optional[str] = None,
        provider: Optional[str] = None,
        image_url: Optional[str] = None,
        duration: Optional[int] = None,
        sound: Optional[bool] = None,
    ) -> JobResult:
        """Submit the video job. Errors propagate after being recorded on the pipeline."""
        pipeline = self._require_video_pipeline("generate_video")
        video = self.config.video
        try:
            return await pipeline.generate(
                self.router,
                prompt=prompt,
                provider=provider or video.provider,
                image_url=image_url,
                duration=duration or video.duration,
                sound=video.sound if sound is None else sound,
            )
        finally:
            self.touch()
            await self._auto_save()

    async def check_video_status(self) -> JobResult:
        result = await self._require_video_pipeline("check_video_status").check_status(self.router)
        self.touch()
        await self._auto_save()
        return result

    async def wait_for_video(
        self,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> JobResult:
        pipeline = self._require_video_pipeline("wait_for_video")
        try:
            return await pipeline.wait_for_completion(
                self.router, poll_interval=poll_interval, timeout=timeout
            )
        finally:
            self.touch()
            await self._auto_save()

    def reset_video_pipeline(self) -> None:
        self._require_video_pipeline("reset_video").reset()
        self.touch()

    def clear_video_pipeline(self) -> None:
        self.video_pipeline = None
        self.touch()

    # =========================================================================
    # Blobs
    # =========================================================================

    async def save_image(self, data: bytes, extension: str = ".png") -> str:
        """Store generated image bytes under this session's blob directory."""
        blobs = self._require_service(self.blobs, "blob store", "save_image")
        return await blobs.save(self.id, data, extension)

    def list_images(self) -> List[str]:
        if self.blobs is None:
            return []
        return self.blobs.list_owner(self.id)

    # =========================================================================
    # Persistence
    # =========================================================================

    def metadata(self) -> Dict[str, Any]:
        """Summary used for listings and the index document."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": datetime_to_str(self.created_at),
            "updated_at": datetime_to_str(self.updated_at),
            "last_opened_at": datetime_to_str(self.last_opened_at),
            "story_count": len(self.story_history),
            "character_count": len(self.characters),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "story_history": [s.to_dict() for s in self.story_history],
            "current_story_index": self.current_story_index,
            "characters": [c.to_dict() for c in self.characters],
            "character_history": history_to_pairs(self.character_history, Character.to_dict),
            "scenes": [s.to_dict() for s in self.scenes],
            "scene_history": history_to_pairs(self.scene_history, SceneArtifact.to_dict),
            "scene_pipeline": self.scene_pipeline.to_dict() if self.scene_pipeline else None,
            "video_pipeline": self.video_pipeline.to_dict() if self.video_pipeline else None,
            "created_at": datetime_to_str(self.created_at),
            "updated_at": datetime_to_str(self.updated_at),
            "last_opened_at": datetime_to_str(self.last_opened_at),
        }

    def apply_dict(self, data: Dict[str, Any]) -> None:
        """Replace this session's state with a serialized snapshot."""
        try:
            now = datetime.now()
            story_history = [Story.from_dict(s) for s in data.get("story_history") or []]
            current_index = data.get("current_story_index", -1)
            if current_index >= len(story_history):
                raise ValueError(f"current_story_index {current_index} out of range")

            scene_pipeline = data.get("scene_pipeline")
            video_pipeline = data.get("video_pipeline")

            self.name = data.get("name")
            self.description = data.get("description")
            self.story_history = story_history
            self.current_story_index = current_index
            self.characters = [Character.from_dict(c) for c in data.get("characters") or []]
            self.character_history = pairs_to_history(data.get("character_history"), Character.from_dict)
            self.scenes = [SceneArtifact.from_dict(s) for s in data.get("scenes") or []]
            self.scene_history = pairs_to_history(data.get("scene_history"), SceneArtifact.from_dict)
            self.scene_pipeline = ScenePipeline.from_dict(scene_pipeline) if scene_pipeline else None
            self.video_pipeline = VideoPipeline.from_dict(video_pipeline) if video_pipeline else None
            self.created_at = datetime_from_str(data.get("created_at"), now)
            self.updated_at = datetime_from_str(data.get("updated_at"), now)
            self.last_opened_at = datetime_from_str(data.get("last_opened_at"), self.updated_at)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"load: document {self.key} is malformed: {e}", key=self.key) from e

        # Let status lookups find the provider of an outstanding job
        if self.video_pipeline and self.video_pipeline.current_job_id and self.video_pipeline.provider:
            self.router.remember(self.video_pipeline.current_job_id, self.video_pipeline.provider)

    async def save(self) -> None:
        """Write the snapshot and refresh this session's index entry."""
        await self.storage.save(self.key, self.to_dict())
        await SummaryIndex(self.storage, self.namespace).upsert(self.id, self.metadata())
        logger.debug(f"Saved {self.key}")

    async def load(self) -> None:
        """
        Replace in-memory state with the stored snapshot.

        Raises:
            NotFound: Nothing is stored under this id
            StorageError: The stored document cannot be decoded
        """
        data = await self.storage.load(self.key)
        self.apply_dict(data)
        logger.debug(f"Loaded {self.key}")
