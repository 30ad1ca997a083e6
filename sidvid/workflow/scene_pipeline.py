"""
Scene Pipeline
==============

Maps an ordered list of story scenes onto image-generation slots.

Each slot is generated, regenerated, or overridden on its own. Slot ids
are the only stable handle: reordering, cloning, or removing other slots
never changes an id.

State machine per slot:
    pending -> generating -> completed | failed
    regenerate: any -> pending -> generating -> ...

Generation failures are recorded on the slot and never re-raised, so one
failing scene cannot abort a batch. Callers inspect ``slot.status``.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Mapping

from ..core.exceptions import NotFound, InvalidState
from ..models.artifacts import Character, GeneratedImage
from ..models.story import Story, StoryScene
from ..utils.ids import generate_id
from ..utils.serialization import datetime_to_str, datetime_from_str

logger = logging.getLogger(__name__)


class SlotStatus(Enum):
    """Generation state of a scene slot."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


# Defaults for scene images generated from slots
DEFAULT_SLOT_IMAGE_OPTIONS: Dict[str, Any] = {
    "style": "cinematic",
    "aspect_ratio": "16:9",
    "size": "1792x1024",
    "quality": "standard",
}


@dataclass
class SceneSlot:
    """One unit of the scene pipeline."""

    id: str
    source_scene_index: int  # -1 for slots added manually
    source_scene: StoryScene
    assigned_character_ids: List[str] = field(default_factory=list)
    description_override: Optional[str] = None
    status: SlotStatus = SlotStatus.PENDING
    generated_image: Optional[GeneratedImage] = None
    error: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.source_scene_index == -1

    @property
    def base_description(self) -> str:
        return self.description_override or self.source_scene.description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_scene_index": self.source_scene_index,
            "source_scene": self.source_scene.to_dict(),
            "assigned_character_ids": list(self.assigned_character_ids),
            "description_override": self.description_override,
            "status": self.status.value,
            "generated_image": self.generated_image.to_dict() if self.generated_image else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SceneSlot":
        image = data.get("generated_image")
        return cls(
            id=data["id"],
            source_scene_index=data.get("source_scene_index", -1),
            source_scene=StoryScene.from_dict(data["source_scene"]),
            assigned_character_ids=list(data.get("assigned_character_ids") or []),
            description_override=data.get("description_override"),
            status=SlotStatus(data.get("status", "pending")),
            generated_image=GeneratedImage.from_dict(image) if image else None,
            error=data.get("error"),
        )


@dataclass
class ScenePipeline:
    """
    Ordered, stateful collection of scene slots.

    ``source_story_index`` pins the pipeline to one story-history entry so a
    session can tell when the story has moved on underneath it.
    """

    source_story_index: int
    slots: List[SceneSlot] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def initialize(cls, story: Optional[Story], story_index: int) -> "ScenePipeline":
        """
        Build one pending slot per story scene.

        Raises:
            InvalidState: If there is no current story
        """
        if story is None or story_index < 0:
            raise InvalidState(
                "initialize_scene_pipeline: no current story. Generate a story first.",
                operation="initialize_scene_pipeline",
            )

        slots = [
            SceneSlot(
                id=generate_id("slot"),
                source_scene_index=index,
                source_scene=scene,
            )
            for index, scene in enumerate(story.scenes)
        ]
        logger.info(f"Scene pipeline initialized with {len(slots)} slots from story {story_index}")
        return cls(source_story_index=story_index, slots=slots)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def _index_of(self, slot_id: str, operation: str = "get_slot") -> int:
        for index, slot in enumerate(self.slots):
            if slot.id == slot_id:
                return index
        raise NotFound(
            f"{operation}: scene slot not found: {slot_id}",
            resource_type="scene_slot",
            resource_id=slot_id,
        )

    def get_slot(self, slot_id: str) -> SceneSlot:
        return self.slots[self._index_of(slot_id)]

    def _touch(self) -> None:
        self.updated_at = datetime.now()

    def completed_slots(self) -> List[SceneSlot]:
        return [s for s in self.slots if s.status == SlotStatus.COMPLETED and s.generated_image]

    def pending_slots(self) -> List[SceneSlot]:
        return [s for s in self.slots if s.status == SlotStatus.PENDING]

    def is_stale(self, current_story_index: int) -> bool:
        """True when the session's current story is not the one this pipeline was built from."""
        return self.source_story_index != current_story_index

    # -------------------------------------------------------------------------
    # Structural edits
    # -------------------------------------------------------------------------

    def assign_characters(
        self,
        slot_id: str,
        character_ids: List[str],
        known_character_ids: Iterable[str],
    ) -> SceneSlot:
        """
        Replace the characters assigned to a slot. Status is unchanged.

        Raises:
            NotFound: Unknown slot id or character id
        """
        slot = self.slots[self._index_of(slot_id, "assign_characters")]

        known = set(known_character_ids)
        for character_id in character_ids:
            if character_id not in known:
                raise NotFound(
                    f"assign_characters: character not found: {character_id} (slot {slot_id})",
                    resource_type="character",
                    resource_id=character_id,
                )

        slot.assigned_character_ids = list(character_ids)
        self._touch()
        return slot

    def set_description_override(self, slot_id: str, text: Optional[str]) -> SceneSlot:
        """Override (or, with ``None``, restore) the slot's scene description."""
        slot = self.slots[self._index_of(slot_id, "set_description_override")]
        slot.description_override = text
        self._touch()
        return slot

    def add_slot(self, after_slot_id: Optional[str] = None) -> SceneSlot:
        """Insert an empty manual slot at the end or after ``after_slot_id``."""
        new_slot = SceneSlot(
            id=generate_id("slot"),
            source_scene_index=-1,
            source_scene=StoryScene(number=len(self.slots) + 1, description=""),
        )

        if after_slot_id is None:
            self.slots.append(new_slot)
        else:
            index = self._index_of(after_slot_id, "add_slot")
            self.slots.insert(index + 1, new_slot)

        self._touch()
        return new_slot

    def remove_slot(self, slot_id: str) -> SceneSlot:
        index = self._index_of(slot_id, "remove_slot")
        removed = self.slots.pop(index)
        self._touch()
        return removed

    def reorder(self, slot_ids: List[str]) -> None:
        """
        Put slots in the given order.

        Raises:
            NotFound: An id does not belong to this pipeline
            InvalidState: The id list is not exactly the current slot set
        """
        by_id = {slot.id: slot for slot in self.slots}
        for slot_id in slot_ids:
            if slot_id not in by_id:
                raise NotFound(
                    f"reorder: scene slot not found: {slot_id}",
                    resource_type="scene_slot",
                    resource_id=slot_id,
                )

        if len(slot_ids) != len(self.slots) or set(slot_ids) != set(by_id):
            raise InvalidState(
                f"reorder: expected each of the {len(self.slots)} slot ids exactly once, "
                f"got {len(slot_ids)}",
                operation="reorder",
            )

        self.slots = [by_id[slot_id] for slot_id in slot_ids]
        self._touch()

    def clone_slot(self, slot_id: str) -> SceneSlot:
        """Copy a slot, including its image record, into a new slot right after it."""
        index = self._index_of(slot_id, "clone_slot")
        clone = copy.deepcopy(self.slots[index])
        clone.id = generate_id("slot")
        self.slots.insert(index + 1, clone)
        self._touch()
        return clone

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def compose_prompt(self, slot_id: str, characters: Mapping[str, Character]) -> str:
        """
        Final image prompt for a slot.

        The override (or the story scene description), followed by the
        enhanced-or-base description of every assigned character that still
        exists.
        """
        slot = self.slots[self._index_of(slot_id, "compose_prompt")]
        description = slot.base_description

        descriptions = [
            characters[cid].effective_description
            for cid in slot.assigned_character_ids
            if cid in characters
        ]
        if descriptions:
            description = f"{description}. Characters in scene: {'. '.join(descriptions)}"
        return description

    async def generate_slot(
        self,
        slot_id: str,
        image_service,
        characters: Mapping[str, Character],
        **options,
    ) -> SceneSlot:
        """
        Render one slot.

        Any error from the image service marks the slot ``failed`` with the
        error message; it is not re-raised.

        Args:
            slot_id: Slot to render
            image_service: Object with an async ``generate_scene(description, **options)``
            characters: Character id -> current character record
            **options: Image options (style, aspect_ratio, size, quality)

        Returns:
            The updated slot

        Raises:
            NotFound: Unknown slot id
        """
        description = self.compose_prompt(slot_id, characters)
        slot = self.get_slot(slot_id)

        slot.status = SlotStatus.GENERATING
        slot.error = None
        self._touch()

        image_options = {**DEFAULT_SLOT_IMAGE_OPTIONS, **options}
        try:
            result = await image_service.generate_scene(description, **image_options)
        except Exception as e:
            logger.warning(f"Scene slot {slot_id} generation failed: {e}")
            slot.status = SlotStatus.FAILED
            slot.error = str(e) or "Generation failed"
        else:
            slot.status = SlotStatus.COMPLETED
            slot.generated_image = GeneratedImage(
                image_url=result.image_url,
                description=description,
                revised_prompt=result.revised_prompt,
            )
            slot.error = None
            logger.info(f"Scene slot {slot_id} completed")

        self._touch()
        return slot

    async def generate_all_pending(
        self,
        image_service,
        characters: Mapping[str, Character],
        **options,
    ) -> List[SceneSlot]:
        """Render every pending slot one after another."""
        results = []
        for slot in self.pending_slots():
            results.append(await self.generate_slot(slot.id, image_service, characters, **options))
        return results

    async def regenerate_slot(
        self,
        slot_id: str,
        image_service,
        characters: Mapping[str, Character],
        **options,
    ) -> SceneSlot:
        """Clear a slot's image and error, then render it again."""
        slot = self.slots[self._index_of(slot_id, "regenerate_slot")]
        slot.status = SlotStatus.PENDING
        slot.generated_image = None
        slot.error = None
        return await self.generate_slot(slot_id, image_service, characters, **options)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_story_index": self.source_story_index,
            "slots": [slot.to_dict() for slot in self.slots],
            "created_at": datetime_to_str(self.created_at),
            "updated_at": datetime_to_str(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenePipeline":
        now = datetime.now()
        return cls(
            source_story_index=data["source_story_index"],
            slots=[SceneSlot.from_dict(s) for s in data.get("slots") or []],
            created_at=datetime_from_str(data.get("created_at"), now),
            updated_at=datetime_from_str(data.get("updated_at"), now),
        )
