"""
Tests for the scene pipeline state machine.
"""

import pytest

from sidvid.core.exceptions import InvalidState, NotFound
from sidvid.models.artifacts import Character
from sidvid.workflow.scene_pipeline import ScenePipeline, SlotStatus

from conftest import FakeImageService, make_story


@pytest.fixture
def pipeline(story):
    return ScenePipeline.initialize(story, 0)


@pytest.fixture
def characters():
    return {
        "char-1": Character(id="char-1", name="Mara", description="keeper"),
        "char-2": Character(id="char-2", name="Whale", description="humpback", enhanced_description="scarred humpback"),
    }


class TestInitialize:

    @pytest.mark.parametrize("scene_count", [1, 3, 7])
    def test_one_pending_slot_per_scene(self, scene_count):
        story = make_story(scenes=scene_count)
        pipeline = ScenePipeline.initialize(story, 2)

        assert len(pipeline.slots) == scene_count
        assert all(slot.status == SlotStatus.PENDING for slot in pipeline.slots)
        assert [slot.source_scene_index for slot in pipeline.slots] == list(range(scene_count))
        assert len({slot.id for slot in pipeline.slots}) == scene_count
        assert pipeline.source_story_index == 2

    def test_requires_story(self):
        with pytest.raises(InvalidState):
            ScenePipeline.initialize(None, -1)

    def test_staleness(self, pipeline):
        assert not pipeline.is_stale(0)
        assert pipeline.is_stale(1)


class TestStructuralEdits:

    def test_add_slot_at_end(self, pipeline):
        slot = pipeline.add_slot()

        assert pipeline.slots[-1] is slot
        assert slot.is_manual
        assert slot.source_scene.number == 4
        assert slot.source_scene.description == ""

    def test_add_slot_after(self, pipeline):
        first = pipeline.slots[0]
        slot = pipeline.add_slot(after_slot_id=first.id)
        assert pipeline.slots[1] is slot

    def test_remove_slot(self, pipeline):
        removed = pipeline.remove_slot(pipeline.slots[1].id)

        assert len(pipeline.slots) == 2
        assert removed.id not in {s.id for s in pipeline.slots}
        with pytest.raises(NotFound):
            pipeline.get_slot(removed.id)

    def test_reorder(self, pipeline):
        ids = [s.id for s in pipeline.slots]
        pipeline.reorder(list(reversed(ids)))
        assert [s.id for s in pipeline.slots] == list(reversed(ids))

    def test_reorder_unknown_id(self, pipeline):
        ids = [s.id for s in pipeline.slots]
        with pytest.raises(NotFound):
            pipeline.reorder(ids[:-1] + ["slot-missing"])

    def test_reorder_requires_every_id_once(self, pipeline):
        ids = [s.id for s in pipeline.slots]
        with pytest.raises(InvalidState):
            pipeline.reorder(ids[:-1])
        with pytest.raises(InvalidState):
            pipeline.reorder(ids + [ids[0]])

    @pytest.mark.asyncio
    async def test_clone_copies_image_value(self, pipeline, characters):
        source = pipeline.slots[0]
        await pipeline.generate_slot(source.id, FakeImageService(), characters)

        clone = pipeline.clone_slot(source.id)

        assert pipeline.slots[1] is clone
        assert clone.id != source.id
        assert clone.generated_image == source.generated_image
        clone.assigned_character_ids.append("char-1")
        assert source.assigned_character_ids == []

    def test_assign_characters(self, pipeline, characters):
        slot = pipeline.assign_characters(pipeline.slots[0].id, ["char-2", "char-1"], characters)
        assert slot.assigned_character_ids == ["char-2", "char-1"]
        assert slot.status == SlotStatus.PENDING

    def test_assign_unknown_character(self, pipeline, characters):
        with pytest.raises(NotFound):
            pipeline.assign_characters(pipeline.slots[0].id, ["char-9"], characters)

    def test_unknown_slot(self, pipeline):
        with pytest.raises(NotFound):
            pipeline.set_description_override("slot-missing", "x")


class TestComposePrompt:

    def test_override_and_characters(self, pipeline, characters):
        slot = pipeline.slots[0]
        pipeline.set_description_override(slot.id, "Storm over the rock")
        pipeline.assign_characters(slot.id, ["char-1", "char-2"], characters)

        prompt = pipeline.compose_prompt(slot.id, characters)

        assert prompt == "Storm over the rock. Characters in scene: keeper. scarred humpback"

    def test_deleted_character_is_skipped(self, pipeline, characters):
        slot = pipeline.slots[0]
        pipeline.assign_characters(slot.id, ["char-1", "char-2"], characters)
        del characters["char-1"]

        prompt = pipeline.compose_prompt(slot.id, characters)

        assert prompt == f"{slot.source_scene.description}. Characters in scene: scarred humpback"

    def test_clearing_override_restores_scene(self, pipeline):
        slot = pipeline.slots[0]
        pipeline.set_description_override(slot.id, "Override")
        pipeline.set_description_override(slot.id, None)
        assert pipeline.compose_prompt(slot.id, {}) == slot.source_scene.description


class TestGeneration:

    @pytest.mark.asyncio
    async def test_generate_slot(self, pipeline, characters):
        service = FakeImageService()
        slot = pipeline.slots[1]

        await pipeline.generate_slot(slot.id, service, characters, style="anime")

        assert slot.status == SlotStatus.COMPLETED
        assert slot.generated_image.image_url == "https://images.test/scene-1.png"
        assert slot.generated_image.description == slot.source_scene.description
        description, options = service.scene_calls[0]
        assert options["style"] == "anime"
        assert options["size"] == "1792x1024"

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self, pipeline):
        service = FakeImageService(fail_on="scene 2")
        slot = pipeline.slots[1]

        await pipeline.generate_slot(slot.id, service, {})

        assert slot.status == SlotStatus.FAILED
        assert slot.error == "content policy violation"
        assert slot.generated_image is None

    @pytest.mark.asyncio
    async def test_generate_all_pending_continues_after_failure(self, pipeline):
        service = FakeImageService(fail_on="scene 2")

        results = await pipeline.generate_all_pending(service, {})

        assert [s.status for s in results] == [SlotStatus.COMPLETED, SlotStatus.FAILED, SlotStatus.COMPLETED]
        assert len(pipeline.completed_slots()) == 2
        assert pipeline.pending_slots() == []

    @pytest.mark.asyncio
    async def test_regenerate_replaces_image_and_clears_error(self, pipeline):
        slot = pipeline.slots[1]
        await pipeline.generate_slot(slot.id, FakeImageService(fail_on="scene 2"), {})
        assert slot.status == SlotStatus.FAILED

        service = FakeImageService()
        await pipeline.generate_slot(pipeline.slots[0].id, service, {})
        await pipeline.regenerate_slot(slot.id, service, {})

        assert slot.status == SlotStatus.COMPLETED
        assert slot.error is None
        assert slot.generated_image.image_url == "https://images.test/scene-2.png"

    @pytest.mark.asyncio
    async def test_regenerate_completed_slot_gets_fresh_image(self, pipeline):
        service = FakeImageService()
        slot = pipeline.slots[0]
        await pipeline.generate_slot(slot.id, service, {})
        first = slot.generated_image

        await pipeline.regenerate_slot(slot.id, service, {})

        assert slot.status == SlotStatus.COMPLETED
        assert slot.generated_image is not first
        assert slot.generated_image.image_url != first.image_url


class TestSerialization:

    @pytest.mark.asyncio
    async def test_round_trip(self, pipeline, characters):
        pipeline.assign_characters(pipeline.slots[0].id, ["char-1"], characters)
        await pipeline.generate_slot(pipeline.slots[0].id, FakeImageService(), characters)
        pipeline.add_slot()

        restored = ScenePipeline.from_dict(pipeline.to_dict())

        assert restored.to_dict() == pipeline.to_dict()
        assert restored.slots[0].generated_image == pipeline.slots[0].generated_image
        assert restored.slots[-1].is_manual
