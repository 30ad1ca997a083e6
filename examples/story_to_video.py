#!/usr/bin/env python3
"""
Story To Video Example
======================

Prompt -> story -> scene images -> video, using the mock video provider so
only an OpenAI key is needed.
"""

import asyncio
import logging
import os

from sidvid import SidVid, Config


async def main():
    """Run the whole flow in one session."""

    if not os.getenv("OPENAI_API_KEY"):
        print("Please set OPENAI_API_KEY environment variable")
        return

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = Config.from_dict({
        "openai": {"api_key": os.environ["OPENAI_API_KEY"]},
        "mock": {"duration_seconds": 10},
        "video": {"provider": "mock", "poll_interval": 2},
        "storage": {"backend": "file", "base_path": "output/data", "blob_path": "output/images"},
    })

    async with SidVid(config) as sidvid:
        sessions = sidvid.session_manager()
        session = sessions.create_session("Lighthouse")

        print("=== Story ===")
        story = await session.generate_story(
            "A lonely lighthouse keeper befriends a whale during a storm",
            scenes=3,
            video_length="15s",
        )
        print(f"Title: {story.title}")
        for scene in story.scenes:
            print(f"  {scene.number}. {scene.description}")

        print("\n=== Scene images ===")
        pipeline = session.initialize_scene_pipeline()
        if session.characters:
            first = session.characters[0]
            session.assign_characters_to_slot(pipeline.slots[0].id, [first.id])

        for slot in await session.generate_all_pending_slots():
            if slot.generated_image:
                print(f"  {slot.id}: {slot.generated_image.image_url}")
            else:
                print(f"  {slot.id}: failed ({slot.error})")

        print("\n=== Video ===")
        session.initialize_video_pipeline()
        submitted = await session.generate_video()
        print(f"Job: {submitted.job_id}")

        result = await session.wait_for_video()
        print(f"Video URL: {result.result_url}")

        await sessions.save_session(session.id)
        print(f"\nSaved session {session.id}")


if __name__ == "__main__":
    asyncio.run(main())
