"""
Story Writer
============

Language-model client that drafts, edits, and expands stories.

Completions are requested in JSON mode and parsed into immutable ``Story``
records. A completion that cannot be parsed surfaces as
``InvalidProviderResponse``; it never crashes the caller.
"""

import json
import logging
from typing import Optional, Dict, Any, List

import openai
from openai import AsyncOpenAI

from ..core.exceptions import ProviderError, InvalidProviderResponse, ValidationError
from ..core.security import redact_api_key, truncate_for_log
from ..models.story import Story, StoryScene, StoryCharacter, StoryLocation, StorySceneVisual
from ..utils.story_helpers import get_complexity_guidance

logger = logging.getLogger(__name__)

PROVIDER = "OpenAI"

STORY_FORMAT = """{
  "title": "Story Title",
  "scenes": [{"number": 1, "description": "...", "dialogue": "...", "action": "..."}],
  "characters": [{"name": "...", "description": "...", "physical": "...", "profile": "..."}],
  "locations": [{"name": "...", "description": "..."}],
  "sceneVisuals": [{"sceneNumber": 1, "setting": "...", "charactersPresent": ["..."], "visualDescription": "..."}]
}"""

WRITER_SYSTEM_PROMPT = f"""You write short, highly visual stories for video production.
Respond with a single JSON object in this format:
{STORY_FORMAT}
Character "physical" fields and location descriptions are used for image generation."""

EDITOR_SYSTEM_PROMPT = """You edit existing stories for video production.
Apply the requested change as a modification: keep the title, the number of
scenes, and the characters unless the instruction says otherwise."""

EXPANDER_SYSTEM_PROMPT = """You are a screenwriter expanding an existing story.
Give every field several times more visual detail while keeping the title,
scene count, characters, genre, and tone."""


def parse_story(content: Optional[str], operation: str) -> Story:
    """
    Parse a JSON completion into a ``Story``.

    Raises:
        InvalidProviderResponse: Empty content, invalid JSON, or missing title/scenes
    """
    if not content:
        raise InvalidProviderResponse(
            f"{operation}: language model returned no content",
            provider=PROVIDER,
            operation=operation,
        )

    try:
        data = json.loads(content)
    except ValueError as e:
        logger.error(f"{operation}: failed to parse story JSON: {e}")
        raise InvalidProviderResponse(
            f"{operation}: language model returned invalid JSON",
            provider=PROVIDER,
            response_body=content,
            operation=operation,
        ) from e

    if not isinstance(data, dict) or not data.get("title") or not isinstance(data.get("scenes"), list):
        raise InvalidProviderResponse(
            f"{operation}: story JSON is missing title or scenes",
            provider=PROVIDER,
            response_body=content,
            operation=operation,
        )

    try:
        scenes = tuple(
            StoryScene(
                number=int(scene.get("number") or index + 1),
                description=scene.get("description") or "",
                title=scene.get("title"),
                dialogue=scene.get("dialogue"),
                action=scene.get("action"),
            )
            for index, scene in enumerate(data["scenes"])
        )
        characters = tuple(StoryCharacter.from_dict(c) for c in data.get("characters") or [])
        locations = tuple(StoryLocation.from_dict(loc) for loc in data.get("locations") or [])
        visuals = tuple(
            StorySceneVisual(
                scene_number=int(v.get("sceneNumber") or 0),
                setting=v.get("setting") or "",
                characters_present=tuple(v.get("charactersPresent") or ()),
                visual_description=v.get("visualDescription") or "",
            )
            for v in data.get("sceneVisuals") or []
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise InvalidProviderResponse(
            f"{operation}: story JSON has malformed entries: {e}",
            provider=PROVIDER,
            response_body=content,
            operation=operation,
        ) from e

    return Story(
        title=data["title"],
        scenes=scenes,
        raw_text=content,
        characters=characters,
        locations=locations,
        scene_visuals=visuals,
    )


class StoryWriter:
    """
    Story generation through the OpenAI chat completions API.

    Usage:
        writer = StoryWriter(api_key="sk-...")
        story = await writer.generate_story("A fox learns to fly", scenes=3)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        max_tokens: int = 2000,
        request_timeout: float = 120.0,
        client: Optional[Any] = None,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Chat model name
            max_tokens: Default completion budget for stories
            request_timeout: Per-request timeout in seconds
            client: Pre-built ``AsyncOpenAI``-compatible client
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.request_timeout)
        return self._client

    async def _complete(
        self,
        messages: List[Dict[str, str]],
        operation: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool = True,
    ) -> Optional[str]:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            completion = await self._get_client().chat.completions.create(**params)
        except openai.APIStatusError as e:
            raise ProviderError(
                f"{operation} failed: {redact_api_key(str(e))}",
                provider=PROVIDER,
                status_code=e.status_code,
                operation=operation,
            ) from e
        except openai.APIError as e:
            raise ProviderError(
                f"{operation} failed: {redact_api_key(str(e))}",
                provider=PROVIDER,
                operation=operation,
            ) from e

        if not completion.choices:
            return None
        return completion.choices[0].message.content

    async def generate_story(
        self,
        prompt: str,
        scenes: int = 5,
        style: Optional[str] = None,
        video_length: str = "5s",
        max_tokens: Optional[int] = None,
    ) -> Story:
        """
        Draft a new story.

        Args:
            prompt: What the story is about
            scenes: Number of scenes to write
            style: Optional style hint
            video_length: Target video length such as "30s"
            max_tokens: Override the default completion budget

        Returns:
            Parsed Story
        """
        if not prompt or not prompt.strip():
            raise ValidationError("generate_story requires a prompt", field="prompt")
        if scenes < 1:
            raise ValidationError(
                f"generate_story requires at least one scene, got {scenes}",
                field="scenes",
                value=scenes,
            )

        user_prompt = (
            f"Create a {scenes}-scene story for a {video_length} video about: {prompt}\n\n"
            f"{get_complexity_guidance(video_length)}\n\n"
            + (f"Style: {style}\n\n" if style else "")
            + f"The entire story must fit within a {video_length} video.\nReturn only valid JSON."
        )

        logger.info(f"Generating {scenes}-scene story: {truncate_for_log(prompt)}")
        content = await self._complete(
            [
                {"role": "system", "content": WRITER_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            operation="generate_story",
            temperature=1.0,
            max_tokens=max_tokens or self.max_tokens,
        )
        return parse_story(content, "generate_story")

    async def edit_story(
        self,
        story: Story,
        edit_prompt: str,
        video_length: str = "5s",
        max_tokens: Optional[int] = None,
    ) -> Story:
        """Apply an edit instruction to a story and return the new version."""
        if not edit_prompt or not edit_prompt.strip():
            raise ValidationError("edit_story requires an edit prompt", field="edit_prompt")

        user_prompt = (
            f'CURRENT STORY (Title: "{story.title}"):\n{story.raw_text}\n\n'
            f"EDIT INSTRUCTION: {edit_prompt}\n\n"
            f"Keep the {story.scene_count} scenes unless asked to add or remove scenes.\n"
            f"{get_complexity_guidance(video_length)}\n\n"
            f"Return the edited story as JSON in this format:\n{STORY_FORMAT}"
        )

        logger.info(f"Editing story '{story.title}': {truncate_for_log(edit_prompt)}")
        content = await self._complete(
            [
                {"role": "system", "content": EDITOR_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            operation="edit_story",
            temperature=0.5,
            max_tokens=max_tokens or self.max_tokens,
        )
        return parse_story(content, "edit_story")

    async def expand_story(
        self,
        story: Story,
        video_length: str = "5s",
        max_tokens: int = 4000,
    ) -> Story:
        """Return a much more detailed version of a story."""
        user_prompt = (
            f"CURRENT STORY:\n{story.raw_text}\n\n"
            f"Expand every scene, character, location and scene visual with more "
            f"vivid detail. The entire story must fit within a {video_length} video.\n\n"
            f"Return the expanded story as JSON in this format:\n{STORY_FORMAT}"
        )

        logger.info(f"Expanding story '{story.title}'")
        content = await self._complete(
            [
                {"role": "system", "content": EXPANDER_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            operation="expand_story",
            temperature=0.7,
            max_tokens=max_tokens,
        )
        return parse_story(content, "expand_story")

    async def enhance_description(self, description: str, max_tokens: int = 1000) -> str:
        """
        Rewrite a short character or scene description into a richer one.

        Returns:
            Plain-text description
        """
        if not description or not description.strip():
            raise ValidationError("enhance_description requires a description", field="description")

        prompt = (
            "Rewrite the following description about four to five times longer, "
            "adding a fitting name if none is given. Match the genre if you can "
            f"detect one.\n\nInput: {description}"
        )
        content = await self._complete(
            [{"role": "user", "content": prompt}],
            operation="enhance_description",
            temperature=0.8,
            max_tokens=max_tokens,
            json_mode=False,
        )
        if not content:
            raise InvalidProviderResponse(
                "enhance_description: language model returned no content",
                provider=PROVIDER,
                operation="enhance_description",
            )
        return content.strip()

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
