"""
Story Models
============

Immutable story records produced by the language model. Edits and
expansions produce a new ``Story``; nothing here is mutated in place.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any


@dataclass(frozen=True)
class StoryScene:
    """One numbered scene of a story."""

    number: int
    description: str
    title: Optional[str] = None
    dialogue: Optional[str] = None
    action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "description": self.description,
            "title": self.title,
            "dialogue": self.dialogue,
            "action": self.action,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryScene":
        return cls(
            number=int(data["number"]),
            description=data.get("description") or "",
            title=data.get("title"),
            dialogue=data.get("dialogue"),
            action=data.get("action"),
        )


@dataclass(frozen=True)
class StoryCharacter:
    """A character as written into the story."""

    name: str
    description: str
    physical: Optional[str] = None  # used for image generation
    profile: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "physical": self.physical,
            "profile": self.profile,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryCharacter":
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            physical=data.get("physical"),
            profile=data.get("profile"),
        )


@dataclass(frozen=True)
class StoryLocation:
    """A setting that appears in the story."""

    name: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryLocation":
        return cls(name=data.get("name") or "", description=data.get("description") or "")


@dataclass(frozen=True)
class StorySceneVisual:
    """How a scene looks as a still image."""

    scene_number: int
    setting: str = ""
    characters_present: Tuple[str, ...] = ()
    visual_description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_number": self.scene_number,
            "setting": self.setting,
            "characters_present": list(self.characters_present),
            "visual_description": self.visual_description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorySceneVisual":
        return cls(
            scene_number=int(data["scene_number"]),
            setting=data.get("setting") or "",
            characters_present=tuple(data.get("characters_present") or ()),
            visual_description=data.get("visual_description") or "",
        )


@dataclass(frozen=True)
class Story:
    """
    A complete story version.

    ``raw_text`` keeps the model's original completion so later edits can be
    grounded on exactly what was generated.
    """

    title: str
    scenes: Tuple[StoryScene, ...]
    raw_text: str = ""
    characters: Tuple[StoryCharacter, ...] = ()
    locations: Tuple[StoryLocation, ...] = ()
    scene_visuals: Tuple[StorySceneVisual, ...] = ()

    @property
    def scene_count(self) -> int:
        return len(self.scenes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "scenes": [s.to_dict() for s in self.scenes],
            "raw_text": self.raw_text,
            "characters": [c.to_dict() for c in self.characters],
            "locations": [loc.to_dict() for loc in self.locations],
            "scene_visuals": [v.to_dict() for v in self.scene_visuals],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Story":
        return cls(
            title=data["title"],
            scenes=tuple(StoryScene.from_dict(s) for s in data.get("scenes") or []),
            raw_text=data.get("raw_text") or "",
            characters=tuple(StoryCharacter.from_dict(c) for c in data.get("characters") or []),
            locations=tuple(StoryLocation.from_dict(loc) for loc in data.get("locations") or []),
            scene_visuals=tuple(
                StorySceneVisual.from_dict(v) for v in data.get("scene_visuals") or []
            ),
        )
