"""
Artifact Models
===============

Characters, scenes and generated images tracked by a session.

Each artifact record is a value: enhancing a character or rendering its
image produces a new record that is appended to that id's history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from ..utils.serialization import datetime_to_str, datetime_from_str


@dataclass(frozen=True)
class ImageResult:
    """What an image service returns for one request."""

    image_url: str
    revised_prompt: Optional[str] = None


@dataclass(frozen=True)
class GeneratedImage:
    """An image stored on a scene slot, with the prompt that produced it."""

    image_url: str
    description: str
    revised_prompt: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image_url": self.image_url,
            "description": self.description,
            "revised_prompt": self.revised_prompt,
            "created_at": datetime_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedImage":
        return cls(
            image_url=data["image_url"],
            description=data.get("description") or "",
            revised_prompt=data.get("revised_prompt"),
            created_at=datetime_from_str(data.get("created_at"), datetime.now()),
        )


@dataclass(frozen=True)
class Character:
    """A character artifact derived from the current story."""

    id: str
    name: str
    description: str
    enhanced_description: Optional[str] = None
    image_url: Optional[str] = None
    revised_prompt: Optional[str] = None

    @property
    def effective_description(self) -> str:
        return self.enhanced_description or self.description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "enhanced_description": self.enhanced_description,
            "image_url": self.image_url,
            "revised_prompt": self.revised_prompt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Character":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            description=data.get("description") or "",
            enhanced_description=data.get("enhanced_description"),
            image_url=data.get("image_url"),
            revised_prompt=data.get("revised_prompt"),
        )


@dataclass(frozen=True)
class SceneArtifact:
    """A scene artifact derived from the current story."""

    id: str
    title: str
    description: str
    enhanced_description: Optional[str] = None
    image_url: Optional[str] = None
    revised_prompt: Optional[str] = None

    @property
    def effective_description(self) -> str:
        return self.enhanced_description or self.description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "enhanced_description": self.enhanced_description,
            "image_url": self.image_url,
            "revised_prompt": self.revised_prompt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SceneArtifact":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            description=data.get("description") or "",
            enhanced_description=data.get("enhanced_description"),
            image_url=data.get("image_url"),
            revised_prompt=data.get("revised_prompt"),
        )
