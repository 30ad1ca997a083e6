"""
Models
======

Story and artifact records shared by the pipelines and the session.
"""

from .story import Story, StoryScene, StoryCharacter, StoryLocation, StorySceneVisual
from .artifacts import Character, SceneArtifact, GeneratedImage, ImageResult

__all__ = [
    "Story",
    "StoryScene",
    "StoryCharacter",
    "StoryLocation",
    "StorySceneVisual",
    "Character",
    "SceneArtifact",
    "GeneratedImage",
    "ImageResult",
]
