"""
Story Length Helpers
====================

Translate a target video length such as ``"30s"`` or ``"1m"`` into scene
counts, per-scene durations, and pacing guidance for the story writer.
"""

import re
import math
from typing import Optional

from ..core.exceptions import ValidationError

_LENGTH_PATTERN = re.compile(r"^(\d+)([sm])$")

DEFAULT_SCENE_DURATION = 5  # Kling clips are 5 seconds


def _to_seconds(video_length: str) -> Optional[int]:
    match = _LENGTH_PATTERN.match(video_length or "")
    if not match:
        return None
    value = int(match.group(1))
    return value * 60 if match.group(2) == "m" else value


def parse_video_length_to_seconds(video_length: str) -> int:
    """Parse ``"30s"`` / ``"1m"`` into seconds (5 when the format is invalid)."""
    seconds = _to_seconds(video_length)
    return 5 if seconds is None else seconds


def calculate_scene_count(video_length: str, scene_duration: int = DEFAULT_SCENE_DURATION) -> int:
    """
    Number of scenes needed to fill a video.

    Args:
        video_length: Total video length (e.g., "5s", "30s", "1m")
        scene_duration: Seconds per scene

    Returns:
        ``total // scene_duration``, at least 1 (1 when the format is invalid)
    """
    if scene_duration <= 0:
        raise ValidationError(
            f"scene_duration must be positive, got {scene_duration}",
            field="scene_duration",
            value=scene_duration,
        )
    seconds = _to_seconds(video_length)
    if seconds is None:
        return 1
    return max(1, seconds // scene_duration)


def calculate_scene_duration(video_length: str, scene_count: int) -> float:
    """Per-scene duration in seconds, rounded half-up to one decimal."""
    if scene_count <= 0:
        raise ValidationError(
            f"scene_count must be positive, got {scene_count}",
            field="scene_count",
            value=scene_count,
        )
    total = parse_video_length_to_seconds(video_length)
    return math.floor(total / scene_count * 10 + 0.5) / 10


def get_complexity_guidance(video_length: str) -> str:
    """Pacing instructions for the story writer, scaled to the video length."""
    seconds = _to_seconds(video_length)
    if seconds is None:
        return "Keep scenes concise and visual."

    if seconds <= 3:
        return (
            "This is an EXTREMELY SHORT video. Create a single, simple scene with ONE "
            "visual action. NO dialogue. Keep it to a single moment."
        )
    if seconds <= 10:
        return (
            "This is a SHORT video. Keep each scene VERY brief with minimal or no "
            "dialogue. Focus on quick visual moments."
        )
    if seconds <= 30:
        return (
            "This is a MEDIUM-length video. Keep scenes concise with brief dialogue. "
            "Each scene should be 3-5 seconds of screen time."
        )
    if seconds <= 60:
        return (
            "This is a FULL-LENGTH video. You can include dialogue and action in each "
            "scene. Aim for 5-8 seconds per scene."
        )
    return (
        "This is an EXTENDED video. You can create detailed scenes with full dialogue, "
        "multiple actions, and character development. Aim for 8-12 seconds per scene."
    )
