"""
Utilities
=========

Id generation, serialization helpers, and story-length math.
"""

from .ids import generate_id
from .serialization import datetime_to_str, datetime_from_str, history_to_pairs, pairs_to_history
from .story_helpers import (
    calculate_scene_count,
    calculate_scene_duration,
    parse_video_length_to_seconds,
    get_complexity_guidance,
)

__all__ = [
    "generate_id",
    "datetime_to_str",
    "datetime_from_str",
    "history_to_pairs",
    "pairs_to_history",
    "calculate_scene_count",
    "calculate_scene_duration",
    "parse_video_length_to_seconds",
    "get_complexity_guidance",
]
