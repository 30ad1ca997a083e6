"""
Workflow
========

State machines for the multi-step creative artifacts:
- ScenePipeline: story scenes -> independently generated scene images
- VideoPipeline: completed scene images -> one video job
"""

from .scene_pipeline import ScenePipeline, SceneSlot, SlotStatus
from .video_pipeline import VideoPipeline, VideoSceneThumbnail, VideoResult, VideoStatus

__all__ = [
    "ScenePipeline",
    "SceneSlot",
    "SlotStatus",
    "VideoPipeline",
    "VideoSceneThumbnail",
    "VideoResult",
    "VideoStatus",
]
