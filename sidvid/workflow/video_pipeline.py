"""
Video Pipeline
==============

Turns completed scene images into a single video job and tracks it.

State machine:
    idle -> generating -> completed | failed
    reset: any -> idle

Only one job is outstanding at a time. Unlike the scene pipeline, failures
here propagate to the caller after being recorded on the pipeline.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Union

from ..api.base import JobResult, JobStatus
from ..api.factory import JobRouter, ProviderKind
from ..core.exceptions import InvalidState, GenerationFailed
from ..utils.serialization import datetime_to_str, datetime_from_str
from .scene_pipeline import ScenePipeline

logger = logging.getLogger(__name__)


class VideoStatus(Enum):
    """Status of the video pipeline."""
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class VideoSceneThumbnail:
    """Snapshot of one completed scene slot."""

    id: str
    scene_number: int
    image_url: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scene_number": self.scene_number,
            "image_url": self.image_url,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoSceneThumbnail":
        return cls(
            id=data["id"],
            scene_number=data["scene_number"],
            image_url=data["image_url"],
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class VideoResult:
    """The finished video."""

    job_id: str
    url: Optional[str]
    provider: Optional[str] = None
    completed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "url": self.url,
            "provider": self.provider,
            "completed_at": datetime_to_str(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoResult":
        return cls(
            job_id=data["job_id"],
            url=data.get("url"),
            provider=data.get("provider"),
            completed_at=datetime_from_str(data.get("completed_at"), datetime.now()),
        )


@dataclass
class VideoPipeline:
    """
    Stateful wrapper around one video-generation job.

    ``provider`` is the tag of the client that owns ``current_job_id``; it
    is persisted so a reloaded session polls the right provider.
    """

    scene_thumbnails: List[VideoSceneThumbnail]
    story_title: Optional[str] = None
    status: VideoStatus = VideoStatus.IDLE
    current_job_id: Optional[str] = None
    provider: Optional[str] = None
    progress: int = 0
    result_video: Optional[VideoResult] = None
    error: Optional[str] = None
    composed_prompt: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def initialize(
        cls,
        scene_pipeline: Optional[ScenePipeline],
        story_title: Optional[str] = None,
    ) -> "VideoPipeline":
        """
        Snapshot every completed slot as a thumbnail.

        Raises:
            InvalidState: No scene pipeline, or zero completed slots
        """
        completed = scene_pipeline.completed_slots() if scene_pipeline else []
        if not completed:
            raise InvalidState(
                "initialize_video_pipeline: no completed scenes. Generate scene images first.",
                operation="initialize_video_pipeline",
            )

        thumbnails = [
            VideoSceneThumbnail(
                id=slot.id,
                scene_number=slot.source_scene.number,
                image_url=slot.generated_image.image_url,
                description=slot.generated_image.description,
            )
            for slot in completed
        ]
        logger.info(f"Video pipeline initialized with {len(thumbnails)} scene thumbnails")
        return cls(scene_thumbnails=thumbnails, story_title=story_title)

    def _touch(self) -> None:
        self.updated_at = datetime.now()

    def compose_prompt(self) -> str:
        """Default video prompt: the story title, then one line per thumbnail."""
        lines = []
        if self.story_title:
            lines.append(self.story_title)
        for thumb in self.scene_thumbnails:
            lines.append(f"Scene {thumb.scene_number}: {thumb.description}")
        return "\n".join(lines)

    def _require_job(self, operation: str) -> str:
        if not self.current_job_id:
            raise InvalidState(
                f"{operation}: no video job has been submitted",
                operation=operation,
            )
        return self.current_job_id

    def _apply_completed(self, result: JobResult) -> None:
        self.status = VideoStatus.COMPLETED
        self.progress = 100
        self.error = None
        self.result_video = VideoResult(
            job_id=result.job_id,
            url=result.result_url,
            provider=self.provider,
        )

    async def generate(
        self,
        router: JobRouter,
        prompt: Optional[str] = None,
        provider: Union[str, ProviderKind] = ProviderKind.MOCK,
        image_url: Optional[str] = None,
        duration: int = 5,
        sound: bool = True,
    ) -> JobResult:
        """
        Submit the video job.

        Args:
            router: Job router holding the provider clients
            prompt: Video prompt (defaults to ``compose_prompt()``)
            provider: Provider kind for the job
            image_url: Seed image (defaults to the first thumbnail)
            duration: Clip length in seconds
            sound: Generate audio

        Returns:
            The submission result

        Raises:
            InvalidState: A job is already outstanding
            ProviderError: Submission failed (pipeline is left ``failed``)
        """
        if self.status == VideoStatus.GENERATING and self.current_job_id:
            raise InvalidState(
                f"generate_video: job {self.current_job_id} is still outstanding. "
                f"Wait for it or reset the pipeline first.",
                operation="generate_video",
            )

        kind = ProviderKind.parse(provider)
        prompt = prompt or self.compose_prompt()
        if image_url is None and self.scene_thumbnails:
            image_url = self.scene_thumbnails[0].image_url

        self.status = VideoStatus.GENERATING
        self.progress = 0
        self.error = None
        self.result_video = None
        self.current_job_id = None
        self.composed_prompt = prompt
        self.provider = kind.value
        self._touch()

        try:
            result = await router.submit(
                kind,
                prompt=prompt,
                image_url=image_url,
                duration=duration,
                sound=sound,
            )
        except Exception as e:
            self.status = VideoStatus.FAILED
            self.error = str(e)
            self._touch()
            logger.error(f"Video submission to {kind.value} failed: {e}")
            raise

        self.current_job_id = result.job_id
        self.progress = result.progress
        self._touch()
        logger.info(f"Video job {result.job_id} submitted to {kind.value}")
        return result

    async def check_status(self, router: JobRouter) -> JobResult:
        """Poll the outstanding job once and mirror its state."""
        job_id = self._require_job("check_video_status")
        result = await router.get_status(job_id, kind=self.provider)

        self.progress = result.progress
        if result.status == JobStatus.COMPLETED:
            self._apply_completed(result)
        elif result.status == JobStatus.FAILED:
            self.status = VideoStatus.FAILED
            self.error = result.error_message or f"Video job {job_id} failed"
        self._touch()
        return result

    async def wait_for_completion(
        self,
        router: JobRouter,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> JobResult:
        """
        Wait for the outstanding job to finish.

        A timeout leaves the pipeline ``generating``; the job may still
        finish and can be polled again.

        Raises:
            GenerationFailed: The job failed (pipeline is left ``failed``)
            GenerationTimeout: The wait ran out of time
        """
        job_id = self._require_job("wait_for_video")
        try:
            result = await router.wait_until_terminal(
                job_id,
                kind=self.provider,
                poll_interval=poll_interval,
                timeout=timeout,
            )
        except GenerationFailed as e:
            self.status = VideoStatus.FAILED
            self.error = str(e)
            self._touch()
            raise

        self._apply_completed(result)
        self._touch()
        return result

    def reset(self) -> None:
        """Return to idle, keeping the scene thumbnails."""
        if self.status == VideoStatus.GENERATING and self.current_job_id:
            logger.warning(
                f"Resetting video pipeline with job {self.current_job_id} outstanding; "
                f"the remote job keeps running"
            )
        self.status = VideoStatus.IDLE
        self.current_job_id = None
        self.provider = None
        self.progress = 0
        self.result_video = None
        self.error = None
        self.composed_prompt = None
        self._touch()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_thumbnails": [t.to_dict() for t in self.scene_thumbnails],
            "story_title": self.story_title,
            "status": self.status.value,
            "current_job_id": self.current_job_id,
            "provider": self.provider,
            "progress": self.progress,
            "result_video": self.result_video.to_dict() if self.result_video else None,
            "error": self.error,
            "composed_prompt": self.composed_prompt,
            "created_at": datetime_to_str(self.created_at),
            "updated_at": datetime_to_str(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoPipeline":
        now = datetime.now()
        video = data.get("result_video")
        return cls(
            scene_thumbnails=[VideoSceneThumbnail.from_dict(t) for t in data.get("scene_thumbnails") or []],
            story_title=data.get("story_title"),
            status=VideoStatus(data.get("status", "idle")),
            current_job_id=data.get("current_job_id"),
            provider=data.get("provider"),
            progress=data.get("progress", 0),
            result_video=VideoResult.from_dict(video) if video else None,
            error=data.get("error"),
            composed_prompt=data.get("composed_prompt"),
            created_at=datetime_from_str(data.get("created_at"), now),
            updated_at=datetime_from_str(data.get("updated_at"), now),
        )
