"""
Mock Video Client
=================

Zero-network video provider for local development and tests.

Jobs resolve purely by elapsed time: progress grows linearly over a nominal
duration and the job completes with a fixed placeholder video.
"""

import math
import time
import random
import string
import logging
from typing import Optional, Dict

from .base import BaseJobClient, JobResult, JobStatus
from .factory import register_provider, ProviderKind
from ..core.exceptions import NotFound
from ..core.security import truncate_for_log

logger = logging.getLogger(__name__)

PLACEHOLDER_VIDEO_URL = "https://storage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4"


@register_provider(ProviderKind.MOCK)
class MockVideoClient(BaseJobClient):
    """Video client that simulates generation without network calls."""

    DEFAULT_POLL_INTERVAL = 5.0
    DEFAULT_TIMEOUT = 600.0
    INITIAL_STATUS = JobStatus.IN_PROGRESS

    def __init__(
        self,
        duration_seconds: float = 30.0,
        placeholder_url: str = PLACEHOLDER_VIDEO_URL,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.duration_seconds = duration_seconds
        self.placeholder_url = placeholder_url

        # job id -> start time on self._clock
        self._jobs: Dict[str, float] = {}

    @property
    def provider_name(self) -> str:
        return "Mock"

    async def create_task(
        self,
        prompt: str = "",
        image_url: Optional[str] = None,
        **extra,
    ) -> str:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        job_id = f"video-{int(time.time() * 1000)}-{suffix}"
        self._jobs[job_id] = self._clock()

        logger.info(f"Mock video generation started: {job_id}")
        logger.debug(f"Prompt: {truncate_for_log(prompt)}")
        if image_url:
            logger.debug(f"Image: {image_url}")
        return job_id

    async def get_status(self, job_id: str) -> JobResult:
        start_time = self._jobs.get(job_id)
        if start_time is None:
            raise NotFound(
                f"Mock video job not found: {job_id}",
                resource_type="video_job",
                resource_id=job_id,
            )

        elapsed = self._clock() - start_time
        progress = min(100, math.floor(elapsed / self.duration_seconds * 100))

        if progress >= 100:
            return JobResult(
                job_id=job_id,
                status=JobStatus.COMPLETED,
                progress=100,
                result_url=self.placeholder_url,
                provider=self.provider_name,
            )

        return JobResult(
            job_id=job_id,
            status=JobStatus.IN_PROGRESS,
            progress=max(0, progress),
            provider=self.provider_name,
        )
