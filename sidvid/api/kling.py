"""
Kling Video Client
==================

Image-to-video generation with Kling 2.6 through the Kie.ai job API.

Features:
- One seed image per job
- 5 or 10 second clips
- Optional native audio
"""

import json
import logging
from typing import Optional, Dict, Any

from .base import JobResult, JobStatus
from .kie import KieJobClient
from .factory import register_provider, ProviderKind
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


# Provider state -> (normalized status, progress)
STATE_MAP = {
    "waiting": (JobStatus.QUEUED, 0),
    "queuing": (JobStatus.QUEUED, 10),
    "generating": (JobStatus.IN_PROGRESS, 50),
    "success": (JobStatus.COMPLETED, 100),
    "fail": (JobStatus.FAILED, 0),
}


@register_provider(ProviderKind.KLING)
class KlingClient(KieJobClient):
    """Kling image-to-video client."""

    MODEL = "kling-2.6/image-to-video"
    CREATE_PATH = "/api/v1/jobs/createTask"
    STATUS_PATH = "/api/v1/jobs/recordInfo"

    DEFAULT_POLL_INTERVAL = 5.0
    DEFAULT_TIMEOUT = 600.0
    INITIAL_STATUS = JobStatus.IN_PROGRESS

    @property
    def provider_name(self) -> str:
        return "Kling"

    def build_payload(
        self,
        prompt: str = "",
        image_url: Optional[str] = None,
        sound: bool = True,
        duration: int = 5,
        callback_url: Optional[str] = None,
        **extra,
    ) -> Dict[str, Any]:
        """
        Build the createTask body.

        Args:
            prompt: Motion/scene description
            image_url: Seed image URL (required)
            sound: Generate native audio
            duration: Clip length, 5 or 10 seconds
            callback_url: Optional completion webhook
        """
        if not image_url:
            raise ValidationError(
                "Kling create_task requires an image_url",
                field="image_url",
            )
        if str(duration) not in ("5", "10"):
            raise ValidationError(
                f"Kling duration must be 5 or 10, got {duration}",
                field="duration",
                value=duration,
                constraint="5|10",
            )

        payload: Dict[str, Any] = {
            "model": self.MODEL,
            "input": {
                "prompt": prompt,
                "image_urls": [image_url],
                "sound": sound,
                "duration": str(duration),
            },
        }
        if callback_url:
            payload["callBackUrl"] = callback_url
        return payload

    def parse_status(self, job_id: str, data: Dict[str, Any]) -> JobResult:
        state = data.get("state") or "waiting"
        status, progress = STATE_MAP.get(state, (JobStatus.QUEUED, 0))

        result_url = None
        if status == JobStatus.COMPLETED:
            result_url = self._extract_video_url(job_id, data.get("resultJson"))

        error_message = None
        if status == JobStatus.FAILED:
            error_message = data.get("failMsg") or data.get("failCode") or "Video generation failed"

        logger.debug(f"Kling task {job_id}: state={state} progress={progress}%")

        return JobResult(
            job_id=job_id,
            status=status,
            progress=progress,
            result_url=result_url,
            error_message=error_message,
            provider=self.provider_name,
        )

    @staticmethod
    def _extract_video_url(job_id: str, result_json: Optional[str]) -> Optional[str]:
        """Pull ``resultUrls[0]`` out of the JSON-encoded ``resultJson`` field."""
        if not result_json:
            logger.warning(f"Kling task {job_id} succeeded without resultJson")
            return None

        try:
            parsed = json.loads(result_json)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to parse resultJson for Kling task {job_id}: {e}")
            return None

        urls = parsed.get("resultUrls") if isinstance(parsed, dict) else None
        if isinstance(urls, list) and urls:
            return urls[0]

        logger.warning(f"Kling task {job_id} resultJson has no resultUrls")
        return None
