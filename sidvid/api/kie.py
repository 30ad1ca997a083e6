"""
Kie.ai Job Client
=================

Shared envelope handling for the Kie.ai job API, which fronts both the
Kling video model and the Flux Kontext image model.

Every response is wrapped as ``{"code": 200, "msg": "...", "data": {...}}``;
a non-200 ``code`` is a provider failure even when the HTTP status is 200.
"""

import logging
from abc import abstractmethod
from typing import Optional, Dict, Any

from .base import BaseJobClient, JobResult
from ..core.exceptions import ProviderError, InvalidProviderResponse
from ..core.security import redact_api_key

logger = logging.getLogger(__name__)


class KieJobClient(BaseJobClient):
    """Base class for clients of the Kie.ai job API."""

    DEFAULT_BASE_URL = "https://api.kie.ai"

    # Endpoints, set by subclasses
    CREATE_PATH: str = ""
    STATUS_PATH: str = ""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, **kwargs):
        super().__init__(api_key=api_key, base_url=base_url or self.DEFAULT_BASE_URL, **kwargs)
        if not self.api_key:
            logger.warning(
                f"No API key configured for {self.provider_name}. "
                f"Set kie.api_key (or KIE_API_KEY) before submitting jobs."
            )

    @abstractmethod
    def build_payload(self, **task_input) -> Dict[str, Any]:
        """Build the request body for task creation."""
        pass

    @abstractmethod
    def parse_status(self, job_id: str, data: Dict[str, Any]) -> JobResult:
        """Normalize the ``data`` object of a status response."""
        pass

    async def _call(self, method: str, path: str, operation: str, **kwargs) -> Dict[str, Any]:
        """Send a request and unwrap the ``{code, msg, data}`` envelope."""
        payload = await self._request(method, path, operation, **kwargs)

        code = payload.get("code")
        if code != 200:
            msg = redact_api_key(str(payload.get("msg") or "Unknown error"))
            raise ProviderError(
                f"{self.provider_name} {operation} failed: {msg}",
                provider=self.provider_name,
                status_code=code if isinstance(code, int) else None,
                response_body=msg,
                operation=operation,
            )

        data = payload.get("data")
        if not isinstance(data, dict):
            raise InvalidProviderResponse(
                f"{self.provider_name} {operation} response has no data",
                provider=self.provider_name,
                status_code=code,
                operation=operation,
            )
        return data

    async def create_task(self, **task_input) -> str:
        body = self.build_payload(**task_input)
        data = await self._call("POST", self.CREATE_PATH, "create_task", json=body)

        task_id = data.get("taskId")
        if not task_id:
            raise InvalidProviderResponse(
                f"{self.provider_name} create_task response is missing taskId",
                provider=self.provider_name,
                operation="create_task",
            )

        logger.info(f"{self.provider_name} task created: {task_id}")
        return task_id

    async def get_status(self, job_id: str) -> JobResult:
        logger.debug(f"Getting {self.provider_name} task status for: {job_id}")
        data = await self._call(
            "GET",
            self.STATUS_PATH,
            f"get_status({job_id})",
            params={"taskId": job_id},
        )
        return self.parse_status(job_id, data)
