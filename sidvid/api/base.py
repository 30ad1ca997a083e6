"""
Base Job Client
===============

Abstract base class for asynchronous generation-job APIs.

Every remote provider follows the same lifecycle: create a task, poll its
status, and wait until it reaches a terminal state. Provider-native states
are normalized into ``JobStatus`` with a discrete progress percentage.
"""

import time
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Callable, Awaitable
import httpx

from ..core.exceptions import (
    ProviderError,
    InvalidProviderResponse,
    GenerationFailed,
    GenerationTimeout,
)
from ..core.security import redact_api_key

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Normalized status of a remote generation job."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED}


@dataclass
class JobResult:
    """One observation of a remote job."""

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    result_url: Optional[str] = None
    error_message: Optional[str] = None
    provider: Optional[str] = None
    checked_at: datetime = field(default_factory=datetime.now)

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "progress": self.progress,
            "result_url": self.result_url,
            "error_message": self.error_message,
            "provider": self.provider,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobResult":
        checked_at = data.get("checked_at")
        return cls(
            job_id=data["job_id"],
            status=JobStatus(data.get("status", "queued")),
            progress=data.get("progress", 0),
            result_url=data.get("result_url"),
            error_message=data.get("error_message"),
            provider=data.get("provider"),
            checked_at=datetime.fromisoformat(checked_at) if checked_at else datetime.now(),
        )


class BaseJobClient(ABC):
    """
    Abstract base class for generation-job clients.

    Subclasses implement ``create_task`` and ``get_status``; submission and
    the polling loop are shared. ``clock`` and ``sleep`` may be injected so
    the loop can be driven by simulated time.
    """

    DEFAULT_POLL_INTERVAL: float = 5.0
    DEFAULT_TIMEOUT: float = 600.0

    # Status reported by submit() before the first poll
    INITIAL_STATUS: JobStatus = JobStatus.QUEUED

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        request_timeout: float = 60.0,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Provider API key
            base_url: Base URL for the API
            request_timeout: Per-request HTTP timeout in seconds
            poll_interval: Default seconds between status checks
            timeout: Default wall-clock budget for ``wait_until_terminal``
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
            clock: Monotonic clock in seconds
            sleep: Awaitable sleep used between polls
        """
        self.api_key = api_key
        self.base_url = base_url
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval if poll_interval is not None else self.DEFAULT_POLL_INTERVAL
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

        self._transport = transport
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep

        # HTTP client (lazily created)
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def create_task(self, **task_input) -> str:
        """
        Create a remote job.

        Returns:
            The provider's opaque job id

        Raises:
            ProviderError: On any non-success result or a missing job id
        """
        pass

    @abstractmethod
    async def get_status(self, job_id: str) -> JobResult:
        """
        Fetch and normalize the status of a job.

        Args:
            job_id: The job ID to check

        Returns:
            Normalized JobResult
        """
        pass

    async def submit(self, **task_input) -> JobResult:
        """Create a job and return its initial observation."""
        job_id = await self.create_task(**task_input)
        return JobResult(
            job_id=job_id,
            status=self.INITIAL_STATUS,
            progress=0,
            provider=self.provider_name,
        )

    async def wait_until_terminal(
        self,
        job_id: str,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> JobResult:
        """
        Poll a job until it completes.

        Cancelling the awaiting task stops the wait only; the remote job keeps
        running and can be polled again with the same id.

        Args:
            job_id: The job ID to wait for
            poll_interval: Seconds between status checks (no backoff)
            timeout: Wall-clock seconds measured from the first call

        Returns:
            The completed JobResult

        Raises:
            GenerationFailed: As soon as the job reports ``failed``
            GenerationTimeout: Once elapsed time exceeds ``timeout``
        """
        interval = poll_interval if poll_interval is not None else self.poll_interval
        budget = timeout if timeout is not None else self.timeout
        start_time = self._clock()

        while True:
            result = await self.get_status(job_id)

            if result.status == JobStatus.COMPLETED:
                logger.info(f"{self.provider_name} job {job_id} completed")
                return result

            if result.status == JobStatus.FAILED:
                raise GenerationFailed(
                    f"{self.provider_name} job {job_id} failed: "
                    f"{result.error_message or 'unknown error'}",
                    job_id=job_id,
                    provider=self.provider_name,
                )

            elapsed = self._clock() - start_time
            if elapsed > budget:
                raise GenerationTimeout(
                    f"Waiting for {self.provider_name} job {job_id} timed out after {budget}s",
                    job_id=job_id,
                    timeout_seconds=budget,
                    last_status=result.status.value,
                )

            logger.debug(
                f"Job {job_id} status: {result.status.value} ({result.progress}%), waiting..."
            )
            await self._sleep(interval)

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url or "",
                    timeout=httpx.Timeout(self.request_timeout),
                    headers=self._get_headers(),
                    transport=self._transport,
                )
            return self._client

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers for requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Send a request and decode the JSON body.

        Raises:
            ProviderError: Transport failure or non-2xx status
            InvalidProviderResponse: Body is not a JSON object
        """
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.provider_name} {operation} request failed: {redact_api_key(str(e))}",
                provider=self.provider_name,
                operation=operation,
            ) from e

        if response.status_code >= 400:
            body = redact_api_key(response.text)
            logger.error(f"{self.provider_name} {operation} error: {response.status_code} - {body}")
            raise ProviderError(
                f"{self.provider_name} {operation} failed: {response.status_code} - {body[:200]}",
                provider=self.provider_name,
                status_code=response.status_code,
                response_body=body,
                operation=operation,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidProviderResponse(
                f"{self.provider_name} {operation} returned invalid JSON",
                provider=self.provider_name,
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
                operation=operation,
            ) from e

        if not isinstance(payload, dict):
            raise InvalidProviderResponse(
                f"{self.provider_name} {operation} returned an unexpected payload",
                provider=self.provider_name,
                operation=operation,
            )
        return payload

    async def close(self) -> None:
        """Close the HTTP client."""
        async with self._client_lock:
            if self._client:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
