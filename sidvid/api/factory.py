"""
Provider Factory
================

Registry of job clients and the router that resolves a job's client from
the provider tag recorded when the job was submitted.
"""

import logging
from enum import Enum
from typing import Optional, List, Dict, Type, Union, TYPE_CHECKING

from ..core.exceptions import ConfigurationError, ValidationError

if TYPE_CHECKING:
    from .base import BaseJobClient, JobResult

logger = logging.getLogger(__name__)


class ProviderKind(Enum):
    """Tag identifying which client owns a job."""
    MOCK = "mock"
    KLING = "kling"
    FLUX_KONTEXT = "flux_kontext"

    @classmethod
    def parse(cls, value: Union[str, "ProviderKind"]) -> "ProviderKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(
                f"Unknown provider: {value}",
                field="provider",
                value=value,
                constraint="|".join(k.value for k in cls),
            )


# Registry of available clients
_PROVIDERS: Dict[ProviderKind, Type["BaseJobClient"]] = {}


def register_provider(kind: ProviderKind):
    """Decorator to register a client class."""
    def decorator(cls: Type["BaseJobClient"]):
        _PROVIDERS[kind] = cls
        return cls
    return decorator


def _import_providers() -> None:
    # Registration happens on import
    from . import mock, kling, flux_kontext  # noqa: F401


def get_provider(kind: Union[str, ProviderKind], **kwargs) -> "BaseJobClient":
    """
    Get a job client instance.

    Args:
        kind: Provider kind (``mock``, ``kling``, ``flux_kontext``)
        **kwargs: Client constructor arguments

    Returns:
        Configured client instance
    """
    kind = ProviderKind.parse(kind)
    if kind not in _PROVIDERS:
        _import_providers()

    provider_class = _PROVIDERS.get(kind)
    if provider_class is None:
        raise ConfigurationError(f"Provider '{kind.value}' not registered")

    return provider_class(**kwargs)


def list_providers() -> List[str]:
    """
    List all available provider names.

    Returns:
        List of provider names
    """
    _import_providers()
    return [kind.value for kind in _PROVIDERS]


class JobRouter:
    """
    Routes job operations to the client that created the job.

    The router records the provider kind of every job it submits. Status
    lookups resolve the client from that stored tag; an explicit ``kind``
    argument wins, and ids the router has never seen fall back to
    ``default_kind``.
    """

    def __init__(
        self,
        clients: Optional[Dict[ProviderKind, "BaseJobClient"]] = None,
        default_kind: ProviderKind = ProviderKind.MOCK,
    ):
        self._clients: Dict[ProviderKind, "BaseJobClient"] = dict(clients or {})
        self._job_kinds: Dict[str, ProviderKind] = {}
        self.default_kind = default_kind

    def register_client(self, kind: Union[str, ProviderKind], client: "BaseJobClient") -> None:
        self._clients[ProviderKind.parse(kind)] = client

    def client_for(self, kind: Union[str, ProviderKind]) -> "BaseJobClient":
        """Return the client for a provider kind."""
        kind = ProviderKind.parse(kind)
        client = self._clients.get(kind)
        if client is None:
            if kind != ProviderKind.MOCK:
                raise ConfigurationError(
                    f"No client configured for provider '{kind.value}'",
                    config_key="kie.api_key",
                )
            client = get_provider(ProviderKind.MOCK)
            self._clients[kind] = client
        return client

    def remember(self, job_id: str, kind: Union[str, ProviderKind]) -> None:
        """Record the provider of a job created elsewhere (e.g. a loaded session)."""
        self._job_kinds[job_id] = ProviderKind.parse(kind)

    def kind_of(self, job_id: str, kind: Optional[Union[str, ProviderKind]] = None) -> ProviderKind:
        if kind is not None:
            return ProviderKind.parse(kind)
        return self._job_kinds.get(job_id, self.default_kind)

    async def submit(self, kind: Union[str, ProviderKind], **task_input) -> "JobResult":
        kind = ProviderKind.parse(kind)
        logger.info(f"Submitting job to provider: {kind.value}")
        result = await self.client_for(kind).submit(**task_input)
        self._job_kinds[result.job_id] = kind
        return result

    async def get_status(
        self,
        job_id: str,
        kind: Optional[Union[str, ProviderKind]] = None,
    ) -> "JobResult":
        return await self.client_for(self.kind_of(job_id, kind)).get_status(job_id)

    async def wait_until_terminal(
        self,
        job_id: str,
        kind: Optional[Union[str, ProviderKind]] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> "JobResult":
        client = self.client_for(self.kind_of(job_id, kind))
        return await client.wait_until_terminal(job_id, poll_interval=poll_interval, timeout=timeout)

    async def close(self) -> None:
        """Close every client."""
        for client in self._clients.values():
            await client.close()
