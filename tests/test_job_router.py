"""
Tests for the provider registry and job router.
"""

import pytest

from sidvid.api.base import JobStatus
from sidvid.api.factory import ProviderKind, JobRouter, get_provider, list_providers
from sidvid.api.kling import KlingClient
from sidvid.api.mock import MockVideoClient
from sidvid.core.exceptions import ConfigurationError, ValidationError


class TestProviderRegistry:

    def test_list_providers(self):
        assert set(list_providers()) >= {"mock", "kling", "flux_kontext"}

    def test_get_provider_by_name(self):
        client = get_provider("kling", api_key="kie-test")
        assert isinstance(client, KlingClient)
        assert client.base_url == "https://api.kie.ai"

    def test_unknown_provider(self):
        with pytest.raises(ValidationError):
            ProviderKind.parse("runway")

    def test_parse_is_case_insensitive(self):
        assert ProviderKind.parse("MOCK") is ProviderKind.MOCK


class TestJobRouter:

    @pytest.mark.asyncio
    async def test_status_routes_to_submitting_client(self, router, clock):
        submitted = await router.submit("mock", prompt="x")

        assert router.kind_of(submitted.job_id) is ProviderKind.MOCK

        clock.advance(40)
        result = await router.get_status(submitted.job_id)
        assert result.status == JobStatus.COMPLETED

    def test_explicit_kind_wins(self, router):
        router.remember("job-1", ProviderKind.MOCK)
        assert router.kind_of("job-1", "kling") is ProviderKind.KLING

    def test_unknown_job_uses_default_kind(self):
        router = JobRouter(default_kind=ProviderKind.KLING)
        assert router.kind_of("never-seen") is ProviderKind.KLING

    def test_mock_client_is_created_on_demand(self):
        router = JobRouter()
        assert isinstance(router.client_for("mock"), MockVideoClient)

    def test_missing_real_client(self):
        with pytest.raises(ConfigurationError):
            JobRouter().client_for(ProviderKind.KLING)

    @pytest.mark.asyncio
    async def test_wait_until_terminal(self, router, clock):
        submitted = await router.submit(ProviderKind.MOCK, prompt="x")

        result = await router.wait_until_terminal(submitted.job_id)

        assert result.status == JobStatus.COMPLETED
        assert clock.sleeps
