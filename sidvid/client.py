"""
SidVid Client
=============

One object that wires storage, blobs, provider clients and the directories
together from a ``Config``.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .api.factory import JobRouter, ProviderKind, get_provider
from .api.flux_kontext import FluxKontextClient
from .api.images import ImageGenerator
from .api.llm import StoryWriter
from .core.config import Config
from .session.project_manager import ProjectManager
from .session.session_manager import SessionManager
from .storage import create_storage
from .storage.adapter import StorageAdapter
from .storage.blobs import BlobStore

logger = logging.getLogger(__name__)


class SidVid:
    """
    Entry point for prompt-to-video generation.

    Usage:
        async with SidVid.from_config_file("config/defaults.yaml") as sidvid:
            sessions = sidvid.session_manager()
            session = sessions.create_session("Lighthouse")
            await session.generate_story("A lighthouse keeper befriends a whale")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        storage: Optional[StorageAdapter] = None,
        blobs: Optional[BlobStore] = None,
        router: Optional[JobRouter] = None,
        story_writer=None,
        image_generator=None,
    ):
        """
        Args:
            config: Settings (defaults to ``Config()``)
            storage: Document store (defaults to the configured backend)
            blobs: Blob store (defaults to ``storage.blob_path``)
            router: Job router (defaults to mock plus Kling when a Kie key is set)
            story_writer: Language-model service
            image_generator: Image service
        """
        self.config = config or Config()

        self.storage = storage or create_storage(self.config.storage)
        self.blobs = blobs or BlobStore(self.config.storage.blob_path)
        self.router = router or self._build_router()

        openai = self.config.openai
        self.story_writer = story_writer or StoryWriter(
            api_key=openai.api_key,
            model=openai.story_model,
            max_tokens=self.config.story.max_tokens,
            request_timeout=openai.request_timeout,
        )
        self.image_generator = image_generator or ImageGenerator(
            api_key=openai.api_key,
            model=openai.image_model,
            request_timeout=openai.request_timeout,
        )

        self._reference_images: Optional[FluxKontextClient] = None

        logger.info("SidVid initialized")
        logger.info(f"  Storage: {self.storage.storage_type}")
        logger.info(f"  Video provider: {self.config.video.provider}")

    @classmethod
    def from_config_file(cls, path: Optional[Union[str, Path]] = None, **kwargs) -> "SidVid":
        return cls(Config.load(path), **kwargs)

    def _build_router(self) -> JobRouter:
        video = self.config.video
        mock = self.config.mock
        router = JobRouter(default_kind=ProviderKind.parse(video.provider))
        router.register_client(
            ProviderKind.MOCK,
            get_provider(
                ProviderKind.MOCK,
                duration_seconds=mock.duration_seconds,
                placeholder_url=mock.placeholder_url,
                poll_interval=video.poll_interval,
                timeout=video.timeout,
            ),
        )

        kie = self.config.kie
        if kie.api_key:
            router.register_client(
                ProviderKind.KLING,
                get_provider(
                    ProviderKind.KLING,
                    api_key=kie.api_key,
                    base_url=kie.base_url,
                    request_timeout=kie.request_timeout,
                    poll_interval=video.poll_interval,
                    timeout=video.timeout,
                ),
            )
        else:
            logger.debug("No Kie API key configured; only the mock video provider is available")
        return router

    @property
    def reference_images(self) -> FluxKontextClient:
        """Flux Kontext client for scene images that reuse a character portrait."""
        if self._reference_images is None:
            kie = self.config.kie
            images = self.config.images
            self._reference_images = get_provider(
                ProviderKind.FLUX_KONTEXT,
                api_key=kie.api_key,
                base_url=kie.base_url,
                request_timeout=kie.request_timeout,
                reference_model=images.reference_model,
                poll_interval=images.reference_poll_interval,
                timeout=images.reference_timeout,
            )
        return self._reference_images

    def _directory_kwargs(self):
        return dict(
            blobs=self.blobs,
            story_writer=self.story_writer,
            image_generator=self.image_generator,
            router=self.router,
            config=self.config,
        )

    def session_manager(self) -> SessionManager:
        return SessionManager(self.storage, **self._directory_kwargs())

    def project_manager(self) -> ProjectManager:
        return ProjectManager(self.storage, **self._directory_kwargs())

    async def close(self) -> None:
        """Close every HTTP client."""
        await self.router.close()
        if self._reference_images is not None:
            await self._reference_images.close()
        for service in (self.story_writer, self.image_generator):
            close = getattr(service, "close", None)
            if close is not None:
                await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
