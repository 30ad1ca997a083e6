"""
SidVid
======

Prompt-to-video generation orchestration: a language model drafts a story,
an image service renders character and scene art, and a video provider
animates the scenes.

Features:
- One create / poll / wait lifecycle for remote job APIs (Kling video,
  Flux Kontext reference images, and a zero-network mock provider)
- Story history with revert and branch, versioned character and scene artifacts
- Scene pipeline of independently generated, reorderable slots
- Video pipeline that tracks one job to its terminal outcome
- Sessions and projects persisted to memory, files, or an embedded database

Quick Start:
    from sidvid import SidVid

    async with SidVid() as sidvid:
        sessions = sidvid.session_manager()
        session = sessions.create_session("Lighthouse")

        await session.generate_story("A lighthouse keeper befriends a whale", scenes=3)
        session.initialize_scene_pipeline()
        await session.generate_all_pending_slots()

        session.initialize_video_pipeline()
        await session.generate_video()
        result = await session.wait_for_video()
        print(result.result_url)
"""

__version__ = "0.1.0"

from .client import SidVid

from .core import (
    Config,
    get_config,
    set_config,
    SidVidError,
    ConfigurationError,
    ValidationError,
    SecurityError,
    ProviderError,
    InvalidProviderResponse,
    GenerationFailed,
    GenerationTimeout,
    NotFound,
    InvalidState,
    StorageError,
)

from .api import (
    BaseJobClient,
    JobResult,
    JobStatus,
    ProviderKind,
    JobRouter,
    get_provider,
    KlingClient,
    FluxKontextClient,
    MockVideoClient,
    StoryWriter,
    ImageGenerator,
)

from .models import (
    Story,
    StoryScene,
    StoryCharacter,
    Character,
    SceneArtifact,
    GeneratedImage,
)

from .workflow import (
    ScenePipeline,
    SceneSlot,
    SlotStatus,
    VideoPipeline,
    VideoStatus,
)

from .session import Session, SessionManager, ProjectManager

from .storage import (
    StorageAdapter,
    MemoryStorageAdapter,
    FileStorageAdapter,
    EmbeddedStorageAdapter,
    BlobStore,
    create_storage,
)

__all__ = [
    "__version__",
    "SidVid",
    # Core
    "Config",
    "get_config",
    "set_config",
    "SidVidError",
    "ConfigurationError",
    "ValidationError",
    "SecurityError",
    "ProviderError",
    "InvalidProviderResponse",
    "GenerationFailed",
    "GenerationTimeout",
    "NotFound",
    "InvalidState",
    "StorageError",
    # API
    "BaseJobClient",
    "JobResult",
    "JobStatus",
    "ProviderKind",
    "JobRouter",
    "get_provider",
    "KlingClient",
    "FluxKontextClient",
    "MockVideoClient",
    "StoryWriter",
    "ImageGenerator",
    # Models
    "Story",
    "StoryScene",
    "StoryCharacter",
    "Character",
    "SceneArtifact",
    "GeneratedImage",
    # Workflow
    "ScenePipeline",
    "SceneSlot",
    "SlotStatus",
    "VideoPipeline",
    "VideoStatus",
    # Sessions
    "Session",
    "SessionManager",
    "ProjectManager",
    # Storage
    "StorageAdapter",
    "MemoryStorageAdapter",
    "FileStorageAdapter",
    "EmbeddedStorageAdapter",
    "BlobStore",
    "create_storage",
]
