"""
API Module
==========

Clients for remote generation services:
- Job clients (Kling video, Flux Kontext images, mock video) sharing one
  create / poll / wait lifecycle
- Story writer and image generator for the language-model and image APIs
"""

from .base import BaseJobClient, JobResult, JobStatus
from .factory import ProviderKind, JobRouter, register_provider, get_provider, list_providers
from .kie import KieJobClient
from .kling import KlingClient
from .flux_kontext import FluxKontextClient
from .mock import MockVideoClient
from .llm import StoryWriter, parse_story
from .images import ImageGenerator

__all__ = [
    "BaseJobClient",
    "JobResult",
    "JobStatus",
    "ProviderKind",
    "JobRouter",
    "register_provider",
    "get_provider",
    "list_providers",
    "KieJobClient",
    "KlingClient",
    "FluxKontextClient",
    "MockVideoClient",
    "StoryWriter",
    "parse_story",
    "ImageGenerator",
]
