"""Model provider abstraction module."""

from enostics_ai.providers.base import GenerateResponse, ModelProvider
from enostics_ai.providers.cloud import CloudProvider
from enostics_ai.providers.manager import LoadedModel, ModelManager, ProviderHealth
from enostics_ai.providers.ollama import OllamaClient

__all__ = [
    "CloudProvider",
    "GenerateResponse",
    "LoadedModel",
    "ModelManager",
    "ModelProvider",
    "OllamaClient",
    "ProviderHealth",
]
