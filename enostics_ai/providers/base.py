"""Base model provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class GenerateResponse:
    """Completion returned by a provider."""

    model: str
    text: str
    done: bool = True
    raw: dict[str, Any] = field(default_factory=dict)


class ModelProvider(ABC):
    """
    Abstract base class for inference backends.

    A provider is treated as a black box: it can generate text, embed text,
    list the models it serves and report whether it is reachable.
    """

    name: str = "base"
    kind: str = "local"  # local | cloud

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        options: dict[str, Any] | None = None,
    ) -> GenerateResponse:
        """
        Generate a completion.

        Args:
            model: Backend model identifier.
            prompt: Prompt text.
            options: Sampling options (temperature, num_predict, ...).

        Returns:
            GenerateResponse with the completion text.
        """
        pass

    @abstractmethod
    async def embeddings(self, model: str, prompt: str) -> list[float]:
        """Embed text into a vector."""
        pass

    @abstractmethod
    async def list_models(self) -> list[str]:
        """List model names served by this provider."""
        pass

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Return True when the provider is reachable."""
        pass
