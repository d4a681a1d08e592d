"""Base stage interface."""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from enostics_ai.providers.manager import ModelManager


class Stage(ABC):
    """
    Abstract base class for analysis stages.

    A stage is an independent analysis step composed by the engine. Stages
    may consult the model manager; each one defines its own deterministic
    fallback for when no provider answers.
    """

    name: str = "base"

    def __init__(self, config: Any, models: ModelManager | None = None):
        """
        Initialize the stage.

        Args:
            config: Stage-specific configuration section.
            models: Shared model manager, or None for rule-based operation only.
        """
        self.config = config
        self.models = models
        self._ready = False

    async def initialize(self) -> None:
        logger.info(f"{self.name} stage initialized")
        self._ready = True

    @abstractmethod
    async def run(self, payload: Any, context: dict[str, Any] | None = None) -> Any:
        """Run the stage's core operation."""
        pass

    def is_enabled(self) -> bool:
        return bool(getattr(self.config, "enabled", True))

    def update_config(self, config: Any) -> None:
        self.config = config

    def get_status(self) -> dict[str, Any]:
        return {
            "enabled": self.is_enabled(),
            "ready": self._ready,
            "model": getattr(self.config, "model", None) or "default",
        }

    async def shutdown(self) -> None:
        self._ready = False
        logger.info(f"{self.name} stage shutdown")
