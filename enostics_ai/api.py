"""Embeddable API wiring the engine, reviewer and function registry."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from enostics_ai.config.loader import load_config
from enostics_ai.config.presets import apply_environment
from enostics_ai.config.schema import Config
from enostics_ai.pipeline.engine import AIEngine
from enostics_ai.pipeline.memory import SessionMemory
from enostics_ai.pipeline.types import ProcessingResult
from enostics_ai.providers.manager import ModelManager
from enostics_ai.review.reviewer import InboxReviewer, ReviewResult
from enostics_ai.tools.builtin import build_function_registry
from enostics_ai.tools.database import RecordStore
from enostics_ai.tools.registry import FunctionRegistry


def build_engine(config: Config, *, models: ModelManager | None = None) -> AIEngine:
    """Construct an engine with its own model manager and memory."""
    return AIEngine(config, models=models or ModelManager(config.models), memory=SessionMemory(config.memory))


def build_reviewer(
    config: Config,
    *,
    registry: FunctionRegistry | None = None,
    store: RecordStore | None = None,
) -> InboxReviewer:
    """Construct a reviewer over the default capability set."""
    return InboxReviewer(
        registry or build_function_registry(config.tools, store=store),
        config.review,
    )


class Enostics:
    """Small embeddable wrapper exposing the pipeline to Python callers."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        config_path: str | Path | None = None,
        environment: str | None = None,
        models: ModelManager | None = None,
        store: RecordStore | None = None,
    ):
        base = config or load_config(Path(config_path).expanduser() if config_path else None)
        self.config = apply_environment(base, environment) if environment else base
        self.models = models or ModelManager(self.config.models)
        self.registry = build_function_registry(self.config.tools, store=store)
        self.engine = build_engine(self.config, models=self.models)
        self.reviewer = build_reviewer(self.config, registry=self.registry)
        self._closed = False

    async def start(self) -> Enostics:
        self._ensure_open()
        await self.engine.initialize()
        return self

    async def process(self, payload: Any, context: dict[str, Any] | None = None) -> ProcessingResult:
        """Run the engine over one payload."""
        self._ensure_open()
        return await self.engine.process_data(payload, context)

    async def review(self, payload: Any, metadata: dict[str, Any] | None = None) -> ReviewResult:
        """Run the inbox review over one payload."""
        self._ensure_open()
        return await self.reviewer.review_payload(payload, metadata)

    async def call(self, name: str, args: dict[str, Any] | None = None) -> Any:
        """Invoke a registered capability by name."""
        self._ensure_open()
        return await self.registry.execute(name, args or {})

    def health(self) -> dict[str, Any]:
        status = self.engine.get_health_status()
        status["reviewer"] = self.reviewer.get_status()
        status["tools"] = self.registry.tool_names
        return status

    async def _close_async(self) -> None:
        if self._closed:
            return
        await self.engine.shutdown()
        self._closed = True

    def close(self) -> None:
        """Close in sync contexts."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._close_async())
            return
        raise RuntimeError("close() cannot run inside an active event loop; use await aclose().")

    async def aclose(self) -> None:
        await self._close_async()

    async def __aenter__(self) -> Enostics:
        return await self.start()

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self._close_async()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Enostics instance is closed. Create a new one to continue.")
