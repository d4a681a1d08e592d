"""AI engine coordinating the analysis stages."""

import asyncio
import time
from enum import Enum
from typing import Any

from loguru import logger

from enostics_ai.config.loader import merge_config
from enostics_ai.config.schema import Config
from enostics_ai.errors import EngineNotInitialized, StageFailedError
from enostics_ai.pipeline.base import Stage
from enostics_ai.pipeline.classification import ClassificationStage
from enostics_ai.pipeline.memory import SessionMemory
from enostics_ai.pipeline.quality import QualityStage
from enostics_ai.pipeline.summarizer import SummaryStage
from enostics_ai.pipeline.types import (
    Capability,
    ClassificationResult,
    EnrichedData,
    ProcessingResult,
    QualityResult,
    SummaryResult,
)
from enostics_ai.providers.manager import ModelManager
from enostics_ai.utils.helpers import new_id, now_iso

SESSION_PREFIX = "ai"
PROCESSING_PIPELINE = "standard"


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class AIEngine:
    """
    Orchestrates classification, quality and summarization per payload.

    Responsibilities:
    - Initialize the model manager, memory and stages in dependency order
    - Run the three stages concurrently for each ``process_data`` call
    - Merge stage outputs into one ``ProcessingResult``
    - Report capabilities and aggregate health

    The fan-out is fail-fast: when any stage raises, the siblings are
    cancelled and the call raises ``StageFailedError``.
    """

    def __init__(
        self,
        config: Config,
        *,
        models: ModelManager | None = None,
        memory: SessionMemory | None = None,
        classification: ClassificationStage | None = None,
        quality: QualityStage | None = None,
        summarizer: SummaryStage | None = None,
    ):
        self.config = config
        self.models = models or ModelManager(config.models)
        self.memory = memory or SessionMemory(config.memory)
        self.classification = classification or ClassificationStage(config.agents.classification, self.models)
        self.quality = quality or QualityStage(config.filters.quality, self.models)
        self.summarizer = summarizer or SummaryStage(config.summarizers.data, self.models)
        self.state = EngineState.UNINITIALIZED
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def stages(self) -> dict[str, Stage]:
        return {
            "classification": self.classification,
            "quality": self.quality,
            "summarizer": self.summarizer,
        }

    async def initialize(self) -> None:
        """Initialize providers, memory, then all stages."""
        if self.state == EngineState.READY:
            return
        if self.state not in (EngineState.UNINITIALIZED, EngineState.STOPPED):
            raise EngineNotInitialized(self.state.value)

        logger.info("Initializing AI engine...")
        self.state = EngineState.INITIALIZING
        try:
            await self.models.initialize()
            await self.memory.initialize()
            await asyncio.gather(*(stage.initialize() for stage in self.stages.values()))
        except Exception:
            self.state = EngineState.UNINITIALIZED
            logger.exception("AI engine initialization failed")
            raise
        self.state = EngineState.READY
        logger.info("AI engine ready")

    def is_ready(self) -> bool:
        return self.state == EngineState.READY

    async def _new_session_id(self) -> str:
        session_id = new_id(SESSION_PREFIX)
        while self.memory.has_session(session_id):
            session_id = new_id(SESSION_PREFIX)
        return session_id

    async def process_data(self, payload: Any, context: dict[str, Any] | None = None) -> ProcessingResult:
        """
        Run the full pipeline over one payload.

        Args:
            payload: Arbitrary JSON-compatible data.
            context: Optional caller context stored alongside the session.

        Returns:
            The merged processing result.

        Raises:
            EngineNotInitialized: The engine is not ready.
            StageFailedError: A stage raised during the fan-out.
        """
        if self.state != EngineState.READY:
            raise EngineNotInitialized(self.state.value)

        self._in_flight += 1
        self._idle.clear()
        try:
            return await self._process(payload, context)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def _process(self, payload: Any, context: dict[str, Any] | None) -> ProcessingResult:
        started = time.perf_counter()
        session_id = await self._new_session_id()
        await self.memory.store_context(session_id, {"payload": payload, "context": context or {}})

        tasks = {
            name: asyncio.create_task(stage.run(payload, context), name=f"{session_id}:{name}")
            for name, stage in self.stages.items()
        }
        try:
            await asyncio.gather(*tasks.values())
        except Exception as e:
            for task in tasks.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            failed = next(
                (name for name, task in tasks.items() if task.done() and not task.cancelled() and task.exception() is e),
                "unknown",
            )
            logger.error(f"Stage {failed} failed for session {session_id}: {e}")
            raise StageFailedError(failed, e) from e

        classification: ClassificationResult = tasks["classification"].result()
        quality: QualityResult = tasks["quality"].result()
        summary: SummaryResult = tasks["summarizer"].result()

        timestamp = now_iso()
        enriched = EnrichedData(
            business_context=classification.business_context,
            quality_score=quality.score,
            key_insights=list(summary.insights),
            confidence=min(classification.confidence, quality.confidence),
            tags=[*classification.tags, *quality.tags],
            metadata={
                "modelVersions": self.models.get_model_versions(),
                "processingPipeline": PROCESSING_PIPELINE,
                "capabilities": [c.name for c in self.get_capabilities() if c.enabled],
                "sessionId": session_id,
                "timestamp": timestamp,
            },
        )
        result = ProcessingResult(
            session_id=session_id,
            timestamp=timestamp,
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            classification=classification,
            quality=quality,
            summary=summary,
            enriched=enriched,
        )
        await self.memory.store_result(session_id, result)
        logger.debug(f"Processed session {session_id} in {result.processing_time_ms}ms")
        return result

    def get_capabilities(self) -> list[Capability]:
        return [
            Capability(
                name="data_classification",
                description="Automatically classify incoming data by business context",
                enabled=self.classification.is_enabled(),
                confidence=0.95,
            ),
            Capability(
                name="quality_assessment",
                description="Assess data quality and completeness",
                enabled=self.quality.is_enabled(),
                confidence=0.90,
            ),
            Capability(
                name="data_summarization",
                description="Generate insights and summaries from data",
                enabled=self.summarizer.is_enabled(),
                confidence=0.88,
            ),
            Capability(
                name="sender_analysis",
                description="Analyze sender patterns and behavior",
                enabled=True,
                confidence=0.85,
            ),
        ]

    def get_health_status(self) -> dict[str, Any]:
        """Aggregate health snapshot; never raises."""
        status: dict[str, Any] = {"state": self.state.value, "timestamp": now_iso()}
        try:
            status["models"] = self.models.get_health_status()
        except Exception as e:
            status["models"] = {"error": str(e)}
        try:
            status["memory"] = self.memory.get_health_status()
        except Exception as e:
            status["memory"] = {"error": str(e)}
        stages: dict[str, Any] = {}
        for name, stage in self.stages.items():
            try:
                stages[name] = stage.get_status()
            except Exception as e:
                stages[name] = {"error": str(e)}
        status["stages"] = stages
        try:
            status["capabilities"] = [c.to_dict() for c in self.get_capabilities()]
        except Exception as e:
            status["capabilities"] = {"error": str(e)}
        return status

    async def update_config(self, partial: dict[str, Any]) -> Config:
        """Deep-merge a partial config and push it to the components."""
        self.config = merge_config(self.config, partial)
        if "models" in partial:
            await self.models.update_config(self.config.models)
        self.memory.update_config(self.config.memory)
        self.classification.update_config(self.config.agents.classification)
        self.quality.update_config(self.config.filters.quality)
        self.summarizer.update_config(self.config.summarizers.data)
        logger.info("AI engine configuration updated")
        return self.config

    async def shutdown(self) -> None:
        """Stop accepting work, drain in-flight calls, then stop components."""
        if self.state in (EngineState.SHUTTING_DOWN, EngineState.STOPPED):
            return
        logger.info("Shutting down AI engine...")
        self.state = EngineState.SHUTTING_DOWN
        if self._in_flight:
            await self._idle.wait()
        results = await asyncio.gather(
            *(stage.shutdown() for stage in self.stages.values()),
            self.memory.shutdown(),
            self.models.shutdown(),
            return_exceptions=True,
        )
        for outcome in results:
            if isinstance(outcome, Exception):
                logger.error(f"Error during shutdown: {outcome}")
        self.state = EngineState.STOPPED
        logger.info("AI engine stopped")
