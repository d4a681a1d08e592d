import asyncio
import re

import pytest

from enostics_ai.config.schema import (
    CloudModelsConfig,
    Config,
    LocalModelsConfig,
    ModelsConfig,
)
from enostics_ai.errors import EngineNotInitialized, StageFailedError
from enostics_ai.pipeline.engine import AIEngine, EngineState
from enostics_ai.pipeline.classification import ClassificationStage
from enostics_ai.pipeline.quality import QualityStage
from enostics_ai.pipeline.summarizer import SummaryStage


def _offline_config() -> Config:
    return Config(
        models=ModelsConfig(
            local=LocalModelsConfig(enabled=False),
            cloud=CloudModelsConfig(enabled=False),
            embeddings=None,
        )
    )


def _engine(**components) -> AIEngine:
    return AIEngine(_offline_config(), **components)


def test_process_before_initialize_raises():
    engine = _engine()
    with pytest.raises(EngineNotInitialized):
        asyncio.run(engine.process_data({"a": 1}))


def test_process_data_merges_stage_results():
    engine = _engine()

    async def scenario():
        await engine.initialize()
        result = await engine.process_data({"heart_rate": 72, "patient": "p-1"}, {"source": "test"})
        stored = await engine.memory.get_result(result.session_id)
        context = await engine.memory.get_context(result.session_id)
        return result, stored, context

    result, stored, context = asyncio.run(scenario())

    assert re.fullmatch(r"ai_\d+_[0-9a-z]{9}", result.session_id)
    assert result.classification.business_context == "healthcare"
    assert result.classification.tags == ["healthcare", "rule-based", "fallback"]
    assert result.quality.score == 100
    assert result.enriched.business_context == "healthcare"
    assert result.enriched.quality_score == 100
    assert result.enriched.confidence == min(result.classification.confidence, result.quality.confidence)
    assert result.enriched.tags == ["healthcare", "rule-based", "fallback", "high-quality"]
    assert result.enriched.key_insights == result.summary.insights
    assert result.enriched.metadata["processingPipeline"] == "standard"
    assert result.enriched.metadata["sessionId"] == result.session_id
    assert "sender_analysis" in result.enriched.metadata["capabilities"]
    assert stored is result
    assert context["payload"] == {"heart_rate": 72, "patient": "p-1"}
    assert context["context"] == {"source": "test"}


def test_each_call_gets_a_fresh_session():
    engine = _engine()

    async def scenario():
        await engine.initialize()
        return await asyncio.gather(*(engine.process_data({"n": i}) for i in range(5)))

    results = asyncio.run(scenario())
    assert len({r.session_id for r in results}) == 5


class BrokenQuality(QualityStage):
    async def run(self, payload, context=None):
        raise RuntimeError("scorer exploded")


def test_failing_stage_fails_the_whole_call():
    config = _offline_config()
    engine = AIEngine(config, quality=BrokenQuality(config.filters.quality))

    async def scenario():
        await engine.initialize()
        await engine.process_data({"a": 1})

    with pytest.raises(StageFailedError) as exc:
        asyncio.run(scenario())
    assert exc.value.stage == "quality"
    assert isinstance(exc.value.cause, RuntimeError)


class FailingInitQuality(QualityStage):
    async def initialize(self):
        raise RuntimeError("cannot load scorer")


def test_stage_initialize_failure_is_fatal():
    config = _offline_config()
    engine = AIEngine(config, quality=FailingInitQuality(config.filters.quality))

    with pytest.raises(RuntimeError, match="cannot load scorer"):
        asyncio.run(engine.initialize())
    assert engine.state == EngineState.UNINITIALIZED


def test_capabilities_follow_stage_flags():
    config = _offline_config()
    config.summarizers.data.enabled = False
    engine = AIEngine(config)

    caps = {c.name: c for c in engine.get_capabilities()}

    assert list(caps) == ["data_classification", "quality_assessment", "data_summarization", "sender_analysis"]
    assert caps["data_classification"].confidence == 0.95
    assert caps["data_summarization"].enabled is False
    assert caps["sender_analysis"].enabled is True


def test_health_status_never_raises():
    engine = _engine()

    def broken():
        raise RuntimeError("memory gone")

    engine.memory.get_health_status = broken
    status = engine.get_health_status()

    assert status["state"] == "uninitialized"
    assert status["memory"] == {"error": "memory gone"}
    assert set(status["stages"]) == {"classification", "quality", "summarizer"}


def test_update_config_pushes_sections_to_stages():
    engine = _engine()

    async def scenario():
        await engine.initialize()
        return await engine.update_config({"filters": {"quality": {"minScore": 90}}})

    config = asyncio.run(scenario())

    assert config.filters.quality.min_score == 90
    assert engine.quality.config.min_score == 90


def test_shutdown_stops_engine_and_gates_new_calls():
    engine = _engine()

    async def scenario():
        await engine.initialize()
        await engine.process_data({"a": 1})
        await engine.shutdown()

    asyncio.run(scenario())

    assert engine.state == EngineState.STOPPED
    assert not engine.is_ready()
    with pytest.raises(EngineNotInitialized):
        asyncio.run(engine.process_data({"a": 1}))


class _Rendezvous:
    """Stage mixin that only proceeds once every sibling stage has started."""

    events: dict[str, asyncio.Event] = {}

    async def run(self, payload, context=None):
        self.events[self.name].set()
        await asyncio.wait_for(asyncio.gather(*(e.wait() for e in self.events.values())), timeout=1)
        return await super().run(payload, context)


class RendezvousClassification(_Rendezvous, ClassificationStage):
    pass


class RendezvousQuality(_Rendezvous, QualityStage):
    pass


class RendezvousSummary(_Rendezvous, SummaryStage):
    pass


def test_stages_run_concurrently():
    config = _offline_config()
    stages = {
        "classification": RendezvousClassification(config.agents.classification),
        "quality": RendezvousQuality(config.filters.quality),
        "summarizer": RendezvousSummary(config.summarizers.data),
    }
    engine = AIEngine(config, **stages)

    async def scenario():
        events = {stage.name: asyncio.Event() for stage in stages.values()}
        for stage in stages.values():
            stage.events = events
        await engine.initialize()
        return await engine.process_data({"device": "d1", "temperature": 21.5})

    result = asyncio.run(scenario())

    assert result.classification.business_context == "iot"
    assert result.summary.insights


class SlowClassification(ClassificationStage):
    cancelled = False

    async def run(self, payload, context=None):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return await super().run(payload, context)


def test_failing_stage_cancels_its_siblings():
    config = _offline_config()
    slow = SlowClassification(config.agents.classification)
    engine = AIEngine(config, classification=slow, quality=BrokenQuality(config.filters.quality))

    async def scenario():
        await engine.initialize()
        await engine.process_data({"a": 1})

    with pytest.raises(StageFailedError) as exc:
        asyncio.run(scenario())

    assert exc.value.stage == "quality"
    assert slow.cancelled is True


class GatedSummary(SummaryStage):
    started: asyncio.Event
    gate: asyncio.Event

    async def run(self, payload, context=None):
        self.started.set()
        await self.gate.wait()
        return await super().run(payload, context)


def test_shutdown_drains_in_flight_call_and_rejects_new_ones():
    config = _offline_config()
    gated = GatedSummary(config.summarizers.data)
    engine = AIEngine(config, summarizer=gated)

    async def scenario():
        gated.started = asyncio.Event()
        gated.gate = asyncio.Event()
        await engine.initialize()

        in_flight = asyncio.create_task(engine.process_data({"a": 1}))
        await gated.started.wait()
        stopping = asyncio.create_task(engine.shutdown())
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        state_while_draining = engine.state
        with pytest.raises(EngineNotInitialized):
            await engine.process_data({"b": 2})
        still_waiting = not stopping.done()

        gated.gate.set()
        result = await in_flight
        await stopping
        return state_while_draining, still_waiting, result

    state_while_draining, still_waiting, result = asyncio.run(scenario())

    assert state_while_draining == EngineState.SHUTTING_DOWN
    assert still_waiting is True
    assert result.session_id.startswith("ai_")
    assert engine.state == EngineState.STOPPED
