import asyncio

from enostics_ai.config.schema import (
    ClassificationConfig,
    CloudModelsConfig,
    DataSummarizerConfig,
    LocalModelConfig,
    LocalModelsConfig,
    ModelsConfig,
    QualityFilterConfig,
)
from enostics_ai.errors import ProviderError
from enostics_ai.pipeline.classification import ClassificationStage
from enostics_ai.pipeline.quality import QualityStage, quality_band
from enostics_ai.pipeline.summarizer import SummaryStage
from enostics_ai.providers.base import GenerateResponse, ModelProvider
from enostics_ai.providers.manager import ModelManager


class ScriptedLocal(ModelProvider):
    name = "ollama"
    kind = "local"

    def __init__(self, text: str = "", *, fail: bool = False):
        self.text = text
        self.fail = fail
        self.options: list[dict | None] = []

    async def generate(self, model, prompt, options=None):
        if prompt == "Hello":
            return GenerateResponse(model=model, text="hi")
        self.options.append(options)
        if self.fail:
            raise ProviderError("model crashed")
        return GenerateResponse(model=model, text=self.text)

    async def embeddings(self, model, prompt):
        return [0.0]

    async def list_models(self):
        return ["llama3.2:3b", "quality-scorer", "data-summarizer"]

    async def is_healthy(self):
        return True


def _manager(client: ModelProvider) -> ModelManager:
    config = ModelsConfig(
        local=LocalModelsConfig(
            models=[
                LocalModelConfig(name="llama3.2:3b", path="llama3.2:3b", capabilities=["classification"]),
                LocalModelConfig(name="quality-scorer", path="quality-scorer", capabilities=["quality"]),
                LocalModelConfig(name="data-summarizer", path="data-summarizer", capabilities=["summarization"]),
            ]
        ),
        cloud=CloudModelsConfig(enabled=False, providers=[]),
        embeddings=None,
    )
    manager = ModelManager(config, local_client=client)
    asyncio.run(manager.initialize())
    return manager


def test_classification_fallback_without_provider():
    stage = ClassificationStage(ClassificationConfig())

    result = asyncio.run(stage.classify({"heart_rate": 72, "patient": "p-1"}))

    assert result.business_context == "healthcare"
    assert result.confidence == 0.7
    assert result.tags == ["healthcare", "rule-based", "fallback"]
    assert result.category == "data_input"
    assert result.metadata["model"] == "fallback-rules"


def test_classification_fallback_defaults_to_general():
    stage = ClassificationStage(ClassificationConfig())
    result = asyncio.run(stage.classify({"color": "blue"}))
    assert result.business_context == "general"
    assert "fallback" in result.tags


def test_classification_fallback_respects_configured_categories():
    stage = ClassificationStage(ClassificationConfig(categories=["iot", "general"]))
    result = asyncio.run(stage.classify({"heart_rate": 72}))
    assert result.business_context == "general"


def test_classification_uses_provider_json():
    client = ScriptedLocal('Here you go: {"businessContext": "IoT", "confidence": 1.7, "reasoning": "sensor"} done')
    stage = ClassificationStage(ClassificationConfig(), _manager(client))

    result = asyncio.run(stage.classify({"sensor": "s1"}))

    assert result.business_context == "iot"
    assert result.confidence == 1.0
    assert result.tags == ["iot", "ai-classified", "ollama"]
    assert result.metadata["reasoning"] == "sensor"
    assert client.options[-1] == {"temperature": 0.1, "num_predict": 200}


def test_classification_falls_back_on_unparseable_or_unknown_label():
    garbage = ClassificationStage(ClassificationConfig(), _manager(ScriptedLocal("I think it is IoT")))
    assert "fallback" in asyncio.run(garbage.classify({"sensor": 1})).tags

    unknown = ClassificationStage(
        ClassificationConfig(),
        _manager(ScriptedLocal('{"businessContext": "weather", "confidence": 0.9}')),
    )
    result = asyncio.run(unknown.classify({"device": "d"}))
    assert result.business_context == "iot"
    assert result.tags[-1] == "fallback"


def test_classification_falls_back_when_provider_fails():
    stage = ClassificationStage(ClassificationConfig(), _manager(ScriptedLocal(fail=True)))
    result = asyncio.run(stage.classify({"amount": 10, "currency": "EUR"}))
    assert result.business_context == "financial"
    assert result.confidence == 0.7


def test_quality_band_thresholds():
    assert quality_band(90) == "high-quality"
    assert quality_band(85) == "medium-quality"
    assert quality_band(71) == "medium-quality"
    assert quality_band(70) == "low-quality"


def test_quality_heuristic_complete_payload():
    result = asyncio.run(QualityStage().assess({"heart_rate": 72, "patient": "p-1"}))

    assert result.score == 100
    assert result.confidence == 0.9
    assert result.tags == ["high-quality"]
    assert result.issues == []
    assert [f.name for f in result.factors] == ["completeness", "accuracy", "consistency"]


def test_quality_heuristic_reports_missing_values():
    result = asyncio.run(QualityStage().assess({"name": "Ada", "email": None}))

    assert result.score == 85
    assert result.tags == ["medium-quality"]
    assert [issue.type for issue in result.issues] == ["missing_value"]
    assert "email" in result.issues[0].description


def test_quality_heuristic_reports_type_mismatch():
    result = asyncio.run(QualityStage().assess({"temperature": "hot"}))

    assert result.score == 60
    assert result.tags == ["low-quality"]
    assert result.issues[0].type == "type_mismatch"


def test_quality_name_hints_match_whole_tokens():
    result = asyncio.run(QualityStage().assess({"message": "hello", "isActive": True, "itemCount": "3"}))

    assert result.score == 100
    assert result.issues == []


def test_quality_penalizes_mixed_key_styles():
    result = asyncio.run(QualityStage().assess({"first_name": "a", "lastName": "b"}))

    consistency = next(f for f in result.factors if f.name == "consistency")
    assert consistency.score == 50.0


def test_quality_empty_payload():
    result = asyncio.run(QualityStage().assess({}))

    assert result.score == 0
    assert result.confidence == 0.5
    assert result.tags == ["low-quality", "below-threshold"]
    assert result.issues[0].type == "empty_payload"


def test_quality_uses_provider_when_scoring_model_loaded():
    text = (
        '{"score": 10, "confidence": 0.8, "factors": ['
        '{"name": "completeness", "score": 100, "reasoning": "all there"},'
        '{"name": "accuracy", "score": 50},'
        '{"name": "consistency", "score": 100}]}'
    )
    client = ScriptedLocal(text)
    stage = QualityStage(QualityFilterConfig(), _manager(client))

    result = asyncio.run(stage.assess({"a": 1}))

    assert result.score == 80
    assert result.confidence == 0.8
    assert result.factors[0].reasoning == "all there"
    assert client.options[-1] == {"temperature": 0.1, "num_predict": 300}


def test_quality_falls_back_to_heuristic_on_bad_provider_output():
    stage = QualityStage(QualityFilterConfig(), _manager(ScriptedLocal("no json")))
    result = asyncio.run(stage.assess({"a": 1}))
    assert result.confidence == 0.9
    assert result.score == 100


def test_summary_heuristic_structure():
    payload = {"device": "s1", "readings": {"temperature": 21.5, "humidity": 40}}

    result = asyncio.run(SummaryStage().summarize(payload, {"source": "api"}))

    assert result.confidence == 0.88
    assert result.insights == [
        "Payload contains 3 data point(s)",
        "Nested structure 2 levels deep",
        "2 numeric fields ranging from 21.5 to 40",
        "Detected domain: iot",
    ]
    assert result.key_points == [
        "Fields: device, readings.temperature, readings.humidity",
        "Primary data type: numeric",
        "Context keys: source",
    ]
    assert result.metadata["source"] == "heuristic"


def test_summary_truncates_items_and_drops_metadata():
    stage = SummaryStage(DataSummarizerConfig(max_length=12, include_metadata=False))
    result = asyncio.run(stage.summarize({"a": 1, "b": 2, "c": 3}))

    assert all(len(item) <= 12 for item in result.insights + result.key_points)
    assert result.metadata == {}


def test_summary_empty_payload():
    result = asyncio.run(SummaryStage().summarize({}))
    assert result.confidence == 0.5
    assert result.key_points == []


def test_summary_uses_provider_insights():
    text = '{"insights": ["Steady readings"], "keyPoints": ["One device"], "summary": "IoT telemetry"}'
    client = ScriptedLocal(text)
    stage = SummaryStage(DataSummarizerConfig(), _manager(client))

    result = asyncio.run(stage.summarize({"device": "d1"}))

    assert result.insights == ["Steady readings"]
    assert result.key_points == ["One device"]
    assert result.metadata["summary"] == "IoT telemetry"
    assert client.options[-1] == {"temperature": 0.3, "num_predict": 400}
