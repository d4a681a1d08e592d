import asyncio
from typing import Any

import pytest

from enostics_ai.config.schema import (
    CloudModelsConfig,
    CloudProviderConfig,
    EmbeddingsConfig,
    LocalModelConfig,
    LocalModelsConfig,
    ModelsConfig,
)
from enostics_ai.errors import ModelNotFound, ProviderError
from enostics_ai.providers.base import GenerateResponse, ModelProvider
from enostics_ai.providers.manager import DEGRADED, HEALTHY, UNHEALTHY, ModelManager


class FakeLocal(ModelProvider):
    name = "ollama"
    kind = "local"

    def __init__(self, *, healthy: bool = True, tags: list[str] | None = None, failing: set[str] | None = None):
        self.healthy = healthy
        self.tags = tags or []
        self.failing = failing or set()
        self.calls: list[tuple[str, str, dict[str, Any] | None]] = []

    async def generate(self, model, prompt, options=None):
        self.calls.append((model, prompt, options))
        if model in self.failing:
            raise ProviderError(f"{model} exploded")
        return GenerateResponse(model=f"{model}-v1", text=f"answer from {model}")

    async def embeddings(self, model, prompt):
        if model in self.failing:
            raise ProviderError("embedding failed")
        return [0.1, 0.2]

    async def list_models(self):
        return list(self.tags)

    async def is_healthy(self):
        return self.healthy


class FakeCloud(ModelProvider):
    kind = "cloud"

    def __init__(self, config: CloudProviderConfig):
        self.name = config.name
        self.config = config

    async def generate(self, model, prompt, options=None):
        return GenerateResponse(model=model, text="cloud answer")

    async def embeddings(self, model, prompt):
        return [1.0]

    async def list_models(self):
        return list(self.config.models)

    async def is_healthy(self):
        return True


def _models_config(**overrides) -> ModelsConfig:
    local = LocalModelsConfig(
        models=[
            LocalModelConfig(name="fast", path="fast:1b", capabilities=["classification"]),
            LocalModelConfig(name="smart", path="smart:7b", capabilities=["classification", "summarization"]),
            LocalModelConfig(name="embed", path="embed:latest", type="embedding", capabilities=["embeddings"]),
        ]
    )
    data = {
        "local": local,
        "cloud": CloudModelsConfig(enabled=False, providers=[]),
        "embeddings": EmbeddingsConfig(model="embed"),
    }
    data.update(overrides)
    return ModelsConfig(**data)


def test_unreachable_provider_marks_every_model_unhealthy():
    manager = ModelManager(_models_config(), local_client=FakeLocal(healthy=False))
    asyncio.run(manager.initialize())

    health = manager.get_health_status()
    assert manager.is_ready()
    assert manager.get_loaded_models() == []
    assert health["ollama"]["status"] == UNHEALTHY
    for name in ("fast", "smart", "embed"):
        assert health[name]["status"] == UNHEALTHY
    assert health["embeddings"]["status"] == DEGRADED


def test_probe_outcomes_are_recorded_per_model():
    client = FakeLocal(tags=["fast:1b", "embed:latest"], failing={"embed:latest"})
    manager = ModelManager(_models_config(), local_client=client)
    asyncio.run(manager.initialize())

    health = manager.get_health_status()
    assert health["fast"]["status"] == HEALTHY
    assert health["smart"]["status"] == UNHEALTHY
    assert "not found" in health["smart"]["metadata"]["error"]
    assert health["embed"]["status"] == DEGRADED
    assert manager.get_loaded_models() == ["fast"]
    assert manager.get_model_versions() == {"fast": "fast:1b-v1"}
    assert ("fast:1b", "Hello", {"num_predict": 1}) in client.calls


def test_invoke_unknown_model_raises():
    manager = ModelManager(_models_config(), local_client=FakeLocal(tags=["fast:1b"]))
    asyncio.run(manager.initialize())

    with pytest.raises(ModelNotFound):
        asyncio.run(manager.invoke("missing", "prompt"))


def test_generate_fails_over_and_degrades_failing_model():
    client = FakeLocal(tags=["fast:1b", "smart:7b", "embed:latest"])
    manager = ModelManager(_models_config(), local_client=client)
    asyncio.run(manager.initialize())
    client.failing.add("fast:1b")

    response = asyncio.run(manager.generate("classify this", model="fast", capability="classification"))

    assert response.text == "answer from smart:7b"
    health = manager.get_health_status()
    assert health["fast"]["status"] == DEGRADED
    assert health["fast"]["error_count"] == 1
    assert health["smart"]["status"] == HEALTHY


def test_generate_raises_when_all_candidates_fail():
    client = FakeLocal(tags=["fast:1b"])
    manager = ModelManager(_models_config(), local_client=client)
    asyncio.run(manager.initialize())
    client.failing.add("fast:1b")

    with pytest.raises(ProviderError, match="All candidate models failed"):
        asyncio.run(manager.generate("x", capability="classification"))
    with pytest.raises(ModelNotFound):
        asyncio.run(manager.generate("x", capability="translation"))


def test_cloud_providers_registered_optimistically():
    config = _models_config(
        cloud=CloudModelsConfig(
            providers=[
                CloudProviderConfig(name="openai", enabled=True, models=["gpt-4"]),
                CloudProviderConfig(name="other", enabled=False, models=["x"]),
            ]
        )
    )
    manager = ModelManager(config, local_client=FakeLocal(healthy=False), cloud_factory=FakeCloud)
    asyncio.run(manager.initialize())

    health = manager.get_health_status()
    assert health["openai"]["status"] == HEALTHY
    assert "other" not in health
    assert manager.get_model("gpt-4").kind == "cloud"
    response = asyncio.run(manager.generate("x", model="fast", capability="classification"))
    assert response.text == "cloud answer"


def test_local_models_preferred_over_cloud():
    config = _models_config(
        cloud=CloudModelsConfig(providers=[CloudProviderConfig(name="openai", enabled=True, models=["gpt-4"])])
    )
    manager = ModelManager(config, local_client=FakeLocal(tags=["fast:1b"]), cloud_factory=FakeCloud)
    asyncio.run(manager.initialize())

    assert [m.name for m in manager.find_models("classification")] == ["fast", "gpt-4"]


def test_generate_embedding_uses_local_embedding_model():
    manager = ModelManager(_models_config(), local_client=FakeLocal(tags=["embed:latest"]))
    asyncio.run(manager.initialize())

    assert asyncio.run(manager.generate_embedding("text")) == [0.1, 0.2]
    assert manager.get_health_status()["embeddings"]["status"] == HEALTHY


def test_generate_embedding_without_model_raises():
    manager = ModelManager(_models_config(), local_client=FakeLocal(tags=[]))
    asyncio.run(manager.initialize())

    with pytest.raises(ModelNotFound):
        asyncio.run(manager.generate_embedding("text"))


def test_embeddings_disabled_leaves_no_health_record():
    manager = ModelManager(_models_config(embeddings=None), local_client=FakeLocal(tags=["embed:latest"]))
    asyncio.run(manager.initialize())
    manager._initialize_embeddings()

    assert "embeddings" not in manager.get_health_status()
    with pytest.raises(ProviderError, match="Embeddings not configured"):
        asyncio.run(manager.generate_embedding("text"))


def test_update_config_resets_and_reprobes():
    client = FakeLocal(tags=["fast:1b"])
    manager = ModelManager(_models_config(), local_client=client)
    asyncio.run(manager.initialize())
    assert manager.get_loaded_models() == ["fast"]

    client.tags = ["smart:7b"]
    asyncio.run(manager.update_config(_models_config()))

    assert manager.get_loaded_models() == ["smart"]
    assert manager.get_health_status()["fast"]["status"] == UNHEALTHY
