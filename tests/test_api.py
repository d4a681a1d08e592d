import asyncio

import pytest

from enostics_ai.api import Enostics
from enostics_ai.config.schema import CloudModelsConfig, Config, LocalModelsConfig, ModelsConfig
from enostics_ai.tools.database import InMemoryRecordStore


def _offline_config() -> Config:
    return Config(
        models=ModelsConfig(
            local=LocalModelsConfig(enabled=False),
            cloud=CloudModelsConfig(enabled=False),
            embeddings=None,
        )
    )


def test_context_manager_processes_reviews_and_calls():
    store = InMemoryRecordStore({"users": [{"id": "u1", "plan": "pro"}, {"id": "u2", "plan": "free"}]})

    async def scenario():
        async with Enostics(_offline_config(), store=store) as client:
            processed = await client.process({"amount": 12.5, "currency": "EUR"})
            reviewed = await client.review({"amount": 12.5, "currency": "EUR"})
            rows = await client.call("query_database", {"table": "users", "filters": {"plan": "pro"}})
            health = client.health()
        return client, processed, reviewed, rows, health

    client, processed, reviewed, rows, health = asyncio.run(scenario())

    assert processed.classification.business_context == "financial"
    assert reviewed.status == "completed"
    assert rows["results"] == [{"id": "u1", "plan": "pro"}]
    assert health["state"] == "ready"
    assert "query_database" in health["tools"]
    assert health["reviewer"]["enabled"] is True
    assert client.engine.state.value == "stopped"


def test_closed_instance_rejects_calls():
    client = Enostics(_offline_config())
    client.close()

    with pytest.raises(RuntimeError, match="closed"):
        asyncio.run(client.process({"a": 1}))


def test_environment_preset_is_applied():
    client = Enostics(_offline_config(), environment="production")
    assert client.config.memory.ttl == 7200
    assert client.config.models.local.enabled is False
    client.close()
