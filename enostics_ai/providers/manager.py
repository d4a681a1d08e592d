"""Model manager: provider registry with health tracking and failover."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from enostics_ai.config.schema import CloudProviderConfig, LocalModelConfig, ModelsConfig
from enostics_ai.errors import ModelNotFound, ProviderError
from enostics_ai.providers.base import GenerateResponse, ModelProvider
from enostics_ai.providers.cloud import CloudProvider
from enostics_ai.providers.ollama import OllamaClient

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

PROBE_PROMPT = "Hello"

CloudProviderFactory = Callable[[CloudProviderConfig], ModelProvider]


@dataclass
class ProviderHealth:
    """Health record for one provider, model or backend."""

    name: str
    status: str = HEALTHY
    latency_ms: float | None = None
    error_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "latency_ms": self.latency_ms,
            "error_count": self.error_count,
            "metadata": dict(self.metadata),
        }


@dataclass
class LoadedModel:
    """A model that passed its startup probe and can be invoked."""

    name: str
    path: str
    type: str
    provider: str
    kind: str
    capabilities: list[str] = field(default_factory=list)
    version: str = "unknown"
    loaded_at: float = field(default_factory=time.time)

    def supports(self, capability: str) -> bool:
        return "*" in self.capabilities or capability in self.capabilities


class ModelManager:
    """
    Owns configured local and cloud providers.

    Responsibilities:
    - Probe local models at startup and record per-model health
    - Register enabled cloud providers
    - Resolve models by name or capability, failing over between candidates
    - Expose a cached health snapshot (never touches the network)

    Initialization is best-effort: one failing model or provider is recorded
    as degraded/unhealthy and never aborts the others.
    """

    def __init__(
        self,
        config: ModelsConfig,
        *,
        local_client: ModelProvider | None = None,
        cloud_factory: CloudProviderFactory | None = None,
    ):
        self.config = config
        self._local_override = local_client
        self._cloud_factory = cloud_factory
        self.local_client: ModelProvider = local_client or self._build_local_client(config)
        self.providers: dict[str, ModelProvider] = {}
        self.loaded_models: dict[str, LoadedModel] = {}
        self.health: dict[str, ProviderHealth] = {}
        self._initialized = False

    @staticmethod
    def _build_local_client(config: ModelsConfig) -> ModelProvider:
        return OllamaClient(
            base_url=config.local.base_url,
            timeout=config.local.timeout_seconds,
            health_timeout=config.local.health_timeout_seconds,
        )

    def _build_cloud_provider(self, provider_cfg: CloudProviderConfig) -> ModelProvider:
        if self._cloud_factory is not None:
            return self._cloud_factory(provider_cfg)
        return CloudProvider(provider_cfg, timeout=self.config.cloud.timeout_seconds)

    async def initialize(self) -> None:
        """Probe providers and populate the model catalog."""
        logger.info("Initializing model manager...")
        if self.config.local.enabled and self.config.local.models:
            await self._initialize_local_models()
        if self.config.cloud.enabled:
            self._initialize_cloud_providers()
        if self.config.embeddings is not None:
            self._initialize_embeddings()
        self._initialized = True
        logger.info(f"Model manager ready ({len(self.loaded_models)} model(s) loaded)")

    async def _initialize_local_models(self) -> None:
        client = self.local_client
        self.providers[client.name] = client

        if not await client.is_healthy():
            logger.warning(f"{client.name} service not reachable. Local models will be unavailable.")
            self.health[client.name] = ProviderHealth(
                name=client.name,
                status=UNHEALTHY,
                error_count=1,
                metadata={"error": "provider unreachable"},
            )
            for model in self.config.local.models:
                self.health[model.name] = ProviderHealth(
                    name=model.name,
                    status=UNHEALTHY,
                    error_count=1,
                    metadata={"error": "provider unreachable", "provider": client.name},
                )
            return

        self.health[client.name] = ProviderHealth(name=client.name, status=HEALTHY)
        available = await client.list_models()
        logger.info(f"Available {client.name} models: {', '.join(available) or '(none)'}")

        await asyncio.gather(
            *(self._probe_local_model(client, model, available) for model in self.config.local.models)
        )

    async def _probe_local_model(
        self,
        client: ModelProvider,
        model: LocalModelConfig,
        available: list[str],
    ) -> None:
        is_available = any(model.path in name or name == model.name for name in available)
        if not is_available:
            logger.warning(f"Model {model.name} not found in {client.name}. Skipping.")
            self.health[model.name] = ProviderHealth(
                name=model.name,
                status=UNHEALTHY,
                error_count=1,
                metadata={"error": f"Model not found in {client.name}", "provider": client.name},
            )
            return

        started = time.perf_counter()
        try:
            if model.type == "embedding":
                await client.embeddings(model.path, PROBE_PROMPT)
                version = model.path
            else:
                response = await client.generate(model.path, PROBE_PROMPT, {"num_predict": 1})
                version = response.model or "unknown"
        except Exception as e:
            logger.error(f"Model probe failed for {model.name}: {e}")
            self.health[model.name] = ProviderHealth(
                name=model.name,
                status=DEGRADED,
                error_count=1,
                metadata={"error": "Model test failed", "provider": client.name},
            )
            return

        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        self.loaded_models[model.name] = LoadedModel(
            name=model.name,
            path=model.path,
            type=model.type,
            provider=client.name,
            kind=client.kind,
            capabilities=list(model.capabilities),
            version=version,
        )
        self.health[model.name] = ProviderHealth(
            name=model.name,
            status=HEALTHY,
            latency_ms=latency_ms,
            metadata={
                "provider": client.name,
                "size": model.size,
                "type": model.type,
                "capabilities": ", ".join(model.capabilities),
            },
        )
        logger.info(f"Local model ready: {model.name}")

    def _initialize_cloud_providers(self) -> None:
        for provider_cfg in self.config.cloud.providers:
            if not provider_cfg.enabled:
                continue
            try:
                provider = self._build_cloud_provider(provider_cfg)
            except Exception as e:
                logger.error(f"Failed to initialize provider {provider_cfg.name}: {e}")
                self.health[provider_cfg.name] = ProviderHealth(
                    name=provider_cfg.name,
                    status=UNHEALTHY,
                    error_count=1,
                    metadata={"error": str(e)},
                )
                continue

            # Cloud providers are trusted until a call fails; no network at init.
            self.providers[provider.name] = provider
            self.health[provider.name] = ProviderHealth(
                name=provider.name,
                status=HEALTHY,
                metadata={"kind": "cloud", "models": list(provider_cfg.models)},
            )
            for model_name in provider_cfg.models:
                self.loaded_models.setdefault(
                    model_name,
                    LoadedModel(
                        name=model_name,
                        path=model_name,
                        type="llm",
                        provider=provider.name,
                        kind="cloud",
                        capabilities=["*"],
                        version=model_name,
                    ),
                )
            logger.info(f"Cloud provider ready: {provider.name}")

    def _initialize_embeddings(self) -> None:
        embeddings = self.config.embeddings
        if embeddings is None:
            return
        logger.info(f"Initializing embeddings: {embeddings.provider}/{embeddings.model}")
        model = self._find_embedding_model()
        if model is not None:
            self.health["embeddings"] = ProviderHealth(
                name="embeddings",
                status=HEALTHY,
                metadata={"provider": model.provider, "model": model.name, "dimensions": embeddings.dimensions},
            )
            return
        self.health["embeddings"] = ProviderHealth(
            name="embeddings",
            status=DEGRADED,
            metadata={
                "provider": embeddings.provider,
                "model": embeddings.model,
                "error": "embedding model not loaded",
            },
        )

    def _find_embedding_model(self) -> LoadedModel | None:
        embeddings = self.config.embeddings
        if embeddings is None:
            return None
        if embeddings.provider == "local":
            for model in self.loaded_models.values():
                if model.type == "embedding" and embeddings.model in (model.name, model.path):
                    return model
            for model in self.loaded_models.values():
                if model.type == "embedding":
                    return model
            return None
        if embeddings.provider in self.providers:
            return LoadedModel(
                name=embeddings.model,
                path=embeddings.model,
                type="embedding",
                provider=embeddings.provider,
                kind="cloud",
                capabilities=["embeddings"],
            )
        return None

    def get_model(self, name: str) -> LoadedModel:
        model = self.loaded_models.get(name)
        if model is None:
            for candidate in self.loaded_models.values():
                if candidate.path == name:
                    return candidate
            raise ModelNotFound(name)
        return model

    def find_models(self, capability: str) -> list[LoadedModel]:
        """Loaded models supporting ``capability``: healthy first, local before cloud."""
        matches = [
            m for m in self.loaded_models.values()
            if m.type != "embedding" and m.supports(capability)
            and self._status_of(m) != UNHEALTHY
        ]
        return sorted(
            matches,
            key=lambda m: (self._status_of(m) != HEALTHY, m.kind != "local"),
        )

    def _status_of(self, model: LoadedModel) -> str:
        provider_health = self.health.get(model.provider)
        if provider_health and provider_health.status == UNHEALTHY:
            return UNHEALTHY
        record = self.health.get(model.name)
        return record.status if record else HEALTHY

    async def invoke(
        self,
        model_name: str,
        prompt: str,
        options: dict[str, Any] | None = None,
    ) -> GenerateResponse:
        """Invoke one named model without failover."""
        model = self.get_model(model_name)
        return await self._call(model, prompt, options)

    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        capability: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> GenerateResponse:
        """
        Generate with health-aware selection.

        The named model (when loaded) is tried first, then other loaded
        models advertising ``capability``. Each failure downgrades the
        model's health and moves on to the next candidate.

        Raises:
            ModelNotFound: No candidate model is loaded.
            ProviderError: Every candidate failed.
        """
        candidates: list[LoadedModel] = []
        if model:
            try:
                candidates.append(self.get_model(model))
            except ModelNotFound:
                if not capability:
                    raise
        if capability:
            candidates.extend(m for m in self.find_models(capability) if m not in candidates)
        if not candidates:
            raise ModelNotFound(model or capability or "<unspecified>")

        last_error: Exception | None = None
        for candidate in candidates:
            try:
                return await self._call(candidate, prompt, options)
            except ProviderError as e:
                last_error = e
                logger.warning(f"Model {candidate.name} failed, trying next candidate: {e}")
        raise ProviderError(
            "All candidate models failed",
            details={"candidates": [c.name for c in candidates]},
            cause=last_error,
        )

    async def _call(
        self,
        model: LoadedModel,
        prompt: str,
        options: dict[str, Any] | None,
    ) -> GenerateResponse:
        provider = self.providers.get(model.provider)
        if provider is None:
            raise ModelNotFound(model.name)
        started = time.perf_counter()
        try:
            response = await provider.generate(model.path, prompt, options)
        except Exception as e:
            self._record_failure(model.name, e)
            if isinstance(e, ProviderError):
                raise
            raise ProviderError(f"{model.name} invocation failed: {e}", cause=e) from e
        self._record_success(model.name, (time.perf_counter() - started) * 1000)
        return response

    def _record_failure(self, name: str, error: BaseException) -> None:
        record = self.health.setdefault(name, ProviderHealth(name=name))
        record.error_count += 1
        record.status = DEGRADED
        record.metadata["last_error"] = str(error)

    def _record_success(self, name: str, latency_ms: float) -> None:
        record = self.health.setdefault(name, ProviderHealth(name=name))
        record.latency_ms = round(latency_ms, 2)
        if record.status == DEGRADED:
            record.status = HEALTHY
            record.metadata.pop("last_error", None)

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed ``text`` with the configured embedding backend."""
        if self.config.embeddings is None:
            raise ProviderError("Embeddings not configured")
        model = self._find_embedding_model()
        if model is None:
            raise ModelNotFound(self.config.embeddings.model)
        provider = self.providers.get(model.provider)
        if provider is None:
            raise ModelNotFound(model.name)
        try:
            return await provider.embeddings(model.path, text)
        except Exception as e:
            self._record_failure("embeddings", e)
            if isinstance(e, ProviderError):
                raise
            raise ProviderError(f"Embedding failed: {e}", cause=e) from e

    def get_loaded_models(self) -> list[str]:
        return list(self.loaded_models)

    def get_model_versions(self) -> dict[str, str]:
        return {name: model.version or "1.0.0" for name, model in self.loaded_models.items()}

    def get_health_status(self) -> dict[str, dict[str, Any]]:
        """Snapshot of cached health records."""
        return {name: record.to_dict() for name, record in self.health.items()}

    def _reset(self) -> None:
        self.providers.clear()
        self.loaded_models.clear()
        self.health.clear()
        self._initialized = False

    async def update_config(self, config: ModelsConfig) -> None:
        """Swap configuration, reset health, and re-probe if already running."""
        was_ready = self._initialized
        self.config = config
        if self._local_override is None:
            self.local_client = self._build_local_client(config)
        self._reset()
        logger.info("Model manager configuration updated")
        if was_ready:
            await self.initialize()

    async def shutdown(self) -> None:
        logger.info("Shutting down model manager...")
        self._reset()

    def is_ready(self) -> bool:
        return self._initialized
