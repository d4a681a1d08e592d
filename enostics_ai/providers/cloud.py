"""Cloud LLM provider backed by LiteLLM."""

from typing import Any

from litellm import acompletion, aembedding

from enostics_ai.config.schema import CloudProviderConfig
from enostics_ai.errors import ProviderError
from enostics_ai.providers.base import GenerateResponse, ModelProvider


class CloudProvider(ModelProvider):
    """
    Cloud provider routed through LiteLLM.

    Ollama-style sampling options are mapped onto chat-completion arguments:
    ``num_predict`` becomes ``max_tokens``.
    """

    kind = "cloud"

    def __init__(self, config: CloudProviderConfig, timeout: float = 10.0):
        self.config = config
        self.name = config.name
        self.timeout = timeout

    def _resolve_model(self, model: str) -> str:
        prefix = f"{self.name}/"
        if model.lower().startswith(prefix):
            return model
        return prefix + model

    def _auth_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key
        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base
        return kwargs

    async def generate(
        self,
        model: str,
        prompt: str,
        options: dict[str, Any] | None = None,
    ) -> GenerateResponse:
        opts = options or {}
        kwargs = self._auth_kwargs()
        if "temperature" in opts:
            kwargs["temperature"] = opts["temperature"]
        if "num_predict" in opts:
            kwargs["max_tokens"] = opts["num_predict"]
        resolved = self._resolve_model(model)
        try:
            response = await acompletion(
                model=resolved,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
            text = response.choices[0].message.content or ""
        except Exception as e:
            raise ProviderError(
                f"{self.name} completion failed: {e}",
                details={"model": resolved},
                cause=e,
            ) from e
        return GenerateResponse(model=model, text=text, done=True)

    async def embeddings(self, model: str, prompt: str) -> list[float]:
        resolved = self._resolve_model(model)
        try:
            response = await aembedding(model=resolved, input=[prompt], **self._auth_kwargs())
            item = response.data[0]
            vector = item["embedding"] if isinstance(item, dict) else item.embedding
        except Exception as e:
            raise ProviderError(
                f"{self.name} embedding failed: {e}",
                details={"model": resolved},
                cause=e,
            ) from e
        return [float(v) for v in vector]

    async def list_models(self) -> list[str]:
        return list(self.config.models)

    async def is_healthy(self) -> bool:
        return self.config.enabled
