"""HTTP client for a local Ollama-compatible inference service."""

from typing import Any

import httpx
from loguru import logger

from enostics_ai.errors import ProviderError
from enostics_ai.providers.base import GenerateResponse, ModelProvider


class OllamaClient(ModelProvider):
    """Talk to ``/api/generate``, ``/api/embeddings`` and ``/api/tags``."""

    name = "ollama"
    kind = "local"

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:11434",
        timeout: float = 30.0,
        health_timeout: float = 2.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.health_timeout = health_timeout

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Ollama API error: {e.response.status_code}",
                details={"url": url},
                cause=e,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Ollama request failed: {e}", details={"url": url}, cause=e) from e
        if not isinstance(data, dict):
            raise ProviderError("Ollama returned a non-object response", details={"url": url})
        return data

    async def generate(
        self,
        model: str,
        prompt: str,
        options: dict[str, Any] | None = None,
    ) -> GenerateResponse:
        body: dict[str, Any] = {"model": model, "prompt": prompt, "stream": False}
        if options:
            body["options"] = options
        data = await self._post("/api/generate", body)
        return GenerateResponse(
            model=str(data.get("model") or model),
            text=str(data.get("response") or ""),
            done=bool(data.get("done", True)),
            raw=data,
        )

    async def embeddings(self, model: str, prompt: str) -> list[float]:
        data = await self._post("/api/embeddings", {"model": model, "prompt": prompt})
        vector = data.get("embedding")
        if not isinstance(vector, list):
            raise ProviderError("Ollama embeddings response missing 'embedding'")
        return [float(v) for v in vector]

    async def list_models(self) -> list[str]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Ollama list models error: {e}")
            return []
        models = data.get("models") if isinstance(data, dict) else None
        return [str(m.get("name", "")) for m in models or [] if isinstance(m, dict) and m.get("name")]

    async def is_healthy(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.health_timeout) as client:
                response = await client.get(
                    f"{self.base_url}/api/tags",
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.debug(f"Ollama health check failed at {self.base_url}: {e}")
            return False
        return response.is_success
