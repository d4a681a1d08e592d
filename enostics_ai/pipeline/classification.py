"""Business-context classification stage."""

from typing import Any

from loguru import logger

from enostics_ai.config.schema import ClassificationConfig
from enostics_ai.pipeline.base import Stage
from enostics_ai.pipeline.prompts import CLASSIFICATION_OPTIONS, classification_prompt
from enostics_ai.pipeline.types import ClassificationResult
from enostics_ai.utils.helpers import extract_json_object, now_iso, serialize_payload

DEFAULT_CONTEXT = "general"
FALLBACK_CONFIDENCE = 0.7

# Evaluated in order; first hit wins.
FALLBACK_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("healthcare", ("heart", "blood", "health")),
    ("iot", ("device", "sensor", "temperature")),
    ("financial", ("payment", "amount", "currency")),
    ("communication", ("message", "email", "phone")),
)


def keyword_context(data: Any, categories: list[str]) -> str:
    """Deterministic keyword classification over the serialized payload."""
    text = serialize_payload(data).lower()
    for label, keywords in FALLBACK_RULES:
        if label in categories and any(word in text for word in keywords):
            return label
    return DEFAULT_CONTEXT


class ClassificationStage(Stage):
    """Classify a payload's business context via a provider, with keyword fallback."""

    name = "classification"

    def __init__(self, config: ClassificationConfig | None = None, models=None):
        super().__init__(config or ClassificationConfig(), models)

    @property
    def categories(self) -> list[str]:
        configured = [c.strip().lower() for c in self.config.categories if c and c.strip()]
        if DEFAULT_CONTEXT not in configured:
            configured.append(DEFAULT_CONTEXT)
        return configured

    async def run(self, payload: Any, context: dict[str, Any] | None = None) -> ClassificationResult:
        return await self.classify(payload, context)

    async def classify(self, data: Any, context: dict[str, Any] | None = None) -> ClassificationResult:
        try:
            return await self._classify_with_provider(data)
        except Exception as e:
            logger.warning(f"AI classification unavailable, using fallback rules: {e}")
            return self._fallback(data, e)

    async def _classify_with_provider(self, data: Any) -> ClassificationResult:
        if self.models is None:
            raise RuntimeError("no model manager configured")
        response = await self.models.generate(
            classification_prompt(data, self.categories),
            model=self.config.model,
            capability="classification",
            options=dict(CLASSIFICATION_OPTIONS),
        )
        parsed = extract_json_object(response.text)
        if parsed is None:
            raise ValueError("classification response contained no JSON object")

        business_context = str(parsed.get("businessContext") or "").strip().lower()
        if business_context not in self.categories:
            raise ValueError(f"unexpected businessContext: {business_context!r}")
        try:
            confidence = float(parsed.get("confidence", 0.0))
        except (TypeError, ValueError) as e:
            raise ValueError("confidence is not a number") from e
        confidence = min(max(confidence, 0.0), 1.0)

        loaded = self.models.loaded_models.get(self.config.model)
        provider = loaded.provider if loaded else "provider"
        return ClassificationResult(
            business_context=business_context,
            confidence=confidence,
            tags=[business_context, "ai-classified", provider],
            category="data_input",
            subcategory=business_context,
            metadata={
                "timestamp": now_iso(),
                "agent": "classification-agent",
                "model": response.model,
                "reasoning": str(parsed.get("reasoning") or ""),
            },
        )

    def _fallback(self, data: Any, error: BaseException) -> ClassificationResult:
        business_context = keyword_context(data, self.categories)
        return ClassificationResult(
            business_context=business_context,
            confidence=FALLBACK_CONFIDENCE,
            tags=[business_context, "rule-based", "fallback"],
            category="data_input",
            subcategory=business_context,
            metadata={
                "timestamp": now_iso(),
                "agent": "classification-agent",
                "model": "fallback-rules",
                "error": str(error),
            },
        )

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        status["categories"] = self.categories
        status["confidence_threshold"] = self.config.confidence_threshold
        return status
