"""Insight and key-point summarization stage."""

from typing import Any

from loguru import logger

from enostics_ai.config.schema import DataSummarizerConfig
from enostics_ai.pipeline.base import Stage
from enostics_ai.pipeline.prompts import INSIGHTS_OPTIONS, insights_prompt
from enostics_ai.pipeline.types import SummaryResult
from enostics_ai.tools.analysis import classify_data
from enostics_ai.utils.helpers import extract_json_object, iter_leaves, nesting_depth, now_iso

HEURISTIC_CONFIDENCE = 0.88
EMPTY_CONFIDENCE = 0.5
PROVIDER_CONFIDENCE = 0.9
MAX_ITEMS = 5


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _primary_type(leaves: list[tuple[str, Any]]) -> str:
    counts: dict[str, int] = {}
    for _, value in leaves:
        if value is None:
            kind = "null"
        elif isinstance(value, bool):
            kind = "boolean"
        elif _is_number(value):
            kind = "numeric"
        elif isinstance(value, str):
            kind = "text"
        else:
            kind = "structured"
        counts[kind] = counts.get(kind, 0) + 1
    if not counts:
        return "none"
    return max(counts.items(), key=lambda item: item[1])[0]


def _clean_items(items: Any) -> list[str]:
    if not isinstance(items, list):
        return []
    return [str(item).strip() for item in items if str(item).strip()]


class SummaryStage(Stage):
    """Derive insights and key points from a payload."""

    name = "summarizer"

    def __init__(self, config: DataSummarizerConfig | None = None, models=None):
        super().__init__(config or DataSummarizerConfig(), models)

    async def run(self, payload: Any, context: dict[str, Any] | None = None) -> SummaryResult:
        return await self.summarize(payload, context)

    async def summarize(self, data: Any, context: dict[str, Any] | None = None) -> SummaryResult:
        if self._provider_available():
            try:
                return await self._summarize_with_provider(data, context)
            except Exception as e:
                logger.warning(f"AI summarization unavailable, using heuristic: {e}")
        return self._summarize_heuristic(data, context)

    def _provider_available(self) -> bool:
        if self.models is None:
            return False
        if self.config.model in self.models.loaded_models:
            return True
        return bool(self.models.find_models("summarization"))

    def _truncate(self, items: list[str]) -> list[str]:
        limit = self.config.max_length
        out = []
        for item in items[:MAX_ITEMS]:
            out.append(item if len(item) <= limit else item[: max(limit - 3, 0)] + "...")
        return out

    def _metadata(self, source: str, model: str | None = None) -> dict[str, Any]:
        if not self.config.include_metadata:
            return {}
        meta: dict[str, Any] = {"timestamp": now_iso(), "agent": "data-summarizer", "source": source}
        if model:
            meta["model"] = model
        return meta

    async def _summarize_with_provider(self, data: Any, context: dict[str, Any] | None) -> SummaryResult:
        response = await self.models.generate(
            insights_prompt(data, context),
            model=self.config.model,
            capability="summarization",
            options=dict(INSIGHTS_OPTIONS),
        )
        parsed = extract_json_object(response.text)
        if parsed is None:
            raise ValueError("insights response contained no JSON object")
        insights = _clean_items(parsed.get("insights"))
        key_points = _clean_items(parsed.get("keyPoints"))
        if not insights and not key_points:
            raise ValueError("insights response carried no insights or key points")

        metadata = self._metadata("provider", response.model)
        if metadata and parsed.get("summary"):
            metadata["summary"] = str(parsed["summary"])[: self.config.max_length]
        return SummaryResult(
            insights=self._truncate(insights),
            key_points=self._truncate(key_points),
            confidence=PROVIDER_CONFIDENCE,
            metadata=metadata,
        )

    def _summarize_heuristic(self, data: Any, context: dict[str, Any] | None) -> SummaryResult:
        leaves = [(p, v) for p, v in iter_leaves(data) if p]
        if not leaves:
            return SummaryResult(
                insights=["Payload carries no fields"],
                key_points=[],
                confidence=EMPTY_CONFIDENCE,
                metadata=self._metadata("heuristic"),
            )

        insights = [f"Payload contains {len(leaves)} data point(s)"]
        depth = nesting_depth(data)
        if depth > 1:
            insights.append(f"Nested structure {depth} levels deep")

        numeric = [(path, value) for path, value in leaves if _is_number(value)]
        if numeric:
            values = [value for _, value in numeric]
            if len(values) == 1:
                insights.append(f"Numeric field {numeric[0][0]} = {values[0]}")
            else:
                insights.append(f"{len(values)} numeric fields ranging from {min(values)} to {max(values)}")

        domains = [c["type"] for c in classify_data(data)["classifications"]]
        if domains:
            insights.append(f"Detected domain: {', '.join(domains)}")

        key_points = [f"Fields: {', '.join(path for path, _ in leaves[:8])}"]
        key_points.append(f"Primary data type: {_primary_type(leaves)}")
        if context:
            key_points.append(f"Context keys: {', '.join(sorted(str(k) for k in context))}")

        return SummaryResult(
            insights=self._truncate(insights),
            key_points=self._truncate(key_points),
            confidence=HEURISTIC_CONFIDENCE,
            metadata=self._metadata("heuristic"),
        )
