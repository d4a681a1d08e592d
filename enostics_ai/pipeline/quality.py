"""Data-quality scoring stage."""

import re
from typing import Any

from loguru import logger

from enostics_ai.config.schema import QualityFilterConfig
from enostics_ai.pipeline.base import Stage
from enostics_ai.pipeline.prompts import QUALITY_OPTIONS, quality_prompt
from enostics_ai.pipeline.types import QualityFactor, QualityIssue, QualityResult
from enostics_ai.utils.helpers import extract_json_object, iter_leaves

HEURISTIC_CONFIDENCE = 0.9
EMPTY_CONFIDENCE = 0.5

# Field-name tokens and the value types they imply.
_NUMERIC_HINTS = {"rate", "count", "amount", "price", "temperature", "age", "score", "total", "level", "value"}
_BOOL_PREFIXES = {"is", "has"}
_BOOL_SUFFIXES = {"enabled", "active"}
_TEXT_HINTS = {"name", "email", "message", "title", "description", "address"}

_SNAKE_RE = re.compile(r"^[a-z0-9]+(_[a-z0-9]+)*$")
_CAMEL_RE = re.compile(r"^[a-z][a-z0-9]*([A-Z][a-z0-9]*)+$")


def quality_band(score: float) -> str:
    if score > 85:
        return "high-quality"
    if score > 70:
        return "medium-quality"
    return "low-quality"


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _name_tokens(path: str) -> list[str]:
    """Lowercase word tokens of the last path segment (snake, camel or kebab)."""
    name = re.sub(r"(\[\d+\])+$", "", path.rsplit(".", 1)[-1])
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name)
    return [token for token in re.split(r"[_\W]+", name.lower()) if token]


def _type_matches(tokens: list[str], value: Any) -> bool | None:
    """True/False when the name implies a type, None when it implies nothing."""
    if not tokens:
        return None
    if tokens[0] in _BOOL_PREFIXES or tokens[-1] in _BOOL_SUFFIXES:
        return isinstance(value, bool)
    if any(token in _NUMERIC_HINTS for token in tokens):
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return True
        if isinstance(value, str):
            try:
                float(value)
            except ValueError:
                return False
            return True
        return False
    if any(token in _TEXT_HINTS for token in tokens):
        return isinstance(value, str)
    return None


def _naming_style(key: str) -> str:
    if _SNAKE_RE.match(key):
        return "snake" if "_" in key else "lower"
    if _CAMEL_RE.match(key):
        return "camel"
    return "other"


def _collect_keys(value: Any) -> list[str]:
    keys: list[str] = []
    if isinstance(value, dict):
        for key, child in value.items():
            keys.append(str(key))
            keys.extend(_collect_keys(child))
    elif isinstance(value, list):
        for child in value:
            keys.extend(_collect_keys(child))
    return keys


def score_completeness(leaves: list[tuple[str, Any]]) -> tuple[float, list[QualityIssue]]:
    if not leaves:
        return 0.0, []
    empty = [path for path, value in leaves if _is_empty(value)]
    issues = [
        QualityIssue(
            type="missing_value",
            severity="medium",
            description=f"Field '{path or '<root>'}' is empty or null",
            suggestion="Provide a value or drop the field",
        )
        for path in empty
    ]
    return 100.0 * (len(leaves) - len(empty)) / len(leaves), issues


def score_accuracy(leaves: list[tuple[str, Any]]) -> tuple[float, list[QualityIssue]]:
    checked = 0
    matched = 0
    issues: list[QualityIssue] = []
    for path, value in leaves:
        if _is_empty(value):
            continue
        verdict = _type_matches(_name_tokens(path), value)
        if verdict is None:
            continue
        checked += 1
        if verdict:
            matched += 1
        else:
            issues.append(
                QualityIssue(
                    type="type_mismatch",
                    severity="low",
                    description=f"Field '{path}' has unexpected type {type(value).__name__}",
                )
            )
    if checked == 0:
        return 100.0, issues
    return 100.0 * matched / checked, issues


def score_consistency(payload: Any) -> float:
    keys = _collect_keys(payload)
    if not keys:
        return 100.0
    styles: dict[str, int] = {}
    for key in keys:
        style = _naming_style(key)
        # Single lowercase words fit either convention.
        if style == "lower":
            continue
        styles[style] = styles.get(style, 0) + 1
    if not styles:
        return 100.0
    dominant = max(styles.values())
    return 100.0 * dominant / sum(styles.values())


class QualityStage(Stage):
    """Score payload quality from weighted completeness, accuracy and consistency."""

    name = "quality"

    def __init__(self, config: QualityFilterConfig | None = None, models=None):
        super().__init__(config or QualityFilterConfig(), models)

    async def run(self, payload: Any, context: dict[str, Any] | None = None) -> QualityResult:
        return await self.assess(payload, context)

    async def assess(self, data: Any, context: dict[str, Any] | None = None) -> QualityResult:
        if self._provider_available():
            try:
                return await self._assess_with_provider(data)
            except Exception as e:
                logger.warning(f"AI quality scoring unavailable, using heuristic: {e}")
        return self._assess_heuristic(data)

    def _provider_available(self) -> bool:
        return self.models is not None and self.config.scoring_model in self.models.loaded_models

    def _weights(self) -> dict[str, float]:
        return {f.name: f.weight for f in self.config.factors if f.enabled}

    def _combine(self, scores: dict[str, float]) -> int:
        weights = {name: w for name, w in self._weights().items() if name in scores}
        total = sum(weights.values())
        if total <= 0:
            combined = sum(scores.values()) / len(scores) if scores else 0.0
        else:
            combined = sum(scores[name] * w for name, w in weights.items()) / total
        return int(round(min(max(combined, 0.0), 100.0)))

    def _tags(self, score: int) -> list[str]:
        tags = [quality_band(score)]
        if score < self.config.min_score:
            tags.append("below-threshold")
        return tags

    def _assess_heuristic(self, data: Any) -> QualityResult:
        if _is_empty(data):
            issue = QualityIssue(
                type="empty_payload",
                severity="high",
                description="Payload carries no data",
                suggestion="Send at least one field",
            )
            factors = [
                QualityFactor(name=f.name, weight=f.weight, enabled=f.enabled, score=0.0, reasoning="empty payload")
                for f in self.config.factors
            ]
            return QualityResult(
                score=0,
                confidence=EMPTY_CONFIDENCE,
                factors=factors,
                tags=self._tags(0),
                issues=[issue],
            )

        leaves = list(iter_leaves(data))
        completeness, missing = score_completeness(leaves)
        accuracy, mismatched = score_accuracy(leaves)
        consistency = score_consistency(data)
        raw = {"completeness": completeness, "accuracy": accuracy, "consistency": consistency}
        reasons = {
            "completeness": f"{len(leaves) - len(missing)}/{len(leaves)} fields populated",
            "accuracy": f"{len(mismatched)} type mismatch(es)",
            "consistency": "key naming style uniformity",
        }

        factors = [
            QualityFactor(
                name=f.name,
                weight=f.weight,
                enabled=f.enabled,
                score=round(raw[f.name], 2) if f.name in raw else None,
                reasoning=reasons.get(f.name, "no heuristic for this factor"),
            )
            for f in self.config.factors
        ]
        scored = {f.name: raw[f.name] for f in self.config.factors if f.enabled and f.name in raw}
        score = self._combine(scored or raw)
        return QualityResult(
            score=score,
            confidence=HEURISTIC_CONFIDENCE,
            factors=factors,
            tags=self._tags(score),
            issues=missing + mismatched,
        )

    async def _assess_with_provider(self, data: Any) -> QualityResult:
        factor_names = [f.name for f in self.config.factors if f.enabled]
        response = await self.models.generate(
            quality_prompt(data, factor_names),
            model=self.config.scoring_model,
            capability="quality",
            options=dict(QUALITY_OPTIONS),
        )
        parsed = extract_json_object(response.text)
        if parsed is None:
            raise ValueError("quality response contained no JSON object")

        provided: dict[str, dict[str, Any]] = {}
        for item in parsed.get("factors") or []:
            if isinstance(item, dict) and item.get("name"):
                provided[str(item["name"])] = item

        factors: list[QualityFactor] = []
        scores: dict[str, float] = {}
        for f in self.config.factors:
            item = provided.get(f.name, {})
            value = item.get("score")
            factor_score = float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None
            if factor_score is not None:
                factor_score = min(max(factor_score, 0.0), 100.0)
                if f.enabled:
                    scores[f.name] = factor_score
            factors.append(
                QualityFactor(
                    name=f.name,
                    weight=f.weight,
                    enabled=f.enabled,
                    score=factor_score,
                    reasoning=str(item.get("reasoning") or ""),
                )
            )

        overall = parsed.get("score")
        if scores:
            score = self._combine(scores)
        elif isinstance(overall, (int, float)) and not isinstance(overall, bool):
            score = int(round(min(max(float(overall), 0.0), 100.0)))
        else:
            raise ValueError("quality response carried no usable score")

        try:
            confidence = float(parsed.get("confidence", HEURISTIC_CONFIDENCE))
        except (TypeError, ValueError):
            confidence = HEURISTIC_CONFIDENCE
        return QualityResult(
            score=score,
            confidence=min(max(confidence, 0.0), 1.0),
            factors=factors,
            tags=self._tags(score),
            issues=[],
        )

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        status["model"] = self.config.scoring_model
        status["min_score"] = self.config.min_score
        return status
