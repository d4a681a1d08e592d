"""Inbox review pipeline."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from loguru import logger

from enostics_ai.config.schema import ReviewConfig
from enostics_ai.review.rules import DEFAULT_RULES, ReviewRule, RulePredicate, evaluate_rules
from enostics_ai.tools.registry import FunctionRegistry
from enostics_ai.utils.helpers import new_id, now_iso, serialize_payload

COMPLETED = "completed"
SKIPPED = "skipped"

MANY_FIELDS = 10
LARGE_INSIGHT_SIZE = 10000
COLD_STORAGE_SIZE = 50000

CLASSIFICATION_DEFAULT: dict[str, Any] = {"classifications": [], "confidence": 0}
RISK_DEFAULT: dict[str, Any] = {"risks": {}, "overall_risk": "unknown"}

LABEL_RECOMMENDATIONS = {
    "healthcare": [
        "Healthcare data detected - ensure HIPAA compliance",
        "Consider encrypting sensitive health information",
    ],
    "financial": [
        "Financial data detected - implement PCI DSS controls",
        "Monitor for fraud patterns",
    ],
    "iot": [
        "IoT data detected - monitor device health and connectivity",
        "Set up alerts for device anomalies",
    ],
}

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now().astimezone()


def is_business_hours(moment: datetime) -> bool:
    """Monday to Friday, hours 9 through 17 inclusive."""
    return moment.weekday() < 5 and 9 <= moment.hour <= 17


def top_classification(classification: dict[str, Any]) -> dict[str, Any] | None:
    items = classification.get("classifications") or []
    return items[0] if items and isinstance(items[0], dict) else None


def overall_confidence(classification: dict[str, Any], risk: dict[str, Any]) -> float:
    top = top_classification(classification)
    top_confidence = float(top.get("confidence") or 0) if top else 0.0
    risk_confidence = 0.5 if risk.get("overall_risk") == "unknown" else 0.8
    return (top_confidence + risk_confidence) / 2


@dataclass(frozen=True)
class ReviewAnalysis:
    classification: dict[str, Any]
    risk_assessment: dict[str, Any]
    insights: list[str]
    recommendations: list[str]
    confidence: float


@dataclass(frozen=True)
class ReviewResult:
    id: str
    timestamp: str
    payload: Any
    analysis: ReviewAnalysis
    actions_taken: list[str]
    enriched_data: dict[str, Any]
    triggered_rules: list[dict[str, Any]] = field(default_factory=list)
    status: str = COMPLETED
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class InboxReviewer:
    """
    Six-step automated review of inbound payloads.

    Steps run in a fixed order: classify, assess risk, extract insights,
    generate recommendations, enrich, apply actions. Every step is
    fail-soft: an exception is logged and replaced with an empty default,
    so ``review_payload`` always returns a result.
    """

    def __init__(
        self,
        registry: FunctionRegistry,
        config: ReviewConfig | None = None,
        rules: list[ReviewRule] | None = None,
        clock: Clock | None = None,
        predicates: dict[str, RulePredicate] | None = None,
    ):
        self.registry = registry
        self.config = config or ReviewConfig()
        self.rules: list[ReviewRule] = list(DEFAULT_RULES if rules is None else rules)
        self.predicates: dict[str, RulePredicate] = dict(predicates or {})
        self._clock = clock or _local_now
        self._enabled = self.config.enabled
        self._last_review: str | None = None
        self._reviews = 0

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)
        logger.info(f"Inbox reviewer {'enabled' if self._enabled else 'disabled'}")

    def register_predicate(self, name: str, predicate: RulePredicate) -> None:
        """Make ``predicate`` available to ``predicate`` rules under ``name``."""
        self.predicates[name] = predicate

    def add_review_rule(self, rule: ReviewRule | dict[str, Any]) -> ReviewRule:
        if isinstance(rule, dict):
            rule = ReviewRule.from_dict(rule)
        self.rules.append(rule)
        return rule

    def get_status(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "rules_count": len(self.rules),
            "rules": [rule.name for rule in self.rules],
            "reviews": self._reviews,
            "last_review": self._last_review,
        }

    async def _run_step(self, name: str, step: Callable[[], Awaitable[Any]], default: Any) -> Any:
        try:
            return await step()
        except Exception as e:
            logger.warning(f"Review step {name} failed, using default: {e}")
            return default

    async def review_payload(self, payload: Any, metadata: dict[str, Any] | None = None) -> ReviewResult:
        """
        Review one payload.

        Args:
            payload: Inbound JSON-compatible data.
            metadata: Optional request metadata (``source_ip`` enables geolocation).

        Returns:
            The review result; never raises for step failures.
        """
        review_id = new_id("review")
        metadata = dict(metadata or {})
        started = time.perf_counter()

        if not self._enabled:
            logger.debug(f"Inbox reviewer disabled, skipping {review_id}")
            return ReviewResult(
                id=review_id,
                timestamp=now_iso(),
                payload=payload,
                analysis=ReviewAnalysis(
                    classification=dict(CLASSIFICATION_DEFAULT),
                    risk_assessment=dict(RISK_DEFAULT),
                    insights=[],
                    recommendations=[],
                    confidence=0.0,
                ),
                actions_taken=[],
                enriched_data={"original": payload, "metadata": metadata, "enrichments": {}},
                status=SKIPPED,
            )

        logger.info(f"Inbox reviewer: starting analysis for {review_id}")
        classification = await self._run_step(
            "classify", lambda: self._classify(payload), dict(CLASSIFICATION_DEFAULT)
        )
        risk = await self._run_step("assess_risk", lambda: self._assess_risk(payload), dict(RISK_DEFAULT))
        insights = await self._run_step("insights", lambda: self._extract_insights(payload, classification), [])
        recommendations = await self._run_step(
            "recommendations", lambda: self._recommend(payload, classification, risk), []
        )
        enriched = await self._run_step(
            "enrich",
            lambda: self._enrich(payload, metadata),
            {"original": payload, "metadata": metadata, "enrichments": {}},
        )
        actions = await self._run_step("actions", lambda: self._apply_actions(payload, classification, risk), [])
        triggered = await self._run_step("rules", lambda: self._evaluate_rules(payload, review_id), [])

        elapsed = round((time.perf_counter() - started) * 1000, 2)
        result = ReviewResult(
            id=review_id,
            timestamp=now_iso(),
            payload=payload,
            analysis=ReviewAnalysis(
                classification=classification,
                risk_assessment=risk,
                insights=insights,
                recommendations=recommendations,
                confidence=overall_confidence(classification, risk),
            ),
            actions_taken=actions,
            enriched_data=enriched,
            triggered_rules=triggered,
            processing_time_ms=elapsed,
        )
        self._reviews += 1
        self._last_review = result.timestamp
        logger.info(f"Inbox reviewer: completed {review_id} in {elapsed}ms")
        return result

    async def _classify(self, payload: Any) -> dict[str, Any]:
        return await self.registry.execute(
            "classify_data",
            {"data": payload, "confidence_threshold": self.config.classification_threshold},
        )

    async def _assess_risk(self, payload: Any) -> dict[str, Any]:
        return await self.registry.execute(
            "assess_risk",
            {"payload": payload, "check_types": list(self.config.check_types)},
        )

    async def _extract_insights(self, payload: Any, classification: dict[str, Any]) -> list[str]:
        insights: list[str] = []
        top = top_classification(classification)
        try:
            analysis = await self.registry.execute(
                "analyze_payload",
                {"payload": payload, "analysis_type": top["type"] if top else "general"},
            )
            insights.extend(analysis.get("insights", []))
            insights.extend(analysis.get("recommendations", []))
        except Exception as e:
            logger.warning(f"Insight extraction failed: {e}")

        if isinstance(payload, dict) and len(payload) > MANY_FIELDS:
            insights.append("Complex payload with many fields - consider data validation")
        if len(serialize_payload(payload)) > LARGE_INSIGHT_SIZE:
            insights.append("Large payload detected - monitor storage and processing costs")
        return insights

    async def _recommend(self, payload: Any, classification: dict[str, Any], risk: dict[str, Any]) -> list[str]:
        recommendations: list[str] = []
        if risk.get("overall_risk") == "high":
            recommendations.append("High risk detected - review payload manually")
            recommendations.append("Consider implementing additional validation rules")

        top = top_classification(classification)
        if top:
            recommendations.extend(LABEL_RECOMMENDATIONS.get(top.get("type"), []))

        if isinstance(payload, dict) and any(value is None for value in payload.values()):
            recommendations.append("Missing data fields detected - implement data validation")
        return recommendations

    async def _enrich(self, payload: Any, metadata: dict[str, Any]) -> dict[str, Any]:
        enrichments: dict[str, Any] = {}
        source_ip = metadata.get("source_ip")
        if source_ip:
            enrichments["geolocation"] = await self.registry.execute(
                "call_external_api",
                {"api_type": "geolocation", "parameters": {"ip": source_ip}},
            )
        moment = self._clock()
        enrichments["timing"] = {
            "received_at": moment.isoformat(),
            "day_of_week": moment.strftime("%A"),
            "hour_of_day": moment.hour,
            "is_business_hours": is_business_hours(moment),
        }
        return {"original": payload, "metadata": metadata, "enrichments": enrichments}

    async def _apply_actions(self, payload: Any, classification: dict[str, Any], risk: dict[str, Any]) -> list[str]:
        actions: list[str] = []
        audit = logger.bind(audit=True)
        if risk.get("overall_risk") == "high":
            actions.append("Flagged for manual review")
            actions.append("Notification sent to security team")
            audit.warning("Payload flagged for manual review; security team notified")

        top = top_classification(classification)
        if top and top.get("type") == "healthcare":
            actions.append("Applied healthcare data handling policies")
            actions.append("Logged for compliance audit trail")
            audit.info("Healthcare payload logged for compliance audit trail")

        if len(serialize_payload(payload)) > COLD_STORAGE_SIZE:
            actions.append("Large payload archived to cold storage")
            audit.info("Large payload archived to cold storage")
        return actions

    async def _evaluate_rules(self, payload: Any, review_id: str) -> list[dict[str, Any]]:
        triggered = []
        for rule in evaluate_rules(self.rules, payload, self.predicates):
            logger.bind(audit=True).info(f"Review rule {rule.name} triggered for {review_id}: {rule.action}")
            triggered.append({"name": rule.name, "action": rule.action, "priority": rule.priority})
        return triggered
