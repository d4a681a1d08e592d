"""Keyword-driven payload analysis capabilities."""

from typing import Any

from enostics_ai.tools.base import Tool
from enostics_ai.utils.helpers import now_iso, serialize_payload

ANALYSIS_FIELD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "health": ("heart_rate", "blood_pressure", "temperature", "weight", "steps", "glucose", "sleep"),
    "iot": ("sensor", "device", "temperature", "humidity", "battery", "firmware"),
    "financial": ("amount", "currency", "payment", "balance", "transaction", "account"),
    "security": ("password", "token", "secret", "api_key", "auth", "session"),
}

ANALYSIS_TYPE_ALIASES = {
    "healthcare": "health",
    "finance": "financial",
}

ANALYSIS_RECOMMENDATIONS = {
    "health": "Consider HIPAA compliance for health data",
    "iot": "Monitor device battery levels and connectivity",
    "financial": "Apply PCI DSS controls to payment fields",
    "security": "Avoid sending credentials in payloads; rotate exposed secrets",
}

ANALYSIS_LABELS = {
    "health": "Health-related fields detected",
    "iot": "IoT device fields detected",
    "financial": "Financial fields detected",
    "security": "Credential-like fields detected",
}

# (label, confidence, keywords) in priority order
CLASSIFICATION_RULES: tuple[tuple[str, float, tuple[str, ...]], ...] = (
    ("healthcare", 0.9, ("heart", "blood", "health")),
    ("financial", 0.85, ("payment", "amount", "currency")),
    ("iot", 0.8, ("device", "sensor", "temperature")),
    ("communication", 0.75, ("message", "email", "phone")),
)

SECURITY_PATTERNS = ("script", "eval", "javascript:", "drop table", "union select")
PRIVACY_PATTERNS = ("ssn", "social", "passport", "credit_card", "card_number")
SPAM_PATTERNS = ("free money", "click here", "winner", "lottery", "act now", "viagra")

RISK_CATEGORIES = ("security", "privacy", "quality", "spam")
_RISK_ORDER = {"low": 0, "medium": 1, "high": 2}


def _top_level_keys(payload: Any) -> list[str]:
    return [str(k) for k in payload] if isinstance(payload, dict) else []


def _matching_fields(keys: list[str], keywords: tuple[str, ...]) -> list[str]:
    return [k for k in keys if any(word in k.lower() for word in keywords)]


def analyze_payload(payload: Any, analysis_type: str = "general") -> dict[str, Any]:
    """Scan field names against a per-type keyword set."""
    requested = (analysis_type or "general").strip().lower()
    kind = ANALYSIS_TYPE_ALIASES.get(requested, requested)
    keys = _top_level_keys(payload)

    insights = [f"Payload contains {len(keys)} fields"]
    patterns: list[str] = []
    anomalies: list[str] = []
    recommendations: list[str] = []

    if isinstance(payload, dict):
        numeric = [k for k, v in payload.items() if isinstance(v, (int, float)) and not isinstance(v, bool)]
        nested = [k for k, v in payload.items() if isinstance(v, (dict, list))]
        nulls = [k for k, v in payload.items() if v is None or v == ""]
        if numeric:
            patterns.append(f"Numeric fields: {', '.join(numeric)}")
        if nested:
            patterns.append(f"Nested structures: {', '.join(nested)}")
        if nulls:
            anomalies.append(f"Empty values in fields: {', '.join(nulls)}")

    keywords = ANALYSIS_FIELD_KEYWORDS.get(kind)
    if keywords:
        fields = _matching_fields(keys, keywords)
        if fields:
            insights.append(f"{ANALYSIS_LABELS[kind]}: {', '.join(fields)}")
            recommendations.append(ANALYSIS_RECOMMENDATIONS[kind])
            if kind == "security":
                anomalies.append(f"Sensitive field names present: {', '.join(fields)}")

    return {
        "type": kind,
        "timestamp": now_iso(),
        "insights": insights,
        "patterns": patterns,
        "anomalies": anomalies,
        "recommendations": recommendations,
    }


def classify_data(data: Any, confidence_threshold: float | None = None) -> dict[str, Any]:
    """Multi-label keyword classifier; keeps labels at or above the threshold."""
    threshold = 0.7 if confidence_threshold is None else float(confidence_threshold)
    text = serialize_payload(data).lower()
    classifications = [
        {"type": label, "confidence": confidence}
        for label, confidence, keywords in CLASSIFICATION_RULES
        if any(word in text for word in keywords)
    ]
    return {
        "classifications": [c for c in classifications if c["confidence"] >= threshold],
        "timestamp": now_iso(),
        "threshold_used": threshold,
    }


def assess_risk(payload: Any, check_types: list[str] | None = None) -> dict[str, Any]:
    """Per-category keyword risk flags plus the worst level as ``overall_risk``."""
    checks = [c for c in (check_types or ["security", "quality"]) if c in RISK_CATEGORIES]
    risks: dict[str, dict[str, Any]] = {
        name: {"level": "low", "issues": []} for name in RISK_CATEGORIES
    }
    text = serialize_payload(payload).lower()

    if "security" in checks:
        hits = [p for p in SECURITY_PATTERNS if p in text]
        if hits:
            risks["security"]["level"] = "high"
            risks["security"]["issues"].append(
                f"Potential script injection detected ({', '.join(hits)})"
            )

    if "privacy" in checks:
        hits = [p for p in PRIVACY_PATTERNS if p in text]
        if hits:
            risks["privacy"]["level"] = "high"
            risks["privacy"]["issues"].append(f"Potential PII detected ({', '.join(hits)})")

    if "quality" in checks:
        if payload in (None, {}, [], ""):
            risks["quality"]["level"] = "high"
            risks["quality"]["issues"].append("Empty payload")
        elif isinstance(payload, dict):
            nulls = [str(k) for k, v in payload.items() if v is None]
            if nulls:
                risks["quality"]["level"] = "medium"
                risks["quality"]["issues"].append(f"Null values in fields: {', '.join(nulls)}")

    if "spam" in checks:
        hits = [p for p in SPAM_PATTERNS if p in text]
        if hits:
            risks["spam"]["level"] = "high" if len(hits) > 1 else "medium"
            risks["spam"]["issues"].append(f"Spam phrases detected ({', '.join(hits)})")

    overall = "low"
    for name in checks:
        level = risks[name]["level"]
        if _RISK_ORDER[level] > _RISK_ORDER[overall]:
            overall = level

    return {
        "risks": risks,
        "overall_risk": overall,
        "timestamp": now_iso(),
        "checks_performed": checks,
    }


class AnalyzePayloadTool(Tool):
    """Analyze a payload for patterns, anomalies and insights."""

    name = "analyze_payload"
    description = "Analyze JSON payload for patterns, anomalies, and insights"
    parameters = {
        "type": "object",
        "properties": {
            "payload": {"type": "object", "description": "The JSON payload to analyze"},
            "analysis_type": {
                "type": "string",
                "enum": ["health", "financial", "iot", "general", "security"],
                "description": "Type of analysis to perform",
            },
        },
        "required": ["payload"],
    }

    async def execute(self, payload: Any = None, analysis_type: str = "general", **kwargs: Any) -> dict[str, Any]:
        return analyze_payload(payload, analysis_type)


class ClassifyDataTool(Tool):
    """Tag data with business-context labels."""

    name = "classify_data"
    description = "Classify and tag incoming data with business context"
    parameters = {
        "type": "object",
        "properties": {
            "data": {"type": "object", "description": "Data to classify"},
            "confidence_threshold": {
                "type": "number",
                "description": "Minimum confidence threshold for classification",
            },
        },
        "required": ["data"],
    }

    async def execute(
        self,
        data: Any = None,
        confidence_threshold: float | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        return classify_data(data, confidence_threshold)


class AssessRiskTool(Tool):
    """Flag security, privacy, quality and spam risks."""

    name = "assess_risk"
    description = "Assess security and quality risks in data payloads"
    parameters = {
        "type": "object",
        "properties": {
            "payload": {"type": "object", "description": "Payload to assess for risks"},
            "check_types": {
                "type": "array",
                "items": {"type": "string", "enum": list(RISK_CATEGORIES)},
                "description": "Types of risk checks to perform",
            },
        },
        "required": ["payload"],
    }

    async def execute(self, payload: Any = None, check_types: list[str] | None = None, **kwargs: Any) -> dict[str, Any]:
        return assess_risk(payload, check_types)
