"""Review trigger rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from loguru import logger

from enostics_ai.utils.helpers import serialize_payload

PRIORITIES = ("low", "medium", "high")

KEYWORD_ANY = "keyword_any"
SIZE_OVER = "size_over"
PREDICATE = "predicate"
RULE_KINDS = (KEYWORD_ANY, SIZE_OVER, PREDICATE)

RulePredicate = Callable[[Any], bool]


@dataclass(frozen=True)
class ReviewRule:
    """
    A trigger rule evaluated against the serialized payload.

    ``kind`` selects the matcher:
    - ``keyword_any``: any of ``keywords`` occurs (case-insensitive)
    - ``size_over``: serialized length exceeds ``threshold``
    - ``predicate``: the predicate registered under ``predicate`` returns true
    """

    name: str
    kind: str
    action: str
    priority: str = "medium"
    keywords: tuple[str, ...] = ()
    threshold: int = 0
    predicate: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if self.kind not in RULE_KINDS:
            raise ValueError(f"Unknown rule kind: {self.kind}")
        if self.priority not in PRIORITIES:
            raise ValueError(f"Invalid priority '{self.priority}', expected one of {', '.join(PRIORITIES)}")
        if not self.name or not self.action:
            raise ValueError("Rule name and action are required")

    def matches(
        self,
        payload: Any,
        serialized: str | None = None,
        predicates: Mapping[str, RulePredicate] | None = None,
    ) -> bool:
        text = serialize_payload(payload) if serialized is None else serialized
        if self.kind == KEYWORD_ANY:
            lowered = text.lower()
            return any(word.lower() in lowered for word in self.keywords)
        if self.kind == SIZE_OVER:
            return len(text) > self.threshold
        predicate = (predicates or {}).get(self.predicate)
        if predicate is None:
            raise KeyError(f"Predicate not registered: {self.predicate}")
        return bool(predicate(payload))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind,
            "action": self.action,
            "priority": self.priority,
        }
        if self.description:
            data["description"] = self.description
        if self.kind == KEYWORD_ANY:
            data["keywords"] = list(self.keywords)
        elif self.kind == SIZE_OVER:
            data["threshold"] = self.threshold
        else:
            data["predicate"] = self.predicate
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewRule:
        return cls(
            name=str(data.get("name", "")),
            kind=str(data.get("kind", "")),
            action=str(data.get("action", "")),
            priority=str(data.get("priority", "medium")),
            keywords=tuple(str(k) for k in data.get("keywords", ())),
            threshold=int(data.get("threshold", 0)),
            predicate=str(data.get("predicate", "")),
            description=str(data.get("description", "")),
        )


DEFAULT_RULES: tuple[ReviewRule, ...] = (
    ReviewRule(
        name="high_risk_security",
        kind=KEYWORD_ANY,
        keywords=("script", "eval", "sql"),
        action="flag_for_security_review",
        priority="high",
        description="Payload contains executable or query-like content",
    ),
    ReviewRule(
        name="pii_detection",
        kind=KEYWORD_ANY,
        keywords=("ssn", "social", "passport"),
        action="apply_privacy_controls",
        priority="high",
        description="Payload may carry personal identifiers",
    ),
    ReviewRule(
        name="large_payload",
        kind=SIZE_OVER,
        threshold=100000,
        action="optimize_storage",
        priority="medium",
        description="Serialized payload exceeds 100000 characters",
    ),
)


def evaluate_rules(
    rules: list[ReviewRule] | tuple[ReviewRule, ...],
    payload: Any,
    predicates: Mapping[str, RulePredicate] | None = None,
) -> list[ReviewRule]:
    """
    Return every rule matching ``payload``.

    Rules are additive: each one is evaluated on its own, and a rule that
    raises is logged and skipped without affecting the others.
    """
    serialized = serialize_payload(payload)
    matched = []
    for rule in rules:
        try:
            if rule.matches(payload, serialized, predicates):
                matched.append(rule)
        except Exception as e:
            logger.warning(f"Review rule {rule.name} failed, skipping: {e}")
    return matched
