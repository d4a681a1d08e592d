"""Result types produced by the pipeline stages and the engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class ClassificationResult:
    business_context: str
    confidence: float
    tags: list[str] = field(default_factory=list)
    category: str = "data_input"
    subcategory: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QualityFactor:
    name: str
    weight: float
    enabled: bool = True
    score: float | None = None
    reasoning: str = ""


@dataclass(frozen=True)
class QualityIssue:
    type: str
    severity: str  # low | medium | high
    description: str
    suggestion: str | None = None


@dataclass(frozen=True)
class QualityResult:
    score: int
    confidence: float
    factors: list[QualityFactor] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    issues: list[QualityIssue] = field(default_factory=list)


@dataclass(frozen=True)
class SummaryResult:
    insights: list[str]
    key_points: list[str]
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EnrichedData:
    business_context: str
    quality_score: int
    key_insights: list[str]
    confidence: float
    tags: list[str]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProcessingResult:
    """Merged output of one ``process_data`` call."""

    session_id: str
    timestamp: str
    processing_time_ms: float
    classification: ClassificationResult
    quality: QualityResult
    summary: SummaryResult
    enriched: EnrichedData

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Capability:
    name: str
    description: str
    enabled: bool
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
