"""Analysis pipeline: stages, session memory and the engine."""

from enostics_ai.pipeline.base import Stage
from enostics_ai.pipeline.classification import ClassificationStage
from enostics_ai.pipeline.engine import AIEngine, EngineState
from enostics_ai.pipeline.memory import SessionMemory
from enostics_ai.pipeline.quality import QualityStage
from enostics_ai.pipeline.summarizer import SummaryStage
from enostics_ai.pipeline.types import (
    Capability,
    ClassificationResult,
    EnrichedData,
    ProcessingResult,
    QualityFactor,
    QualityIssue,
    QualityResult,
    SummaryResult,
)

__all__ = [
    "AIEngine",
    "Capability",
    "ClassificationResult",
    "ClassificationStage",
    "EngineState",
    "EnrichedData",
    "ProcessingResult",
    "QualityFactor",
    "QualityIssue",
    "QualityResult",
    "QualityStage",
    "SessionMemory",
    "Stage",
    "SummaryResult",
    "SummaryStage",
]
