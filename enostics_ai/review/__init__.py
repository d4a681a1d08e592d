"""Inbox review pipeline and trigger rules."""

from enostics_ai.review.reviewer import InboxReviewer, ReviewAnalysis, ReviewResult
from enostics_ai.review.rules import DEFAULT_RULES, ReviewRule, RulePredicate, evaluate_rules

__all__ = [
    "DEFAULT_RULES",
    "InboxReviewer",
    "ReviewAnalysis",
    "ReviewResult",
    "ReviewRule",
    "RulePredicate",
    "evaluate_rules",
]
