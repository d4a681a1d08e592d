"""Prompt contracts for provider-backed stages.

Each prompt asks for a single JSON object; responses are parsed with
``extract_json_object`` and validated by the calling stage.
"""

import json
from typing import Any

CLASSIFICATION_OPTIONS = {"temperature": 0.1, "num_predict": 200}
QUALITY_OPTIONS = {"temperature": 0.1, "num_predict": 300}
INSIGHTS_OPTIONS = {"temperature": 0.3, "num_predict": 400}


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def classification_prompt(data: Any, categories: list[str]) -> str:
    return (
        "Analyze this data and classify its business context. "
        "Respond ONLY with a JSON object in this exact format:\n"
        "{\n"
        f'  "businessContext": "one of: {", ".join(categories)}",\n'
        '  "confidence": 0.95,\n'
        '  "reasoning": "brief explanation"\n'
        "}\n\n"
        f"Data to classify:\n{_dump(data)}\n\n"
        "JSON Response:"
    )


def quality_prompt(data: Any, factor_names: list[str]) -> str:
    factors = ",\n".join(
        f'    {{"name": "{name}", "score": 80, "reasoning": "short reason"}}' for name in factor_names
    )
    return (
        "Analyze this data for quality and respond ONLY with a JSON object in this exact format:\n"
        "{\n"
        '  "score": 85,\n'
        '  "confidence": 0.90,\n'
        f'  "factors": [\n{factors}\n  ]\n'
        "}\n\n"
        f"Data to assess:\n{_dump(data)}\n\n"
        "JSON Response:"
    )


def insights_prompt(data: Any, context: dict[str, Any] | None = None) -> str:
    context_block = f"Context: {_dump(context)}\n\n" if context else ""
    return (
        "Analyze this data and generate insights. "
        "Respond ONLY with a JSON object in this exact format:\n"
        "{\n"
        '  "insights": ["insight 1", "insight 2", "insight 3"],\n'
        '  "keyPoints": ["key point 1", "key point 2", "key point 3"],\n'
        '  "summary": "Brief summary of the data"\n'
        "}\n\n"
        f"Data:\n{_dump(data)}\n\n"
        f"{context_block}"
        "JSON Response:"
    )
