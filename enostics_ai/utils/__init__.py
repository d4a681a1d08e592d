"""Utility helpers."""

from enostics_ai.utils.helpers import (
    extract_json_object,
    new_id,
    now_iso,
    serialize_payload,
)

__all__ = ["extract_json_object", "new_id", "now_iso", "serialize_payload"]
