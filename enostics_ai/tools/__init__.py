"""Named capabilities callable by model-driven callers."""

from enostics_ai.tools.base import FunctionDefinition, FunctionTool, Tool
from enostics_ai.tools.builtin import build_function_registry, register_default_tools
from enostics_ai.tools.database import InMemoryRecordStore, RecordStore
from enostics_ai.tools.registry import FunctionRegistry

__all__ = [
    "FunctionDefinition",
    "FunctionRegistry",
    "FunctionTool",
    "InMemoryRecordStore",
    "RecordStore",
    "Tool",
    "build_function_registry",
    "register_default_tools",
]
