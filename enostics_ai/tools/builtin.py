"""Default capability set."""

from __future__ import annotations

from enostics_ai.config.schema import ToolsConfig
from enostics_ai.tools.analysis import AnalyzePayloadTool, AssessRiskTool, ClassifyDataTool
from enostics_ai.tools.browser import BrowseWebTool
from enostics_ai.tools.database import QueryDatabaseTool, RecordStore
from enostics_ai.tools.integrations import ExternalApiTool
from enostics_ai.tools.registry import FunctionRegistry


def register_default_tools(
    registry: FunctionRegistry,
    config: ToolsConfig | None = None,
    *,
    store: RecordStore | None = None,
) -> FunctionRegistry:
    """Register the built-in capabilities into ``registry``."""
    tools_cfg = config or ToolsConfig()
    registry.register(BrowseWebTool(tools_cfg.browser))
    registry.register(AnalyzePayloadTool())
    registry.register(QueryDatabaseTool(store))
    registry.register(ExternalApiTool(tools_cfg.external_api))
    registry.register(ClassifyDataTool())
    registry.register(AssessRiskTool())
    return registry


def build_function_registry(
    config: ToolsConfig | None = None,
    *,
    store: RecordStore | None = None,
) -> FunctionRegistry:
    return register_default_tools(FunctionRegistry(), config, store=store)
