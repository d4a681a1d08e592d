"""Function registry: name -> capability dispatch table."""

from __future__ import annotations

from typing import Any

from loguru import logger

from enostics_ai.errors import CapabilityNotFound, MissingArgumentsError
from enostics_ai.tools.base import FunctionDefinition, FunctionHandler, FunctionTool, Tool


class FunctionRegistry:
    """
    Registry of callable capabilities.

    Re-registering a name replaces the previous handler and definition in
    place, so ``get_definitions()`` never lists a name twice.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, definition: FunctionDefinition | Tool, handler: FunctionHandler | None = None) -> None:
        """
        Register a capability.

        Args:
            definition: A Tool instance, or a FunctionDefinition paired with ``handler``.
            handler: Coroutine function receiving the argument dict.
        """
        if isinstance(definition, Tool):
            tool = definition
        else:
            if handler is None:
                raise ValueError(f"handler is required to register {definition.name}")
            tool = FunctionTool(definition, handler)
        if tool.name in self._tools:
            logger.warning(f"Capability {tool.name} re-registered; replacing previous handler")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, args: dict[str, Any] | None = None) -> Any:
        """
        Invoke a capability by name.

        Handler failures propagate to the caller unchanged; there is no retry.

        Raises:
            CapabilityNotFound: ``name`` is not registered.
            MissingArgumentsError: A required parameter is absent.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise CapabilityNotFound(name)
        params = dict(args or {})
        missing = tool.missing_required(params)
        if missing:
            raise MissingArgumentsError(name, missing)
        logger.debug(f"Executing capability: {name} with arguments: {sorted(params)}")
        return await tool.execute(**params)

    def get_definitions(self) -> list[FunctionDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def get_schemas(self) -> list[dict[str, Any]]:
        """Definitions in function-calling schema form."""
        return [definition.to_schema() for definition in self.get_definitions()]
