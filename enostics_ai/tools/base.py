"""Base class for named capabilities."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

FunctionHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class FunctionDefinition:
    """
    Declarative description of a capability.

    ``parameters`` is a JSON-schema object. It is advertised to model-driven
    callers as-is; only its ``required`` list is enforced at call time.
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required") or [])

    def to_schema(self) -> dict[str, Any]:
        """Function-calling schema understood by chat-completion APIs."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class Tool(ABC):
    """A capability invokable by name with a JSON-like argument object."""

    name: str = "tool"
    description: str = ""
    parameters: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

    @property
    def definition(self) -> FunctionDefinition:
        return FunctionDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def missing_required(self, args: dict[str, Any]) -> list[str]:
        """Names of required parameters absent (or None) in ``args``."""
        return [key for key in self.definition.required if args.get(key) is None]

    @abstractmethod
    async def execute(self, **kwargs: Any) -> Any:
        """Run the capability and return a JSON-serializable result."""
        pass


class FunctionTool(Tool):
    """Adapter turning a ``(definition, handler)`` pair into a Tool."""

    def __init__(self, definition: FunctionDefinition, handler: FunctionHandler):
        self._definition = definition
        self.handler = handler
        self.name = definition.name
        self.description = definition.description
        self.parameters = definition.parameters

    @property
    def definition(self) -> FunctionDefinition:
        return self._definition

    async def execute(self, **kwargs: Any) -> Any:
        return await self.handler(kwargs)
