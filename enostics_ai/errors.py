"""Exception taxonomy for the intelligence pipeline.

Structural errors abort the call (or block initialization). Data-path errors
such as ``ProviderError`` are usually caught by the caller and converted to a
fallback result.
"""

from __future__ import annotations

from typing import Any


class EnosticsError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{details_str}]"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an outer API layer."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class EngineNotInitialized(EnosticsError):
    """Engine used outside the ready state."""

    def __init__(self, state: str):
        super().__init__(
            "AI engine not initialized. Call initialize() first.",
            details={"state": state},
        )


class ModelNotFound(EnosticsError):
    """No loaded model matches the requested name."""

    def __init__(self, model: str):
        super().__init__(f"Model not found: {model}", details={"model": model})
        self.model = model


class CapabilityNotFound(EnosticsError):
    """Capability name is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Function {name} not found", details={"name": name})
        self.name = name


class MissingArgumentsError(EnosticsError):
    """Required capability arguments are absent."""

    def __init__(self, name: str, missing: list[str]):
        super().__init__(
            f"Missing required arguments for {name}: {', '.join(missing)}",
            details={"name": name, "missing": missing},
        )
        self.missing = missing


class ProviderError(EnosticsError):
    """Transport or protocol failure talking to a model provider."""


class StageFailedError(EnosticsError):
    """A pipeline stage failed during the engine fan-out."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(
            f"Stage '{stage}' failed: {cause}",
            details={"stage": stage},
            cause=cause,
        )
        self.stage = stage
