"""Environment presets layered over a base configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from enostics_ai.config.loader import merge_config
from enostics_ai.config.schema import Config


@dataclass(frozen=True)
class EnvironmentPreset:
    """Preset definition."""

    name: str
    description: str
    overrides: dict[str, Any] = field(default_factory=dict)


PRESETS: dict[str, EnvironmentPreset] = {
    "development": EnvironmentPreset(
        name="development",
        description="Verbose logging with audit records, short memory retention.",
        overrides={
            "logging": {"level": "DEBUG", "audit": True},
            "memory": {"ttl": 3600},
        },
    ),
    "production": EnvironmentPreset(
        name="production",
        description="Info-level logging with audit records, longer memory retention.",
        overrides={
            "logging": {"level": "INFO", "audit": True},
            "memory": {"ttl": 7200},
        },
    ),
}


def list_presets() -> list[EnvironmentPreset]:
    return [PRESETS[name] for name in sorted(PRESETS)]


def apply_environment(config: Config, name: str) -> Config:
    """Return a copy of ``config`` with the named environment preset applied."""
    key = (name or "").strip().lower()
    preset = PRESETS.get(key)
    if preset is None:
        valid = ", ".join(sorted(PRESETS))
        raise ValueError(f"Unknown environment '{name}'. Valid: {valid}")
    return merge_config(config, preset.overrides)
