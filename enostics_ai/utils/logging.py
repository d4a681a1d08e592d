"""Loguru sink setup for command-line entry points."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from enostics_ai.config.schema import Config


def _audit_filter(enabled: bool):
    def _filter(record) -> bool:
        if record["extra"].get("audit"):
            return enabled
        return True

    return _filter


def configure_logging(config: Config) -> None:
    """Reset loguru sinks to stderr at the configured level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=config.logging.level.upper(),
        filter=_audit_filter(config.logging.audit),
        backtrace=False,
        diagnose=False,
    )
