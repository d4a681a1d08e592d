"""Transient per-session state for the engine."""

import time
from collections import OrderedDict
from typing import Any

from loguru import logger

from enostics_ai.config.schema import MemoryConfig
from enostics_ai.utils.helpers import now_iso


class SessionMemory:
    """
    In-process session store.

    Holds the context stored before a run and the result stored after it,
    keyed by session id. Entries expire after ``ttl`` seconds (0 disables
    expiry) and the oldest entries are evicted once ``max_size`` is reached.
    """

    def __init__(self, config: MemoryConfig | None = None, clock=time.monotonic):
        self.config = config or MemoryConfig()
        self._clock = clock
        self._contexts: OrderedDict[str, tuple[float, dict[str, Any]]] = OrderedDict()
        self._results: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._ready = False

    async def initialize(self) -> None:
        self._ready = True
        logger.info(f"Memory initialized ({self.config.type}, max_size={self.config.max_size}, ttl={self.config.ttl}s)")

    def _expired(self, stored_at: float) -> bool:
        ttl = self.config.ttl
        return ttl > 0 and self._clock() - stored_at > ttl

    def _prune(self, store: OrderedDict) -> None:
        for key in [k for k, (stored_at, _) in store.items() if self._expired(stored_at)]:
            del store[key]
        limit = max(self.config.max_size, 1)
        while len(store) > limit:
            evicted, _ = store.popitem(last=False)
            logger.debug(f"Memory evicted session {evicted}")

    def _put(self, store: OrderedDict, session_id: str, value: Any) -> None:
        if not self.config.enabled:
            return
        store[session_id] = (self._clock(), value)
        store.move_to_end(session_id)
        self._prune(store)

    def _get(self, store: OrderedDict, session_id: str) -> Any | None:
        entry = store.get(session_id)
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at):
            del store[session_id]
            return None
        return value

    async def store_context(self, session_id: str, context: dict[str, Any]) -> None:
        self._put(self._contexts, session_id, {**context, "timestamp": now_iso()})

    async def get_context(self, session_id: str) -> dict[str, Any] | None:
        return self._get(self._contexts, session_id)

    async def store_result(self, session_id: str, result: Any) -> None:
        self._put(self._results, session_id, result)

    async def get_result(self, session_id: str) -> Any | None:
        return self._get(self._results, session_id)

    def has_session(self, session_id: str) -> bool:
        return self._get(self._contexts, session_id) is not None or self._get(self._results, session_id) is not None

    def get_health_status(self) -> dict[str, Any]:
        self._prune(self._contexts)
        self._prune(self._results)
        return {
            "enabled": self.config.enabled,
            "ready": self._ready,
            "type": self.config.type,
            "contexts": len(self._contexts),
            "results": len(self._results),
            "max_size": self.config.max_size,
            "ttl": self.config.ttl,
        }

    def update_config(self, config: MemoryConfig) -> None:
        self.config = config
        self._prune(self._contexts)
        self._prune(self._results)

    async def shutdown(self) -> None:
        self._contexts.clear()
        self._results.clear()
        self._ready = False
        logger.info("Memory shutdown")
