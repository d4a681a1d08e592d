"""Record store query capability."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from enostics_ai.tools.base import Tool

TABLES = ("data", "endpoints", "users")
DEFAULT_LIMIT = 50


class RecordStore(ABC):
    """Storage collaborator consulted by ``query_database``."""

    @abstractmethod
    async def query(self, table: str, filters: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        """Return at most ``limit`` records of ``table`` matching every filter."""
        pass


class InMemoryRecordStore(RecordStore):
    """Process-local record store, keyed by table name."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables: dict[str, list[dict[str, Any]]] = {name: [] for name in TABLES}
        for name, rows in (tables or {}).items():
            self.tables[name] = list(rows)

    def add(self, table: str, record: dict[str, Any]) -> None:
        self.tables.setdefault(table, []).append(dict(record))

    async def query(self, table: str, filters: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        rows = self.tables.get(table, [])
        matches = [row for row in rows if all(row.get(k) == v for k, v in filters.items())]
        return matches[:limit]


class QueryDatabaseTool(Tool):
    """Look up related records through the configured store."""

    name = "query_database"
    description = "Query the user database for related data and patterns"
    parameters = {
        "type": "object",
        "properties": {
            "table": {"type": "string", "enum": list(TABLES), "description": "Database table to query"},
            "filters": {"type": "object", "description": "Filters to apply to the query"},
            "limit": {"type": "number", "description": "Maximum number of records to return"},
        },
        "required": ["table"],
    }

    def __init__(self, store: RecordStore | None = None):
        self.store = store

    async def execute(
        self,
        table: str | None = None,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if table not in TABLES:
            return {"error": f"Unknown table: {table}", "table": table}
        if self.store is None:
            return {"table": table, "results": [], "count": 0, "message": "No record store configured"}
        max_rows = int(limit) if limit and int(limit) > 0 else DEFAULT_LIMIT
        results = await self.store.query(table, dict(filters or {}), max_rows)
        return {"table": table, "results": results, "count": len(results)}
