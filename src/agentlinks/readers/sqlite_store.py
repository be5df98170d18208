"""
Read-only access to editor key-value databases (``state.vscdb``).

Cursor and Windsurf keep chat data in SQLite files owned by the running
editor. They are opened read-only through a URI filename so a reader can
never take a write lock on them.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from agentlinks.readers.base import ReaderError
from agentlinks.utils.paths import escape_like

logger = logging.getLogger(__name__)

KV_TABLE = "cursorDiskKV"
ITEM_TABLE = "ItemTable"
_TABLES = {KV_TABLE, ITEM_TABLE}


class KeyValueDatabase:
    """
    Thin query layer over a read-only ``state.vscdb`` file.

    Example:
        >>> db = KeyValueDatabase(Path("state.vscdb"))
        >>> raw = db.get(KV_TABLE, "composerData:abc")
    """

    def __init__(self, path: Path, timeout_seconds: float = 5.0):
        self.path = Path(path)
        self.timeout_seconds = timeout_seconds
        self._engine: Optional[Engine] = None

    def exists(self) -> bool:
        return self.path.is_file()

    def _connect(self) -> sqlite3.Connection:
        uri = f"file:{quote(str(self.path))}?mode=ro"
        return sqlite3.connect(
            uri, uri=True, timeout=self.timeout_seconds, check_same_thread=False
        )

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if not self.exists():
                raise ReaderError(f"Database not found: {self.path}")
            self._engine = create_engine(
                "sqlite://", creator=self._connect, poolclass=NullPool
            )
        return self._engine

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def _execute(self, sql: str, **params: Any) -> list[Any]:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(text(sql), params))
        except SQLAlchemyError as e:
            raise ReaderError(f"Query failed on {self.path}: {e}") from e

    def has_table(self, table: str) -> bool:
        rows = self._execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = :name",
            name=table,
        )
        return bool(rows)

    def get(self, table: str, key: str) -> Optional[Any]:
        """
        Raw value stored under ``key``.

        Returns:
            The value (str or bytes), or None if the key is absent
        """
        _check_table(table)
        rows = self._execute(f"SELECT value FROM {table} WHERE key = :key", key=key)
        return rows[0][0] if rows else None

    def keys_with_prefix(
        self,
        table: str,
        prefix: str,
        min_length: int = 0,
        value_contains: Optional[list[str]] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> list[str]:
        """
        Keys starting with ``prefix``.

        Args:
            table: Table to scan
            prefix: Key prefix, matched literally
            min_length: Only keys whose value is longer than this
            value_contains: When given, the value must contain at least one
                of these substrings
            newest_first: Order by insertion (ROWID) descending
            limit: Maximum number of keys

        Returns:
            Matching keys
        """
        _check_table(table)
        sql = f"SELECT key FROM {table} WHERE key LIKE :prefix ESCAPE '\\'"
        params: dict[str, Any] = {"prefix": f"{escape_like(prefix)}%"}
        if min_length:
            sql += " AND length(value) > :min_length"
            params["min_length"] = min_length
        if value_contains:
            clauses = []
            for index, fragment in enumerate(value_contains):
                name = f"fragment_{index}"
                clauses.append(f"value LIKE :{name} ESCAPE '\\'")
                params[name] = f"%{escape_like(fragment)}%"
            sql += f" AND ({' OR '.join(clauses)})"
        sql += " ORDER BY ROWID DESC" if newest_first else " ORDER BY ROWID ASC"
        if limit:
            sql += " LIMIT :limit"
            params["limit"] = limit
        return [row[0] for row in self._execute(sql, **params)]


def _check_table(table: str) -> None:
    if table not in _TABLES:
        raise ValueError(f"Unsupported table: {table}")
