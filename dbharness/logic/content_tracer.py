"""Plain-text dump of tracked table contents.

Output layout per table, with every column printed::

    --- Table demo---
    #Entity 0
    ID : 1
    NAME : x

Values are stringified regardless of column type; NULL prints as ``null``.
By default the last column of every row is left out, matching the dumps
produced by earlier harness releases that existing golden files were recorded
against. Pass ``include_last_column=True`` to print every column.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from dbharness.db.base import ConnectionProvider
from dbharness.errors import TraceQueryError

logger = logging.getLogger(__name__)


class TextSink(Protocol):
    def write(self, text: str) -> Any: ...


def _as_text(value: Any) -> str:
    return "null" if value is None else str(value)


class ContentTracer:
    """Writes rows of tracked tables to a text sink."""

    def __init__(
        self,
        provider: ConnectionProvider,
        tables: Sequence[str],
        include_last_column: bool = False,
    ) -> None:
        self._provider = provider
        self._tables = tuple(tables)
        self._include_last_column = include_last_column

    @property
    def tables(self) -> tuple[str, ...]:
        return self._tables

    def dump(self, sink: TextSink, table_name: Optional[str] = None) -> int:
        """Dump every tracked table, or only `table_name` when given.

        Returns the number of tables written. A filter naming an untracked
        table writes nothing.
        """
        selected = [t for t in self._tables if table_name is None or t == table_name]
        if not selected:
            return 0
        # Read through a raw pooled connection: a SQLAlchemy Connection would
        # roll back on close, and on in-memory SQLite that connection is shared
        # with any Session the test is still using.
        try:
            raw = self._provider.raw_connection()
        except SQLAlchemyError as exc:
            logger.error("trace_connect_failed", exc_info=True)
            raise TraceQueryError(selected[0], str(exc)) from exc
        dbapi_error = self._provider.engine.dialect.loaded_dbapi.Error
        try:
            for table in selected:
                self._dump_table(raw, table, sink, dbapi_error)
        finally:
            raw.close()
        return len(selected)

    def _dump_table(self, raw, table: str, sink: TextSink, dbapi_error: type) -> None:
        cursor = raw.cursor()
        try:
            cursor.execute(f"select * from {table}")
            labels = [d[0] for d in cursor.description or ()]
            rows = cursor.fetchall()
        except dbapi_error as exc:
            logger.error("trace_query_failed table=%s", table, exc_info=True)
            raise TraceQueryError(table, str(exc)) from exc
        finally:
            cursor.close()

        if not self._include_last_column:
            labels = labels[:-1]

        sink.write(f"--- Table {table}---\n")
        for index, row in enumerate(rows):
            sink.write(f"#Entity {index}\n")
            for position, label in enumerate(labels):
                sink.write(f"{label} : {_as_text(row[position])}\n")
        logger.debug("trace_table_dumped table=%s rows=%d", table, len(rows))


__all__ = ["ContentTracer", "TextSink"]
