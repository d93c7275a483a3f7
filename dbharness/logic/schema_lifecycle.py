"""Schema lifecycle: setup, tracked tables, teardown.

The harness is a thin ordered executor. Setup commits after every statement
and stops at the first failure without undoing earlier statements; teardown
does the same unless `transactional_teardown` is enabled, in which case the
whole teardown script runs in one transaction that is rolled back on
failure. Whether DDL actually rolls back is up to the database.

Instances are single-threaded and not reentrant. States only move forward
(UNINITIALIZED -> READY -> TORN_DOWN); running setup again after teardown
is not guarded and surfaces whatever the database reports.
"""

from __future__ import annotations

import enum
import logging
import os
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dbharness.config import HarnessConfig, load_config
from dbharness.db.base import ConnectionProvider, get_sessionmaker
from dbharness.db.script_loader import load_script
from dbharness.errors import SchemaSetupError, SchemaTeardownError
from dbharness.logic.content_tracer import ContentTracer, TextSink
from dbharness.logic.field_injection import inject_session
from dbharness.logic.table_names import extract_table_names

logger = logging.getLogger(__name__)

ScriptPath = Union[str, "os.PathLike[str]"]


class LifecycleState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    TORN_DOWN = "torn_down"


def _execute_each(
    conn: Connection,
    statements: Sequence[str],
    error_cls: type,
    commit_each: bool,
) -> None:
    for index, statement in enumerate(statements):
        try:
            conn.exec_driver_sql(statement)
            if commit_each:
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "schema_%s_failed index=%d statement=%s", error_cls.phase, index, statement, exc_info=True
            )
            raise error_cls(f"Error during schema {error_cls.phase}", index, statement) from exc


class SchemaLifecycle:
    """Prepares and removes a test schema from a pair of SQL scripts.

    The configuration is an explicit value; use `from_properties` to load it
    from a properties file once.
    """

    def __init__(
        self,
        config: HarnessConfig,
        setup_script: ScriptPath,
        teardown_script: ScriptPath,
        provider: Optional[ConnectionProvider] = None,
    ) -> None:
        self._config = config
        self._setup_script = setup_script
        self._teardown_script = teardown_script
        self._provider = provider or ConnectionProvider(config)
        self._tracked_tables: Tuple[str, ...] = ()
        self._state = LifecycleState.UNINITIALIZED
        self._session_factory: Optional[sessionmaker] = None

    @classmethod
    def from_properties(
        cls,
        properties_path: ScriptPath,
        setup_script: ScriptPath,
        teardown_script: ScriptPath,
    ) -> "SchemaLifecycle":
        return cls(load_config(properties_path), setup_script, teardown_script)

    @property
    def config(self) -> HarnessConfig:
        return self._config

    @property
    def provider(self) -> ConnectionProvider:
        return self._provider

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def tracked_tables(self) -> Tuple[str, ...]:
        return self._tracked_tables

    def _connect(self, error_cls: type) -> Connection:
        try:
            return self._provider.connect()
        except SQLAlchemyError as exc:
            logger.error("schema_%s_connect_failed", error_cls.phase, exc_info=True)
            raise error_cls(f"Unable to connect for schema {error_cls.phase}: {exc}") from exc

    def setup(self) -> List[str]:
        """Create the schema and record the tracked tables.

        Tracked tables are recorded before any statement runs, so they are
        available even when a later statement fails.
        """
        conn = self._connect(SchemaSetupError)
        with conn:
            statements = load_script(self._setup_script, mode=self._config.script_mode)
            self._tracked_tables = tuple(extract_table_names(statements))
            _execute_each(conn, statements, SchemaSetupError, commit_each=True)
        self._state = LifecycleState.READY
        logger.info(
            "schema_setup_complete statements=%d tables=%s", len(statements), ",".join(self._tracked_tables)
        )
        return list(self._tracked_tables)

    def teardown(self) -> None:
        """Run the teardown script. Tracked tables are left untouched."""
        if self._state is not LifecycleState.READY:
            logger.warning("schema_teardown_unexpected_state state=%s", self._state.value)
        conn = self._connect(SchemaTeardownError)
        with conn:
            statements = load_script(self._teardown_script, mode=self._config.script_mode)
            if self._config.transactional_teardown:
                with conn.begin():
                    _execute_each(conn, statements, SchemaTeardownError, commit_each=False)
            else:
                _execute_each(conn, statements, SchemaTeardownError, commit_each=True)
        self._state = LifecycleState.TORN_DOWN
        logger.info("schema_teardown_complete statements=%d", len(statements))

    def tracer(self, include_last_column: Optional[bool] = None) -> ContentTracer:
        if include_last_column is None:
            include_last_column = self._config.include_last_column
        return ContentTracer(self._provider, self._tracked_tables, include_last_column=include_last_column)

    def trace(self, sink: TextSink, table_name: Optional[str] = None) -> int:
        """Dump tracked tables (or just `table_name`) to `sink`."""
        return self.tracer().dump(sink, table_name)

    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = get_sessionmaker(self._provider, self._config)
        return self._session_factory

    def inject_session(
        self,
        subject: Any,
        field_name: Optional[str] = None,
        setter: Optional[Callable[[Session], Any]] = None,
    ) -> Session:
        """Open a Session on the harness database and attach it to `subject`."""
        return inject_session(self.session_factory(), subject, field_name=field_name, setter=setter)

    def dispose(self) -> None:
        if self._session_factory is not None:
            bind = self._session_factory.kw.get("bind")
            if bind is not None and not self._provider.owns(bind):
                bind.dispose()
            self._session_factory = None
        self._provider.dispose()

    def __enter__(self) -> "SchemaLifecycle":
        self.setup()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.teardown()
        finally:
            self.dispose()


__all__ = ["LifecycleState", "SchemaLifecycle"]
