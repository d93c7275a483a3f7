"""Test-framework adapters for the schema lifecycle.

`DatabaseTestCase` is a unittest base class: subclasses name a properties
file and the two SQL scripts, and every test method runs against a freshly
created schema::

    class OrderRepositoryTest(DatabaseTestCase):
        database_properties = "tests/db.properties"
        sql_setup_script = "tests/sql/setup.sql"
        sql_teardown_script = "tests/sql/teardown.sql"

        def test_save(self):
            repo = OrderRepository()
            self.inject_session(repo, "_session")
            ...

`schema_fixture` builds the equivalent pytest fixture.
"""

from __future__ import annotations

import unittest
from typing import Any, Callable, Dict, Optional, Tuple, Union

import pytest
from sqlalchemy.orm import Session

from dbharness.config import HarnessConfig, load_config
from dbharness.logging_setup import configure_logging
from dbharness.logic.content_tracer import TextSink
from dbharness.logic.schema_lifecycle import SchemaLifecycle, ScriptPath


class DatabaseTestCase(unittest.TestCase):
    """Runs the setup script before and the teardown script after each test."""

    database_properties: Optional[ScriptPath] = None
    sql_setup_script: Optional[ScriptPath] = None
    sql_teardown_script: Optional[ScriptPath] = None

    harness: SchemaLifecycle

    def get_database_properties(self) -> ScriptPath:
        return self._required("database_properties")

    def get_sql_setup_script(self) -> ScriptPath:
        return self._required("sql_setup_script")

    def get_sql_teardown_script(self) -> ScriptPath:
        return self._required("sql_teardown_script")

    def _required(self, attr: str) -> ScriptPath:
        value = getattr(self, attr)
        if value is None:
            raise TypeError(f"{type(self).__name__} must define {attr}")
        return value

    @classmethod
    def setUpClass(cls) -> None:
        super().setUpClass()
        configure_logging()

    def setUp(self) -> None:
        super().setUp()
        config = load_config(self.get_database_properties())
        self.harness = SchemaLifecycle(config, self.get_sql_setup_script(), self.get_sql_teardown_script())
        self.addCleanup(self.harness.dispose)
        self.harness.setup()

    def tearDown(self) -> None:
        self.harness.teardown()
        super().tearDown()

    @property
    def table_names(self) -> Tuple[str, ...]:
        return self.harness.tracked_tables

    @property
    def database_config(self) -> Dict[str, str]:
        return dict(self.harness.config.properties)

    def trace_database(self, writer: TextSink, table_name: Optional[str] = None) -> int:
        return self.harness.trace(writer, table_name)

    def inject_session(
        self,
        subject: Any,
        field_name: Optional[str] = None,
        setter: Optional[Callable[[Session], Any]] = None,
    ) -> Session:
        session = self.harness.inject_session(subject, field_name=field_name, setter=setter)
        self.addCleanup(session.close)
        return session


def schema_fixture(
    properties: Union[ScriptPath, HarnessConfig],
    setup_script: ScriptPath,
    teardown_script: ScriptPath,
    *,
    scope: str = "function",
    name: Optional[str] = None,
):
    """Return a pytest fixture yielding a set-up SchemaLifecycle.

    Teardown errors are not suppressed; they fail the test that owns the
    fixture.
    """

    @pytest.fixture(scope=scope, name=name)
    def _schema():
        config = properties if isinstance(properties, HarnessConfig) else load_config(properties)
        harness = SchemaLifecycle(config, setup_script, teardown_script)
        try:
            harness.setup()
            yield harness
            harness.teardown()
        finally:
            harness.dispose()

    return _schema


__all__ = ["DatabaseTestCase", "schema_fixture"]
