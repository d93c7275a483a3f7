"""Functional tests for the setup/teardown lifecycle."""

from __future__ import annotations

import pytest

from dbharness.config import HarnessConfig
from dbharness.errors import SchemaSetupError, SchemaTeardownError, ScriptReadError
from dbharness.logic.schema_lifecycle import LifecycleState, SchemaLifecycle


def _tables(harness: SchemaLifecycle) -> set[str]:
    with harness.provider.connect() as conn:
        rows = conn.exec_driver_sql("select name from sqlite_master where type = 'table'").fetchall()
    return {r[0] for r in rows}


def _count(harness: SchemaLifecycle, table: str) -> int:
    with harness.provider.connect() as conn:
        return conn.exec_driver_sql(f"select count(*) from {table}").scalar_one()


@pytest.fixture
def demo_scripts(write_script):
    setup = write_script(
        "setup.sql",
        [
            "create table demo (id int, name varchar(10))",
            "insert into demo values (1,'x')",
            "insert into demo values (2,'y')",
        ],
    )
    teardown = write_script("teardown.sql", ["drop table demo"])
    return setup, teardown


def test_setup_creates_schema_and_tracks_tables(memory_config, demo_scripts):
    harness = SchemaLifecycle(memory_config, *demo_scripts)
    assert harness.state is LifecycleState.UNINITIALIZED

    assert harness.setup() == ["demo"]

    assert harness.state is LifecycleState.READY
    assert harness.tracked_tables == ("demo",)
    assert _count(harness, "demo") == 2
    harness.dispose()


def test_teardown_runs_script_and_keeps_tracked_tables(memory_config, demo_scripts):
    harness = SchemaLifecycle(memory_config, *demo_scripts)
    harness.setup()
    harness.teardown()

    assert harness.state is LifecycleState.TORN_DOWN
    assert "demo" not in _tables(harness)
    assert harness.tracked_tables == ("demo",)
    harness.dispose()


def test_failing_setup_statement_stops_without_rollback(memory_config, write_script):
    setup = write_script(
        "setup.sql",
        ["create table a (id int)", "insert into missing values (1)", "create table b (id int)"],
    )
    teardown = write_script("teardown.sql", ["drop table a"])
    harness = SchemaLifecycle(memory_config, setup, teardown)

    with pytest.raises(SchemaSetupError) as excinfo:
        harness.setup()

    err = excinfo.value
    assert err.statement_index == 1
    assert err.statement == "insert into missing values (1)"
    assert err.__cause__ is not None
    assert harness.state is LifecycleState.UNINITIALIZED
    # Names are recorded before execution starts
    assert harness.tracked_tables == ("a", "b")
    tables = _tables(harness)
    assert "a" in tables and "b" not in tables
    harness.dispose()


def test_teardown_of_unknown_table_raises_and_keeps_state(memory_config, write_script):
    setup = write_script("setup.sql", ["create table demo (id int)"])
    teardown = write_script("teardown.sql", ["drop table ghost", "drop table demo"])
    harness = SchemaLifecycle(memory_config, setup, teardown)
    harness.setup()

    with pytest.raises(SchemaTeardownError) as excinfo:
        harness.teardown()

    assert excinfo.value.statement_index == 0
    assert harness.tracked_tables == ("demo",)
    assert harness.state is LifecycleState.READY
    # Remaining teardown statements are not attempted
    assert "demo" in _tables(harness)
    harness.dispose()


def test_setup_teardown_setup_round_trip(file_config, demo_scripts):
    first = SchemaLifecycle(file_config, *demo_scripts)
    first.setup()
    first.teardown()
    first.dispose()

    second = SchemaLifecycle(file_config, *demo_scripts)
    assert second.setup() == ["demo"]
    assert _count(second, "demo") == 2
    second.teardown()
    second.dispose()


def test_repeated_setup_without_teardown_surfaces_engine_error(file_config, demo_scripts):
    harness = SchemaLifecycle(file_config, *demo_scripts)
    harness.setup()
    with pytest.raises(SchemaSetupError) as excinfo:
        harness.setup()
    assert excinfo.value.statement_index == 0
    harness.teardown()
    harness.dispose()


def test_transactional_teardown_rolls_back_on_failure(write_script):
    config = HarnessConfig(url="sqlite://", transactional_teardown=True)
    setup = write_script("setup.sql", ["create table demo (id int)", "insert into demo values (1)"])
    teardown = write_script("teardown.sql", ["delete from demo", "drop table ghost"])
    harness = SchemaLifecycle(config, setup, teardown)
    harness.setup()

    with pytest.raises(SchemaTeardownError):
        harness.teardown()

    assert _count(harness, "demo") == 1
    harness.dispose()


def test_plain_teardown_keeps_statements_before_the_failure(memory_config, write_script):
    setup = write_script("setup.sql", ["create table demo (id int)", "insert into demo values (1)"])
    teardown = write_script("teardown.sql", ["delete from demo", "drop table ghost"])
    harness = SchemaLifecycle(memory_config, setup, teardown)
    harness.setup()

    with pytest.raises(SchemaTeardownError):
        harness.teardown()

    assert _count(harness, "demo") == 0
    harness.dispose()


def test_unreachable_database_is_wrapped_as_setup_error(tmp_path, demo_scripts):
    config = HarnessConfig(url=f"sqlite:///{tmp_path / 'no_such_dir' / 'x.db'}")
    harness = SchemaLifecycle(config, *demo_scripts)
    with pytest.raises(SchemaSetupError) as excinfo:
        harness.setup()
    assert excinfo.value.statement_index is None
    assert harness.tracked_tables == ()


def test_missing_setup_script_raises_script_read_error(memory_config, tmp_path, demo_scripts):
    harness = SchemaLifecycle(memory_config, tmp_path / "absent.sql", demo_scripts[1])
    with pytest.raises(ScriptReadError):
        harness.setup()
    assert harness.state is LifecycleState.UNINITIALIZED


def test_from_properties_and_context_manager(data_dir):
    with SchemaLifecycle.from_properties(
        data_dir / "harness.properties", data_dir / "setup.sql", data_dir / "teardown.sql"
    ) as harness:
        assert harness.tracked_tables == ("customer", "orders")
        assert _count(harness, "customer") == 2
        assert harness.config.properties["orm.persistence_unit"] == "orders"
    assert harness.state is LifecycleState.TORN_DOWN


def test_statement_mode_from_config(data_dir, write_script):
    config = HarnessConfig(url="sqlite://", script_mode="statement")
    teardown = write_script("teardown.sql", ["drop table demo;"])
    harness = SchemaLifecycle(config, data_dir / "setup_statements.sql", teardown)
    assert harness.setup() == ["demo"]
    assert _count(harness, "demo") == 1
    harness.teardown()
    harness.dispose()


def test_blank_lines_run_as_empty_statements(memory_config, write_script):
    setup = write_script(
        "setup.sql",
        ["create table demo (id int)", "", "insert into demo values (1)", ""],
    )
    teardown = write_script("teardown.sql", ["", "drop table demo"])
    harness = SchemaLifecycle(memory_config, setup, teardown)

    assert harness.setup() == ["demo"]
    assert harness.tracked_tables == ("demo",)
    assert _count(harness, "demo") == 1

    harness.teardown()
    assert "demo" not in _tables(harness)
    harness.dispose()


def test_dispose_releases_override_session_engine(tmp_path, demo_scripts):
    config = HarnessConfig(
        url="sqlite://",
        properties={"sqlalchemy.url": f"sqlite:///{tmp_path / 'orm.db'}"},
    )
    harness = SchemaLifecycle(config, *demo_scripts)
    harness.setup()
    factory = harness.session_factory()
    assert not harness.provider.owns(factory.kw["bind"])
    harness.dispose()
    assert harness.session_factory() is not factory
    harness.dispose()
