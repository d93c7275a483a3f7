"""Schema fixture harness for database-backed tests.

Creates a disposable schema from a setup script before a test, drops it with
a teardown script afterwards, and can dump tracked tables or hand a Session
to the object under test.
"""

from dbharness.config import HarnessConfig, load_config
from dbharness.errors import (
    ConfigLoadError,
    HarnessError,
    InjectionError,
    SchemaSetupError,
    SchemaTeardownError,
    ScriptReadError,
    TraceQueryError,
)
from dbharness.logic.content_tracer import ContentTracer
from dbharness.logic.field_injection import inject_field, inject_session
from dbharness.logic.schema_lifecycle import LifecycleState, SchemaLifecycle
from dbharness.logic.table_names import extract_table_names

__all__ = [
    "HarnessConfig",
    "load_config",
    "HarnessError",
    "ConfigLoadError",
    "ScriptReadError",
    "SchemaSetupError",
    "SchemaTeardownError",
    "TraceQueryError",
    "InjectionError",
    "ContentTracer",
    "inject_field",
    "inject_session",
    "LifecycleState",
    "SchemaLifecycle",
    "extract_table_names",
]
