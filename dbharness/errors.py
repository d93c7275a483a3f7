"""Error taxonomy for the schema fixture harness.

Every failure the harness raises derives from `HarnessError` so callers can
catch the whole family at a test boundary. Engine and I/O errors are always
chained (`raise ... from exc`) rather than replaced.
"""

from __future__ import annotations

from typing import Optional


class HarnessError(RuntimeError):
    """Base class for all harness failures."""


class ConfigLoadError(HarnessError):
    """Properties file missing, unreadable or failing validation."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(f"{message} (path={path})" if path else message)


class ScriptReadError(HarnessError):
    """A SQL script could not be opened, read or decoded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Unable to read SQL script {path}: {reason}")


class _StatementError(HarnessError):
    phase = "statement"

    def __init__(self, message: str, statement_index: Optional[int] = None, statement: Optional[str] = None) -> None:
        self.statement_index = statement_index
        self.statement = statement
        if statement_index is not None:
            message = f"{message} at statement #{statement_index}: {statement!r}"
        super().__init__(message)


class SchemaSetupError(_StatementError):
    """A setup statement (or the setup connection) failed."""

    phase = "setup"


class SchemaTeardownError(_StatementError):
    """A teardown statement (or the teardown connection) failed."""

    phase = "teardown"


class TraceQueryError(HarnessError):
    def __init__(self, table: str, reason: str) -> None:
        self.table = table
        super().__init__(f"Unable to trace table {table}: {reason}")


class InjectionError(HarnessError):
    def __init__(self, target_type: type, field_name: str, reason: str) -> None:
        self.target_type = target_type
        self.field_name = field_name
        super().__init__(f"Cannot inject {target_type.__name__}.{field_name}: {reason}")


__all__ = [
    "HarnessError",
    "ConfigLoadError",
    "ScriptReadError",
    "SchemaSetupError",
    "SchemaTeardownError",
    "TraceQueryError",
    "InjectionError",
]
