"""Database utilities for the schema fixture harness.

Exposes connection/session construction and the SQL script loader. The DB
layer is intentionally thin: statements are executed as written, with no
dialect translation.
"""

from dbharness.db.base import ConnectionProvider, get_sessionmaker
from dbharness.db.script_loader import load_script

__all__ = [
    "ConnectionProvider",
    "get_sessionmaker",
    "load_script",
]
