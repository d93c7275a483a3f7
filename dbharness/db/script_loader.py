"""SQL script loading.

Two splitting modes are supported:

- ``line`` (default): every physical line is one statement, in file order,
  without its terminator. Blank lines are kept as empty statements.
- ``statement``: the file is split on ``;`` terminators, ``--`` comment lines
  and blank segments are dropped, and statements may span several lines.
  Semicolons inside string literals are not recognised.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Union

from dbharness.errors import ScriptReadError

logger = logging.getLogger(__name__)

LINE_MODE = "line"
STATEMENT_MODE = "statement"

PathLike = Union[str, "os.PathLike[str]"]


def read_lines(path: PathLike) -> List[str]:
    """Return the script's lines in order, terminators stripped."""
    try:
        # newline=None folds \r\n and \r into \n
        with open(path, "r", encoding="utf-8", newline=None) as fh:
            return [line.rstrip("\n") for line in fh]
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("script_read_failed path=%s", path, exc_info=True)
        raise ScriptReadError(str(path), str(exc)) from exc


def split_statements(sql: str) -> List[str]:
    """Split script text on ';' ignoring comment lines and empty segments."""
    body = "\n".join(
        line for line in sql.splitlines() if not line.strip().startswith("--")
    )
    out: List[str] = []
    for stmt in body.split(";"):
        s = (stmt or "").strip()
        if not s:
            continue
        out.append(s)
    return out


def load_script(path: PathLike, mode: str = LINE_MODE) -> List[str]:
    """Load the script at `path` as an ordered list of statements."""
    lines = read_lines(path)
    if mode == LINE_MODE:
        statements = lines
    elif mode == STATEMENT_MODE:
        statements = split_statements("\n".join(lines))
    else:
        raise ValueError(f"Unknown script mode: {mode!r}")
    logger.debug("script_loaded path=%s mode=%s statements=%d", Path(path).name, mode, len(statements))
    return statements


__all__ = ["LINE_MODE", "STATEMENT_MODE", "read_lines", "split_statements", "load_script"]
