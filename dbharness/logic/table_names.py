"""Table-name extraction from setup statements.

A deliberately minimal heuristic, not a SQL grammar: only statements that
start with the case-sensitive literal ``create table`` are considered, and
the identifier is whatever follows the 13-character prefix up to the next
space. ``CREATE TABLE``, leading whitespace and ``create table if not
exists`` are therefore not tracked.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

logger = logging.getLogger(__name__)

CREATE_TABLE_PREFIX = "create table"
IDENTIFIER_OFFSET = len(CREATE_TABLE_PREFIX) + 1


def table_name_of(statement: str) -> str | None:
    """Return the tracked identifier for one statement, or None."""
    if not statement.startswith(CREATE_TABLE_PREFIX):
        return None
    rest = statement[IDENTIFIER_OFFSET:]
    end = rest.find(" ")
    name = rest if end < 0 else rest[:end]
    return name or None


def extract_table_names(statements: Iterable[str]) -> List[str]:
    """Identifiers of every `create table` statement, first occurrence order."""
    names: List[str] = []
    for stmt in statements:
        name = table_name_of(stmt)
        if name is None:
            continue
        if name in names:
            logger.debug("table_name_duplicate name=%s", name)
            continue
        names.append(name)
    return names


__all__ = ["CREATE_TABLE_PREFIX", "table_name_of", "extract_table_names"]
