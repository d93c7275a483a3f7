"""Shared fixtures for the harness functional tests.

Tests run against SQLite: in-memory when a single harness owns the schema,
file-backed under `tmp_path` when several harness instances must see the
same database.
"""

from __future__ import annotations

import pathlib
from typing import Callable, Iterable

import pytest

from dbharness.config import HarnessConfig

DATA_DIR = pathlib.Path(__file__).resolve().parent / "data"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's TEST_DATABASE_URL from redirecting the suite."""
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)


@pytest.fixture
def data_dir() -> pathlib.Path:
    return DATA_DIR


@pytest.fixture
def write_script(tmp_path: pathlib.Path) -> Callable[..., pathlib.Path]:
    """Factory writing `lines` to a script file, one per line."""

    def _write(name: str, lines: Iterable[str]) -> pathlib.Path:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def memory_config() -> HarnessConfig:
    return HarnessConfig(url="sqlite+pysqlite:///:memory:")


@pytest.fixture
def file_config(tmp_path: pathlib.Path) -> HarnessConfig:
    return HarnessConfig(url=f"sqlite:///{tmp_path / 'harness.db'}")
