"""Configuration utilities for the schema fixture harness.

Configuration is loaded from a flat properties file with the following rules:
- Primary source: `key = value` lines parsed with python-dotenv.
- Overrides: the `TEST_DATABASE_URL` environment variable replaces
  `connection.url` so CI can point a suite at another database.
- Validation: a frozen Pydantic model enforces required fields and the
  allowed option values.

Keys the harness does not recognise are kept verbatim in
`HarnessConfig.properties` for the session-factory collaborator.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from dbharness.errors import ConfigLoadError


logger = logging.getLogger(__name__)

URL_KEY = "connection.url"
USER_KEY = "connection.user"
PASSWORD_KEY = "connection.password"
SCRIPT_MODE_KEY = "script.mode"
TRACE_LAST_COLUMN_KEY = "trace.include_last_column"
TRANSACTIONAL_TEARDOWN_KEY = "teardown.transactional"

DEFAULT_USER = "sa"
DEFAULT_PASSWORD = ""

SCRIPT_MODES = ("line", "statement")


class HarnessConfig(BaseModel):
    """Immutable harness configuration built once per harness instance."""

    model_config = ConfigDict(frozen=True)

    url: str
    user: str = Field(default=DEFAULT_USER)
    password: str = Field(default=DEFAULT_PASSWORD)
    script_mode: str = Field(default="line")
    include_last_column: bool = Field(default=False)
    transactional_teardown: bool = Field(default=False)
    properties: Dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def url_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{URL_KEY} must be a non-empty string")
        return v.strip()

    @field_validator("script_mode")
    @classmethod
    def script_mode_must_be_allowed(cls, v: str) -> str:
        if v not in SCRIPT_MODES:
            raise ValueError(f"{SCRIPT_MODE_KEY} must be one of {list(SCRIPT_MODES)}")
        return v


def _flag(text: Optional[str]) -> bool:
    return str(text or "").strip().lower() == "true"


def load_properties(path: Union[str, os.PathLike[str]]) -> Dict[str, str]:
    """Read a flat `key = value` file into a plain dict.

    Raises ConfigLoadError when the file is missing or unreadable, or when a
    line carries a key without a value separator.
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigLoadError("Properties file not found", path=str(p))
    try:
        raw = dotenv_values(p, interpolate=False, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error("config_properties_unreadable path=%s", p, exc_info=True)
        raise ConfigLoadError(f"Properties file unreadable: {e}", path=str(p)) from e

    malformed = sorted(k for k, v in raw.items() if v is None)
    if malformed:
        raise ConfigLoadError(f"Malformed properties (missing '='): {malformed}", path=str(p))
    return {k: v for k, v in raw.items() if v is not None}


def config_from_properties(props: Mapping[str, str], source: Optional[str] = None) -> HarnessConfig:
    """Build a validated HarnessConfig from an already-parsed mapping.

    Precedence for the connection URL (highest first):
    1) TEST_DATABASE_URL environment variable
    2) `connection.url` property
    """
    url = os.environ.get("TEST_DATABASE_URL") or props.get(URL_KEY)
    if not url:
        raise ConfigLoadError(f"Required key {URL_KEY} is missing", path=source)

    try:
        return HarnessConfig(
            url=url,
            user=props.get(USER_KEY, DEFAULT_USER),
            password=props.get(PASSWORD_KEY, DEFAULT_PASSWORD),
            script_mode=(props.get(SCRIPT_MODE_KEY) or "line").strip().lower(),
            include_last_column=_flag(props.get(TRACE_LAST_COLUMN_KEY)),
            transactional_teardown=_flag(props.get(TRANSACTIONAL_TEARDOWN_KEY)),
            properties=dict(props),
        )
    except PydanticValidationError as e:
        logger.error("Invalid harness configuration: %s", e)
        raise ConfigLoadError(f"Invalid harness configuration: {e}", path=source) from e


def load_config(path: Union[str, os.PathLike[str]]) -> HarnessConfig:
    """Load and validate the properties file at `path`."""
    cfg = config_from_properties(load_properties(path), source=str(path))
    logger.info("config_loaded path=%s keys=%d", path, len(cfg.properties))
    return cfg


__all__ = [
    "HarnessConfig",
    "load_properties",
    "config_from_properties",
    "load_config",
    "URL_KEY",
]
