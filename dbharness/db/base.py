"""SQLAlchemy engine, connection and session-factory construction.

The harness targets disposable databases, typically SQLite in memory or in a
temp file, but any SQLAlchemy URL works. No declarative models are defined
here; this module only manages connection lifecycle.
"""

from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy import create_engine, engine_from_config
from sqlalchemy.engine import Connection, Engine, URL, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import PoolProxiedConnection, StaticPool

from dbharness.config import HarnessConfig

logger = logging.getLogger(__name__)

ENGINE_OPTION_PREFIX = "sqlalchemy."


def _is_sqlite_memory(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class ConnectionProvider:
    """Hands out fresh connection handles to the configured database.

    The provider owns one Engine, created lazily. For in-memory SQLite a
    StaticPool keeps a single DB-API connection alive so the schema survives
    between handles; every other URL gets the engine's default pool.
    """

    def __init__(self, config: HarnessConfig) -> None:
        self._config = config
        self._engine: Engine | None = None

    @property
    def url(self) -> URL:
        """Configured URL with the harness identity applied.

        SQLite has no authentication, so the user and password are only set
        for other backends and only when the URL does not carry its own.
        """
        url = make_url(self._config.url)
        if url.get_backend_name() != "sqlite" and url.username is None:
            url = url.set(username=self._config.user, password=self._config.password)
        return url

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            url = self.url
            kwargs: dict = {"future": True, "pool_pre_ping": True}
            if _is_sqlite_memory(url):
                # The single connection is shared with injected Sessions; a reset
                # on return would roll back their uncommitted work
                kwargs.update({
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                    "pool_reset_on_return": None,
                })
            self._engine = create_engine(url, **kwargs)
            logger.info("engine_created url=%s", url.render_as_string(hide_password=True))
        return self._engine

    def connect(self) -> Connection:
        """Return a new Connection; use it as a context manager."""
        return self.engine.connect()

    def raw_connection(self) -> PoolProxiedConnection:
        """Return a pooled DB-API connection, outside any SQLAlchemy transaction."""
        return self.engine.raw_connection()

    def owns(self, engine: Engine) -> bool:
        return self._engine is not None and engine is self._engine

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


def engine_options(config: HarnessConfig) -> Dict[str, str]:
    """Pass-through `sqlalchemy.*` keys from the properties file."""
    return {k: v for k, v in config.properties.items() if k.startswith(ENGINE_OPTION_PREFIX)}


def get_sessionmaker(provider: ConnectionProvider, config: HarnessConfig) -> sessionmaker:
    """Build the session factory handed to test subjects.

    Without a `sqlalchemy.url` override the factory binds to the provider's
    engine, so sessions see the schema created by setup (including
    in-memory SQLite). With an override, remaining `sqlalchemy.*` keys are
    given to `engine_from_config`.
    """
    options = engine_options(config)
    if ENGINE_OPTION_PREFIX + "url" in options:
        engine = engine_from_config(options, prefix=ENGINE_OPTION_PREFIX, future=True)
    else:
        engine = provider.engine
    return sessionmaker(bind=engine, future=True)


__all__ = ["ConnectionProvider", "engine_options", "get_sessionmaker"]
