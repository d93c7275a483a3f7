"""Central logging configuration for harness consumers.

Applies a root stdout handler so the harness's module loggers emit
INFO-level events without per-module setup. Test runners that already
installed handlers (pytest's log capture, behave's) are left alone.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "WARNING", "handlers": ["console"]},
    "loggers": {
        "dbharness": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "sqlalchemy.engine": {"level": "WARNING", "handlers": ["console"], "propagate": False},
    },
}


def configure_logging(level: str | None = None) -> None:
    """Configure harness logging once.

    If the root logger already has handlers, only the harness logger level
    is adjusted, to avoid duplicate output under test runners.
    """
    root = logging.getLogger()
    if root.handlers:
        if level:
            logging.getLogger("dbharness").setLevel(level.upper())
        return
    dictConfig(_DICT_CONFIG)
    if level:
        logging.getLogger("dbharness").setLevel(level.upper())
