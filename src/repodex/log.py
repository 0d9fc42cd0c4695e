"""Logging configuration for Repodex processes (MCP server, scheduled reindex)."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional


def configure_logging(
    level: str = "INFO",
    *,
    log_file: Optional[Path] = None,
    max_bytes: int = 10485760,
    backup_count: int = 3,
) -> logging.Logger:
    """Install handlers on the ``repodex`` logger.

    Console output goes to stderr so that it never interferes with the stdio
    MCP transport. When ``log_file`` is given, a rotating file handler is
    added at DEBUG level.
    """
    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {"format": "%(levelname)s | %(name)s | %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "level": level.upper(),
                "stream": "ext://sys.stderr",
            }
        },
        "loggers": {"repodex": {"handlers": ["console"], "level": "DEBUG", "propagate": False}},
    }

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "detailed",
            "level": "DEBUG",
            "filename": str(log_file),
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
        }
        config["loggers"]["repodex"]["handlers"].append("file")

    logging.config.dictConfig(config)
    return logging.getLogger("repodex")
