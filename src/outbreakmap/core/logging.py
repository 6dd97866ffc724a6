"""
Logging setup for the API server and the CLI.

The packaged `config/logging.yaml` is the base; `app.log_level` (or `OUTBREAKMAP_LOG_LEVEL`)
replaces the root and handler levels. Third-party loggers listed in the YAML keep their own
level unless DEBUG is requested.
"""

from __future__ import annotations

import copy
import logging.config

from outbreakmap.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Apply the YAML logging config with the configured (or given) level."""
    level = (level or get_settings().app.log_level).upper()
    # The loaded config is cached; dictConfig must not see our edits twice.
    config = copy.deepcopy(get_logging_config())

    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict):
            handler["level"] = level
    if level == "DEBUG":
        for logger_cfg in config.get("loggers", {}).values():
            logger_cfg["level"] = "DEBUG"

    logging.config.dictConfig(config)
