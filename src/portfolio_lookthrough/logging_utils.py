"""Console logging for the CLI and the API process."""
from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "PORTFOLIO_LOOKTHROUGH_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# HTTP client libraries log every request at DEBUG/INFO.
QUIET_LOGGERS = ("urllib3", "httpx", "httpcore")


def resolve_level(level: str | int | None) -> int:
    """Numeric level for ``level``, the environment, or INFO, in that order.

    Unrecognised names fall back to INFO.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or "INFO"
    if isinstance(level, int):
        return level
    if level.strip().isdigit():
        return int(level)
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: str | int | None = None, *, force: bool = False) -> int:
    """Attach a console handler to the root logger and return the level used.

    An already configured root logger only has its level adjusted unless
    ``force`` is set, which replaces its handlers.
    """

    resolved = resolve_level(level)
    root = logging.getLogger()
    if root.handlers and not force:
        root.setLevel(resolved)
    else:
        logging.basicConfig(level=resolved, format=LOG_FORMAT, force=force)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    return resolved


__all__ = ["LOG_LEVEL_ENV", "configure_logging", "resolve_level"]
