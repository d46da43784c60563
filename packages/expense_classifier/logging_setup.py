"""Logging for ``expense_classifier``.

Library modules only call ``get_logger("expense_classifier.<module>")``; the
package logger stays silent (``NullHandler``) until the CLI or a host
application calls :func:`configure_logging`. The level comes from the
argument, then ``EXPENSE_CLASSIFIER_LOG_LEVEL``, then ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys

PACKAGE_LOGGER = "expense_classifier"
LOG_LEVEL_ENV = "EXPENSE_CLASSIFIER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_CONFIGURED = False


def resolve_level(level: int | str | None = None) -> int:
    """Map ``level`` (int, digits or level name) to a logging level.

    Unknown names fall through to the environment variable, then ``INFO``.
    """

    for candidate in (level, os.getenv(LOG_LEVEL_ENV)):
        if isinstance(candidate, int):
            return candidate
        if isinstance(candidate, str) and candidate.strip():
            name = candidate.strip().upper()
            if name.isdigit():
                return int(name)
            value = logging.getLevelName(name)
            if isinstance(value, int):
                return value
    return logging.INFO


def configure_logging(level: int | str | None = None) -> None:
    """Attach one stderr handler to the package logger; later calls are no-ops."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolve_level(level))
    # Root handlers would print every record a second time.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["LOG_LEVEL_ENV", "PACKAGE_LOGGER", "configure_logging", "get_logger", "resolve_level"]
