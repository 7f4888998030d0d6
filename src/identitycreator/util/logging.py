"""Logging setup for identitycreator.

Call ``setup_logging()`` once at process startup (the ``identitycreator``
console script does this) to configure the Python logging subsystem with a
consistent format and level.  Library code only ever asks for named loggers.
"""

from __future__ import annotations

import logging
import sys


def setup_logging(
    level: int | str = logging.INFO,
    fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S",
) -> None:
    """Configure the root logger with the given level and format.

    Parameters
    ----------
    level:
        Logging level (default ``INFO``).  Accepts both integer constants
        (``logging.DEBUG``) and string names (``"DEBUG"``).
    fmt:
        Format string for log messages.
    datefmt:
        Date/time format string.
    """
    if isinstance(level, str):
        level = level.upper()

    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt=datefmt,
        stream=sys.stderr,
        force=True,
    )

    # Quieten noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
