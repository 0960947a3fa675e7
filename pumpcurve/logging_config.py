"""Console/file logging for the ``pumpcurve`` logger tree.

Library modules only call ``logging.getLogger(__name__)``; nothing is printed
until a host script calls ``setup_logging``. The level may be given as a
number or a name, and falls back to ``$PUMPCURVE_LOG_LEVEL`` (default INFO).
"""
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "pumpcurve"
LEVEL_ENV = "PUMPCURVE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers owned by setup_logging so a second call replaces only those
_OWNED = "_pumpcurve_handler"


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get(LEVEL_ENV, "INFO")
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        resolved = logging.getLevelName(name)
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return int(level)


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[Union[str, Path]] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Attach a stderr handler (and optionally an appending file handler).

    Handlers added by the host application are left in place.
    """
    lvl = _resolve_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    for h in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(h)
        h.close()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for h in handlers:
        h.setFormatter(formatter)
        setattr(h, _OWNED, True)
        logger.addHandler(h)

    logger.setLevel(lvl)
    logger.propagate = propagate
    logger.debug("Logging to %s at %s", log_file or "stderr", logging.getLevelName(lvl))
    return logger
