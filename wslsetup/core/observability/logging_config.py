"""
Logging configuration for the ``wslsetup`` process.

``main.cli`` calls ``setup_logging`` once; modules just use
``logging.getLogger(__name__)``. Console level comes from the CLI flags,
then ``WSLSETUP_LOG_LEVEL``, then WARNING. ``WSLSETUP_LOG_FILE`` adds a
file handler (its own level via ``WSLSETUP_LOG_FILE_LEVEL``), useful for
keeping a record of a long unattended install.
"""

from __future__ import annotations

import logging
import sys

LOG_LEVEL_ENV_VAR = "WSLSETUP_LOG_LEVEL"
LOG_FILE_ENV_VAR = "WSLSETUP_LOG_FILE"
LOG_FILE_LEVEL_ENV_VAR = "WSLSETUP_LOG_FILE_LEVEL"

_CLOCK = "%H:%M:%S"

# (threshold, format, datefmt): the first threshold >= level wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", _CLOCK),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", _CLOCK),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter("%(message)s")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler (stderr) and the optional file handler.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Console level name.
        log_file: Path of a log file to append to.
        log_file_level: Level for the file; defaults to ``level``.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name → number; anything unrecognised means WARNING."""
    value = getattr(logging, (level or "").upper(), None)
    return value if isinstance(value, int) else logging.WARNING
