"""
Logging setup for the ``devbox`` and ``box`` entry points.

Configured once per process by main.py; everything else just does
``logger = logging.getLogger(__name__)``.

Console level, first match wins::

    --debug  >  --verbose  >  --quiet  >  DEVBOX_LOG_LEVEL  >  WARNING

The console format grows with the level: bare messages at WARNING so
command output stays readable, timestamps at INFO, file:line at DEBUG.
DEVBOX_LOG_FILE adds a file handler that always logs in full detail,
at DEVBOX_LOG_FILE_LEVEL (default: the console level).
"""

from __future__ import annotations

import logging
import sys

# level -> (format, datefmt); the first entry whose level is >= the
# console level is used.
_CONSOLE_FORMATS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty below WARNING and irrelevant to devbox users.
_NOISY_LOGGERS = ("urllib3", "charset_normalizer", "filelock")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def _parse_level(name: str | None) -> int:
    """Level name -> numeric level; unknown or empty names mean WARNING."""
    value = getattr(logging, (name or "").strip().upper(), None)
    return value if isinstance(value, int) else logging.WARNING


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for limit, f, d in _CONSOLE_FORMATS if level <= limit)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """(Re)configure the root logger.

    Calling it again replaces the previous handlers, so tests and
    in-process re-entry never stack duplicate output.

    Args:
        level: Console level name.
        log_file: Optional log file path.
        log_file_level: File level name (default: ``level``).
        quiet_third_party: Hold noisy library loggers at WARNING unless
            the console is at DEBUG.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False
