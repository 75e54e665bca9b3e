"""
Launcher logging configuration helpers.

This module owns the leveled, optionally colourised line logger used by the
launcher. The entry point builds one `LogConfig`, calls `logger_create` once,
and hands the resulting logger to every component.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping, TextIO

__all__ = [
    "LogConfig",
    "WaybackFormatter",
    "colorEnabled_resolve",
    "logger_create",
    "verbosityLevel_map",
]

LOGGER_NAME = "xwayback"

RESET = "\x1b[0m"
LEVEL_COLORS: dict[int, str] = {
    logging.ERROR: "\x1b[1;31m",
    logging.WARNING: "\x1b[1;33m",
    logging.INFO: "\x1b[1;37m",
    logging.DEBUG: "\x1b[1;39m",
}
LEVEL_PREFIXES: dict[int, str] = {
    logging.ERROR: "[ERROR]",
    logging.WARNING: "[WARN]",
    logging.INFO: "[INFO]",
    logging.DEBUG: "[DEBUG]",
}


@dataclass(frozen=True)
class LogConfig:
    """Process-wide logger settings, built once by the entry point."""

    context: str = "Xwayback"
    level: int = logging.INFO
    use_color: bool = True


class WaybackFormatter(logging.Formatter):
    """Format records as `[LEVEL] (context): message`, optionally coloured."""

    def __init__(self, context: str, use_color: bool) -> None:
        """
        Initialize formatter.

        Args:
            context:
                Label shown in parentheses after the level prefix.
            use_color:
                Whether to wrap lines in ANSI colour escapes.
        """
        super().__init__()
        self.context: str = context
        self.use_color: bool = use_color

    def format(self, record: logging.LogRecord) -> str:
        level: int = levelBucket_get(record.levelno)
        line: str = f"{LEVEL_PREFIXES[level]} ({self.context}): {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        if self.use_color:
            return f"{LEVEL_COLORS[level]}{line}{RESET}"
        return line


def levelBucket_get(levelno: int) -> int:
    """
    Collapse arbitrary logging levels onto the four launcher severities.

    Args:
        levelno:
            Numeric logging level of a record.

    Returns:
        One of ERROR, WARNING, INFO or DEBUG.
    """
    if levelno >= logging.ERROR:
        return logging.ERROR
    if levelno >= logging.WARNING:
        return logging.WARNING
    if levelno >= logging.INFO:
        return logging.INFO
    return logging.DEBUG


def colorEnabled_resolve(
    stream: TextIO, environ: Mapping[str, str] | None = None, requested: bool = True
) -> bool:
    """
    Decide whether colour output should be used.

    Colour is off when not requested, when `NO_COLOR` is set to a non-empty
    value, or when the stream is not a terminal.

    Args:
        stream:
            Output stream the handler writes to.
        environ:
            Environment mapping (defaults to `os.environ`).
        requested:
            Colour preference from configuration.

    Returns:
        `True` when ANSI colour escapes should be emitted.
    """
    if environ is None:
        environ = os.environ
    if not requested:
        return False
    if environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def verbosityLevel_map(verbosity: int) -> int:
    """
    Map the legacy `-verbose` operand onto a logging level.

    Args:
        verbosity:
            Validated verbosity in [0, 20].

    Returns:
        0 -> ERROR, 1-3 -> WARNING, 4-5 -> INFO, 6+ -> DEBUG.
    """
    if verbosity <= 0:
        return logging.ERROR
    if verbosity <= 3:
        return logging.WARNING
    if verbosity <= 5:
        return logging.INFO
    return logging.DEBUG


def logger_create(config: LogConfig, stream: TextIO | None = None) -> logging.Logger:
    """
    Configure and return the launcher logger.

    Existing handlers are replaced so repeated calls (tests) do not stack
    output. The logger does not propagate to the root logger.

    Args:
        config:
            Logger settings.
        stream:
            Destination stream (defaults to stderr).

    Returns:
        Configured logger.
    """
    logger: logging.Logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(WaybackFormatter(config.context, config.use_color))
    logger.addHandler(handler)
    logger.setLevel(config.level)
    logger.propagate = False
    return logger
