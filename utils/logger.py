"""
utils/logger.py — Project-wide logging configuration
=====================================================
`get_logger(name)` hands every component a consistently-formatted logger
with colour-coded console output.  `set_level(level)` lets entry points
(the CLI `--verbose` flag, the API server) raise or lower the verbosity of
every logger created so far and of those created afterwards.
"""

import logging
import sys

# ANSI colour codes keyed by level
_COLOURS = {
    logging.DEBUG:    "\033[36m",   # cyan
    logging.INFO:     "\033[32m",   # green
    logging.WARNING:  "\033[33m",   # yellow
    logging.ERROR:    "\033[31m",   # red
    logging.CRITICAL: "\033[35m",   # magenta
}
_RESET = "\033[0m"

_BASE_FMT = "%(asctime)s.%(msecs)03d  %(levelname)s  %(name)-22s  %(message)s"
_DATE_FMT = "%H:%M:%S"


class _ColourFormatter(logging.Formatter):
    """Wrap the level tag in ANSI colour without mutating the record."""

    def format(self, record: logging.LogRecord) -> str:
        colour = _COLOURS.get(record.levelno, _RESET)
        original = record.levelname
        record.levelname = f"{colour}{original:<8}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


# Registry so repeated calls never stack handlers on the same logger
_loggers: dict[str, logging.Logger] = {}
_level: int = logging.INFO


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return (or create) a named logger under the ``ppg`` namespace.

    Parameters
    ----------
    name  : str        Component name shown in log lines (e.g. "finger.unified").
    level : int | None Minimum severity; defaults to the project-wide level.
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(f"ppg.{name}")
    logger.setLevel(level if level is not None else _level)
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_ColourFormatter(fmt=_BASE_FMT, datefmt=_DATE_FMT))
    logger.addHandler(handler)

    _loggers[name] = logger
    return logger


def set_level(level: int) -> None:
    """Change the severity threshold of every project logger."""
    global _level
    _level = level
    for logger in _loggers.values():
        logger.setLevel(level)
