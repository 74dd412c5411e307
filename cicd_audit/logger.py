"""
Logging configuration.
"""
from __future__ import annotations

import logging
import sys

LOGGER_NAME = "cicd_audit"

# Package logger; modules log through children of it.
logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.WARNING)

# Stderr keeps JSON on stdout clean
console_handler = logging.StreamHandler(sys.stderr)

formatter = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
console_handler.setFormatter(formatter)

if not logger.handlers:
    logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Child logger of the package logger for module ``name``."""
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logger.getChild(name)


def configure_logging(level: str | int) -> None:
    """Set the package log level from a name such as ``"debug"`` or a numeric level."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    logger.setLevel(level)
