"""Centralized logging configuration using Loguru.

Usage:
    from anchor.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if ANCHOR_LOG_LEVEL=DEBUG

Environment Variables:
    ANCHOR_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    ANCHOR_LOG_JSON: 0|1 (default: 0, human-readable)
    ANCHOR_LOG_FILE: path to log file (optional)
"""

import os
import sys

from loguru import logger

# Remove default handler
logger.remove()

_log_level = os.environ.get("ANCHOR_LOG_LEVEL", "INFO").upper()
_json_mode = os.environ.get("ANCHOR_LOG_JSON", "0") == "1"
_log_file = os.environ.get("ANCHOR_LOG_FILE")

# Human-readable format (no emojis - Windows CP1252 compatibility)
_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")
logger.level("CRITICAL", color="<red><bold>")

_console_handler_id: int | None = None


def _add_console_handler(level: str) -> int:
    if _json_mode:
        # Machine logs go to stdout as NDJSON
        return logger.add(sys.stdout, level=level, serialize=True, colorize=False)
    return logger.add(
        sys.stderr,
        level=level,
        format=_human_format,
        colorize=None,  # Auto-detect: colors if TTY, plain if piped
    )


_console_handler_id = _add_console_handler(_log_level)

# Optional file handler (always NDJSON for machine parsing)
if _log_file:
    logger.add(_log_file, level="DEBUG", serialize=True, encoding="utf-8")


def set_console_level(level: str) -> None:
    """Replace the console handler with one at a new minimum level.

    Used by the CLI for --verbose / --quiet. The ANCHOR_LOG_LEVEL
    environment variable still wins when set.
    """
    global _console_handler_id

    if "ANCHOR_LOG_LEVEL" in os.environ:
        return

    if _console_handler_id is not None:
        try:
            logger.remove(_console_handler_id)
        except ValueError:
            pass  # Already removed
    _console_handler_id = _add_console_handler(level.upper())


__all__ = ["logger", "set_console_level"]
