"""Anchor utilities package."""

from .constants import ANCHOR_DIR, DEFAULT_MAX_FILE_SIZE, ERROR_LOG_FILE
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .helpers import read_text_file, utc_timestamp
from .logging import logger

__all__ = [
    "ANCHOR_DIR",
    "ERROR_LOG_FILE",
    "DEFAULT_MAX_FILE_SIZE",
    "handle_exceptions",
    "ExitCodes",
    "read_text_file",
    "utc_timestamp",
    "logger",
]
