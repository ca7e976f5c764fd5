"""Helper utility functions for Anchor."""

from datetime import datetime, timezone
from pathlib import Path

from anchor.utils.logging import logger


def read_text_file(file_path: Path) -> str | None:
    """Read a source file as UTF-8 text.

    Undecodable bytes are replaced rather than failing the read. Returns None
    (and logs at debug) when the file cannot be opened.
    """
    try:
        with open(file_path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.debug(f"Skipping unreadable file {file_path}: {e}")
        return None


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a 'Z' suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
