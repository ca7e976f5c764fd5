"""Centralized error handler for Anchor commands."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from typing import Any

import click

from anchor.utils.logging import logger

from .constants import ANCHOR_DIR, ERROR_LOG_FILE


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that provides robust error handling with detailed logging.

    click's own exceptions (usage errors, explicit exits) pass through
    untouched.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except Exception as e:
            error_type = type(e).__name__
            error_msg = str(e)
            tb = traceback.format_exc()

            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            error_log_path = ERROR_LOG_FILE
            try:
                ANCHOR_DIR.mkdir(parents=True, exist_ok=True)
                with open(error_log_path, "a", encoding="utf-8") as f:
                    f.write("\n" + "=" * 80 + "\n")
                    f.write(f"[{datetime.now().isoformat()}] Error in command: {func.__name__}\n")
                    f.write("=" * 80 + "\n")
                    f.write(f"{error_type}: {error_msg}\n\n")
                    f.write(tb)
                    f.write("=" * 80 + "\n\n")
                log_note = f"Full traceback logged to: {error_log_path}"
            except OSError as log_error:
                logger.debug(f"Could not write error log: {log_error}")
                log_note = "Traceback could not be written to the error log"

            raise click.ClickException(f"{error_type}: {error_msg}\n\n{log_note}") from e

    return wrapper
