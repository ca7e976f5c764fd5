"""Centralized exit codes for the Anchor CLI."""


class ExitCodes:
    """Standard exit codes for Anchor CLI commands."""

    SUCCESS = 0

    # --ci and a finding at or above --fail-on
    THRESHOLD_EXCEEDED = 1

    # Scan root missing, not a directory, or unreadable
    INVALID_TARGET = 2

    # Report input unreadable or not a saved scan result
    INVALID_INPUT = 2
