"""Centralized constants for the Anchor utils package."""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

# Working directory for Anchor artifacts (error log)
ANCHOR_DIR = Path("./.anchor")

ERROR_LOG_FILE = ANCHOR_DIR / "error.log"

# ============================================================================
# FILE PROCESSING LIMITS
# ============================================================================

# Maximum file size to scan (default: 2MB)
DEFAULT_MAX_FILE_SIZE = 2 * 1024 * 1024

# Scanner worker threads
DEFAULT_MAX_WORKERS = 5

# Findings shown in the terminal table
TABLE_FINDINGS_LIMIT = 20

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_PREFIX = "ANCHOR_"
