"""File discovery configuration - constants and patterns.

CRITICAL: This file should contain ONLY configuration constants.
"""

# =============================================================================
# FILE SYSTEM CONFIGURATION
# =============================================================================

# Directories always pruned from the walk: dependencies, VCS metadata and
# build output
SKIP_DIRS: set[str] = {
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
}

# File patterns always excluded (minified bundles and source maps)
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/.git/**",
    "**/dist/**",
    "**/build/**",
    "**/coverage/**",
    "**/*.min.js",
    "**/*.map",
)

# Bytes sniffed when deciding whether a file is binary
BINARY_SNIFF_BYTES = 8192
