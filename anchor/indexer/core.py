"""File discovery for a scan root.

This module contains the FileWalker class: an os.walk traversal that prunes
skip directories, applies glob-style exclude patterns and returns sorted
POSIX paths relative to the root.
"""

import fnmatch
import os
from pathlib import Path
from typing import Any

from anchor.utils.logging import logger

from .config import BINARY_SNIFF_BYTES, DEFAULT_IGNORE_PATTERNS, SKIP_DIRS


def is_text_file(file_path: Path) -> bool:
    """Check if file is text (no NUL byte in the first block)."""
    try:
        with open(file_path, "rb") as f:
            return b"\0" not in f.read(BINARY_SNIFF_BYTES)
    except OSError:
        return False


def split_exclude_patterns(patterns: list[str]) -> tuple[set[str], list[str]]:
    """Separate directory patterns from file patterns.

    "vendor/**", "**/vendor/**" and "vendor/" prune a directory named vendor
    anywhere in the tree. Everything else is matched with fnmatch against
    both the file name and the relative path.
    """
    skip_dirs: set[str] = set()
    file_patterns: list[str] = []

    for raw in patterns:
        pattern = raw.strip().replace("\\", "/")
        if not pattern:
            continue

        while pattern.startswith("**/"):
            pattern = pattern[3:]

        if pattern.endswith("/**"):
            directory = pattern[:-3]
        elif pattern.endswith("/"):
            directory = pattern[:-1]
        else:
            directory = None

        if directory and "*" not in directory and "/" not in directory:
            skip_dirs.add(directory)
        elif directory:
            file_patterns.append(directory + "/*")
        else:
            file_patterns.append(pattern)

    return skip_dirs, file_patterns


class FileWalker:
    """Handles directory walking with skip-dir and pattern filtering."""

    def __init__(self, root_path: Path, config: dict[str, Any],
                 follow_symlinks: bool = False, exclude_patterns: list[str] | None = None):
        """Initialize the file walker.

        Args:
            root_path: Root directory to walk
            config: Runtime configuration (reads limits.max_file_size)
            follow_symlinks: Whether to follow symbolic links
            exclude_patterns: Additional patterns to exclude
        """
        self.root_path = root_path
        self.config = config
        self.follow_symlinks = follow_symlinks

        extra_dirs, self.exclude_file_patterns = split_exclude_patterns(
            list(DEFAULT_IGNORE_PATTERNS) + list(exclude_patterns or [])
        )
        self.skip_dirs = SKIP_DIRS | extra_dirs

        self.stats = {
            "total_files": 0,
            "text_files": 0,
            "binary_files": 0,
            "large_files": 0,
            "excluded_files": 0,
            "skipped_dirs": 0,
        }

    def is_excluded(self, relative_path: str) -> bool:
        """Match a relative POSIX path against the exclude file patterns."""
        filename = relative_path.rsplit("/", 1)[-1]
        for pattern in self.exclude_file_patterns:
            if fnmatch.fnmatch(filename, pattern) or fnmatch.fnmatch(relative_path, pattern):
                return True
        return False

    def process_file(self, file: Path) -> str | None:
        """Return the file's relative POSIX path, or None when it is skipped."""
        relative_path = file.relative_to(self.root_path).as_posix()

        if self.is_excluded(relative_path):
            self.stats["excluded_files"] += 1
            return None

        try:
            if not self.follow_symlinks and file.is_symlink():
                return None

            if file.stat().st_size >= self.config["limits"]["max_file_size"]:
                self.stats["large_files"] += 1
                return None
        except OSError:
            return None

        if not is_text_file(file):
            self.stats["binary_files"] += 1
            return None

        self.stats["text_files"] += 1
        return relative_path

    def walk(self) -> tuple[list[str], dict[str, Any]]:
        """Walk directory and collect relative file paths.

        Returns:
            Tuple of (sorted relative paths, statistics)
        """
        files = []

        for dirpath, dirnames, filenames in os.walk(self.root_path, followlinks=self.follow_symlinks):
            skipped_count = len([d for d in dirnames if d in self.skip_dirs])
            self.stats["skipped_dirs"] += skipped_count

            dirnames[:] = [d for d in dirnames if d not in self.skip_dirs]

            if not os.access(dirpath, os.R_OK):
                logger.debug(f"Skipping unreadable directory {dirpath}")
                continue

            for filename in filenames:
                self.stats["total_files"] += 1
                relative_path = self.process_file(Path(dirpath) / filename)
                if relative_path:
                    files.append(relative_path)

        # Sort by path for deterministic output
        files.sort()

        logger.debug(
            f"Discovered {len(files)} files under {self.root_path} "
            f"({self.stats['skipped_dirs']} dirs pruned, {self.stats['large_files']} too large, "
            f"{self.stats['binary_files']} binary)"
        )

        return files, self.stats
