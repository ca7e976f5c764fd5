"""File discovery package."""

from .core import FileWalker, is_text_file

__all__ = ["FileWalker", "is_text_file"]
