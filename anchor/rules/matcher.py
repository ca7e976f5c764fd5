"""Regex matching primitive shared by the table-driven scanners.

Every call to match_rule() walks a fresh finditer() iterator, so a compiled
pattern never carries match position from one file (or rule pass) into the
next.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass

from anchor.rules.base import Rule

SNIPPET_MAX_CHARS = 100

TEST_PATH_PATTERNS = (
    re.compile(r"\.test\.", re.IGNORECASE),
    re.compile(r"\.spec\.", re.IGNORECASE),
    re.compile(r"__tests__", re.IGNORECASE),
    re.compile(r"test/", re.IGNORECASE),
    re.compile(r"tests/", re.IGNORECASE),
    re.compile(r"\.example\.", re.IGNORECASE),
    re.compile(r"example/", re.IGNORECASE),
    re.compile(r"mock", re.IGNORECASE),
    re.compile(r"fixture", re.IGNORECASE),
)

COMMENT_PREFIXES = ("//", "#", "*", "/*")


@dataclass(frozen=True)
class RuleMatch:
    """A single occurrence of a rule pattern inside one file."""

    rule: Rule
    text: str
    start: int
    line: int
    column: int
    line_text: str


def match_rule(rule: Rule, content: str) -> Iterator[RuleMatch]:
    """Yield every non-overlapping occurrence of the rule in content."""
    for match in rule.compiled.finditer(content):
        start = match.start()
        line_start = content.rfind("\n", 0, start) + 1
        line_end = content.find("\n", start)
        if line_end == -1:
            line_end = len(content)

        line_num = content.count("\n", 0, start) + 1
        column = start - line_start + 1
        line_text = content[line_start:line_end]

        yield RuleMatch(
            rule=rule,
            text=match.group(0),
            start=start,
            line=line_num,
            column=column,
            line_text=line_text,
        )


def matches_file_pattern(file_path: str, pattern: str) -> bool:
    """'*.ext' patterns match by suffix, anything else by substring."""
    if pattern.startswith("*"):
        return file_path.endswith(pattern[1:])
    return pattern in file_path


def applies_to_file(rule: Rule, file_path: str) -> bool:
    """Check the rule's file-pattern allowlist (None means every file)."""
    if not rule.file_patterns:
        return True
    return any(matches_file_pattern(file_path, pattern) for pattern in rule.file_patterns)


def applies_to_language(rule: Rule, language: str) -> bool:
    """Check the rule's language allowlist (None means every language)."""
    if not rule.languages:
        return True
    return language in rule.languages


def is_test_path(file_path: str) -> bool:
    """Heuristic for test, fixture, example and mock files."""
    return any(pattern.search(file_path) for pattern in TEST_PATH_PATTERNS)


def is_comment_line(line: str) -> bool:
    """Heuristic: the trimmed line opens with a comment token."""
    return line.strip().startswith(COMMENT_PREFIXES)


def make_snippet(line_text: str, limit: int = SNIPPET_MAX_CHARS) -> str:
    """Trimmed excerpt of a source line, bounded in length."""
    return line_text.strip()[:limit]


def mask_secret(secret: str) -> str:
    """Keep the first and last four characters, or hide short values entirely."""
    if len(secret) <= 8:
        return "****"
    return f"{secret[:4]}...{secret[-4:]}"


def masked_snippet(match: RuleMatch, limit: int = SNIPPET_MAX_CHARS) -> str:
    """Snippet of the matched line with the matched text masked."""
    return make_snippet(match.line_text.replace(match.text, mask_secret(match.text)), limit)
