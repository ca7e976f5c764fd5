"""Hardcoded credential detection."""

from pathlib import Path

from anchor.rules.base import Finding
from anchor.rules.matcher import applies_to_file, is_comment_line, is_test_path, mask_secret, match_rule
from anchor.rules.secrets import SECRET_FIX, SECRET_RULES, SKIP_EXTENSIONS, SKIP_FILES
from anchor.utils.helpers import read_text_file
from anchor.utils.logging import logger


def should_skip_file(file_path: str) -> bool:
    """Binary, minified, lock and test/fixture files are never scanned."""
    if file_path.endswith(SKIP_EXTENSIONS):
        return True
    if file_path.rsplit("/", 1)[-1] in SKIP_FILES:
        return True
    return is_test_path(file_path)


def scan_secrets(root: Path, files: list[str]) -> list[Finding]:
    """Scan files for hardcoded credentials.

    Matches on comment lines are dropped. Findings never carry the raw
    value: the message holds a masked form and no snippet is attached.
    """
    findings: list[Finding] = []

    for file_path in files:
        if should_skip_file(file_path):
            continue

        content = read_text_file(root / file_path)
        if content is None:
            continue

        for rule in SECRET_RULES:
            if not applies_to_file(rule, file_path):
                continue

            for match in match_rule(rule, content):
                if is_comment_line(match.line_text):
                    continue

                findings.append(Finding(
                    id=f"{rule.id}-{len(findings)}",
                    rule=rule.id,
                    severity=rule.severity,
                    message=f"{rule.message}: {mask_secret(match.text)}",
                    file=file_path,
                    line=match.line,
                    column=match.column,
                    cwe=rule.cwe,
                    fix=SECRET_FIX,
                ))

    logger.debug(f"Secrets scanner: {len(findings)} findings")
    return findings
