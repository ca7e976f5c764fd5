"""Pattern-based static analysis of application source."""

from pathlib import Path

from anchor.rules.base import Finding, Severity
from anchor.rules.matcher import applies_to_language, is_test_path, make_snippet, match_rule
from anchor.rules.sast import SAST_RULES, detect_language
from anchor.utils.helpers import read_text_file
from anchor.utils.logging import logger

# Severities that are not reported for test, fixture and example files
TEST_SUPPRESSED = frozenset({Severity.LOW, Severity.INFO})


def scan_sast(root: Path, files: list[str]) -> list[Finding]:
    """Apply the language-filtered SAST rules to every source file."""
    findings: list[Finding] = []

    for file_path in files:
        language = detect_language(file_path)
        if language is None:
            continue

        content = read_text_file(root / file_path)
        if content is None:
            continue

        test_file = is_test_path(file_path)

        for rule in SAST_RULES:
            if not applies_to_language(rule, language):
                continue
            if test_file and rule.severity in TEST_SUPPRESSED:
                continue

            for match in match_rule(rule, content):
                findings.append(Finding(
                    id=f"{rule.id}-{len(findings)}",
                    rule=rule.id,
                    severity=rule.severity,
                    message=rule.message,
                    file=file_path,
                    line=match.line,
                    column=match.column,
                    snippet=make_snippet(match.line_text),
                    cwe=rule.cwe,
                    owasp=rule.owasp,
                    fix=rule.fix,
                ))

    logger.debug(f"SAST scanner: {len(findings)} findings")
    return findings
