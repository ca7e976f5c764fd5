"""Output formatters: SARIF 2.1.0, JSON, Markdown and the terminal table."""

import html
import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from anchor import __version__
from anchor.pipeline.ui import severity_label
from anchor.rules.base import Finding, ScanResult, Severity
from anchor.utils.constants import TABLE_FINDINGS_LIMIT

SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
SARIF_VERSION = "2.1.0"
TOOL_NAME = "Anchor Security"
TOOL_URI = "https://anchor.security"

SARIF_LEVELS = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}


def severity_to_sarif(severity: Severity) -> str:
    return SARIF_LEVELS.get(severity, "note")


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_hash(text: str) -> int:
    """32-bit `h = h * 31 + c` over UTF-16 code units, with signed wraparound."""
    encoded = text.encode("utf-16-le", errors="surrogatepass")
    h = 0
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return h


def fingerprint(finding: Finding) -> str:
    """Location hash used for SARIF result deduplication across runs."""
    line = "undefined" if finding.line is None else finding.line
    return format(abs(string_hash(f"{finding.rule}:{finding.file}:{line}:{finding.message}")), "x")


def _sarif_rules(findings: list[Finding]) -> list[dict[str, Any]]:
    """One rule descriptor per distinct rule id, in first-seen order."""
    rules: dict[str, dict[str, Any]] = {}

    for finding in findings:
        if finding.rule in rules:
            continue

        properties: dict[str, Any] = {}
        if finding.cwe:
            properties["cwe"] = [finding.cwe]
        if finding.owasp:
            properties["owasp"] = [finding.owasp]

        rules[finding.rule] = {
            "id": finding.rule,
            "name": finding.rule,
            "shortDescription": {"text": finding.rule},
            "fullDescription": {"text": finding.message},
            "defaultConfiguration": {"level": severity_to_sarif(finding.severity)},
            "properties": properties,
        }

    return list(rules.values())


def _sarif_result(finding: Finding) -> dict[str, Any]:
    start_line = finding.line or 1
    start_column = finding.column or 1

    result: dict[str, Any] = {
        "ruleId": finding.rule,
        "level": severity_to_sarif(finding.severity),
        "message": {"text": finding.message},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {
                        "uri": finding.file,
                        "uriBaseId": "%SRCROOT%",
                    },
                    "region": {
                        "startLine": start_line,
                        "startColumn": start_column,
                        "endLine": finding.end_line or start_line,
                        "endColumn": finding.end_column or start_column,
                    },
                },
            },
        ],
        "fingerprints": {"primaryLocationLineHash": fingerprint(finding)},
    }

    if finding.fix:
        result["fixes"] = [{"description": {"text": finding.fix}}]

    return result


def build_sarif(result: ScanResult) -> dict[str, Any]:
    """SARIF log as a plain dictionary."""
    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "version": result.version,
                        "informationUri": TOOL_URI,
                        "rules": _sarif_rules(result.findings),
                    },
                },
                "results": [_sarif_result(finding) for finding in result.findings],
            },
        ],
    }


def format_sarif(result: ScanResult) -> str:
    """Render a scan result as SARIF 2.1.0 JSON."""
    return json.dumps(build_sarif(result), indent=2, ensure_ascii=False)


def format_json(result: ScanResult) -> str:
    """Render a scan result as plain JSON."""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


def format_markdown(result: ScanResult) -> str:
    """Render a scan result as a Markdown report."""
    summary = result.summary

    parts = [
        "# Anchor Security Scan Results\n\n",
        f"**Scan Time:** {result.scan_time}  \n",
        f"**Target:** {result.target}  \n",
        f"**Files Scanned:** {result.files_scanned}\n\n",
        "## Summary\n\n",
        "| Severity | Count |\n",
        "|----------|-------|\n",
        f"| Critical | {summary['critical']} |\n",
        f"| High | {summary['high']} |\n",
        f"| Medium | {summary['medium']} |\n",
        f"| Low | {summary['low']} |\n",
        f"| Info | {summary['info']} |\n",
        f"| **Total** | **{summary['total']}** |\n\n",
    ]

    if result.findings:
        parts.append("## Findings\n\n")
        for finding in result.findings:
            parts.append(f"### [{finding.severity.value.upper()}] {finding.rule}\n\n")
            parts.append(f"**File:** `{finding.file}:{finding.line or '?'}`\n\n")
            parts.append(f"{finding.message}\n\n")
            if finding.cwe:
                parts.append(f"**CWE:** {finding.cwe}\n")
            if finding.owasp:
                parts.append(f"**OWASP:** {finding.owasp}\n")
            if finding.fix:
                parts.append(f"**Fix:** {finding.fix}\n")
            parts.append("---\n\n")
    else:
        parts.append("## No Issues Found\n\nNo security issues were detected.\n")

    return "".join(parts)


HTML_SEVERITY_COLORS = {
    Severity.CRITICAL: "#ef4444",
    Severity.HIGH: "#f59e0b",
    Severity.MEDIUM: "#a855f7",
    Severity.LOW: "#3b82f6",
    Severity.INFO: "#6b7280",
}

HTML_STYLE = """
:root { --bg: #0a0f14; --card: #111827; --accent: #06b6d4; --muted: #6b7280; --text: #e5e7eb; }
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: "Segoe UI", system-ui, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; }
.container { max-width: 1200px; margin: 0 auto; padding: 2rem; }
header { text-align: center; padding: 3rem 0; border-bottom: 1px solid var(--accent); margin-bottom: 2rem; }
h1 { color: var(--accent); font-size: 2.5rem; }
.subtitle { color: var(--muted); margin-top: 0.5rem; }
.summary { display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 1rem; margin-bottom: 2rem; }
.stat-card { background: var(--card); border-radius: 8px; padding: 1.5rem; text-align: center; border: 1px solid #374151; }
.stat-number { font-size: 2.5rem; font-weight: bold; }
.stat-label { color: var(--muted); text-transform: uppercase; font-size: 0.75rem; }
.finding { background: var(--card); border-radius: 8px; padding: 1.5rem; margin-bottom: 1rem; border-left: 4px solid var(--muted); }
.finding-header { display: flex; justify-content: space-between; margin-bottom: 0.5rem; }
.badge { padding: 0.25rem 0.75rem; border-radius: 4px; font-size: 0.75rem; font-weight: bold; text-transform: uppercase; color: #000; }
.finding-file { color: var(--accent); font-family: monospace; }
.finding-meta { color: var(--muted); font-size: 0.875rem; margin-top: 0.5rem; }
footer { text-align: center; padding: 2rem 0; color: var(--muted); border-top: 1px solid #374151; margin-top: 2rem; }
"""


def _html_finding(finding: Finding) -> str:
    color = HTML_SEVERITY_COLORS[finding.severity]
    level = finding.severity.value
    location = html.escape(f"{finding.file}:{finding.line or '?'}")

    meta = []
    for label, value in (("CWE", finding.cwe), ("OWASP", finding.owasp), ("Fix", finding.fix)):
        if value:
            meta.append(f"<p class=\"finding-meta\"><strong>{label}:</strong> {html.escape(value)}</p>")

    return (
        f"<div class=\"finding {level}\" style=\"border-left-color: {color}\">\n"
        f"  <div class=\"finding-header\">\n"
        f"    <span class=\"badge {level}\" style=\"background: {color}\">{level}</span>\n"
        f"    <span class=\"finding-file\">{location}</span>\n"
        f"  </div>\n"
        f"  <strong>{html.escape(finding.rule)}</strong>\n"
        f"  <p class=\"finding-message\">{html.escape(finding.message)}</p>\n"
        + "".join(f"  {line}\n" for line in meta)
        + "</div>\n"
    )


def format_html(result: ScanResult) -> str:
    """Render a scan result as a standalone HTML page. All scanned text is escaped."""
    summary = result.summary

    cards = [
        "<div class=\"stat-card\">"
        f"<div class=\"stat-number\">{summary['total']}</div>"
        "<div class=\"stat-label\">Total Findings</div></div>"
    ]
    for severity in Severity:
        cards.append(
            f"<div class=\"stat-card {severity.value}\" style=\"border-color: {HTML_SEVERITY_COLORS[severity]}\">"
            f"<div class=\"stat-number\" style=\"color: {HTML_SEVERITY_COLORS[severity]}\">{summary[severity.value]}</div>"
            f"<div class=\"stat-label\">{severity.value.capitalize()}</div></div>"
        )

    if result.findings:
        body = "".join(_html_finding(finding) for finding in result.findings)
    else:
        body = "<p>No security issues were detected.</p>\n"
    cards_html = "\n".join(cards)

    return (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n<head>\n"
        "<meta charset=\"UTF-8\">\n"
        "<meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\">\n"
        "<title>Anchor Security Report</title>\n"
        f"<style>{HTML_STYLE}</style>\n"
        "</head>\n<body>\n<div class=\"container\">\n"
        "<header>\n<h1>Anchor Security Report</h1>\n"
        f"<p class=\"subtitle\">Generated: {html.escape(result.scan_time)}</p>\n"
        f"<p class=\"subtitle\">Target: {html.escape(result.target)} ({result.files_scanned} files scanned)</p>\n"
        "</header>\n"
        f"<section class=\"summary\">\n{cards_html}\n</section>\n"
        f"<section class=\"findings\">\n<h2>Findings</h2>\n{body}</section>\n"
        f"<footer><p>Generated by {TOOL_NAME} v{__version__}</p></footer>\n"
        "</div>\n</body>\n</html>\n"
    )


FORMATTERS = {
    "json": format_json,
    "sarif": format_sarif,
    "markdown": format_markdown,
}

# Formats `anchor report` can render from a saved JSON result
REPORT_FORMATTERS = {
    "html": format_html,
    "markdown": format_markdown,
}


def print_table(result: ScanResult, console: Console, limit: int = TABLE_FINDINGS_LIMIT) -> None:
    """Print the severity summary and the first findings as rich tables."""
    summary = result.summary

    summary_table = Table(title="Summary", show_header=True, header_style="bold")
    summary_table.add_column("Severity")
    summary_table.add_column("Count", justify="right")
    for severity in Severity:
        summary_table.add_row(
            severity_label(severity),
            str(summary[severity.value]),
        )
    summary_table.add_row("[bold]TOTAL[/bold]", f"[bold]{summary['total']}[/bold]")
    console.print(summary_table)

    if not result.findings:
        console.print("[success]No security issues found.[/success]")
        return

    findings_table = Table(show_header=True, header_style="bold", expand=False)
    findings_table.add_column("Severity", no_wrap=True)
    findings_table.add_column("Rule", style="cmd", no_wrap=True)
    findings_table.add_column("Location", style="path")
    findings_table.add_column("Message")

    for finding in result.findings[:limit]:
        location = f"{finding.file}:{finding.line}" if finding.line else finding.file
        findings_table.add_row(
            severity_label(finding.severity),
            escape(finding.rule),
            escape(location),
            escape(finding.message),
        )

    console.print(findings_table)

    remaining = len(result.findings) - limit
    if remaining > 0:
        console.print(f"[dim]... and {remaining} more. Use --format json for the full list.[/dim]")
