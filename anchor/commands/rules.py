"""List the built-in detection rules."""

import json

import click
from rich.table import Table

from anchor.pipeline.ui import console, severity_label
from anchor.rules import IAC_RULES, SAST_RULES, SECRET_RULES, VULNERABLE_PACKAGES
from anchor.rules.base import Severity
from anchor.rules.dependencies import DEPENDENCY_CWE, DEPENDENCY_RULE_ID
from anchor.scanners.dockerfile import DOCKERFILE_CHECKS
from anchor.utils.error_handler import handle_exceptions

SCANNER_CHOICES = ["secrets", "sast", "dependencies", "iac", "dockerfile"]


def rule_catalog() -> list[dict]:
    """Flatten every rule table into one list of {scanner, id, severity, cwe, description}."""
    catalog = []

    for scanner, table in (("secrets", SECRET_RULES), ("sast", SAST_RULES), ("iac", IAC_RULES)):
        for rule in table:
            catalog.append({
                "scanner": scanner,
                "id": rule.id,
                "severity": rule.severity.value,
                "cwe": rule.cwe,
                "description": rule.name,
            })

    catalog.append({
        "scanner": "dependencies",
        "id": DEPENDENCY_RULE_ID,
        "severity": "varies",
        "cwe": DEPENDENCY_CWE,
        "description": f"Known-vulnerable package versions ({len(VULNERABLE_PACKAGES)} advisories)",
    })

    for check in DOCKERFILE_CHECKS:
        catalog.append({
            "scanner": "dockerfile",
            "id": check.id,
            "severity": check.severity.value,
            "cwe": check.cwe,
            "description": check.fix,
        })

    return catalog


@click.command("rules")
@handle_exceptions
@click.option("--scanner", type=click.Choice(SCANNER_CHOICES), default=None, help="Only list one scanner's rules")
@click.option("--json", "as_json", is_flag=True, help="Print the catalog as JSON")
def rules(scanner, as_json):
    """List built-in detection rules.

    Rule ids listed here are the ids reported in findings and the keys
    accepted under `rules:` in .anchor.yml (set a rule to `off` to drop it).

    \b
    EXAMPLES:
      anchor rules
      anchor rules --scanner secrets
      anchor rules --json > rules.json
    """
    catalog = rule_catalog()
    if scanner:
        catalog = [entry for entry in catalog if entry["scanner"] == scanner]

    if as_json:
        click.echo(json.dumps(catalog, indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Scanner", style="dim")
    table.add_column("Rule", style="cmd", no_wrap=True)
    table.add_column("Severity")
    table.add_column("CWE")
    table.add_column("Description")

    for entry in catalog:
        level = Severity.parse(entry["severity"])
        severity = severity_label(level) if level else entry["severity"].upper()
        table.add_row(entry["scanner"], entry["id"], severity, entry["cwe"] or "-", entry["description"])

    console.print(table)
    console.print(f"[dim]{len(catalog)} rules[/dim]")
