"""Scan a project for secrets, vulnerable code, dependencies and misconfigurations."""

import sys
from pathlib import Path

import click

from anchor.config_runtime import load_runtime_config
from anchor.fixers import FixOptions, FixSummary, auto_fix
from anchor.formatters import FORMATTERS, print_table
from anchor.orchestrator import ScanOptions, ScanTargetError, run_scan, should_fail
from anchor.pipeline.ui import (
    console,
    err_console,
    print_error,
    print_header,
    print_status_panel,
    print_success,
    print_warning,
)
from anchor.rules.base import ScanResult, Severity
from anchor.scanners import SCANNER_LABELS
from anchor.utils.error_handler import handle_exceptions
from anchor.utils.exit_codes import ExitCodes
from anchor.utils.logging import logger, set_console_level

SEVERITY_CHOICES = [severity.value for severity in Severity]

FIX_ACTION_STYLES = {
    "created": "success",
    "updated": "info",
    "redacted": "cmd",
    "suggestion": "warning",
    "skipped": "dim",
    "failed": "error",
}


def _split_ignore(values: tuple[str, ...]) -> list[str]:
    patterns: list[str] = []
    for value in values:
        patterns.extend(part.strip() for part in value.split(",") if part.strip())
    return patterns


def print_scan_status(result: ScanResult) -> None:
    summary = result.summary
    scanners = ", ".join(result.scanners_run) or "none"

    if summary["total"] == 0:
        print_status_panel("CLEAN", f"{result.files_scanned} files scanned", f"Scanners: {scanners}")
        return

    # Findings are sorted most severe first
    worst = result.findings[0].severity.value
    print_status_panel(
        worst.upper(),
        f"{summary['total']} security issues in {result.files_scanned} files",
        f"critical {summary['critical']} | high {summary['high']} | medium {summary['medium']} | "
        f"low {summary['low']} | info {summary['info']}",
        style=worst,
    )


def print_fix_summary(summary: FixSummary) -> None:
    """Print what the auto-fix engine did (or would do in dry-run mode)."""
    title = "Auto-Fix Summary (dry run)" if summary.dry_run else "Auto-Fix Summary"
    console.print()
    print_header(title)

    if summary.total_fixed == 0 and summary.total_skipped == 0 and not summary.fixes:
        console.print("[success]No issues to fix.[/success]")
        return

    console.print(f"  [success]Fixed:[/success] {summary.total_fixed}")
    console.print(f"  [warning]Skipped/Manual:[/warning] {summary.total_skipped}")
    console.print()

    for fix in summary.fixes:
        if not fix.success:
            marker = "[error]FAIL[/error]"
        elif fix.action == "suggestion":
            marker = "[warning]HINT[/warning]"
        else:
            marker = "[success] OK [/success]"
        style = FIX_ACTION_STYLES.get(fix.action, "white")
        console.print(f"  {marker} [path]{fix.file}[/path] - [{style}]{fix.message}[/{style}]",
                      highlight=False)
        if fix.suggestion and fix.action == "suggestion":
            console.print(f"       [dim]{fix.suggestion.strip().splitlines()[0]}[/dim]", highlight=False)

    console.rule()
    console.print("[warning]Reminders:[/warning]")
    console.print("  1. Rotate every exposed API key or secret at its provider")
    console.print("  2. Review changes before committing")
    console.print("  3. Run the scan again to verify fixes")
    if summary.secrets_removed > 0:
        console.print("  4. Check git history for previously committed secrets")


@click.command("scan")
@handle_exceptions
@click.argument("path", default=".", type=click.Path(file_okay=True, dir_okay=True))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the report to a file instead of stdout")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json", "sarif", "markdown"]),
    default=None,
    help="Report format (default: table)",
)
@click.option("--json", "as_json", is_flag=True, help="Shortcut for --format json")
@click.option("--sarif", "as_sarif", is_flag=True, help="Shortcut for --format sarif")
@click.option("--severity", type=click.Choice(SEVERITY_CHOICES), default=None,
              help="Minimum severity to report (default: low)")
@click.option("--fail-on", type=click.Choice(SEVERITY_CHOICES), default=None,
              help="Severity that fails the run in CI mode (default: high)")
@click.option("--ci", is_flag=True, help="Exit 1 when findings at or above --fail-on remain")
@click.option("--ignore", multiple=True, help="Glob pattern to exclude (repeatable or comma-separated)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file (default: .anchor.yml etc. in PATH)")
@click.option("--no-secrets", is_flag=True, help="Disable the secrets scanner")
@click.option("--no-sast", is_flag=True, help="Disable the static analysis scanner")
@click.option("--no-deps", is_flag=True, help="Disable the dependency scanner")
@click.option("--no-iac", is_flag=True, help="Disable the infrastructure-as-code scanner")
@click.option("--no-docker", is_flag=True, help="Disable the Dockerfile scanner")
@click.option("--fix", is_flag=True, help="Apply automatic remediations after scanning")
@click.option("--fix-dry-run", is_flag=True, help="Show remediations without changing any file")
@click.option("--quiet", "-q", is_flag=True, help="Summary only, suppress progress and details")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging and scanner failure warnings")
def scan(path, output, output_format, as_json, as_sarif, severity, fail_on, ci, ignore, config_path,
         no_secrets, no_sast, no_deps, no_iac, no_docker, fix, fix_dry_run, quiet, verbose):
    """Scan a directory for security issues.

    Runs five scanners over every text file under PATH (default: current
    directory) and reports the merged findings, most severe first.

    \b
    SCANNERS:
      secrets       API keys, tokens, private keys, credentials in files
      sast          Injection, XSS, weak crypto, unsafe deserialization
      dependencies  Known-vulnerable versions in package.json,
                    package-lock.json, requirements.txt, Pipfile.lock
      iac           Terraform, Kubernetes, CloudFormation, docker-compose
      dockerfile    Root user, unpinned images, secrets in ENV/ARG

    \b
    THRESHOLDS:
      --severity    what is reported (findings below it are dropped)
      --fail-on     what fails the run in --ci mode
      The two are independent.

    \b
    EXIT CODES:
      0  Success
      1  --ci and findings at or above --fail-on
      2  PATH missing, not a directory, or unreadable

    \b
    EXAMPLES:
      anchor scan
      anchor scan ./service --severity medium
      anchor scan --sarif -o results.sarif
      anchor scan --ci --fail-on critical --no-iac
      anchor scan --fix-dry-run
    """
    if verbose:
        set_console_level("DEBUG")
    elif quiet:
        set_console_level("WARNING")

    if as_json:
        output_format = "json"
    elif as_sarif:
        output_format = "sarif"
    output_format = output_format or "table"

    cfg = load_runtime_config(path, config_path)
    scanner_flags = {
        "secrets": no_secrets,
        "sast": no_sast,
        "dependencies": no_deps,
        "iac": no_iac,
        "dockerfile": no_docker,
    }
    disabled = {name: False for name, off in scanner_flags.items() if off}

    options = ScanOptions.from_config(
        cfg,
        severity=severity,
        fail_on=fail_on,
        ignore=_split_ignore(ignore) or None,
        scanners=disabled or None,
        verbose=verbose,
    )

    def report_progress(name: str, count: int | None) -> None:
        if quiet:
            return
        label = SCANNER_LABELS[name]
        if count is None:
            err_console.print(f"  [error]x[/error] {label} scanner failed")
        else:
            err_console.print(f"  [success]+[/success] {label}: {count} raw findings", highlight=False)

    try:
        result = run_scan(path, options, progress=report_progress)
    except ScanTargetError as e:
        print_error(str(e))
        sys.exit(ExitCodes.INVALID_TARGET)

    if not quiet:
        err_console.print(
            f"[dim]Scanned {result.files_scanned} files in {result.duration:.2f}s[/dim]",
            highlight=False,
        )

    if output_format == "table":
        console.print(f"Target: [path]{result.target}[/path]", highlight=False)
        if quiet:
            summary = result.summary
            console.print(
                f"{summary['total']} findings "
                f"(critical {summary['critical']}, high {summary['high']}, medium {summary['medium']}, "
                f"low {summary['low']}, info {summary['info']})",
                highlight=False,
            )
        else:
            print_header("SCAN RESULTS")
            print_table(result, console)
            print_scan_status(result)
    else:
        rendered = FORMATTERS[output_format](result)
        if output:
            Path(output).write_text(rendered, encoding="utf-8")
            if not quiet:
                print_success(f"Results written to {output}")
        else:
            click.echo(rendered)

    if result.scanner_errors and not verbose:
        print_warning(
            f"{len(result.scanner_errors)} scanner(s) failed: {', '.join(sorted(result.scanner_errors))} "
            "(use --verbose for details)"
        )

    if (fix or fix_dry_run) and result.findings:
        fix_summary = auto_fix(result.target, result.findings, FixOptions(dry_run=fix_dry_run))
        print_fix_summary(fix_summary)

    if ci and should_fail(result.findings, options.fail_on):
        logger.debug(f"CI threshold {options.fail_on.value} exceeded")
        print_error(f'Findings at or above "{options.fail_on.value}" severity detected')
        sys.exit(ExitCodes.THRESHOLD_EXCEEDED)
