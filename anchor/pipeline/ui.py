"""Terminal styling for Anchor.

Severity colors are defined once here and shared by the findings table,
the status panel and the rule catalog, so every view of a finding reads
the same. Report bodies meant for pipes never go through these consoles.

Usage:
    from anchor.pipeline.ui import console, print_error

    console.print("[critical]CRITICAL[/critical] aws-access-key")
    print_error("Path not found")
"""

import sys

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

from anchor.rules.base import Severity

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold white on red",
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "bold yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim cyan",
}

ANCHOR_THEME = Theme({
    **{severity.value: style for severity, style in SEVERITY_STYLES.items()},
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

# Findings, fix summaries and help go to stdout
console = Console(theme=ANCHOR_THEME, force_terminal=sys.stdout.isatty())

# Progress and diagnostics go to stderr so piped reports stay clean
err_console = Console(theme=ANCHOR_THEME, stderr=True)


def severity_label(severity: Severity) -> str:
    """Upper-case severity name wrapped in its theme style."""
    return f"[{severity.value}]{severity.value.upper()}[/{severity.value}]"


def print_header(title: str) -> None:
    console.rule(f"[bold]{title}[/bold]")


def print_error(msg: str) -> None:
    err_console.print(f"[error]ERROR:[/error] {msg}", highlight=False)


def print_warning(msg: str) -> None:
    err_console.print(f"[warning]WARNING:[/warning] {msg}", highlight=False)


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}", highlight=False)


def print_status_panel(status: str, message: str, detail: str, style: str = "success") -> None:
    """Boxed scan verdict; style is a theme name (a severity value or "success")."""
    body = Text.assemble((f"{status}\n", style), f"{message}\n", (detail, "dim"))
    console.print(Panel(body, border_style=style, expand=False))
