"""Anchor CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from anchor import __version__
from anchor.pipeline.ui import console

# (title, what the commands are for, command names in display order)
COMMAND_CATEGORIES = (
    ("SCANNING", "Find secrets, vulnerable code and dependencies, IaC and Dockerfile issues", ("scan",)),
    ("REPORTING", "Turn a saved JSON scan into an HTML or Markdown document", ("report",)),
    ("REFERENCE", "Look up rule ids for config files", ("rules",)),
)


class CategorizedGroup(click.Group):
    """Command group whose help page lists commands by category."""

    def list_commands(self, ctx):
        ordered = [name for _, _, names in COMMAND_CATEGORIES for name in names if name in self.commands]
        return ordered + sorted(name for name in self.commands if name not in ordered)

    def format_commands(self, ctx, formatter):
        table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
        table.add_column("Command", style="cmd", no_wrap=True)
        table.add_column("Summary")

        for title, description, names in COMMAND_CATEGORIES:
            visible = [(name, self.commands[name]) for name in names
                       if name in self.commands and not self.commands[name].hidden]
            if not visible:
                continue
            table.add_row(f"[bold]{title}[/bold]", f"[dim]{description}[/dim]")
            for name, command in visible:
                table.add_row(f"  {name}", command.get_short_help_str(limit=70))

        # Rendered through rich, then handed back to click so it lands after the usage block
        with console.capture() as capture:
            console.print(table)

        with formatter.section("Commands"):
            formatter.write(capture.get())


@click.group(cls=CategorizedGroup)
@click.version_option(version=__version__, prog_name="anchor")
@click.help_option("-h", "--help")
def cli():
    """Anchor - Security scanner for secrets, code, dependencies and infrastructure

    \b
    QUICK START:
      anchor scan                      # Scan the current directory
      anchor scan ./app --sarif -o anchor.sarif
      anchor scan --ci --fail-on high  # Non-zero exit on high+ findings
      anchor scan --json -o scan.json && anchor report -i scan.json

    \b
    For detailed options: anchor <command> --help"""
    pass


from anchor.commands.report import report
from anchor.commands.rules import rules
from anchor.commands.scan import scan

cli.add_command(scan)
cli.add_command(report)
cli.add_command(rules)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
