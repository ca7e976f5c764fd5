"""Render a saved JSON scan result as an HTML or Markdown report."""

import json
import sys
from pathlib import Path

import click

from anchor.formatters import REPORT_FORMATTERS
from anchor.pipeline.ui import print_error, print_success
from anchor.rules.base import ScanResult
from anchor.utils.error_handler import handle_exceptions
from anchor.utils.exit_codes import ExitCodes
from anchor.utils.logging import logger

REPORT_EXTENSIONS = {
    "html": "html",
    "markdown": "md",
}


def load_scan_result(path: Path) -> ScanResult:
    """Read a report written by `anchor scan --json`.

    Raises:
        ValueError: If the file is not valid JSON or not a scan result
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("findings", []), list):
        raise ValueError(f"{path} does not contain a scan result")

    try:
        return ScanResult.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"{path} has a malformed finding: {e}") from e


@click.command("report")
@handle_exceptions
@click.option("--input", "-i", "input_path", required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="JSON result from `anchor scan --json -o FILE`")
@click.option("--output", "-o", "output_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Report file (default: anchor-report.html or anchor-report.md)")
@click.option("--format", "-f", "output_format", type=click.Choice(sorted(REPORT_FORMATTERS)), default="html",
              help="Report format (default: html)")
def report(input_path, output_path, output_format):
    """Generate a shareable report from a saved scan.

    Reads the JSON written by `anchor scan --json` and renders it as a
    standalone HTML page or a Markdown document. Summary counts are
    recomputed from the findings.

    \b
    EXAMPLES:
      anchor scan --json -o scan.json
      anchor report -i scan.json
      anchor report -i scan.json -f markdown -o SECURITY.md
    """
    try:
        result = load_scan_result(input_path)
    except (OSError, ValueError) as e:
        print_error(str(e))
        sys.exit(ExitCodes.INVALID_INPUT)

    output_path = output_path or Path(f"anchor-report.{REPORT_EXTENSIONS[output_format]}")
    output_path.write_text(REPORT_FORMATTERS[output_format](result), encoding="utf-8")

    logger.debug(f"Rendered {len(result.findings)} findings as {output_format}")
    print_success(f"Report generated: {output_path}")
