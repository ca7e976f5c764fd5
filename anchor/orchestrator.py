"""Scan orchestration: discover files, fan out to scanners, merge and filter.

The orchestrator is the only place holding state across scanners. Each
scanner runs on its own worker thread against the same immutable file list;
a failing scanner is recorded and never aborts the scan.
"""

import os
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from anchor import __version__
from anchor.config_runtime import disabled_rules
from anchor.indexer import FileWalker
from anchor.rules.base import Finding, ScanResult, Severity
from anchor.scanners import SCANNER_LABELS, SCANNERS
from anchor.utils.constants import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_WORKERS
from anchor.utils.helpers import utc_timestamp
from anchor.utils.logging import logger

DEFAULT_SEVERITY = Severity.LOW
DEFAULT_FAIL_ON = Severity.HIGH


class ScanTargetError(Exception):
    """Raised when the scan root is missing, not a directory, or unreadable."""

    pass


@dataclass
class ScanOptions:
    """Caller-controlled knobs for one scan."""

    severity: Severity = DEFAULT_SEVERITY
    fail_on: Severity = DEFAULT_FAIL_ON
    ignore: list[str] = field(default_factory=list)
    scanners: dict[str, bool] = field(default_factory=dict)
    disabled_rules: set[str] = field(default_factory=set)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS
    verbose: bool = False

    @classmethod
    def from_config(cls, cfg: dict[str, Any], **overrides: Any) -> "ScanOptions":
        """Build options from a runtime config, letting explicit overrides win.

        Overrides whose value is None are ignored so unset CLI flags fall
        through to the config.
        """
        scan = cfg.get("scan", {})
        limits = cfg.get("limits", {})

        options = cls(
            severity=Severity.parse(scan.get("severity"), DEFAULT_SEVERITY),
            fail_on=Severity.parse(scan.get("fail_on"), DEFAULT_FAIL_ON),
            ignore=list(scan.get("ignore", [])),
            scanners=dict(cfg.get("scanners", {})),
            disabled_rules=disabled_rules(cfg),
            max_file_size=limits.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
            max_workers=limits.get("max_workers", DEFAULT_MAX_WORKERS),
        )

        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("severity", "fail_on"):
                value = Severity.parse(value, getattr(options, key))
            elif key == "ignore":
                value = options.ignore + list(value)
            elif key == "scanners":
                value = {**options.scanners, **value}
            setattr(options, key, value)

        return options

    def scanner_enabled(self, name: str) -> bool:
        return self.scanners.get(name, True) is not False


def validate_target(target: str | Path) -> Path:
    """Resolve the scan root, raising ScanTargetError when it cannot be scanned."""
    root = Path(target).resolve()

    if not root.exists():
        raise ScanTargetError(f"Path not found: {root}")
    if not root.is_dir():
        raise ScanTargetError(f"Not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise ScanTargetError(f"Directory is not readable: {root}")

    return root


def filter_by_severity(findings: Iterable[Finding], minimum: Severity | str) -> list[Finding]:
    """Keep findings at or above the minimum severity, preserving order."""
    threshold = Severity.parse(minimum, DEFAULT_SEVERITY)
    return [finding for finding in findings if finding.severity.at_least(threshold)]


def summarize(findings: Iterable[Finding]) -> dict[str, int]:
    """Count findings per severity plus a total."""
    findings = list(findings)
    counts = {severity.value: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity.value] += 1
    return {"total": len(findings), **counts}


def should_fail(findings: Iterable[Finding], fail_on: Severity | str = DEFAULT_FAIL_ON) -> bool:
    """True when any finding is at or above the fail threshold."""
    threshold = Severity.parse(fail_on, DEFAULT_FAIL_ON)
    return any(finding.severity.at_least(threshold) for finding in findings)


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Stable sort by severity rank, most severe first."""
    return sorted(findings, key=lambda finding: finding.severity.rank)


def run_scan(
    target: str | Path,
    options: ScanOptions | None = None,
    progress: Callable[[str, int | None], None] | None = None,
) -> ScanResult:
    """Scan a directory tree and return the merged, filtered result.

    Args:
        target: Directory to scan
        options: Scan options (defaults: severity low, every scanner enabled)
        progress: Optional callback receiving (scanner name, finding count)
            as each scanner finishes; the count is None when it failed

    Raises:
        ScanTargetError: If the target cannot be scanned
    """
    options = options or ScanOptions()
    root = validate_target(target)

    started = time.perf_counter()
    scan_time = utc_timestamp()

    walker = FileWalker(root, {"limits": {"max_file_size": options.max_file_size}},
                        exclude_patterns=options.ignore)
    files, _stats = walker.walk()
    logger.info(f"Scanning {len(files)} files in {root}")

    enabled = [name for name in SCANNERS if options.scanner_enabled(name)]
    results: dict[str, list[Finding]] = {}
    errors: dict[str, str] = {}

    if enabled:
        workers = max(1, min(options.max_workers, len(enabled)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                name: executor.submit(SCANNERS[name], root, list(files))
                for name in enabled
            }

            for name in enabled:
                try:
                    results[name] = futures[name].result()
                except Exception as e:
                    errors[name] = f"{type(e).__name__}: {e}"
                    message = f"{SCANNER_LABELS[name]} scanner failed: {errors[name]}"
                    if options.verbose:
                        logger.warning(message)
                    else:
                        logger.debug(message)
                    if progress:
                        progress(name, None)
                    continue

                logger.debug(f"{SCANNER_LABELS[name]} scanner: {len(results[name])} raw findings")
                if progress:
                    progress(name, len(results[name]))

    merged: list[Finding] = []
    for name in enabled:
        merged.extend(results.get(name, []))

    if options.disabled_rules:
        merged = [finding for finding in merged if finding.rule not in options.disabled_rules]

    findings = filter_by_severity(sort_findings(merged), options.severity)

    return ScanResult(
        version=__version__,
        scan_time=scan_time,
        target=str(root),
        files_scanned=len(files),
        findings=findings,
        scanners_run=[name for name in enabled if name in results],
        duration=round(time.perf_counter() - started, 3),
        scanner_errors=errors,
    )
