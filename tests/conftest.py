"""Pytest configuration and fixtures."""
from pathlib import Path

import pytest

from anchor.rules.base import Finding, ScanResult, Severity


@pytest.fixture
def make_project(tmp_path):
    """
    Factory for throwaway projects on disk.

    Takes a {relative path: content} mapping (str is written as text, bytes
    as-is) and returns the project root. Each call writes into the same
    tmp_path, so a test can grow a project in steps.
    """

    def _make(files: dict[str, str | bytes]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def make_finding():
    """Build a Finding with sensible defaults for the fields a test doesn't care about."""
    counter = {"n": 0}

    def _make(rule: str = "test-rule", severity: Severity = Severity.HIGH, **kwargs) -> Finding:
        counter["n"] += 1
        fields = {
            "id": f"{rule}-{counter['n']}",
            "rule": rule,
            "severity": severity,
            "message": f"{rule} message",
            "file": "src/app.js",
        }
        fields.update(kwargs)
        return Finding(**fields)

    return _make


@pytest.fixture
def make_result():
    """Wrap findings in a ScanResult."""

    def _make(findings: list[Finding], files_scanned: int = 3) -> ScanResult:
        return ScanResult(
            version="1.0.0",
            scan_time="2024-01-01T00:00:00.000Z",
            target="/repo",
            files_scanned=files_scanned,
            findings=findings,
            scanners_run=["secrets", "sast"],
        )

    return _make
