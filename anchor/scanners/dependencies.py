"""Known-vulnerable dependency detection for npm and pip manifests.

Reads package.json, package-lock.json, requirements.txt and Pipfile.lock from
the scan root. Lock-file findings repeat nothing already reported from the
manifest of the same ecosystem (same package and advisory).
"""

from pathlib import Path
from typing import Any

from anchor.manifest_parser import ManifestParser, clean_version, parse_python_dep_spec
from anchor.rules.base import Finding
from anchor.rules.dependencies import (
    DEPENDENCY_CWE,
    DEPENDENCY_RULE_ID,
    VulnerablePackage,
    advisories_for,
)
from anchor.utils.logging import logger
from anchor.versioning import is_vulnerable

PACKAGE_JSON = "package.json"
PACKAGE_LOCK = "package-lock.json"
REQUIREMENTS_TXT = "requirements.txt"
PIPFILE_LOCK = "Pipfile.lock"

LOCK_FILES = frozenset({PACKAGE_LOCK, PIPFILE_LOCK})


class _DependencyCollector:
    """Accumulates findings and remembers which (ecosystem, package, advisory) were reported."""

    def __init__(self):
        self.findings: list[Finding] = []
        self.reported: set[tuple[str, str, str | None]] = set()

    def check(self, *, name: str, version: str, ecosystem: str, source: str,
              line: int | None = None, transitive: bool = False) -> None:
        for advisory in advisories_for(name, ecosystem):
            key = (ecosystem, name, advisory.cve)
            if transitive and key in self.reported:
                continue
            if not is_vulnerable(version, advisory.vulnerable_versions):
                continue

            self.reported.add(key)
            self.findings.append(self._build(advisory, name, version, source, line, transitive))

    def _build(self, advisory: VulnerablePackage, name: str, version: str, source: str,
               line: int | None, transitive: bool) -> Finding:
        if advisory.ecosystem == "npm":
            prefix = "dep-lock" if transitive else "dep"
            fix = (f"Run: npm update {name} or manually upgrade" if transitive
                   else f"Upgrade to {name}@{advisory.fixed_version} or later")
        else:
            prefix = "dep-piplock" if transitive else "dep-pip"
            fix = f"Upgrade to {name}>={advisory.fixed_version}"
        if not advisory.fixed_version:
            fix = "Check for available patches"

        message = f"{advisory.summary} in {name}@{version}"
        if transitive and advisory.ecosystem == "npm":
            message += " (transitive)"

        metadata: dict[str, Any] = {
            "package": name,
            "ecosystem": advisory.ecosystem,
            "installedVersion": version,
            "vulnerableVersions": advisory.vulnerable_versions,
            "fixedVersion": advisory.fixed_version,
            "cve": advisory.cve,
        }
        if transitive:
            metadata["transitive"] = True

        return Finding(
            id=f"{prefix}-{name}-{len(self.findings)}",
            rule=DEPENDENCY_RULE_ID,
            severity=advisory.severity,
            message=message,
            file=source,
            line=line,
            cwe=DEPENDENCY_CWE,
            fix=fix,
            references=(f"https://nvd.nist.gov/vuln/detail/{advisory.cve}",) if advisory.cve else None,
            metadata=metadata,
        )


def scan_dependencies(root: Path, files: list[str]) -> list[Finding]:
    """Check the root-level dependency manifests against the advisory table."""
    parser = ManifestParser()
    collector = _DependencyCollector()

    package_json = root / PACKAGE_JSON
    if package_json.is_file():
        manifest = parser.parse_json(package_json)
        for name, spec in parser.npm_dependencies(manifest).items():
            collector.check(name=name, version=clean_version(spec), ecosystem="npm", source=PACKAGE_JSON)

    package_lock = root / PACKAGE_LOCK
    if package_lock.is_file():
        lock = parser.parse_json(package_lock)
        for name, version in parser.npm_lock_packages(lock):
            collector.check(name=name, version=version, ecosystem="npm",
                            source=PACKAGE_LOCK, transitive=True)

    requirements = root / REQUIREMENTS_TXT
    if requirements.is_file():
        for line_number, spec in parser.parse_requirements_txt(requirements):
            parsed = parse_python_dep_spec(spec)
            if parsed is None:
                continue
            name, version = parsed
            if version is None:
                # Unpinned: no installed version to compare
                continue
            collector.check(name=name, version=version, ecosystem="pip",
                            source=REQUIREMENTS_TXT, line=line_number)

    pipfile_lock = root / PIPFILE_LOCK
    if pipfile_lock.is_file():
        lock = parser.parse_json(pipfile_lock)
        for name, version in parser.pipfile_lock_packages(lock):
            if version is None:
                continue
            collector.check(name=name, version=version, ecosystem="pip",
                            source=PIPFILE_LOCK, transitive=True)

    logger.debug(f"Dependency scanner: {len(collector.findings)} findings")
    return collector.findings
