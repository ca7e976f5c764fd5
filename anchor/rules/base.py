"""Base contracts shared by every scanner and output path."""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any


class Severity(Enum):
    """Standardized severity levels, declared from most to least severe."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Position in the total order, 0 for critical up to 4 for info."""
        return _SEVERITY_RANK[self]

    def at_least(self, threshold: "Severity") -> bool:
        """True when this severity is at or above the threshold."""
        return self.rank <= threshold.rank

    @classmethod
    def parse(cls, value: "Severity | str | None", default: "Severity | None" = None):
        """Map a case-insensitive name to a member, or return the default."""
        if isinstance(value, cls):
            return value
        if value is None:
            return default
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default


_SEVERITY_RANK = {severity: index for index, severity in enumerate(Severity)}


@dataclass(frozen=True)
class Rule:
    """Declarative detection rule: one regex plus the metadata it reports."""

    id: str
    name: str
    severity: Severity
    pattern: str
    message: str
    flags: int = 0
    cwe: str | None = None
    owasp: str | None = None
    fix: str | None = None
    languages: tuple[str, ...] | None = None
    file_patterns: tuple[str, ...] | None = None
    # Matched text is a credential and must not be echoed back verbatim
    sensitive: bool = False
    compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            compiled = re.compile(self.pattern, self.flags)
        except re.error as e:
            raise ValueError(f"Invalid regex in rule '{self.id}': {e}") from e
        object.__setattr__(self, "compiled", compiled)


@dataclass(frozen=True)
class Finding:
    """One reported security issue instance."""

    id: str
    rule: str
    severity: Severity
    message: str
    file: str

    line: int | None = None
    column: int | None = None
    end_line: int | None = None
    end_column: int | None = None
    snippet: str | None = None

    cwe: str | None = None
    owasp: str | None = None
    fix: str | None = None
    references: tuple[str, ...] | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not isinstance(self.severity, Severity):
            raise TypeError(f"Finding severity must be a Severity, got {self.severity!r}")
        if Path(self.file).is_absolute():
            raise ValueError(f"Finding file must be relative to the scan root: {self.file}")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "id": self.id,
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
            "file": self.file,
        }

        optional = {
            "line": self.line,
            "column": self.column,
            "endLine": self.end_line,
            "endColumn": self.end_column,
            "snippet": self.snippet,
            "cwe": self.cwe,
            "owasp": self.owasp,
            "fix": self.fix,
        }
        for key, value in optional.items():
            if value is not None:
                result[key] = value

        if self.references:
            result["references"] = list(self.references)
        if self.metadata:
            result["metadata"] = dict(self.metadata)

        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Finding":
        """Rebuild a finding from its to_dict() form.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the severity is unknown or the path is absolute
        """
        severity = Severity.parse(data.get("severity"))
        if severity is None:
            raise ValueError(f"Unknown severity: {data.get('severity')!r}")

        references = data.get("references")
        return cls(
            id=str(data["id"]),
            rule=str(data["rule"]),
            severity=severity,
            message=str(data["message"]),
            file=str(data["file"]),
            line=data.get("line"),
            column=data.get("column"),
            end_line=data.get("endLine"),
            end_column=data.get("endColumn"),
            snippet=data.get("snippet"),
            cwe=data.get("cwe"),
            owasp=data.get("owasp"),
            fix=data.get("fix"),
            references=tuple(references) if references else None,
            metadata=data.get("metadata") or {},
        )


ScannerFunction = Callable[[Path, list[str]], list[Finding]]


@dataclass
class ScanResult:
    """Aggregate output of one scan invocation."""

    version: str
    scan_time: str
    target: str
    files_scanned: int
    findings: list[Finding] = field(default_factory=list)
    scanners_run: list[str] = field(default_factory=list)
    duration: float | None = None
    scanner_errors: dict[str, str] = field(default_factory=dict)

    @property
    def summary(self) -> dict[str, int]:
        """Severity buckets, always derived from the finding list."""
        counts = {severity.value: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return {"total": len(self.findings), **counts}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "version": self.version,
            "scanTime": self.scan_time,
            "target": self.target,
            "filesScanned": self.files_scanned,
            "findings": [finding.to_dict() for finding in self.findings],
            "scannersRun": list(self.scanners_run),
        }
        if self.duration is not None:
            result["duration"] = self.duration
        result["summary"] = self.summary
        if self.scanner_errors:
            result["scannerErrors"] = dict(self.scanner_errors)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanResult":
        """Rebuild a result from a saved JSON report. The stored summary is ignored."""
        return cls(
            version=str(data.get("version", "")),
            scan_time=str(data.get("scanTime", "")),
            target=str(data.get("target", "")),
            files_scanned=int(data.get("filesScanned", 0)),
            findings=[Finding.from_dict(item) for item in data.get("findings", [])],
            scanners_run=list(data.get("scannersRun", [])),
            duration=data.get("duration"),
            scanner_errors=dict(data.get("scannerErrors", {})),
        )
