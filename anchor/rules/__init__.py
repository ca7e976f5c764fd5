"""Rule tables and the shared finding model."""

from anchor.rules.base import Finding, Rule, ScannerFunction, ScanResult, Severity
from anchor.rules.dependencies import VULNERABLE_PACKAGES, VulnerablePackage
from anchor.rules.iac import IAC_RULES
from anchor.rules.sast import SAST_RULES
from anchor.rules.secrets import SECRET_RULES

__all__ = [
    "Finding",
    "Rule",
    "ScanResult",
    "ScannerFunction",
    "Severity",
    "VulnerablePackage",
    "VULNERABLE_PACKAGES",
    "SECRET_RULES",
    "SAST_RULES",
    "IAC_RULES",
]
