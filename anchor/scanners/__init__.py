"""Scanner registry.

Every scanner is a plain function (root, files) -> list[Finding]. SCANNERS
fixes the order in which results are merged.
"""

from anchor.rules.base import ScannerFunction

from .dependencies import scan_dependencies
from .dockerfile import scan_dockerfile
from .iac import scan_iac
from .sast import scan_sast
from .secrets import scan_secrets

SCANNERS: dict[str, ScannerFunction] = {
    "secrets": scan_secrets,
    "sast": scan_sast,
    "dependencies": scan_dependencies,
    "iac": scan_iac,
    "dockerfile": scan_dockerfile,
}

SCANNER_LABELS = {
    "secrets": "Secrets",
    "sast": "Static Analysis",
    "dependencies": "Dependencies",
    "iac": "Infrastructure as Code",
    "dockerfile": "Dockerfile",
}

__all__ = [
    "SCANNERS",
    "SCANNER_LABELS",
    "scan_dependencies",
    "scan_dockerfile",
    "scan_iac",
    "scan_sast",
    "scan_secrets",
]
