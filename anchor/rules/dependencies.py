"""Known-vulnerable package advisories, keyed by exact name and ecosystem.

Small static snapshot. Refreshing it from an advisory feed (OSV, NVD) is
outside this package.
"""

from dataclasses import dataclass

from anchor.rules.base import Severity

DEPENDENCY_RULE_ID = "vulnerable-dependency"
DEPENDENCY_CWE = "CWE-1395"


@dataclass(frozen=True)
class VulnerablePackage:
    """One advisory: a package name, the affected range and the fix."""

    name: str
    ecosystem: str  # npm | pip | go | cargo | maven
    vulnerable_versions: str
    severity: Severity
    summary: str
    fixed_version: str | None = None
    cve: str | None = None


def _npm(name, vulnerable, fixed, severity, cve, summary):
    return VulnerablePackage(name, "npm", vulnerable, severity, summary, fixed, cve)


def _pip(name, vulnerable, fixed, severity, cve, summary):
    return VulnerablePackage(name, "pip", vulnerable, severity, summary, fixed, cve)


VULNERABLE_PACKAGES: tuple[VulnerablePackage, ...] = (
    # npm
    _npm("lodash", "<4.17.21", "4.17.21", Severity.HIGH, "CVE-2021-23337", "Command Injection in lodash"),
    _npm("axios", "<1.6.0", "1.6.0", Severity.MEDIUM, "CVE-2023-45857", "SSRF vulnerability in axios"),
    _npm("minimist", "<1.2.6", "1.2.6", Severity.CRITICAL, "CVE-2021-44906", "Prototype Pollution in minimist"),
    _npm("json5", "<2.2.2", "2.2.2", Severity.HIGH, "CVE-2022-46175", "Prototype Pollution in json5"),
    _npm("express", "<4.19.2", "4.19.2", Severity.MEDIUM, "CVE-2024-29041", "Open redirect in express"),
    _npm("follow-redirects", "<1.15.4", "1.15.4", Severity.MEDIUM, "CVE-2024-28849", "SSRF in follow-redirects"),
    _npm("semver", "<7.5.2", "7.5.2", Severity.MEDIUM, "CVE-2022-25883", "ReDoS in semver"),
    _npm("tar", "<6.2.1", "6.2.1", Severity.HIGH, "CVE-2024-28863", "Arbitrary File Creation in tar"),
    _npm("qs", "<6.10.3", "6.10.3", Severity.HIGH, "CVE-2022-24999", "Prototype Pollution in qs"),
    _npm("node-fetch", "<2.6.7", "2.6.7", Severity.HIGH, "CVE-2022-0235", "SSRF in node-fetch"),
    _npm("jsonwebtoken", "<9.0.0", "9.0.0", Severity.HIGH, "CVE-2022-23539", "Algorithm confusion in jsonwebtoken"),
    _npm("moment", "<2.29.4", "2.29.4", Severity.HIGH, "CVE-2022-31129", "ReDoS in moment"),
    _npm("underscore", "<1.13.6", "1.13.6", Severity.CRITICAL, "CVE-2021-23358", "Arbitrary Code Execution in underscore"),
    _npm("handlebars", "<4.7.7", "4.7.7", Severity.CRITICAL, "CVE-2021-23369", "RCE in handlebars"),
    _npm("serialize-javascript", "<3.1.0", "3.1.0", Severity.CRITICAL, "CVE-2020-7660", "RCE in serialize-javascript"),
    # pip
    _pip("django", "<4.2.11", "4.2.11", Severity.HIGH, "CVE-2024-27351", "Potential ReDoS in django"),
    _pip("flask", "<2.3.2", "2.3.2", Severity.HIGH, "CVE-2023-30861", "Session cookie security in flask"),
    _pip("requests", "<2.32.0", "2.32.0", Severity.MEDIUM, "CVE-2024-35195", "SSRF in requests"),
    _pip("pillow", "<10.2.0", "10.2.0", Severity.HIGH, "CVE-2024-28219", "Buffer overflow in pillow"),
    _pip("pyyaml", "<6.0.1", "6.0.1", Severity.CRITICAL, "CVE-2020-14343", "Arbitrary code execution in pyyaml"),
    _pip("cryptography", "<42.0.0", "42.0.0", Severity.HIGH, "CVE-2024-26130", "NULL pointer dereference in cryptography"),
    _pip("urllib3", "<2.0.7", "2.0.7", Severity.MEDIUM, "CVE-2023-45803", "Cookie leakage in urllib3"),
    _pip("jinja2", "<3.1.3", "3.1.3", Severity.MEDIUM, "CVE-2024-22195", "XSS in jinja2"),
)


def advisories_for(name: str, ecosystem: str) -> list[VulnerablePackage]:
    """Advisories matching an exact package name within one ecosystem."""
    return [
        advisory
        for advisory in VULNERABLE_PACKAGES
        if advisory.name == name and advisory.ecosystem == ecosystem
    ]
