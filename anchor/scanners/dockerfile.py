"""Dockerfile misconfiguration scanner.

Each check inspects the whole file and reports at most one finding, at the
first offending instruction.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from anchor.rules.base import Finding, Severity
from anchor.utils.helpers import read_text_file
from anchor.utils.logging import logger

# (line or None, message) when the check fires
CheckResult = tuple[int | None, str] | None

MAX_EXPOSED_PORTS = 5

SENSITIVE_ENV_PATTERNS = (
    re.compile(r"password\s*=\s*[^$]", re.IGNORECASE),
    re.compile(r"secret\s*=\s*[^$]", re.IGNORECASE),
    re.compile(r"api[_-]?key\s*=\s*[^$]", re.IGNORECASE),
    re.compile(r"token\s*=\s*[^$]", re.IGNORECASE),
    re.compile(r"private[_-]?key", re.IGNORECASE),
)


@dataclass(frozen=True)
class DockerCheck:
    """One whole-file Dockerfile check."""

    id: str
    severity: Severity
    cwe: str
    fix: str
    check: Callable[[list[str], str], CheckResult]


def _instruction(line: str, keyword: str) -> bool:
    return line.strip().upper().startswith(keyword + " ")


def check_root_user(lines: list[str], content: str) -> CheckResult:
    if any(_instruction(line, "USER") and "root" not in line for line in lines):
        return None
    return None, "Container runs as root user by default"


def check_latest_tag(lines: list[str], content: str) -> CheckResult:
    for index, line in enumerate(lines):
        if not _instruction(line, "FROM"):
            continue
        image = line.strip()[5:].strip()
        if image.endswith(":latest") or (":" not in image and "@" not in image):
            return index + 1, f'Base image "{image}" uses unpinned version'
    return None


def check_add_instead_of_copy(lines: list[str], content: str) -> CheckResult:
    for index, line in enumerate(lines):
        if not _instruction(line, "ADD"):
            continue
        if any(token in line for token in ("http://", "https://", ".tar", ".gz")):
            continue
        return index + 1, "ADD used instead of COPY for local files"
    return None


def check_sudo(lines: list[str], content: str) -> CheckResult:
    for index, line in enumerate(lines):
        if _instruction(line, "RUN") and "sudo " in line:
            return index + 1, "Unnecessary sudo in RUN instruction"
    return None


def check_apt_get_upgrade(lines: list[str], content: str) -> CheckResult:
    for index, line in enumerate(lines):
        lowered = line.strip().lower()
        if lowered.startswith("run ") and (
            "apt-get upgrade" in lowered or "apt-get dist-upgrade" in lowered
        ):
            return index + 1, "apt-get upgrade makes builds non-reproducible"
    return None


def check_apt_clean(lines: list[str], content: str) -> CheckResult:
    if "apt-get install" not in content:
        return None
    if "apt-get clean" in content or "rm -rf /var/lib/apt/lists" in content:
        return None
    line = next(index for index, text in enumerate(lines) if "apt-get install" in text)
    return line + 1, "apt-get install without cleanup increases image size"


def check_expose_all(lines: list[str], content: str) -> CheckResult:
    ports: set[int] = set()
    for line in lines:
        if not _instruction(line, "EXPOSE"):
            continue
        for token in line.strip()[7:].split():
            port = re.match(r"\d+", token.split("/")[0])
            if port:
                ports.add(int(port.group(0)))

    if len(ports) > MAX_EXPOSED_PORTS:
        return None, f"{len(ports)} ports exposed - review if all are necessary"
    return None


def check_env_secrets(lines: list[str], content: str) -> CheckResult:
    for index, line in enumerate(lines):
        if not (_instruction(line, "ENV") or _instruction(line, "ARG")):
            continue
        if any(pattern.search(line) for pattern in SENSITIVE_ENV_PATTERNS):
            return index + 1, "Potential secret in ENV/ARG instruction"
    return None


def check_healthcheck(lines: list[str], content: str) -> CheckResult:
    if "HEALTHCHECK " in content.upper():
        return None
    return None, "Dockerfile has no HEALTHCHECK instruction"


def check_curl_pipe_bash(lines: list[str], content: str) -> CheckResult:
    for index, line in enumerate(lines):
        lowered = line.strip().lower()
        if not lowered.startswith("run "):
            continue
        downloads = "curl" in lowered or "wget" in lowered
        pipes_to_shell = any(pipe in lowered for pipe in ("| sh", "| bash", "|sh", "|bash"))
        if downloads and pipes_to_shell:
            return index + 1, "Downloading and executing scripts in one command"
    return None


DOCKERFILE_CHECKS: tuple[DockerCheck, ...] = (
    DockerCheck("docker-root-user", Severity.HIGH, "CWE-250",
                "Add USER instruction to run as non-root user (e.g., USER 1000:1000)",
                check_root_user),
    DockerCheck("docker-latest-tag", Severity.MEDIUM, "CWE-1104",
                "Pin to specific version (e.g., node:20.11.0-alpine)",
                check_latest_tag),
    DockerCheck("docker-add-instead-of-copy", Severity.LOW, "CWE-693",
                "Use COPY for simple file copying. ADD has implicit behaviors.",
                check_add_instead_of_copy),
    DockerCheck("docker-sudo", Severity.MEDIUM, "CWE-250",
                "Remove sudo from commands - RUN already executes as root",
                check_sudo),
    DockerCheck("docker-apt-get-upgrade", Severity.MEDIUM, "CWE-1104",
                "Remove upgrade. Pin package versions for reproducibility.",
                check_apt_get_upgrade),
    DockerCheck("docker-apt-clean", Severity.INFO, "CWE-400",
                "Add: && apt-get clean && rm -rf /var/lib/apt/lists/*",
                check_apt_clean),
    DockerCheck("docker-expose-all", Severity.HIGH, "CWE-284",
                "Minimize exposed ports to only those required",
                check_expose_all),
    DockerCheck("docker-env-secrets", Severity.CRITICAL, "CWE-798",
                "Use --secret flag or pass secrets at runtime",
                check_env_secrets),
    DockerCheck("docker-healthcheck", Severity.LOW, "CWE-693",
                "Add: HEALTHCHECK --interval=30s CMD curl -f http://localhost/ || exit 1",
                check_healthcheck),
    DockerCheck("docker-curl-pipe-bash", Severity.HIGH, "CWE-494",
                "Download script, verify checksum, then execute in separate steps",
                check_curl_pipe_bash),
)


def is_dockerfile(file_path: str) -> bool:
    return "dockerfile" in file_path.lower() or file_path.endswith(".dockerfile")


def scan_dockerfile(root: Path, files: list[str]) -> list[Finding]:
    """Run every Dockerfile check against each Dockerfile in the file list."""
    findings: list[Finding] = []

    for file_path in files:
        if not is_dockerfile(file_path):
            continue

        content = read_text_file(root / file_path)
        if content is None:
            continue
        lines = content.split("\n")

        for docker_check in DOCKERFILE_CHECKS:
            result = docker_check.check(lines, content)
            if result is None:
                continue

            line, message = result
            findings.append(Finding(
                id=f"{docker_check.id}-{len(findings)}",
                rule=docker_check.id,
                severity=docker_check.severity,
                message=message,
                file=file_path,
                line=line,
                cwe=docker_check.cwe,
                fix=docker_check.fix,
            ))

    logger.debug(f"Dockerfile scanner: {len(findings)} findings")
    return findings
