"""Infrastructure-as-code misconfiguration scanner.

Flat regex rules run over Terraform, CloudFormation, Kubernetes, Ansible,
Compose and Helm files. YAML files additionally get structural Kubernetes
checks, one parsed document at a time.
"""

from pathlib import Path
from typing import Any

from anchor.manifest_parser import ManifestParser
from anchor.rules.base import Finding, Severity
from anchor.rules.iac import IAC_EXTENSIONS, IAC_RULES, iac_fix
from anchor.rules.matcher import applies_to_file, make_snippet, masked_snippet, match_rule
from anchor.utils.helpers import read_text_file
from anchor.utils.logging import logger

WORKLOAD_KINDS = ("Deployment", "Pod")


def is_iac_candidate(file_path: str) -> bool:
    """Extension allowlist, excluding dependency and VCS directories."""
    if not file_path.endswith(IAC_EXTENSIONS):
        return False
    return "node_modules" not in file_path and ".git" not in file_path


def is_iac_file(file_path: str, content: str) -> bool:
    """Sniff whether a candidate file is actually infrastructure code."""
    if file_path.endswith((".tf", ".tfvars")):
        return True
    # CloudFormation
    if "AWSTemplateFormatVersion" in content or "AWS::" in content:
        return True
    # Kubernetes
    if "apiVersion:" in content and "kind:" in content:
        return True
    # Ansible
    if "hosts:" in content and "tasks:" in content:
        return True
    # Docker Compose
    if "services:" in content and "version:" in content:
        return True
    # Helm
    return "values.yaml" in file_path or "Chart.yaml" in file_path


def _containers(manifest: dict[str, Any]) -> list[Any]:
    spec = manifest.get("spec")
    if not isinstance(spec, dict):
        return []

    template = spec.get("template")
    if isinstance(template, dict) and isinstance(template.get("spec"), dict):
        containers = template["spec"].get("containers")
        if containers:
            return containers if isinstance(containers, list) else []

    containers = spec.get("containers")
    return containers if isinstance(containers, list) else []


def check_k8s_documents(file_path: str, documents: list[Any], start_index: int = 0) -> list[Finding]:
    """Structural checks over parsed Kubernetes manifests."""
    findings: list[Finding] = []

    def next_id(prefix: str) -> str:
        return f"{prefix}-{start_index + len(findings)}"

    for manifest in documents:
        if not isinstance(manifest, dict) or not manifest.get("kind"):
            continue

        kind = manifest["kind"]

        if kind in WORKLOAD_KINDS:
            for container in _containers(manifest):
                if not isinstance(container, dict):
                    continue
                name = container.get("name") or "unnamed"

                if not container.get("securityContext"):
                    findings.append(Finding(
                        id=next_id("k8s-no-security-context"),
                        rule="k8s-no-security-context",
                        severity=Severity.MEDIUM,
                        message=f'Container "{name}" has no securityContext',
                        file=file_path,
                        cwe="CWE-250",
                        fix="Add securityContext with runAsNonRoot: true and readOnlyRootFilesystem: true",
                    ))

                if not container.get("readinessProbe") and not container.get("livenessProbe"):
                    findings.append(Finding(
                        id=next_id("k8s-no-probes"),
                        rule="k8s-no-health-probes",
                        severity=Severity.LOW,
                        message=f'Container "{name}" has no health probes',
                        file=file_path,
                        cwe="CWE-693",
                        fix="Add readinessProbe and livenessProbe for better reliability",
                    ))

        if kind == "Namespace":
            metadata = manifest.get("metadata")
            namespace = metadata.get("name") if isinstance(metadata, dict) else None
            findings.append(Finding(
                id=next_id("k8s-no-netpol"),
                rule="k8s-no-network-policy",
                severity=Severity.INFO,
                message=f'Namespace "{namespace}" - ensure NetworkPolicies are applied',
                file=file_path,
                cwe="CWE-284",
                fix="Create NetworkPolicy resources to restrict pod communication",
            ))

    return findings


def scan_iac(root: Path, files: list[str]) -> list[Finding]:
    """Scan infrastructure definitions for insecure settings."""
    parser = ManifestParser()
    findings: list[Finding] = []

    for file_path in files:
        if not is_iac_candidate(file_path):
            continue

        content = read_text_file(root / file_path)
        if content is None or not is_iac_file(file_path, content):
            continue

        for rule in IAC_RULES:
            if not applies_to_file(rule, file_path):
                continue

            for match in match_rule(rule, content):
                findings.append(Finding(
                    id=f"iac-{rule.id}-{len(findings)}",
                    rule=rule.id,
                    severity=rule.severity,
                    message=rule.message,
                    file=file_path,
                    line=match.line,
                    column=match.column,
                    snippet=masked_snippet(match) if rule.sensitive else make_snippet(match.line_text),
                    cwe=rule.cwe,
                    fix=iac_fix(rule.id),
                ))

        if file_path.endswith((".yaml", ".yml")):
            documents = parser.parse_yaml_documents(content, source=file_path)
            findings.extend(check_k8s_documents(file_path, documents, start_index=len(findings)))

    logger.debug(f"IaC scanner: {len(findings)} findings")
    return findings
