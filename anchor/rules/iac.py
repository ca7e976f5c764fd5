"""Infrastructure-as-code rules: Terraform, CloudFormation, Kubernetes, Ansible, Helm."""

import re

from anchor.rules.base import Rule, Severity

TERRAFORM = ("*.tf",)
YAML_FILES = ("*.yaml", "*.yml")

IAC_EXTENSIONS = (".tf", ".tfvars", ".yaml", ".yml", ".json")

IAC_RULES: tuple[Rule, ...] = (
    # Terraform
    Rule(
        id="tf-public-bucket",
        name="Public S3 Bucket",
        severity=Severity.CRITICAL,
        pattern=r"acl\s*=\s*[\"']public-read",
        flags=re.IGNORECASE,
        message="S3 bucket configured with public read access",
        cwe="CWE-284",
        file_patterns=TERRAFORM,
    ),
    Rule(
        id="tf-public-bucket-acl",
        name="Public S3 Bucket ACL",
        severity=Severity.CRITICAL,
        pattern=r"block_public_acls\s*=\s*false",
        flags=re.IGNORECASE,
        message="S3 bucket public access block disabled",
        cwe="CWE-284",
        file_patterns=TERRAFORM,
    ),
    Rule(
        id="tf-unencrypted-ebs",
        name="Unencrypted EBS Volume",
        severity=Severity.HIGH,
        pattern=r"resource\s*\"aws_ebs_volume\"[\s\S]*?(?!encrypted\s*=\s*true)",
        message="EBS volume without encryption enabled",
        cwe="CWE-311",
        file_patterns=TERRAFORM,
    ),
    Rule(
        id="tf-open-security-group",
        name="Open Security Group",
        severity=Severity.CRITICAL,
        pattern=r"cidr_blocks\s*=\s*\[?\"0\.0\.0\.0/0\"\]?",
        message="Security group allows traffic from any IP (0.0.0.0/0)",
        cwe="CWE-284",
        file_patterns=TERRAFORM,
    ),
    Rule(
        id="tf-hardcoded-secret",
        name="Hardcoded Secret in Terraform",
        severity=Severity.CRITICAL,
        pattern=r"(?:password|secret|api_key)\s*=\s*\"[^$][^\"]+\"",
        flags=re.IGNORECASE,
        message="Hardcoded secret in Terraform configuration",
        cwe="CWE-798",
        file_patterns=("*.tf", "*.tfvars"),
        sensitive=True,
    ),
    Rule(
        id="tf-rds-public",
        name="Public RDS Instance",
        severity=Severity.CRITICAL,
        pattern=r"publicly_accessible\s*=\s*true",
        flags=re.IGNORECASE,
        message="RDS instance is publicly accessible",
        cwe="CWE-284",
        file_patterns=TERRAFORM,
    ),
    Rule(
        id="tf-rds-unencrypted",
        name="Unencrypted RDS Instance",
        severity=Severity.HIGH,
        pattern=r"storage_encrypted\s*=\s*false",
        flags=re.IGNORECASE,
        message="RDS instance storage encryption disabled",
        cwe="CWE-311",
        file_patterns=TERRAFORM,
    ),
    # CloudFormation
    Rule(
        id="cfn-public-bucket",
        name="Public S3 Bucket (CFN)",
        severity=Severity.CRITICAL,
        pattern=r"AccessControl:\s*['\"]?PublicRead",
        flags=re.IGNORECASE,
        message="S3 bucket configured with public access",
        cwe="CWE-284",
        file_patterns=("*.yaml", "*.yml", "*.json"),
    ),
    # Kubernetes
    Rule(
        id="k8s-privileged",
        name="Privileged Container",
        severity=Severity.CRITICAL,
        pattern=r"privileged:\s*true",
        flags=re.IGNORECASE,
        message="Container running in privileged mode",
        cwe="CWE-250",
        file_patterns=YAML_FILES,
    ),
    Rule(
        id="k8s-host-network",
        name="Host Network Mode",
        severity=Severity.HIGH,
        pattern=r"hostNetwork:\s*true",
        flags=re.IGNORECASE,
        message="Pod using host network namespace",
        cwe="CWE-284",
        file_patterns=YAML_FILES,
    ),
    Rule(
        id="k8s-host-pid",
        name="Host PID Mode",
        severity=Severity.HIGH,
        pattern=r"hostPID:\s*true",
        flags=re.IGNORECASE,
        message="Pod using host PID namespace",
        cwe="CWE-284",
        file_patterns=YAML_FILES,
    ),
    Rule(
        id="k8s-root-user",
        name="Running as Root",
        severity=Severity.MEDIUM,
        pattern=r"runAsUser:\s*0",
        message="Container configured to run as root user",
        cwe="CWE-250",
        file_patterns=YAML_FILES,
    ),
    Rule(
        id="k8s-no-resource-limits",
        name="Missing Resource Limits",
        severity=Severity.LOW,
        pattern=r"containers:[\s\S]*?(?!resources:)",
        message="Container without resource limits defined",
        cwe="CWE-400",
        file_patterns=YAML_FILES,
    ),
    Rule(
        id="k8s-latest-tag",
        name="Using Latest Tag",
        severity=Severity.MEDIUM,
        pattern=r"image:\s*['\"]?[^:\s'\"]+:latest['\"]?",
        flags=re.IGNORECASE,
        message="Container using :latest tag (unpinned version)",
        cwe="CWE-1104",
        file_patterns=YAML_FILES,
    ),
    Rule(
        id="k8s-secrets-env",
        name="Secrets in Environment",
        severity=Severity.MEDIUM,
        pattern=r"value:\s*['\"]?(?:password|secret|api[_-]?key)['\":]?\s*['\"][^'\"]+['\"]",
        flags=re.IGNORECASE,
        message="Secret value directly in environment variable",
        cwe="CWE-798",
        file_patterns=YAML_FILES,
        sensitive=True,
    ),
    # Ansible
    Rule(
        id="ansible-plaintext-password",
        name="Plaintext Password in Ansible",
        severity=Severity.CRITICAL,
        pattern=r"password:\s*['\"]?(?!\{\{)[^'\"{\s]+['\"]?",
        flags=re.IGNORECASE,
        message="Plaintext password in Ansible playbook",
        cwe="CWE-798",
        file_patterns=YAML_FILES,
        sensitive=True,
    ),
    # Helm
    Rule(
        id="helm-default-secrets",
        name="Default Secrets in Helm",
        severity=Severity.HIGH,
        pattern=r"(?:password|secret):\s*['\"]?(?:admin|password|default|changeme)['\"]?",
        flags=re.IGNORECASE,
        message="Default/weak secret value in Helm values",
        cwe="CWE-798",
        file_patterns=("values.yaml", "values.yml"),
        sensitive=True,
    ),
)

DEFAULT_IAC_FIX = "Review and apply security best practices"

IAC_FIXES = {
    "tf-public-bucket": "Remove public ACL and enable block_public_access",
    "tf-public-bucket-acl": "Set block_public_acls = true",
    "tf-unencrypted-ebs": "Add encrypted = true to the EBS volume",
    "tf-open-security-group": "Restrict CIDR to specific IP ranges",
    "tf-hardcoded-secret": "Use variables or AWS Secrets Manager",
    "tf-rds-public": "Set publicly_accessible = false",
    "tf-rds-unencrypted": "Set storage_encrypted = true",
    "k8s-privileged": "Set privileged: false in securityContext",
    "k8s-host-network": "Set hostNetwork: false unless absolutely required",
    "k8s-host-pid": "Set hostPID: false unless absolutely required",
    "k8s-root-user": "Set runAsNonRoot: true and runAsUser: 1000+",
    "k8s-latest-tag": "Pin to a specific image version",
    "k8s-secrets-env": "Use Secret resources with secretKeyRef",
}


def iac_fix(rule_id: str) -> str:
    """Fix hint for an IaC rule, with a generic fallback."""
    return IAC_FIXES.get(rule_id, DEFAULT_IAC_FIX)
