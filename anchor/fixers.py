"""Auto-fix engine: best-effort remediation of scan findings.

Strategies run one after another, so no two writers touch the same file at
once. Every strategy reports a FixResult; an exception inside a strategy
becomes a "failed" result instead of aborting the run. In dry-run mode
nothing is written and git is never invoked.
"""

import json
import re
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from anchor.manifest_parser import ManifestParser, canonicalize_name, parse_python_dep_spec
from anchor.rules.base import Finding
from anchor.rules.dependencies import DEPENDENCY_RULE_ID
from anchor.utils.logging import logger
from anchor.versioning import coerce

GITIGNORE_MARKER = "Added by Anchor Security"

GITIGNORE_BLOCK = f"""
# ========================================
# SECURITY - {GITIGNORE_MARKER}
# ========================================

# Environment files - NEVER commit secrets
.env
.env.local
.env.*.local
.env.development
.env.production
.env.staging
*.env

# Private keys
*.pem
*.key
*.p12
*.pfx
id_rsa
id_dsa
id_ecdsa
id_ed25519

# Credentials
credentials.json
service-account*.json
*-credentials.json
.netrc
.npmrc
.pypirc

# AWS
.aws/
aws-credentials

# Cloud configs
.gcloud/
.azure/
kubeconfig

# IDE secrets
.idea/workspace.xml
.vscode/settings.json

# OS files
.DS_Store
Thumbs.db

# Dependencies
node_modules/
vendor/
__pycache__/
*.pyc

# Build outputs
dist/
build/
*.log
"""

ENV_EXAMPLE_HEADER = """# Environment Variables Template
# Copy this file to .env.local and fill in your values
# NEVER commit .env files with real values!
# Generated by Anchor Security

"""

PROTOTYPE_POLLUTION_SUGGESTION = """
// Fix for prototype pollution in {location}:
// Option 1: Use Object.hasOwn() or hasOwnProperty check
if (Object.hasOwn(obj, key)) {{
  // safe to access
}}

// Option 2: Use Map instead of plain objects
const safeMap = new Map();

// Option 3: Create null-prototype object
const safeObj = Object.create(null);

// Option 4: Freeze the prototype
Object.freeze(Object.prototype);
"""

# Rule-id substrings that mark a finding as a leaked credential
SECRET_RULE_MARKERS = ("secret", "api-key", "token", "password", "aws", "heroku")

ENV_TEMPLATE_SUFFIXES = (".example", ".sample", ".template", ".dist")

ENV_ASSIGNMENT = re.compile(r"^([A-Z_][A-Z0-9_]*)=(.*)$", re.IGNORECASE)

DOC_EXTENSIONS = (".md", ".txt")

REDACTIONS = (
    (re.compile(r"AKIA[0-9A-Z]{16}"), "AKIAXXXXXXXXXXXXXXXXX"),
    (re.compile(r"[A-Za-z0-9+/]{40}"), "YOUR_SECRET_KEY_HERE"),
    (
        re.compile(r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}", re.IGNORECASE),
        "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx",
    ),
    (re.compile(r"eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}"), "YOUR_JWT_TOKEN_HERE"),
    (re.compile(r"['\"][A-Za-z0-9+/=_-]{32,}['\"]"), '"YOUR_API_KEY_HERE"'),
)

REQUIREMENT_NAME = re.compile(r"^\s*[A-Za-z0-9][A-Za-z0-9._-]*(?:\[[^\]]*\])?")

# Names an advisory may repin; anything else is left untouched in the manifest
PACKAGE_NAME_PATTERNS = {
    "npm": re.compile(r"^(?:@[a-z0-9][\w.-]*/)?[a-z0-9][\w.-]*$"),
    "pip": re.compile(r"^[A-Za-z0-9][\w.-]*$"),
}

MAX_PACKAGE_NAME_LENGTH = 214


class UnsafeFixTarget(Exception):
    """A fix would write outside the scanned project."""


@dataclass
class FixOptions:
    """Switches for the auto-fix engine."""

    dry_run: bool = False
    remove_secrets_from_docs: bool = True
    update_deps: bool = True
    untrack_env_files: bool = True
    git_timeout: int = 30


@dataclass
class FixResult:
    """Outcome of one remediation step."""

    success: bool
    file: str
    action: str  # created | updated | redacted | suggestion | skipped | failed
    message: str
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class FixSummary:
    """Aggregate of every remediation step taken for one scan."""

    total_fixed: int = 0
    total_skipped: int = 0
    fixes: list[FixResult] = field(default_factory=list)
    gitignore_created: bool = False
    env_example_created: bool = False
    secrets_removed: int = 0
    deps_updated: int = 0
    dry_run: bool = False

    def record(self, result: FixResult) -> None:
        self.fixes.append(result)
        if result.success and result.action not in ("suggestion", "skipped"):
            self.total_fixed += 1
        elif result.action in ("suggestion", "skipped"):
            self.total_skipped += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFixed": self.total_fixed,
            "totalSkipped": self.total_skipped,
            "fixes": [fix.to_dict() for fix in self.fixes],
            "gitignoreCreated": self.gitignore_created,
            "envExampleCreated": self.env_example_created,
            "secretsRemoved": self.secrets_removed,
            "depsUpdated": self.deps_updated,
            "dryRun": self.dry_run,
        }


def is_secret_finding(finding: Finding) -> bool:
    return any(marker in finding.rule for marker in SECRET_RULE_MARKERS)


def is_env_file(file_path: str) -> bool:
    return ".env" in file_path


def is_env_template(file_path: str) -> bool:
    return file_path.rsplit("/", 1)[-1].lower().endswith(ENV_TEMPLATE_SUFFIXES)


def env_example_path(env_file: str) -> str:
    """Sibling template path for an env file ('config/.env.local' -> 'config/.env.example')."""
    directory, _, name = env_file.rpartition("/")
    example = re.sub(r"\.env.*", ".env.example", name, count=1)
    return f"{directory}/{example}" if directory else example


def fix_target(root: Path, file_path: str) -> Path:
    """Resolve a finding's file against the project root, refusing paths that escape it."""
    base = root.resolve()
    target = (base / file_path).resolve()
    if not target.is_relative_to(base):
        raise UnsafeFixTarget(f"{file_path} resolves outside {base}")
    return target


def is_repinnable(package: str, ecosystem: str) -> bool:
    """True when the name is one the manifest rewriters can safely match and replace."""
    pattern = PACKAGE_NAME_PATTERNS.get(ecosystem)
    if pattern is None or not package or len(package) > MAX_PACKAGE_NAME_LENGTH:
        return False
    return bool(pattern.match(package))


def create_versioned_backup(path: Path) -> Path:
    """
    Create a versioned backup that won't overwrite existing backups.

    Creates backups like:
    - package.json.bak (first backup)
    - package.json.bak.1 (second backup)
    - package.json.bak.2 (third backup)
    """
    base_backup = path.with_suffix(path.suffix + ".bak")

    if not base_backup.exists():
        shutil.copy2(path, base_backup)
        return base_backup

    counter = 1
    while True:
        versioned_backup = Path(f"{base_backup}.{counter}")
        if not versioned_backup.exists():
            shutil.copy2(path, versioned_backup)
            return versioned_backup
        counter += 1
        if counter > 100:
            raise RuntimeError(f"Too many backup files for {path}")


def _guarded(file: str, step: Callable[[], FixResult]) -> FixResult:
    """Run one strategy step, turning any exception into a failed result."""
    try:
        return step()
    except Exception as e:
        logger.debug(f"Fix step for {file} failed: {e}")
        return FixResult(success=False, file=file, action="failed", message=f"Fix failed: {e}")


# ----------------------------------------------------------------------------
# Strategy 1: .gitignore security block
# ----------------------------------------------------------------------------

def update_gitignore(root: Path, options: FixOptions) -> FixResult:
    gitignore_path = fix_target(root, ".gitignore")

    existing = ""
    if gitignore_path.exists():
        existing = gitignore_path.read_text(encoding="utf-8")

    if GITIGNORE_MARKER in existing:
        return FixResult(True, ".gitignore", "skipped", ".gitignore already has security entries")

    action = "updated" if gitignore_path.exists() else "created"
    if options.dry_run:
        return FixResult(True, ".gitignore", action, "Would add security entries to .gitignore")

    gitignore_path.write_text(existing + "\n" + GITIGNORE_BLOCK, encoding="utf-8")
    return FixResult(True, ".gitignore", action, "Added security entries to .gitignore")


# ----------------------------------------------------------------------------
# Strategy 2: .env.example templates
# ----------------------------------------------------------------------------

def template_env_content(content: str) -> str:
    """Keep keys and comments, replace every value with a placeholder."""
    lines = []
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            lines.append(line)
            continue

        match = ENV_ASSIGNMENT.match(line)
        if match:
            key = match.group(1)
            lines.append(f"{key}=your_{key.lower()}_here")
        else:
            lines.append(line)
    return ENV_EXAMPLE_HEADER + "\n".join(lines)


def create_env_example(root: Path, env_file: str, options: FixOptions) -> FixResult:
    if is_env_template(env_file):
        return FixResult(False, env_file, "skipped", "Template files are not used as input")

    env_path = fix_target(root, env_file)
    if not env_path.is_file():
        return FixResult(False, env_file, "skipped", "Environment file not found")

    example_file = env_example_path(env_file)
    example_path = fix_target(root, example_file)
    example_name = example_path.name

    if options.dry_run:
        return FixResult(True, example_file, "created", f"Would create {example_name} template")

    content = env_path.read_text(encoding="utf-8", errors="replace")
    example_path.write_text(template_env_content(content), encoding="utf-8")
    return FixResult(True, example_file, "created", f"Created {example_name} template (safe to commit)")


# ----------------------------------------------------------------------------
# Strategy 3: redact secrets in documentation
# ----------------------------------------------------------------------------

def redact_text(content: str) -> tuple[str, bool]:
    modified = False
    for pattern, replacement in REDACTIONS:
        content, count = pattern.subn(replacement, content)
        modified = modified or count > 0
    return content, modified


def redact_secrets_in_file(root: Path, file_path: str, options: FixOptions) -> FixResult:
    path = fix_target(root, file_path)
    if not path.is_file():
        return FixResult(False, file_path, "skipped", "File not found")

    content, modified = redact_text(path.read_text(encoding="utf-8", errors="replace"))
    if not modified:
        return FixResult(False, file_path, "skipped", "No patterns matched for redaction")

    if options.dry_run:
        return FixResult(True, file_path, "redacted", f"Would redact secrets from {file_path}")

    path.write_text(content, encoding="utf-8")
    return FixResult(True, file_path, "redacted", f"Redacted secrets from {file_path}")


# ----------------------------------------------------------------------------
# Strategy 4: prototype pollution suggestions
# ----------------------------------------------------------------------------

def prototype_pollution_suggestion(finding: Finding) -> FixResult:
    location = f"{finding.file}:{finding.line}" if finding.line else finding.file
    return FixResult(
        success=True,
        file=finding.file,
        action="suggestion",
        message="Prototype pollution fix suggestion (manual review required)",
        suggestion=PROTOTYPE_POLLUTION_SUGGESTION.format(location=location),
    )


# ----------------------------------------------------------------------------
# Strategy 5: dependency pins
# ----------------------------------------------------------------------------

def _fixed_versions(findings: list[Finding], source: str) -> dict[str, str]:
    """Package -> highest advisory fixedVersion among findings from one file."""
    targets: dict[str, str] = {}
    for finding in findings:
        if finding.file != source:
            continue
        package = finding.metadata.get("package")
        fixed = finding.metadata.get("fixedVersion")
        if not package or not fixed:
            continue
        if not is_repinnable(package, finding.metadata.get("ecosystem", "")):
            logger.warning(f"Refusing to repin unexpected package name: {package!r}")
            continue
        current = targets.get(package)
        if current is None or (coerce(fixed) or (0, 0, 0)) > (coerce(current) or (0, 0, 0)):
            targets[package] = fixed
    return targets


def repin_npm_spec(spec: str, fixed: str) -> str:
    """Move a package.json range to the fixed version, keeping caret/tilde."""
    prefix = spec.strip()[:1]
    return f"{prefix}{fixed}" if prefix in ("^", "~") else fixed


def update_package_json(root: Path, targets: dict[str, str], options: FixOptions) -> FixResult:
    path = fix_target(root, "package.json")
    data = ManifestParser().parse_json(path)
    if not isinstance(data, dict):
        return FixResult(False, "package.json", "skipped", "package.json could not be parsed")

    updated = []
    for section in ("dependencies", "devDependencies"):
        deps = data.get(section)
        if not isinstance(deps, dict):
            continue
        for name, spec in deps.items():
            if name in targets and isinstance(spec, str):
                deps[name] = repin_npm_spec(spec, targets[name])
                updated.append(f"{name}@{targets[name]}")

    if not updated:
        return FixResult(False, "package.json", "skipped", "No vulnerable pins found in package.json")

    if options.dry_run:
        return FixResult(True, "package.json", "updated", f"Would update {', '.join(updated)}")

    create_versioned_backup(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")

    return FixResult(True, "package.json", "updated", f"Updated {', '.join(updated)}",
                     suggestion="Run: npm install")


def repin_requirement_line(line: str, fixed: str) -> str:
    """Rewrite a requirements.txt line to pin the fixed version.

    Extras, environment markers and trailing comments are preserved.
    """
    body = line.rstrip("\r\n")
    ending = line[len(body):] or "\n"

    name_match = REQUIREMENT_NAME.match(body)
    if not name_match:
        return line

    tail = ""
    if ";" in body:
        tail = ";" + body.split(";", 1)[1]
    else:
        comment = re.search(r"\s+#.*$", body)
        if comment:
            tail = comment.group(0)

    return f"{name_match.group(0)}=={fixed}{tail}{ending}"


def update_requirements_txt(root: Path, targets: dict[str, str], options: FixOptions) -> FixResult:
    path = fix_target(root, "requirements.txt")
    with open(path, encoding="utf-8") as f:
        lines = f.readlines()

    canonical_targets = {canonicalize_name(name): fixed for name, fixed in targets.items()}
    updated = []
    new_lines = []

    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or stripped.startswith("-"):
            new_lines.append(line)
            continue

        parsed = parse_python_dep_spec(stripped)
        if parsed and parsed[0] in canonical_targets:
            fixed = canonical_targets[parsed[0]]
            new_lines.append(repin_requirement_line(line, fixed))
            updated.append(f"{parsed[0]}=={fixed}")
        else:
            new_lines.append(line)

    if not updated:
        return FixResult(False, "requirements.txt", "skipped", "No vulnerable pins found in requirements.txt")

    if options.dry_run:
        return FixResult(True, "requirements.txt", "updated", f"Would update {', '.join(updated)}")

    create_versioned_backup(path)
    with open(path, "w", encoding="utf-8") as f:
        f.writelines(new_lines)

    return FixResult(True, "requirements.txt", "updated", f"Updated {', '.join(updated)}",
                     suggestion="Run: pip install -r requirements.txt")


def lock_update_suggestion(source: str, packages: list[str]) -> FixResult:
    if source == "package-lock.json":
        command = f"npm update {' '.join(packages)}"
    else:
        command = f"pipenv update {' '.join(packages)}"
    return FixResult(
        success=True,
        file=source,
        action="suggestion",
        message=f"Update locked dependencies: {', '.join(packages)}",
        suggestion=command,
    )


# ----------------------------------------------------------------------------
# Strategy 6: untrack env files
# ----------------------------------------------------------------------------

def _run_git(root: Path, args: list[str], timeout: int) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=root,
        shell=False,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


def untrack_env_files(root: Path, options: FixOptions) -> FixResult:
    if not (root / ".git").exists():
        return FixResult(False, ".git", "skipped", "Not a git repository")

    if options.dry_run:
        return FixResult(
            True, ".env*", "suggestion",
            "Would remove tracked .env files from the git index",
            suggestion="git rm --cached <tracked .env files>",
        )

    listing = _run_git(root, ["ls-files"], options.git_timeout)
    if listing.returncode != 0:
        return FixResult(False, ".git", "failed", f"git ls-files failed: {listing.stderr.strip()}")

    tracked = [
        path for path in listing.stdout.splitlines()
        if path.rsplit("/", 1)[-1].startswith(".env") and not is_env_template(path)
    ]
    if not tracked:
        return FixResult(True, ".env*", "skipped", "No .env files are tracked by git")

    removal = _run_git(root, ["rm", "--cached", "--quiet", "--", *tracked], options.git_timeout)
    if removal.returncode != 0:
        return FixResult(False, ".env*", "failed", f"git rm --cached failed: {removal.stderr.strip()}")

    return FixResult(
        True, ".env*", "updated",
        f"Removed {len(tracked)} .env file(s) from git tracking: {', '.join(tracked)}",
        suggestion='git commit -m "Remove environment files from tracking"',
    )


# ----------------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------------

def auto_fix(target: str | Path, findings: list[Finding], options: FixOptions | None = None) -> FixSummary:
    """Apply every remediation strategy relevant to the findings.

    Args:
        target: Scan root the findings' paths are relative to
        findings: Findings from a scan of target
        options: Fix switches (dry_run, per-strategy toggles)

    Returns:
        FixSummary describing each step taken (or, in dry-run mode, that
        would have been taken)
    """
    options = options or FixOptions()
    root = Path(target).resolve()
    summary = FixSummary(dry_run=options.dry_run)

    secret_findings = [f for f in findings if is_secret_finding(f)]
    env_findings = [f for f in findings if is_env_file(f.file)]
    prototype_findings = [f for f in findings if f.rule == "prototype-pollution"]
    dependency_findings = [f for f in findings if f.rule == DEPENDENCY_RULE_ID]

    # 1. .gitignore
    if secret_findings or env_findings:
        result = _guarded(".gitignore", lambda: update_gitignore(root, options))
        summary.record(result)
        if result.success and result.action in ("created", "updated"):
            summary.gitignore_created = True

    # 2. .env.example
    env_files = sorted({f.file for f in env_findings if not is_env_template(f.file)})
    for env_file in env_files:
        result = _guarded(env_file, lambda env_file=env_file: create_env_example(root, env_file, options))
        summary.record(result)
        if result.success:
            summary.env_example_created = True

    # 3. Documentation redaction
    if options.remove_secrets_from_docs:
        doc_files = sorted({
            f.file for f in secret_findings
            if not is_env_file(f.file) and f.file.lower().endswith(DOC_EXTENSIONS)
        })
        for doc_file in doc_files:
            result = _guarded(doc_file, lambda doc_file=doc_file: redact_secrets_in_file(root, doc_file, options))
            summary.record(result)
            if result.success:
                summary.secrets_removed += 1

    # 4. Prototype pollution suggestions
    for finding in prototype_findings:
        summary.record(prototype_pollution_suggestion(finding))

    # 5. Dependencies
    if dependency_findings and options.update_deps:
        updaters = (
            ("package.json", update_package_json),
            ("requirements.txt", update_requirements_txt),
        )
        for source, updater in updaters:
            targets = _fixed_versions(dependency_findings, source)
            if not targets:
                continue
            result = _guarded(source, lambda updater=updater, targets=targets: updater(root, targets, options))
            summary.record(result)
            if result.success and result.action == "updated":
                summary.deps_updated += len(targets)

        for lock_file in ("package-lock.json", "Pipfile.lock"):
            packages = sorted({
                f.metadata["package"] for f in dependency_findings
                if f.file == lock_file and f.metadata.get("package")
            })
            if packages:
                summary.record(lock_update_suggestion(lock_file, packages))

    # 6. Untrack env files
    if env_findings and options.untrack_env_files:
        summary.record(_guarded(".git", lambda: untrack_env_files(root, options)))

    logger.info(
        f"Auto-fix {'dry run ' if options.dry_run else ''}complete: "
        f"{summary.total_fixed} fixed, {summary.total_skipped} skipped"
    )
    return summary
