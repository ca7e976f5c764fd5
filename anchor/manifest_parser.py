"""Parsers for dependency manifests, lock files and multi-document YAML."""

import json
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from anchor.utils.logging import logger

# A line holding only "---" (optionally followed by a comment or content
# marker) starts a new YAML document
YAML_DOCUMENT_SEPARATOR = re.compile(r"^---(?:[ \t].*)?$", re.MULTILINE)

PYTHON_SPEC_PATTERN = re.compile(
    r"^([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:(===|==|~=|>=|<=|!=|>|<)\s*([^\s,;]+))?"
)


def canonicalize_name(name: str) -> str:
    """
    Normalize package name to PyPI standards (PEP 503).
    Converts 'PyYAML' -> 'pyyaml', 'My-Package.Cool' -> 'my-package-cool'
    """
    return re.sub(r"[-_.]+", "-", name).lower()


def clean_version(version_spec: str) -> str:
    """
    Clean version specification to get actual version.
    Handles Python (PEP 440) and npm (semver) operators.

    Examples:
    ^1.2.3 -> 1.2.3 (npm caret)
    ~1.2.3 -> 1.2.3 (npm/Python tilde)
    >=1.2.3 -> 1.2.3 (greater or equal)
    ==1.2.3 -> 1.2.3 (Python exact)
    ~=1.2.3 -> 1.2.3 (Python compatible)
    """
    version = re.sub(r"^[><=~!^]+", "", str(version_spec).strip())
    # Handle ranges (use first version)
    if " " in version:
        version = version.split()[0]
    return version.strip()


def parse_python_dep_spec(spec: str) -> tuple[str, str | None] | None:
    """
    Parse a Python dependency specification.
    Returns (canonical name, version) or None when the line is not a requirement.

    The version is None when the requirement is unpinned.

    package==1.2.3              -> ("package", "1.2.3")
    Package[extra]>=1.0; python_version<"3.8" -> ("package", "1.0")
    package                     -> ("package", None)
    package @ git+https://...   -> ("package", None)
    """
    # Environment markers
    spec = spec.split(";", 1)[0]
    # Extras
    spec = re.sub(r"\[.*?\]", "", spec).strip()

    if not spec:
        return None

    # Direct URL references carry no comparable version
    if "@" in spec and ("git+" in spec or "://" in spec):
        name = spec.split("@")[0].strip()
        return (canonicalize_name(name), None) if name else None

    match = PYTHON_SPEC_PATTERN.match(spec)
    if not match:
        return None

    name, _operator, version = match.groups()
    return canonicalize_name(name), version


def lock_package_name(package_path: str) -> str:
    """Package name from a package-lock key ('node_modules/a/node_modules/@s/b' -> '@s/b')."""
    return package_path.split("node_modules/")[-1]


class ManifestParser:
    """Parser for every manifest and document type the scanners read."""

    def parse_json(self, path: Path) -> Any:
        """Parse JSON safely, returning None for unreadable or invalid files."""
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.debug(f"Failed to parse JSON {path}: {e}")
            return None

    def parse_yaml_documents(self, content: str, source: str = "<string>") -> list[Any]:
        """Parse each YAML document of a stream on its own.

        A document that fails to parse is skipped without discarding the
        documents around it. Empty documents are dropped.
        """
        documents = []
        chunks = YAML_DOCUMENT_SEPARATOR.split(content)

        for index, chunk in enumerate(chunks):
            if not chunk.strip():
                continue
            try:
                document = yaml.safe_load(chunk)
            except yaml.YAMLError as e:
                logger.debug(f"Skipping invalid YAML document {index} in {source}: {e}")
                continue
            if document is not None:
                documents.append(document)

        return documents

    def parse_requirements_txt(self, path: Path) -> list[tuple[int, str]]:
        """Parse requirements.txt format.

        Returns (1-based line number, requirement spec) pairs; comments,
        blank lines and pip options (-r, -e, --index-url, ...) are dropped.
        """
        try:
            with open(path, encoding="utf-8") as f:
                lines = []
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()

                    if not line or line.startswith("#"):
                        continue

                    if line.startswith("-"):
                        continue

                    if " #" in line or "\t#" in line:
                        line = re.split(r"\s#", line, maxsplit=1)[0].strip()
                    if line:
                        lines.append((line_number, line))
                return lines
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Failed to parse requirements.txt {path}: {e}")
            return []

    def npm_dependencies(self, manifest: Any) -> dict[str, str]:
        """Merge dependencies and devDependencies of a package.json document."""
        if not isinstance(manifest, dict):
            return {}

        merged: dict[str, str] = {}
        for section in ("dependencies", "devDependencies"):
            deps = manifest.get(section)
            if isinstance(deps, dict):
                for name, spec in deps.items():
                    if isinstance(spec, str):
                        merged[name] = spec
        return merged

    def npm_lock_packages(self, lock: Any) -> Iterator[tuple[str, str]]:
        """Yield (name, version) for every installed package in a package-lock document.

        Reads the v2/v3 `packages` map, falling back to the legacy
        `dependencies` map. The root entry (empty key) is skipped.
        """
        if not isinstance(lock, dict):
            return

        packages = lock.get("packages") or lock.get("dependencies") or {}
        if not isinstance(packages, dict):
            return

        for package_path, info in packages.items():
            if not package_path or not isinstance(info, dict):
                continue

            name = lock_package_name(package_path)
            version = info.get("version")
            if name and isinstance(version, str) and version:
                yield name, version

    def pipfile_lock_packages(self, lock: Any) -> Iterator[tuple[str, str | None]]:
        """Yield (canonical name, version) from the default and develop sections."""
        if not isinstance(lock, dict):
            return

        for section in ("default", "develop"):
            packages = lock.get(section)
            if not isinstance(packages, dict):
                continue
            for name, info in packages.items():
                version = info.get("version") if isinstance(info, dict) else None
                if isinstance(version, str):
                    version = version.lstrip("=").strip() or None
                else:
                    version = None
                yield canonicalize_name(name), version
