"""
Dependency scanner tests - npm and pip manifests, lock files, dedupe.
"""

import json

from anchor.rules.base import Severity
from anchor.rules.dependencies import VULNERABLE_PACKAGES, advisories_for
from anchor.scanners.dependencies import scan_dependencies


def package_json(deps: dict, dev: dict | None = None) -> str:
    data = {"name": "demo", "version": "1.0.0", "dependencies": deps}
    if dev:
        data["devDependencies"] = dev
    return json.dumps(data)


def package_lock(packages: dict[str, str]) -> str:
    data = {"lockfileVersion": 3, "packages": {"": {"name": "demo"}}}
    for path, version in packages.items():
        data["packages"][path] = {"version": version}
    return json.dumps(data)


class TestAdvisoryTable:
    """Tests for the vulnerable-package table."""

    def test_lookup_by_ecosystem(self):
        assert advisories_for("lodash", "npm")
        assert not advisories_for("lodash", "pip")
        assert advisories_for("django", "pip")

    def test_table_size(self):
        assert len(VULNERABLE_PACKAGES) == 23


class TestNpm:
    """Tests for package.json and package-lock.json."""

    def test_vulnerable_lodash(self, make_project):
        """lodash 4.17.15 against <4.17.21 yields one high finding."""
        root = make_project({"package.json": package_json({"lodash": "4.17.15"})})
        findings = scan_dependencies(root, ["package.json"])

        assert len(findings) == 1
        finding = findings[0]
        assert finding.rule == "vulnerable-dependency"
        assert finding.severity is Severity.HIGH
        assert finding.file == "package.json"
        assert finding.cwe == "CWE-1395"
        assert finding.message == "Command Injection in lodash in lodash@4.17.15"
        assert finding.fix == "Upgrade to lodash@4.17.21 or later"
        assert finding.metadata["installedVersion"] == "4.17.15"
        assert finding.metadata["fixedVersion"] == "4.17.21"
        assert finding.metadata["cve"] == "CVE-2021-23337"
        assert finding.references == ("https://nvd.nist.gov/vuln/detail/CVE-2021-23337",)

    def test_fixed_version_clean(self, make_project):
        root = make_project({"package.json": package_json({"lodash": "^4.17.21", "express": "~4.19.2"})})
        assert scan_dependencies(root, ["package.json"]) == []

    def test_range_prefix_stripped(self, make_project):
        """Caret and tilde ranges are checked at their base version."""
        root = make_project({"package.json": package_json({}, dev={"minimist": "^1.2.5"})})
        findings = scan_dependencies(root, ["package.json"])

        assert [f.metadata["package"] for f in findings] == ["minimist"]
        assert findings[0].severity is Severity.CRITICAL

    def test_lock_only_is_transitive(self, make_project):
        root = make_project({"package-lock.json": package_lock({"node_modules/minimist": "1.2.5"})})
        findings = scan_dependencies(root, [])

        assert len(findings) == 1
        assert findings[0].file == "package-lock.json"
        assert findings[0].metadata["transitive"] is True
        assert findings[0].message.endswith("(transitive)")

    def test_lock_does_not_repeat_manifest(self, make_project):
        """The same package and advisory is reported once, from package.json."""
        root = make_project({
            "package.json": package_json({"lodash": "4.17.15"}),
            "package-lock.json": package_lock({"node_modules/lodash": "4.17.15"}),
        })
        findings = scan_dependencies(root, [])

        assert len(findings) == 1
        assert findings[0].file == "package.json"

    def test_nested_lock_package_name(self, make_project):
        root = make_project({
            "package-lock.json": package_lock({"node_modules/a/node_modules/qs": "6.5.0"}),
        })
        findings = scan_dependencies(root, [])
        assert [f.metadata["package"] for f in findings] == ["qs"]

    def test_malformed_manifest_skipped(self, make_project):
        root = make_project({"package.json": "{ not json"})
        assert scan_dependencies(root, ["package.json"]) == []


class TestPip:
    """Tests for requirements.txt and Pipfile.lock."""

    def test_requirements_pinned(self, make_project):
        root = make_project({
            "requirements.txt": "# deps\nDjango==4.2.0\nrequests==2.32.3\nflask\n",
        })
        findings = scan_dependencies(root, ["requirements.txt"])

        assert len(findings) == 1
        finding = findings[0]
        assert finding.metadata["package"] == "django"
        assert finding.line == 2
        assert finding.fix == "Upgrade to django>=4.2.11"

    def test_requirements_extras_and_markers(self, make_project):
        root = make_project({"requirements.txt": "PyYAML[libyaml]==5.3; python_version>'3.6'\n"})
        findings = scan_dependencies(root, [])

        assert [f.metadata["package"] for f in findings] == ["pyyaml"]
        assert findings[0].severity is Severity.CRITICAL

    def test_pipfile_lock(self, make_project):
        lock = {"default": {"pillow": {"version": "==9.0.0"}}, "develop": {}}
        root = make_project({"Pipfile.lock": json.dumps(lock)})
        findings = scan_dependencies(root, [])

        assert len(findings) == 1
        assert findings[0].file == "Pipfile.lock"
        assert findings[0].metadata["transitive"] is True

    def test_no_manifests(self, make_project):
        root = make_project({"src/app.py": "print('hi')\n"})
        assert scan_dependencies(root, ["src/app.py"]) == []
