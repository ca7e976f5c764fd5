"""
Finding model tests - severity ordering, Finding validation, ScanResult serialization.
"""

import pytest

from anchor.rules.base import Finding, Rule, ScanResult, Severity


# =============================================================================
# SEVERITY
# =============================================================================
class TestSeverity:
    """Tests for the Severity total order and parsing."""

    def test_rank_order_most_severe_first(self):
        """Ranks run 0 (critical) to 4 (info) in declaration order."""
        assert [s.rank for s in Severity] == [0, 1, 2, 3, 4]
        assert list(Severity)[0] is Severity.CRITICAL

    def test_at_least(self):
        """at_least is inclusive and respects the order."""
        assert Severity.CRITICAL.at_least(Severity.HIGH)
        assert Severity.HIGH.at_least(Severity.HIGH)
        assert not Severity.MEDIUM.at_least(Severity.HIGH)
        assert Severity.INFO.at_least(Severity.INFO)

    def test_parse_case_insensitive(self):
        """Names parse regardless of case and surrounding whitespace."""
        assert Severity.parse("HIGH") is Severity.HIGH
        assert Severity.parse(" medium ") is Severity.MEDIUM
        assert Severity.parse(Severity.LOW) is Severity.LOW

    def test_parse_unknown_returns_default(self):
        """Unknown names fall back to the default instead of raising."""
        assert Severity.parse("severe", Severity.LOW) is Severity.LOW
        assert Severity.parse(None) is None


# =============================================================================
# RULE
# =============================================================================
class TestRule:
    """Tests for rule compilation."""

    def test_pattern_compiled_once(self):
        """The compiled pattern is available immediately after construction."""
        rule = Rule(id="r", name="R", severity=Severity.LOW, pattern=r"foo\d+", message="m")
        assert rule.compiled.search("xx foo42") is not None

    def test_invalid_pattern_rejected(self):
        """A broken regex fails at rule definition, naming the rule."""
        with pytest.raises(ValueError, match="broken"):
            Rule(id="broken", name="B", severity=Severity.LOW, pattern=r"(unclosed", message="m")


# =============================================================================
# FINDING
# =============================================================================
class TestFinding:
    """Tests for Finding invariants and serialization."""

    def test_rejects_absolute_path(self):
        """Finding paths are always relative to the scan root."""
        with pytest.raises(ValueError, match="relative"):
            Finding(id="x", rule="r", severity=Severity.LOW, message="m", file="/etc/passwd")

    def test_rejects_string_severity(self):
        """Severity must be an enum member, not a bare string."""
        with pytest.raises(TypeError):
            Finding(id="x", rule="r", severity="high", message="m", file="a.js")

    def test_to_dict_camel_case_and_omits_none(self):
        """Optional fields appear only when set, with camelCase keys."""
        finding = Finding(
            id="x-0", rule="r", severity=Severity.HIGH, message="m", file="a.js",
            line=3, end_line=4, cwe="CWE-79",
        )
        data = finding.to_dict()

        assert data["severity"] == "high"
        assert data["line"] == 3
        assert data["endLine"] == 4
        assert data["cwe"] == "CWE-79"
        assert "column" not in data
        assert "snippet" not in data
        assert "metadata" not in data

    def test_findings_are_immutable(self):
        """Findings are frozen once built."""
        finding = Finding(id="x", rule="r", severity=Severity.LOW, message="m", file="a.js")
        with pytest.raises(AttributeError):
            finding.line = 10

    def test_metadata_is_read_only(self):
        """Metadata is copied on construction and cannot be changed afterwards."""
        source = {"package": "lodash"}
        finding = Finding(id="x", rule="r", severity=Severity.LOW, message="m", file="a.js", metadata=source)
        source["package"] = "changed"

        with pytest.raises(TypeError):
            finding.metadata["package"] = "other"
        assert finding.metadata["package"] == "lodash"
        assert type(finding.to_dict()["metadata"]) is dict

    def test_from_dict_round_trip(self):
        """A finding read back from its JSON form equals the original."""
        finding = Finding(
            id="x-0", rule="r", severity=Severity.CRITICAL, message="m", file="src/a.js",
            line=3, column=5, end_line=3, end_column=9, snippet="eval(x)", cwe="CWE-95",
            owasp="A03:2021", fix="f", references=("https://cwe.mitre.org/",),
            metadata={"package": "lodash"},
        )
        assert Finding.from_dict(finding.to_dict()) == finding

    def test_from_dict_unknown_severity(self):
        with pytest.raises(ValueError, match="Unknown severity"):
            Finding.from_dict({"id": "x", "rule": "r", "severity": "urgent", "message": "m", "file": "a.js"})

    def test_from_dict_missing_field(self):
        with pytest.raises(KeyError):
            Finding.from_dict({"id": "x", "severity": "low", "message": "m", "file": "a.js"})


# =============================================================================
# SCAN RESULT
# =============================================================================
class TestScanResult:
    """Tests for ScanResult summary and serialization."""

    def test_summary_derived_from_findings(self, make_finding, make_result):
        """Summary buckets always add up to the total."""
        result = make_result([
            make_finding(severity=Severity.CRITICAL),
            make_finding(severity=Severity.HIGH),
            make_finding(severity=Severity.HIGH),
            make_finding(severity=Severity.INFO),
        ])
        summary = result.summary

        assert summary == {"total": 4, "critical": 1, "high": 2, "medium": 0, "low": 0, "info": 1}
        assert summary["total"] == sum(v for k, v in summary.items() if k != "total")

    def test_to_dict_keys(self, make_result):
        """Serialized result uses camelCase keys and embeds the summary."""
        data = make_result([]).to_dict()

        assert data["scanTime"] == "2024-01-01T00:00:00.000Z"
        assert data["filesScanned"] == 3
        assert data["summary"]["total"] == 0
        assert "scannerErrors" not in data

    def test_scanner_errors_serialized_when_present(self):
        """Failed scanners are reported in the serialized result."""
        result = ScanResult(version="1.0.0", scan_time="t", target="/r", files_scanned=0,
                            scanner_errors={"sast": "RuntimeError: boom"})
        assert result.to_dict()["scannerErrors"] == {"sast": "RuntimeError: boom"}

    def test_from_dict_recomputes_summary(self, make_finding, make_result):
        """A saved result loads back with the same findings; a stale summary is ignored."""
        result = make_result([make_finding(severity=Severity.CRITICAL), make_finding(severity=Severity.LOW)])
        data = result.to_dict()
        data["summary"] = {"total": 99}

        loaded = ScanResult.from_dict(data)

        assert loaded.findings == result.findings
        assert loaded.scan_time == result.scan_time
        assert loaded.scanners_run == ["secrets", "sast"]
        assert loaded.summary == {"total": 2, "critical": 1, "high": 0, "medium": 0, "low": 1, "info": 0}
