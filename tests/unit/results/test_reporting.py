from __future__ import annotations

import json

from buildpair.results import (
    ResultAggregator,
    ResultParams,
    Severity,
    Verb,
    findings_digest,
    report_to_dict,
    write_report,
)


def _aggregator(*severities: Severity) -> ResultAggregator:
    aggregator = ResultAggregator()
    for index, severity in enumerate(severities):
        aggregator.submit(
            ResultParams(
                severity=severity,
                header="payload",
                msg=f"finding {index}",
                verb=Verb.CHANGED,
                noun=f"/usr/lib/file{index}",
                remedy="check the spec file" if severity is Severity.BAD else None,
            )
        )
    return aggregator


def test_report_payload_shape() -> None:
    """The report carries status, counts and reported findings."""
    payload = report_to_dict(_aggregator(Severity.INFO, Severity.BAD, Severity.SKIP), Severity.VERIFY)

    assert payload["schema_version"] == "1.0"
    assert payload["status"] == "failed"
    assert payload["threshold"] == "VERIFY"
    assert payload["worst_severity"] == "BAD"
    assert payload["counts"] == {"OK": 0, "INFO": 1, "VERIFY": 0, "BAD": 1}
    assert [item["message"] for item in payload["findings"]] == ["finding 0", "finding 1"]
    assert "remedy" not in payload["findings"][0]
    assert payload["findings"][1]["remedy"] == "check the spec file"


def test_passing_report() -> None:
    """A run below the threshold reports passed."""
    payload = report_to_dict(_aggregator(Severity.INFO), Severity.VERIFY)
    assert payload["status"] == "passed"


def test_include_skipped() -> None:
    """SKIP findings appear only on request."""
    payload = report_to_dict(_aggregator(Severity.SKIP), Severity.BAD, include_skipped=True)
    assert [item["severity"] for item in payload["findings"]] == ["SKIP"]


def test_findings_hash_is_stable() -> None:
    """The findings hash depends on content and order only."""
    first = report_to_dict(_aggregator(Severity.INFO, Severity.VERIFY), Severity.BAD)
    second = report_to_dict(_aggregator(Severity.INFO, Severity.VERIFY), Severity.BAD)
    other = report_to_dict(_aggregator(Severity.VERIFY, Severity.INFO), Severity.BAD)

    assert first["findings_hash"] == second["findings_hash"]
    assert first["findings_hash"] != other["findings_hash"]
    assert len(first["findings_hash"]) == 64


def test_findings_digest_accepts_findings_or_dicts() -> None:
    """Findings and their dict forms hash identically."""
    aggregator = _aggregator(Severity.INFO, Severity.BAD)
    findings = aggregator.findings()

    assert findings_digest(findings) == findings_digest([finding.to_dict() for finding in findings])
    assert findings_digest(findings) == report_to_dict(aggregator, Severity.BAD)["findings_hash"]


def test_write_report(tmp_path) -> None:
    """The written report reads back unchanged."""
    payload = report_to_dict(_aggregator(Severity.VERIFY), Severity.VERIFY)

    path = write_report(tmp_path / "nested" / "report.json", payload)

    assert json.loads(path.read_text(encoding="utf-8")) == payload
