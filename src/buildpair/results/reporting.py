"""Deterministic report payloads."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from buildpair.results.aggregator import ResultAggregator
from buildpair.results.types import Finding, Severity

REPORT_SCHEMA_VERSION = "1.0"


def _canonical(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def findings_digest(findings: Iterable[Finding | dict[str, Any]]) -> str:
    """SHA-256 over the canonical JSON of ``findings``, in the given order."""
    items = [item.to_dict() if isinstance(item, Finding) else item for item in findings]
    return hashlib.sha256(_canonical(items).encode("utf-8")).hexdigest()


def report_to_dict(
    aggregator: ResultAggregator,
    threshold: Severity,
    *,
    include_skipped: bool = False,
) -> dict[str, Any]:
    """Convert the aggregated findings into a JSON-ready payload.

    ``findings_hash`` covers the findings in submission order, so two
    single-worker runs over the same inputs hash identically.
    """
    findings = [
        finding.to_dict()
        for finding in aggregator.findings(include_skipped=include_skipped)
    ]
    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "status": "passed" if aggregator.passes(threshold) else "failed",
        "threshold": threshold.label,
        "worst_severity": aggregator.worst_severity().label,
        "counts": aggregator.summary(),
        "findings": findings,
        "findings_hash": findings_digest(findings),
    }


def write_report(path: Path, payload: dict[str, Any]) -> Path:
    """Write ``payload`` as sorted, indented UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
