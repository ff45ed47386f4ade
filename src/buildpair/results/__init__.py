"""Finding aggregation and verdicts."""

from buildpair.results.types import (
    DEFAULT_WAIVER_AUTHORITY,
    Finding,
    ResultParams,
    Severity,
    Verb,
    WaiverAuthority,
)
from buildpair.results.aggregator import ResultAggregator
from buildpair.results.reporting import findings_digest, report_to_dict, write_report

__all__ = [
    "DEFAULT_WAIVER_AUTHORITY",
    "Finding",
    "ResultAggregator",
    "ResultParams",
    "Severity",
    "Verb",
    "WaiverAuthority",
    "findings_digest",
    "report_to_dict",
    "write_report",
]
