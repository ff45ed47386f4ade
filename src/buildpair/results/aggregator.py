"""Append-only, waiver-aware finding aggregation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

from buildpair.results.types import (
    DEFAULT_WAIVER_AUTHORITY,
    REPORTED_SEVERITIES,
    Finding,
    ResultParams,
    Severity,
    WaiverAuthority,
)

if TYPE_CHECKING:
    from buildpair.metadata.types import PackageMetadata
    from buildpair.policy.resolver import SecurityPolicyResolver

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Collects findings from inspections into one ordered report.

    ``submit`` may be called from many worker threads; a single lock
    guards the append and the running worst severity, so findings land in
    some total order consistent with each worker's own order.
    """

    def __init__(
        self,
        resolver: SecurityPolicyResolver | None = None,
        *,
        default_waivers: Mapping[Severity, WaiverAuthority] | None = None,
    ) -> None:
        self._resolver = resolver
        self._default_waivers = dict(default_waivers or DEFAULT_WAIVER_AUTHORITY)
        self._findings: list[Finding] = []
        self._worst = Severity.OK
        self._lock = threading.Lock()

    def submit(
        self,
        params: ResultParams | Mapping[str, Any],
        *,
        package: PackageMetadata | None = None,
    ) -> Finding:
        """Record one finding and return it.

        When ``params`` carries no waiver authority, the security policy for
        ``package`` decides, falling back to the global default mapping.
        """
        if not isinstance(params, ResultParams):
            params = ResultParams.from_mapping(params)

        finding = Finding(
            severity=params.severity,
            waiver_authority=self._waiver_for(params, package),
            header=params.header,
            msg=params.msg,
            verb=params.verb,
            noun=params.noun,
            details=params.details,
            remedy=params.remedy,
            arch=params.arch,
            file=params.file,
        )

        with self._lock:
            self._findings.append(finding)
            if finding.reported and finding.severity > self._worst:
                self._worst = finding.severity

        logger.debug("%s %s: %s", finding.severity.label, finding.header, finding.msg)
        return finding

    def worst_severity(self) -> Severity:
        with self._lock:
            return self._worst

    def passes(self, threshold: Severity) -> bool:
        """True while nothing has reached ``threshold``."""
        return self.worst_severity() < threshold

    def findings(self, *, include_skipped: bool = False) -> tuple[Finding, ...]:
        with self._lock:
            snapshot = tuple(self._findings)
        if include_skipped:
            return snapshot
        return tuple(finding for finding in snapshot if finding.reported)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.findings())

    def __len__(self) -> int:
        with self._lock:
            return len(self._findings)

    def summary(self) -> dict[str, int]:
        counts = {severity.label: 0 for severity in REPORTED_SEVERITIES}
        for finding in self.findings():
            counts[finding.severity.label] += 1
        return counts

    def close(self) -> None:
        """Detach from the policy resolver at run teardown."""
        self._resolver = None

    def _waiver_for(self, params: ResultParams, package: PackageMetadata | None) -> WaiverAuthority:
        if params.waiver_authority is not None:
            return params.waiver_authority

        if package is not None and self._resolver is not None:
            resolved = self._resolver.resolve(package.name, package.version, package.release)
            if resolved is not None:
                override = resolved.waiver_for(params.severity)
                if override is not None:
                    return override

        return self._default_waivers.get(params.severity, WaiverAuthority.NOT_WAIVABLE)
