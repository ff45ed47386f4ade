"""Finding aggregation, worst-severity tracking and waiver selection."""

from __future__ import annotations

import itertools
import threading

import pytest

from buildpair.metadata.types import PackageMetadata
from buildpair.policy import SecurityPolicyResolver, load_rule_sets
from buildpair.results import (
    ResultAggregator,
    ResultParams,
    Severity,
    Verb,
    WaiverAuthority,
)


def _params(severity: Severity, **overrides) -> ResultParams:
    values = {
        "severity": severity,
        "header": "payload",
        "msg": f"{severity.label} finding",
        "verb": Verb.CHANGED,
        "noun": "/usr/bin/foo",
    }
    values.update(overrides)
    return ResultParams(**values)


def test_empty_aggregator_passes_everything() -> None:
    """With no findings the worst severity is OK."""
    aggregator = ResultAggregator()
    assert aggregator.worst_severity() is Severity.OK
    assert aggregator.passes(Severity.INFO)
    assert not aggregator.passes(Severity.OK)


@pytest.mark.parametrize(
    "order",
    list(itertools.permutations([Severity.INFO, Severity.BAD, Severity.VERIFY, Severity.OK])),
)
def test_worst_is_independent_of_submission_order(order) -> None:
    """The worst severity is a max over findings."""
    aggregator = ResultAggregator()
    for severity in order:
        aggregator.submit(_params(severity))
    assert aggregator.worst_severity() is Severity.BAD


def test_skip_never_counts_toward_worst() -> None:
    """SKIP findings are stored but never reported."""
    aggregator = ResultAggregator()
    aggregator.submit(_params(Severity.INFO))
    aggregator.submit(_params(Severity.SKIP))

    assert aggregator.worst_severity() is Severity.INFO
    assert len(aggregator) == 2
    assert [finding.severity for finding in aggregator] == [Severity.INFO]
    assert len(aggregator.findings(include_skipped=True)) == 2
    assert aggregator.summary() == {"OK": 0, "INFO": 1, "VERIFY": 0, "BAD": 0}


@pytest.mark.parametrize(
    ("worst", "threshold", "expected"),
    [
        (Severity.INFO, Severity.VERIFY, True),
        (Severity.VERIFY, Severity.VERIFY, False),
        (Severity.BAD, Severity.VERIFY, False),
        (Severity.VERIFY, Severity.BAD, True),
        (Severity.BAD, Severity.BAD, False),
    ],
)
def test_passes_is_strictly_below_threshold(worst, threshold, expected) -> None:
    """A run passes only while the worst severity is below the threshold."""
    aggregator = ResultAggregator()
    aggregator.submit(_params(worst))
    assert aggregator.passes(threshold) is expected


def test_bad_permissions_finding_fails_verify_threshold() -> None:
    """One BAD finding fails a VERIFY threshold."""
    aggregator = ResultAggregator()
    aggregator.submit(
        _params(
            Severity.BAD,
            header="permissions",
            msg="/usr/bin/foo gained the setuid bit",
            noun="/usr/bin/foo",
        )
    )
    assert aggregator.worst_severity() is Severity.BAD
    assert not aggregator.passes(Severity.VERIFY)


def test_default_waiver_mapping() -> None:
    """Without a policy the global waiver mapping applies."""
    aggregator = ResultAggregator()
    assert aggregator.submit(_params(Severity.INFO)).waiver_authority is WaiverAuthority.NOT_WAIVABLE
    assert aggregator.submit(_params(Severity.VERIFY)).waiver_authority is WaiverAuthority.ANYONE
    assert aggregator.submit(_params(Severity.BAD)).waiver_authority is WaiverAuthority.ANYONE


def test_waiver_precedence() -> None:
    """Explicit waivers beat the policy, which beats the defaults."""
    resolver = SecurityPolicyResolver(
        load_rule_sets({"foo": [{"version": "2.0", "release": "1", "waivers": {"BAD": "security"}}]})
    )
    aggregator = ResultAggregator(resolver)
    matched = PackageMetadata(name="foo", version="2.0", release="1")
    unmatched = PackageMetadata(name="foo", version="3.0", release="1")

    explicit = aggregator.submit(
        _params(Severity.BAD, waiver_authority=WaiverAuthority.NOT_WAIVABLE), package=matched
    )
    from_policy = aggregator.submit(_params(Severity.BAD), package=matched)
    policy_silent = aggregator.submit(_params(Severity.VERIFY), package=matched)
    no_rule = aggregator.submit(_params(Severity.BAD), package=unmatched)

    assert explicit.waiver_authority is WaiverAuthority.NOT_WAIVABLE
    assert from_policy.waiver_authority is WaiverAuthority.SECURITY
    assert policy_silent.waiver_authority is WaiverAuthority.ANYONE
    assert no_rule.waiver_authority is WaiverAuthority.ANYONE


def test_custom_default_waivers() -> None:
    """A caller-supplied default mapping replaces the built-in one."""
    aggregator = ResultAggregator(default_waivers={Severity.BAD: WaiverAuthority.SECURITY})
    assert aggregator.submit(_params(Severity.BAD)).waiver_authority is WaiverAuthority.SECURITY
    assert aggregator.submit(_params(Severity.VERIFY)).waiver_authority is WaiverAuthority.NOT_WAIVABLE


def test_submit_from_mapping() -> None:
    """Plain mappings are coerced into findings."""
    aggregator = ResultAggregator()
    finding = aggregator.submit(
        {
            "severity": "fail",
            "header": "emptyrpm",
            "msg": "foo-debuginfo has no payload",
            "verb": "added",
            "noun": "foo-debuginfo",
            "waiver_authority": "waivable_by_security",
        }
    )
    assert finding.severity is Severity.BAD
    assert finding.verb is Verb.ADDED
    assert finding.waiver_authority is WaiverAuthority.SECURITY


@pytest.mark.parametrize(
    "data",
    [
        {"severity": "BAD", "header": "x", "verb": "added", "noun": "n"},
        {"severity": "BAD", "header": "", "msg": "m", "verb": "added", "noun": "n"},
        {"severity": "WORSE", "header": "x", "msg": "m", "verb": "added", "noun": "n"},
    ],
)
def test_submit_rejects_incomplete_params(data) -> None:
    """Incomplete submissions raise and record nothing."""
    aggregator = ResultAggregator()
    with pytest.raises(ValueError):
        aggregator.submit(data)
    assert len(aggregator) == 0


def test_concurrent_submissions_are_all_kept() -> None:
    """Concurrent submits keep every finding and each worker's order."""
    aggregator = ResultAggregator()
    barrier = threading.Barrier(8)

    def worker(index: int) -> None:
        barrier.wait()
        for step in range(50):
            severity = Severity.BAD if (index, step) == (3, 17) else Severity.INFO
            aggregator.submit(_params(severity, msg=f"{index}-{step}"))

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(aggregator) == 400
    assert aggregator.worst_severity() is Severity.BAD
    own_order = [f.msg for f in aggregator if f.msg.startswith("5-")]
    assert own_order == [f"5-{step}" for step in range(50)]
