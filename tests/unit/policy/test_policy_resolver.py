"""Most-specific-wins security rule resolution."""

from __future__ import annotations

import pytest

from buildpair.policy import (
    SecurityPolicyResolver,
    SecurityRule,
    SecurityRuleSet,
    Specificity,
    load_rule_sets,
)
from buildpair.results import Severity, WaiverAuthority


def _resolver(table):
    return SecurityPolicyResolver(load_rule_sets(table))


def test_exact_clause_beats_wildcard() -> None:
    """A literal version-release clause wins over a wildcard."""
    resolver = _resolver(
        {
            "foo": [
                {"version": "*", "release": "*", "waivers": {"BAD": "anyone"}},
                {"version": "2.0", "release": "1.el9", "waivers": {"BAD": "security"}},
            ]
        }
    )

    resolved = resolver.resolve("foo", "2.0", "1.el9")

    assert resolved is not None
    assert resolved.rule.specificity is Specificity.EXACT
    assert resolved.waiver_for(Severity.BAD) is WaiverAuthority.SECURITY


def test_exact_wins_even_when_registered_first() -> None:
    """Specificity outranks registration order."""
    resolver = _resolver(
        {
            "foo": [
                {"version": "2.0", "release": "1.el9", "waivers": {"BAD": "security"}},
                {"version": "2.0", "waivers": {"BAD": "anyone"}},
                {"waivers": {"BAD": "not-waivable"}},
            ]
        }
    )
    assert resolver.resolve("foo", "2.0", "1.el9").waiver_for(Severity.BAD) is WaiverAuthority.SECURITY
    assert resolver.resolve("foo", "2.0", "2.el9").waiver_for(Severity.BAD) is WaiverAuthority.ANYONE
    assert resolver.resolve("foo", "3.1", "1").waiver_for(Severity.BAD) is WaiverAuthority.NOT_WAIVABLE


def test_version_clause_beats_any_clause() -> None:
    """A literal version outranks a globbed one."""
    resolver = _resolver(
        {
            "foo": [
                {"version": "2.*", "release": "*", "waivers": {"VERIFY": "anyone"}},
                {"version": "2.0", "release": "*.el9", "waivers": {"VERIFY": "security"}},
            ]
        }
    )
    resolved = resolver.resolve("foo", "2.0", "3.el9")
    assert resolved.rule.specificity is Specificity.VERSION
    assert resolved.waiver_for(Severity.VERIFY) is WaiverAuthority.SECURITY


def test_tie_goes_to_later_clause() -> None:
    """Equally specific clauses resolve to the later one."""
    resolver = _resolver(
        {
            "foo": [
                {"version": "1.*", "waivers": {"BAD": "anyone"}},
                {"version": "*", "release": "*.el9", "waivers": {"BAD": "security"}},
            ]
        }
    )
    resolved = resolver.resolve("foo", "1.4", "2.el9")
    assert resolved.rule.position == 1
    assert resolved.waiver_for(Severity.BAD) is WaiverAuthority.SECURITY


def test_no_rule_set_or_no_match_returns_none() -> None:
    """Misses fall back to the global policy."""
    resolver = _resolver({"foo": [{"version": "1.0", "release": "1", "waivers": {"BAD": "security"}}]})

    assert resolver.resolve("bar", "1.0", "1") is None
    assert resolver.resolve("foo", "1.0", "2") is None
    assert "foo" in resolver and "bar" not in resolver


def test_severity_without_clause_entry_defers() -> None:
    """A clause without the severity leaves the waiver undecided."""
    resolver = _resolver({"foo": [{"waivers": {"BAD": "security"}}]})
    assert resolver.resolve("foo", "1", "1").waiver_for(Severity.VERIFY) is None


def test_positions_follow_registration_order_across_sets() -> None:
    """Rule sets for one package are numbered in registration order."""
    first = SecurityRuleSet("foo", (SecurityRule("*", "*", {Severity.BAD: WaiverAuthority.ANYONE}),))
    second = SecurityRuleSet("foo", (SecurityRule("*", "*", {Severity.BAD: WaiverAuthority.SECURITY}),))

    resolver = SecurityPolicyResolver([first, second])

    assert [rule.position for rule in resolver.rule_set("foo").rules] == [0, 1]
    assert resolver.resolve("foo", "1", "1").waiver_for(Severity.BAD) is WaiverAuthority.SECURITY
    assert resolver.packages() == ("foo",)
    assert len(resolver) == 1


@pytest.mark.parametrize(
    ("version", "release", "expected"),
    [
        ("1.0", "1", Specificity.EXACT),
        ("1.0", "*", Specificity.VERSION),
        ("1.[0-9]", "1", Specificity.ANY),
        ("*", "*", Specificity.ANY),
    ],
)
def test_specificity(version: str, release: str, expected: Specificity) -> None:
    """Specificity tiers follow which patterns are literal."""
    assert SecurityRule(version, release, {}).specificity is expected
