"""Per-package security rule resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from buildpair.policy.types import ResolvedPolicy, SecurityRule, SecurityRuleSet

logger = logging.getLogger(__name__)


class SecurityPolicyResolver:
    """Selects the most specific security clause for a package version.

    The table is frozen at construction; ``resolve`` is a pure lookup and
    is safe to call from any number of threads.
    """

    def __init__(self, rule_sets: Iterable[SecurityRuleSet] = ()) -> None:
        table: dict[str, list[SecurityRule]] = {}
        position = 0
        for rule_set in rule_sets:
            clauses = table.setdefault(rule_set.package, [])
            for rule in rule_set.rules:
                # Re-number so registration order decides ties across sets.
                clauses.append(
                    SecurityRule(
                        version=rule.version,
                        release=rule.release,
                        waivers=rule.waivers,
                        position=position,
                    )
                )
                position += 1
        self._table: dict[str, tuple[SecurityRule, ...]] = {
            package: tuple(clauses) for package, clauses in table.items()
        }

    def __contains__(self, package_name: object) -> bool:
        return package_name in self._table

    def __len__(self) -> int:
        return len(self._table)

    def packages(self) -> tuple[str, ...]:
        return tuple(sorted(self._table))

    def rule_set(self, package_name: str) -> SecurityRuleSet | None:
        clauses = self._table.get(package_name)
        if clauses is None:
            return None
        return SecurityRuleSet(package=package_name, rules=clauses)

    def resolve(self, package_name: str, version: str, release: str) -> ResolvedPolicy | None:
        """Return the applicable clause, or None to use the global waiver policy."""
        clauses = self._table.get(package_name)
        if not clauses:
            return None

        best: SecurityRule | None = None
        for rule in clauses:
            if not rule.matches(version, release):
                continue
            if best is None or (rule.specificity, rule.position) >= (best.specificity, best.position):
                best = rule

        if best is None:
            return None

        logger.debug(
            "security rule %s applies to %s-%s-%s",
            best.pattern,
            package_name,
            version,
            release,
        )
        return ResolvedPolicy(package=package_name, version=version, release=release, rule=best)
