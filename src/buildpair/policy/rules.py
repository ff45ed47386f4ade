"""Load security rule tables from mappings or YAML files."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from buildpair.errors import RulePatternError
from buildpair.policy.types import SecurityRule, SecurityRuleSet, parse_pattern
from buildpair.results.types import Severity, WaiverAuthority
from buildpair.schemas.validator import validate_data


def load_rule_sets(table: Mapping[str, Any], *, source: str = "<inline>") -> list[SecurityRuleSet]:
    """Normalize a ``{package: [clause, ...]}`` table into rule sets.

    Package order follows the mapping; clause order follows each list.

    Raises:
        RulePatternError: if any clause is malformed. The whole table is
            rejected.
    """
    if not isinstance(table, Mapping):
        raise RulePatternError(source, "security rules must be a mapping of package name to clauses")

    errors = validate_data(dict(table), "security_rules")
    if errors:
        raise RulePatternError(source, "; ".join(errors))

    rule_sets: list[SecurityRuleSet] = []
    position = 0
    for package, clauses in table.items():
        rules: list[SecurityRule] = []
        for clause in clauses:
            version = parse_pattern(clause.get("version"), "version")
            release = parse_pattern(clause.get("release"), "release")
            if "-" in version:
                raise RulePatternError(version, "version pattern may not contain `-`")
            rules.append(
                SecurityRule(
                    version=version,
                    release=release,
                    waivers=_parse_waivers(clause.get("waivers", {}), f"{version}-{release}"),
                    position=position,
                )
            )
            position += 1
        rule_sets.append(SecurityRuleSet(package=str(package), rules=tuple(rules)))
    return rule_sets


def load_rules_file(path: Path) -> list[SecurityRuleSet]:
    """Read a YAML security rule file."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RulePatternError(str(path), f"cannot read rule file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RulePatternError(str(path), f"rule file parse error: {exc}") from exc

    if raw is None:
        return []
    return load_rule_sets(raw, source=str(path))


def _parse_waivers(raw: Mapping[str, str], pattern: str) -> dict[Severity, WaiverAuthority]:
    waivers: dict[Severity, WaiverAuthority] = {}
    for severity_name, authority_name in raw.items():
        try:
            severity = Severity.parse(severity_name)
            authority = WaiverAuthority.parse(authority_name)
        except ValueError as exc:
            raise RulePatternError(pattern, str(exc)) from exc
        if severity is Severity.SKIP:
            raise RulePatternError(pattern, "SKIP findings are never reported and cannot carry a waiver")
        waivers[severity] = authority
    return waivers
