"""Security policy domain types."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType

from buildpair.errors import RulePatternError
from buildpair.results.types import Severity, WaiverAuthority

ANY_PATTERN = "*"

_PATTERN_RE = re.compile(r"^[A-Za-z0-9._+~^*?\[\]!]+$")
_GLOB_CHARS = frozenset("*?[")


class Specificity(IntEnum):
    """How precisely a clause pins the package version."""

    ANY = 1
    VERSION = 2
    EXACT = 3


def is_literal(pattern: str) -> bool:
    return not any(char in _GLOB_CHARS for char in pattern)


def parse_pattern(raw: object, field_name: str) -> str:
    """Validate a version or release match pattern.

    Raises:
        RulePatternError: for empty patterns, characters outside the RPM
            version alphabet, or malformed bracket expressions.
    """
    if raw is None:
        return ANY_PATTERN
    if not isinstance(raw, str):
        raise RulePatternError(repr(raw), f"{field_name} pattern must be a quoted string")

    value = str(raw).strip()
    if not value:
        raise RulePatternError(repr(raw), f"empty {field_name} pattern")
    if not _PATTERN_RE.match(value):
        raise RulePatternError(value, f"unsupported characters in {field_name} pattern")
    if value.count("[") != value.count("]") or value.find("]") < value.find("["):
        raise RulePatternError(value, "unbalanced bracket expression")
    try:
        re.compile(fnmatch.translate(value))
    except re.error as exc:
        raise RulePatternError(value, str(exc)) from exc
    return value


def specificity_of(version: str, release: str) -> Specificity:
    if is_literal(version) and is_literal(release):
        return Specificity.EXACT
    if is_literal(version):
        return Specificity.VERSION
    return Specificity.ANY


@dataclass(frozen=True)
class SecurityRule:
    """One version-scoped clause of a package rule set."""

    version: str
    release: str
    waivers: Mapping[Severity, WaiverAuthority]
    position: int = 0
    specificity: Specificity = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "waivers", MappingProxyType(dict(self.waivers)))
        object.__setattr__(self, "specificity", specificity_of(self.version, self.release))

    @property
    def pattern(self) -> str:
        return f"{self.version}-{self.release}"

    def matches(self, version: str, release: str) -> bool:
        return fnmatch.fnmatchcase(version, self.version) and fnmatch.fnmatchcase(release, self.release)


@dataclass(frozen=True)
class SecurityRuleSet:
    """Ordered clauses registered for one package name."""

    package: str
    rules: tuple[SecurityRule, ...]


@dataclass(frozen=True)
class ResolvedPolicy:
    """The clause that applies to one (name, version, release)."""

    package: str
    version: str
    release: str
    rule: SecurityRule

    def waiver_for(self, severity: Severity) -> WaiverAuthority | None:
        return self.rule.waivers.get(severity)
