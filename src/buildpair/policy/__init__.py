"""Version-scoped security policy."""

from buildpair.policy.resolver import SecurityPolicyResolver
from buildpair.policy.rules import load_rule_sets, load_rules_file
from buildpair.policy.types import (
    ResolvedPolicy,
    SecurityRule,
    SecurityRuleSet,
    Specificity,
    parse_pattern,
)

__all__ = [
    "ResolvedPolicy",
    "SecurityPolicyResolver",
    "SecurityRule",
    "SecurityRuleSet",
    "Specificity",
    "load_rule_sets",
    "load_rules_file",
    "parse_pattern",
]
