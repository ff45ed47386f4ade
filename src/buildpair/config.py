"""Load and validate buildpair run configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from buildpair.errors import (
    CONFIG_REASON_MISSING,
    CONFIG_REASON_PARSE_ERROR,
    CONFIG_REASON_SCHEMA_INVALID,
    ConfigError,
)
from buildpair.peers.types import FavorRelease
from buildpair.policy.rules import load_rule_sets, load_rules_file
from buildpair.policy.types import SecurityRuleSet
from buildpair.results.types import Severity
from buildpair.schemas.validator import validate_data

DEFAULT_CONFIG_FILENAME = "buildpair.yaml"

# Keep this literal deterministic and sorted in write path.
CONFIG_TEMPLATE: dict[str, Any] = {
    "threshold": "verify",
    "favor_release": "none",
    "workers": 1,
    "ignore": [],
    "inspection_ignores": {
        "permissions": ["/usr/share/doc/*"],
    },
    "expected_empty": [],
    "security": {},
}


@dataclass(frozen=True)
class RunConfig:
    """Normalized run options consumed by the core."""

    threshold: Severity = Severity.VERIFY
    favor_release: FavorRelease = FavorRelease.NONE
    workers: int = 1
    ignore: tuple[str, ...] = ()
    inspection_ignores: dict[str, tuple[str, ...]] = field(default_factory=dict)
    expected_empty: frozenset[str] = frozenset()
    security: tuple[SecurityRuleSet, ...] = ()
    path: Path | None = None

    def is_ignored(self, localpath: str, inspection: str | None = None) -> bool:
        """Whether ``localpath`` is excluded globally or for ``inspection``."""
        patterns = list(self.ignore)
        if inspection is not None:
            patterns.extend(self.inspection_ignores.get(inspection, ()))
        return any(fnmatch(localpath, pattern) for pattern in patterns)


def parse_threshold(value: str | Severity) -> Severity:
    try:
        threshold = Severity.parse(value)
    except ValueError as exc:
        raise ConfigError(f"threshold: {exc}") from exc
    if threshold is Severity.SKIP:
        raise ConfigError("threshold may not be SKIP")
    return threshold


def write_default_config(path: Path, *, force: bool = False) -> Path:
    """Create the default configuration YAML deterministically."""
    if path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(CONFIG_TEMPLATE, sort_keys=True), encoding="utf-8")
    return path


def load_config(path: Path) -> RunConfig:
    """Load, validate and normalize a run configuration file.

    Raises:
        ConfigError: for a missing, unparsable or invalid file.
        RulePatternError: for malformed security rules.
    """
    if not path.exists():
        raise ConfigError(f"Missing config at {path}. Run `buildpair init-config` first.", CONFIG_REASON_MISSING)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path.name} parse error: {exc}", CONFIG_REASON_PARSE_ERROR) from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name} parse error: expected mapping at top level", CONFIG_REASON_PARSE_ERROR)

    return config_from_dict(raw, base_dir=path.parent, path=path)


def config_from_dict(raw: dict[str, Any], *, base_dir: Path | None = None, path: Path | None = None) -> RunConfig:
    """Normalize an already-parsed configuration mapping."""
    errors = validate_data(raw, "config")
    if errors:
        raise ConfigError(
            "invalid configuration: " + "; ".join(errors),
            CONFIG_REASON_SCHEMA_INVALID,
        )

    threshold = parse_threshold(raw.get("threshold", "verify"))
    favor_release = FavorRelease.parse(raw.get("favor_release", "none"))
    workers = int(raw.get("workers", 1))

    ignore = _normalize_globs(raw.get("ignore", []))
    inspection_ignores = {
        name: _normalize_globs(globs)
        for name, globs in sorted(raw.get("inspection_ignores", {}).items())
    }
    expected_empty = frozenset(item.strip() for item in raw.get("expected_empty", []) if item.strip())

    security: list[SecurityRuleSet] = []
    rules_path = raw.get("security_rules")
    if rules_path:
        resolved = Path(rules_path)
        if not resolved.is_absolute() and base_dir is not None:
            resolved = base_dir / resolved
        security.extend(load_rules_file(resolved))
    if raw.get("security"):
        security.extend(load_rule_sets(raw["security"], source=str(path or "<config>")))

    return RunConfig(
        threshold=threshold,
        favor_release=favor_release,
        workers=workers,
        ignore=ignore,
        inspection_ignores=inspection_ignores,
        expected_empty=expected_empty,
        security=tuple(security),
        path=path,
    )


def _normalize_globs(value: list[str]) -> tuple[str, ...]:
    """Strip, drop empties and dedupe while keeping declaration order."""
    normalized: list[str] = []
    seen: set[str] = set()
    for item in value:
        cleaned = item.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            normalized.append(cleaned)
    return tuple(normalized)
