"""Run configuration loading and normalization."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from buildpair.config import (
    RunConfig,
    config_from_dict,
    load_config,
    parse_threshold,
    write_default_config,
)
from buildpair.errors import (
    CONFIG_REASON_MISSING,
    CONFIG_REASON_PARSE_ERROR,
    CONFIG_REASON_SCHEMA_INVALID,
    ConfigError,
    RulePatternError,
)
from buildpair.peers import FavorRelease
from buildpair.results import Severity, WaiverAuthority

if TYPE_CHECKING:
    from pathlib import Path


def test_missing_config(tmp_path: Path) -> None:
    """A missing file carries the CONFIG_MISSING reason."""
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path / "buildpair.yaml")
    assert excinfo.value.reason_code == CONFIG_REASON_MISSING


@pytest.mark.parametrize("text", ["threshold: [unclosed\n", "- just\n- a list\n"])
def test_unparsable_config(tmp_path: Path, text: str) -> None:
    """Broken YAML or a non-mapping root is a parse error."""
    path = tmp_path / "buildpair.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(path)
    assert excinfo.value.reason_code == CONFIG_REASON_PARSE_ERROR


@pytest.mark.parametrize(
    "raw",
    [
        {"colour": "blue"},
        {"workers": 0},
        {"favor_release": "latest"},
        {"ignore": "/usr/share/doc/*"},
    ],
)
def test_schema_invalid_config(raw) -> None:
    """Unknown keys and out-of-range values fail schema validation."""
    with pytest.raises(ConfigError) as excinfo:
        config_from_dict(raw)
    assert excinfo.value.reason_code == CONFIG_REASON_SCHEMA_INVALID


def test_empty_config_gives_defaults(tmp_path: Path) -> None:
    """An empty file yields the built-in defaults."""
    path = tmp_path / "buildpair.yaml"
    path.write_text("", encoding="utf-8")

    config = load_config(path)

    assert config.threshold is Severity.VERIFY
    assert config.favor_release is FavorRelease.NONE
    assert config.workers == 1
    assert config.security == ()
    assert config.path == path


def test_default_config_round_trip(tmp_path: Path) -> None:
    """The written template loads back and is not overwritten without force."""
    path = write_default_config(tmp_path / "buildpair.yaml")

    config = load_config(path)

    assert config.threshold is Severity.VERIFY
    assert config.inspection_ignores == {"permissions": ("/usr/share/doc/*",)}
    with pytest.raises(FileExistsError):
        write_default_config(path)
    write_default_config(path, force=True)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("info", Severity.INFO), ("VERIFY", Severity.VERIFY), ("fail", Severity.BAD), (Severity.OK, Severity.OK)],
)
def test_parse_threshold(value, expected) -> None:
    """Threshold names are case-insensitive and FAIL aliases BAD."""
    assert parse_threshold(value) is expected


@pytest.mark.parametrize("value", ["skip", "bogus"])
def test_parse_threshold_rejects(value) -> None:
    """SKIP and unknown names cannot be thresholds."""
    with pytest.raises(ConfigError):
        parse_threshold(value)


def test_glob_lists_are_normalized() -> None:
    """Glob lists are stripped and deduplicated in declaration order."""
    config = config_from_dict(
        {
            "ignore": [" /usr/lib/debug/* ", "", "/usr/lib/debug/*", "/usr/src/*"],
            "expected_empty": ["foo-meta", " "],
        }
    )
    assert config.ignore == ("/usr/lib/debug/*", "/usr/src/*")
    assert config.expected_empty == frozenset({"foo-meta"})


def test_is_ignored() -> None:
    """Global globs apply everywhere, per-inspection globs only to that check."""
    config = RunConfig(ignore=("/usr/lib/debug/*",), inspection_ignores={"permissions": ("/var/*",)})

    assert config.is_ignored("/usr/lib/debug/foo.debug")
    assert config.is_ignored("/var/lib/foo", "permissions")
    assert not config.is_ignored("/var/lib/foo", "ownership")
    assert not config.is_ignored("/usr/bin/foo", "permissions")


def test_security_rules_file_then_inline(tmp_path: Path) -> None:
    """Rules from the rule file register before inline rules."""
    (tmp_path / "rules.yaml").write_text(
        "foo:\n  - waivers: {BAD: security}\n",
        encoding="utf-8",
    )
    path = tmp_path / "buildpair.yaml"
    path.write_text(
        "security_rules: rules.yaml\n"
        "security:\n"
        "  foo:\n"
        "    - version: '2.0'\n"
        "      waivers: {BAD: not-waivable}\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert [rule_set.package for rule_set in config.security] == ["foo", "foo"]
    assert config.security[0].rules[0].waivers[Severity.BAD] is WaiverAuthority.SECURITY
    assert config.security[1].rules[0].version == "2.0"


def test_malformed_inline_rules() -> None:
    """A bad inline clause rejects the configuration."""
    with pytest.raises(RulePatternError):
        config_from_dict({"security": {"foo": [{"version": "1-2", "waivers": {}}]}})
