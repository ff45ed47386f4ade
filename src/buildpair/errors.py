"""Error taxonomy for buildpair."""

from __future__ import annotations

CONFIG_REASON_MISSING = "CONFIG_MISSING"
CONFIG_REASON_PARSE_ERROR = "CONFIG_PARSE_ERROR"
CONFIG_REASON_SCHEMA_INVALID = "CONFIG_SCHEMA_INVALID"


class BuildPairError(Exception):
    """Base class for all buildpair errors."""


class MetadataLoadError(BuildPairError):
    """Loading package metadata failed."""

    package_name: str

    def __init__(self, package_name: str, detail: str | None = None) -> None:
        message = f"failed to load metadata for package `{package_name}`"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.package_name = package_name


class CorrelationError(BuildPairError):
    """A file entry could not be correlated because it is malformed."""

    entry_context: str

    def __init__(self, entry_context: str, reason: str) -> None:
        super().__init__(f"{entry_context}: {reason}")
        self.entry_context = entry_context
        self.reason = reason


class RulePatternError(BuildPairError):
    """A security rule clause carries a pattern that cannot be parsed."""

    pattern: str

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid rule pattern `{pattern}`: {reason}")
        self.pattern = pattern


class ConfigError(BuildPairError, ValueError):
    """Run configuration validation error."""

    reason_code: str

    def __init__(self, message: str, reason_code: str = CONFIG_REASON_SCHEMA_INVALID) -> None:
        super().__init__(message)
        self.reason_code = reason_code


class ManifestError(BuildPairError, ValueError):
    """Build manifest could not be read or validated."""
