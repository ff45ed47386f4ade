"""Result domain types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any


class Severity(IntEnum):
    """Ordered finding severity.

    SKIP sorts above BAD numerically but is never reported and never
    counts toward the worst severity of a run.
    """

    OK = 1
    INFO = 2
    VERIFY = 3
    BAD = 4
    SKIP = 5

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        if isinstance(value, Severity):
            return value
        key = str(value).strip().upper()
        if key == "FAIL":
            key = "BAD"
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"unknown severity `{value}`") from None

    @property
    def label(self) -> str:
        return self.name


REPORTED_SEVERITIES: tuple[Severity, ...] = (
    Severity.OK,
    Severity.INFO,
    Severity.VERIFY,
    Severity.BAD,
)


class WaiverAuthority(str, Enum):
    """Who may waive a finding."""

    NOT_WAIVABLE = "not-waivable"
    ANYONE = "anyone"
    SECURITY = "security"

    @classmethod
    def parse(cls, value: str | WaiverAuthority) -> WaiverAuthority:
        if isinstance(value, WaiverAuthority):
            return value
        key = str(value).strip().lower()
        aliases = {
            "none": cls.NOT_WAIVABLE,
            "not-waivable": cls.NOT_WAIVABLE,
            "not_waivable": cls.NOT_WAIVABLE,
            "anyone": cls.ANYONE,
            "waivable_by_anyone": cls.ANYONE,
            "security": cls.SECURITY,
            "waivable_by_security": cls.SECURITY,
        }
        if key not in aliases:
            raise ValueError(f"unknown waiver authority `{value}`")
        return aliases[key]


class Verb(str, Enum):
    """What happened to the noun of a finding."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    FAILED = "failed"


DEFAULT_WAIVER_AUTHORITY: dict[Severity, WaiverAuthority] = {
    Severity.OK: WaiverAuthority.NOT_WAIVABLE,
    Severity.INFO: WaiverAuthority.NOT_WAIVABLE,
    Severity.VERIFY: WaiverAuthority.ANYONE,
    Severity.BAD: WaiverAuthority.ANYONE,
    Severity.SKIP: WaiverAuthority.NOT_WAIVABLE,
}


@dataclass(frozen=True)
class ResultParams:
    """Parameters for a single finding submission."""

    severity: Severity
    header: str
    msg: str
    verb: Verb
    noun: str
    waiver_authority: WaiverAuthority | None = None
    details: str | None = None
    remedy: str | None = None
    arch: str | None = None
    file: str | None = None

    def __post_init__(self) -> None:
        if not self.header:
            raise ValueError("header must be provided")
        if not self.msg:
            raise ValueError("msg must be provided")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ResultParams:
        """Build params from a plain mapping, coercing enum names."""
        missing = [key for key in ("severity", "header", "msg", "verb", "noun") if key not in data]
        if missing:
            raise ValueError(f"missing required finding fields: {', '.join(missing)}")

        waiver = data.get("waiver_authority")
        return cls(
            severity=Severity.parse(data["severity"]),
            header=str(data["header"]),
            msg=str(data["msg"]),
            verb=Verb(data["verb"]),
            noun=str(data["noun"]),
            waiver_authority=WaiverAuthority.parse(waiver) if waiver is not None else None,
            details=data.get("details"),
            remedy=data.get("remedy"),
            arch=data.get("arch"),
            file=data.get("file"),
        )


@dataclass(frozen=True)
class Finding:
    """One reported observation."""

    severity: Severity
    waiver_authority: WaiverAuthority
    header: str
    msg: str
    verb: Verb
    noun: str
    details: str | None = None
    remedy: str | None = None
    arch: str | None = None
    file: str | None = None

    @property
    def reported(self) -> bool:
        return self.severity is not Severity.SKIP

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "severity": self.severity.label,
            "waiver_authority": self.waiver_authority.value,
            "header": self.header,
            "message": self.msg,
            "verb": self.verb.value,
            "noun": self.noun,
        }
        for key in ("details", "remedy", "arch", "file"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data
