"""Package metadata types."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True, eq=False)
class PackageMetadata:
    """Parsed descriptor of one package (the RPM header equivalent).

    Instances are shared by every snapshot and file entry of the package
    and are never mutated after creation. ``release_hook`` is called once
    when the owning cache lets go of the object at the end of a run.
    """

    name: str
    version: str
    release: str
    epoch: int | None = None
    arch: str | None = None
    declared_files: tuple[str, ...] = ()
    tags: Mapping[str, Any] = field(default_factory=dict)
    release_hook: Callable[[], None] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("package name must be provided")
        if not self.version:
            raise ValueError(f"package `{self.name}` has no version")
        if not self.release:
            raise ValueError(f"package `{self.name}` has no release")
        object.__setattr__(self, "declared_files", tuple(self.declared_files))
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def evr(self) -> tuple[int, str, str]:
        return (self.epoch or 0, self.version, self.release)

    @property
    def nvr(self) -> str:
        return f"{self.name}-{self.version}-{self.release}"

    @property
    def nevra(self) -> str:
        epoch = f"{self.epoch}:" if self.epoch else ""
        arch = f".{self.arch}" if self.arch else ""
        return f"{self.name}-{epoch}{self.version}-{self.release}{arch}"
