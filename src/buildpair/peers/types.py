"""Snapshot, file entry and peer types."""

from __future__ import annotations

import posixpath
import weakref
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from buildpair.errors import CorrelationError
from buildpair.metadata.types import PackageMetadata
from buildpair.results.types import Verb


class BuildSide(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class FavorRelease(str, Enum):
    """Tie-break for duplicate same-named snapshots on one build side."""

    NONE = "none"
    OLDEST = "oldest"
    NEWEST = "newest"

    @classmethod
    def parse(cls, value: str | FavorRelease) -> FavorRelease:
        if isinstance(value, FavorRelease):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(item.value for item in cls)
            raise ValueError(f"favor_release must be one of {choices}, got `{value}`") from None


@dataclass(frozen=True)
class FileStat:
    """Ownership and permission data as described by the payload."""

    mode: int
    owner: str = "root"
    group: str = "root"
    size: int = 0

    @property
    def permissions(self) -> int:
        return self.mode & 0o7777


@dataclass(eq=False)
class FileEntry:
    """One payload file belonging to exactly one snapshot.

    ``peer`` is a weak link to the matched entry of the other build; it
    reads as None once that entry's snapshot has been torn down.
    """

    localpath: str
    stat: FileStat | None
    checksum: str | None = None
    type: str | None = None
    fullpath: Path | None = None
    caps: str | None = None
    flags: frozenset[str] = frozenset()
    idx: int = -1
    moved_path: bool = False
    moved_subpackage: bool = False
    _peer: weakref.ref[FileEntry] | None = field(default=None, init=False, repr=False)
    _snapshot: weakref.ref[PackageSnapshot] | None = field(default=None, init=False, repr=False)
    _live: bool = field(default=True, init=False, repr=False)

    @property
    def basename(self) -> str:
        return posixpath.basename(self.localpath or "")

    @property
    def snapshot(self) -> PackageSnapshot | None:
        if self._snapshot is None:
            return None
        return self._snapshot()

    @property
    def package_name(self) -> str | None:
        snapshot = self.snapshot
        return snapshot.name if snapshot is not None else None

    @property
    def live(self) -> bool:
        return self._live

    @property
    def peer(self) -> FileEntry | None:
        if self._peer is None:
            return None
        target = self._peer()
        if target is None or not target._live:
            return None
        return target

    def clear_peer(self) -> None:
        """Unlink this entry and its peer from each other."""
        target = self._peer() if self._peer is not None else None
        self._peer = None
        self.moved_path = False
        self.moved_subpackage = False
        if target is not None and target._peer is not None and target._peer() is self:
            target._peer = None
            target.moved_path = False
            target.moved_subpackage = False

    def context(self) -> str:
        package = self.package_name or "?"
        return f"{package}:{self.localpath or '<no path>'}"

    def validate(self) -> None:
        """Raise CorrelationError when required attributes are missing."""
        if not self.localpath:
            raise CorrelationError(self.context(), "missing payload path")
        if not self.localpath.startswith("/"):
            raise CorrelationError(self.context(), "payload path is not absolute")
        if self.stat is None:
            raise CorrelationError(self.context(), "missing stat metadata")


def link_peers(
    before: FileEntry,
    after: FileEntry,
    *,
    moved_path: bool = False,
    moved_subpackage: bool = False,
) -> None:
    """Cross-link two entries, setting the move flags on both sides."""
    before.clear_peer()
    after.clear_peer()
    before._peer = weakref.ref(after)
    after._peer = weakref.ref(before)
    for entry in (before, after):
        entry.moved_path = moved_path
        entry.moved_subpackage = moved_subpackage


class PackageSnapshot:
    """Payload files and shared metadata for one package on one build side."""

    def __init__(
        self,
        metadata: PackageMetadata,
        side: BuildSide | str,
        files: Iterable[FileEntry] = (),
        *,
        rpm_path: Path | None = None,
        root: Path | None = None,
    ) -> None:
        self.metadata = metadata
        self.side = BuildSide(side)
        self.rpm_path = rpm_path
        self.root = root
        self._files: list[FileEntry] = []
        self._live = True
        for entry in files:
            self.add_file(entry)

    def __repr__(self) -> str:
        return f"PackageSnapshot({self.metadata.nevra!r}, side={self.side.value!r}, files={len(self._files)})"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def files(self) -> tuple[FileEntry, ...]:
        return tuple(self._files)

    @property
    def live(self) -> bool:
        return self._live

    def add_file(self, entry: FileEntry) -> FileEntry:
        if not self._live:
            raise RuntimeError(f"snapshot {self.metadata.nevra} has been torn down")
        owner = entry.snapshot
        if owner is not None and owner is not self:
            raise ValueError(f"{entry.localpath} already belongs to {owner.metadata.nevra}")
        entry._snapshot = weakref.ref(self)
        if entry.idx < 0:
            entry.idx = len(self._files)
        self._files.append(entry)
        return entry

    def teardown(self) -> None:
        """Destroy the file list, invalidating every peer link into it."""
        for entry in self._files:
            entry.clear_peer()
            entry._live = False
        self._files.clear()
        self._live = False


def _live_or_none(entry: FileEntry | None) -> FileEntry | None:
    if entry is None or not entry.live:
        return None
    return entry


class FileCorrelation:
    """One before/after file pairing inside a peer.

    A side reads as None once its snapshot has been torn down, and the move
    flags only hold while both sides are live.
    """

    __slots__ = ("_before", "_after", "_moved_path", "_moved_subpackage")

    def __init__(
        self,
        before: FileEntry | None,
        after: FileEntry | None,
        moved_path: bool = False,
        moved_subpackage: bool = False,
    ) -> None:
        self._before = before
        self._after = after
        self._moved_path = moved_path
        self._moved_subpackage = moved_subpackage

    def __repr__(self) -> str:
        return (
            f"FileCorrelation(path={self.path!r}, verb={self.verb}, "
            f"moved_path={self.moved_path}, moved_subpackage={self.moved_subpackage})"
        )

    @property
    def before(self) -> FileEntry | None:
        return _live_or_none(self._before)

    @property
    def after(self) -> FileEntry | None:
        return _live_or_none(self._after)

    @property
    def moved_path(self) -> bool:
        return self._moved_path and self.before is not None and self.after is not None

    @property
    def moved_subpackage(self) -> bool:
        return self._moved_subpackage and self.before is not None and self.after is not None

    @property
    def path(self) -> str:
        entry = self._after if self._after is not None else self._before
        return entry.localpath if entry is not None else ""

    @property
    def verb(self) -> Verb | None:
        """Change verb, or None when the file is unchanged or both sides are gone."""
        before, after = self.before, self.after
        if before is None and after is None:
            return None
        if before is None:
            return Verb.ADDED
        if after is None:
            return Verb.REMOVED
        if self.moved_path or self.moved_subpackage:
            return Verb.CHANGED
        if before.checksum != after.checksum:
            return Verb.CHANGED
        return None

    def __iter__(self):
        return iter((self.before, self.after, self.moved_path, self.moved_subpackage))


@dataclass(eq=False)
class PackagePeer:
    """Before/after pairing of one package name."""

    name: str
    before: PackageSnapshot | None
    after: PackageSnapshot | None
    _correlations: list[FileCorrelation] = field(default_factory=list, init=False, repr=False)

    @property
    def added(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def removed(self) -> bool:
        return self.after is None and self.before is not None

    @property
    def before_files(self) -> tuple[FileEntry, ...]:
        return self.before.files if self.before is not None else ()

    @property
    def after_files(self) -> tuple[FileEntry, ...]:
        return self.after.files if self.after is not None else ()

    def files(self) -> tuple[FileCorrelation, ...]:
        return tuple(self._correlations)


@dataclass(frozen=True)
class AmbiguousMove:
    """A leftover file with more than one equally good move candidate."""

    entry: FileEntry
    chosen: FileEntry
    candidates: tuple[FileEntry, ...]


@dataclass(frozen=True)
class CorrelationFailure:
    """A malformed entry skipped during correlation."""

    package: str
    side: BuildSide
    error: CorrelationError
