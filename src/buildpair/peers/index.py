"""Deterministic before/after package pairing and file correlation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from buildpair.errors import CorrelationError
from buildpair.peers.types import (
    AmbiguousMove,
    BuildSide,
    CorrelationFailure,
    FavorRelease,
    FileCorrelation,
    FileEntry,
    PackagePeer,
    PackageSnapshot,
    link_peers,
)
from buildpair.peers.vercmp import compare_evr

logger = logging.getLogger(__name__)

NameKey = Callable[[str], Any]


def _move_key(entry: FileEntry) -> tuple[str, str] | None:
    if not entry.checksum:
        return None
    return (entry.basename, entry.checksum)


def _same_kind(left: FileEntry, right: FileEntry) -> bool:
    return left.type is None or right.type is None or left.type == right.type


def _correlation_sort_key(item: FileCorrelation) -> tuple[str, str]:
    before_path = item.before.localpath if item.before is not None else ""
    return (item.path, before_path)


class BuildPeerIndex:
    """Pairs before/after snapshots by package name and correlates files.

    Construction is a one-shot, single-writer phase: call ``build`` once,
    then hand ``peers()`` to any number of readers.
    """

    def __init__(
        self,
        *,
        favor_release: FavorRelease | str = FavorRelease.NONE,
        name_key: NameKey | None = None,
    ) -> None:
        self.favor_release = FavorRelease.parse(favor_release)
        self._name_key: NameKey = name_key or (lambda name: name)
        self._peers: tuple[PackagePeer, ...] = ()
        self._by_name: dict[str, PackagePeer] = {}
        self._built = False
        self.errors: list[CorrelationFailure] = []
        self.ambiguities: list[AmbiguousMove] = []
        self.discarded: list[PackageSnapshot] = []

    def build(
        self,
        before_snapshots: Iterable[PackageSnapshot],
        after_snapshots: Iterable[PackageSnapshot],
    ) -> tuple[PackagePeer, ...]:
        """Pair the two build sides and correlate their payloads."""
        if self._built:
            raise RuntimeError("BuildPeerIndex.build() may only be called once")
        self._built = True

        before = self._select(before_snapshots, BuildSide.BEFORE)
        after = self._select(after_snapshots, BuildSide.AFTER)

        names = sorted(set(before) | set(after), key=lambda name: (self._name_key(name), name))
        peers = [PackagePeer(name=name, before=before.get(name), after=after.get(name)) for name in names]

        correlations: dict[int, list[FileCorrelation]] = {id(peer): [] for peer in peers}
        leftover_before: list[tuple[PackagePeer, FileEntry]] = []
        leftover_after: list[tuple[PackagePeer, FileEntry]] = []

        for peer in peers:
            before_files = self._valid_files(peer.before)
            after_files = self._valid_files(peer.after)
            for entry in before_files + after_files:
                entry.clear_peer()

            unmatched_before, unmatched_after = self._match_paths(
                before_files, after_files, correlations[id(peer)]
            )
            unmatched_before, unmatched_after = self._match_moves_within(
                unmatched_before, unmatched_after, correlations[id(peer)]
            )
            leftover_before.extend((peer, entry) for entry in unmatched_before)
            leftover_after.extend((peer, entry) for entry in unmatched_after)

        self._match_moves_across(leftover_before, leftover_after, correlations)

        for peer in peers:
            items = correlations[id(peer)]
            items.sort(key=_correlation_sort_key)
            peer._correlations = items

        self._peers = tuple(peers)
        self._by_name = {peer.name: peer for peer in peers}
        logger.debug(
            "correlated %d peers (%d errors, %d ambiguous moves)",
            len(peers),
            len(self.errors),
            len(self.ambiguities),
        )
        return self._peers

    def peers(self) -> tuple[PackagePeer, ...]:
        return self._peers

    def peer(self, name: str) -> PackagePeer | None:
        return self._by_name.get(name)

    def __iter__(self):
        return iter(self._peers)

    def __len__(self) -> int:
        return len(self._peers)

    def close(self) -> None:
        """Unlink every correlated entry and drop the peers."""
        for peer in self._peers:
            for entry in peer.before_files + peer.after_files:
                entry.clear_peer()
            peer._correlations = []
        self._peers = ()
        self._by_name = {}
        self.ambiguities = []

    def _select(
        self,
        snapshots: Iterable[PackageSnapshot],
        side: BuildSide,
    ) -> dict[str, PackageSnapshot]:
        """Group by name, resolving duplicates with the favor_release rule."""
        chosen: dict[str, PackageSnapshot] = {}
        for snapshot in snapshots:
            if snapshot.side is not side:
                raise ValueError(f"{snapshot.metadata.nevra} is a {snapshot.side.value} snapshot, expected {side.value}")

            current = chosen.get(snapshot.name)
            if current is None:
                chosen[snapshot.name] = snapshot
                continue

            winner = self._favor(current, snapshot)
            loser = snapshot if winner is current else current
            chosen[snapshot.name] = winner
            self.discarded.append(loser)
            logger.debug(
                "duplicate %s package %s: keeping %s (favor_release=%s)",
                side.value,
                snapshot.name,
                winner.metadata.nevra,
                self.favor_release.value,
            )
        return chosen

    def _favor(self, current: PackageSnapshot, candidate: PackageSnapshot) -> PackageSnapshot:
        if self.favor_release is FavorRelease.NONE:
            return current
        order = compare_evr(candidate.metadata.evr, current.metadata.evr)
        if self.favor_release is FavorRelease.OLDEST and order < 0:
            return candidate
        if self.favor_release is FavorRelease.NEWEST and order > 0:
            return candidate
        return current

    def _valid_files(self, snapshot: PackageSnapshot | None) -> list[FileEntry]:
        if snapshot is None:
            return []

        valid: list[FileEntry] = []
        seen: set[str] = set()
        for entry in snapshot.files:
            try:
                entry.validate()
                if entry.localpath in seen:
                    raise CorrelationError(entry.context(), "duplicate payload path")
            except CorrelationError as exc:
                logger.warning("skipping file entry: %s", exc)
                self.errors.append(CorrelationFailure(package=snapshot.name, side=snapshot.side, error=exc))
                continue
            seen.add(entry.localpath)
            valid.append(entry)
        return valid

    @staticmethod
    def _match_paths(
        before_files: list[FileEntry],
        after_files: list[FileEntry],
        out: list[FileCorrelation],
    ) -> tuple[list[FileEntry], list[FileEntry]]:
        after_by_path = {entry.localpath: entry for entry in after_files}
        unmatched_before: list[FileEntry] = []
        matched_after: set[int] = set()

        for entry in before_files:
            counterpart = after_by_path.get(entry.localpath)
            if counterpart is None:
                unmatched_before.append(entry)
                continue
            link_peers(entry, counterpart)
            matched_after.add(id(counterpart))
            out.append(FileCorrelation(before=entry, after=counterpart))

        unmatched_after = [entry for entry in after_files if id(entry) not in matched_after]
        return unmatched_before, unmatched_after

    def _match_moves_within(
        self,
        before_files: list[FileEntry],
        after_files: list[FileEntry],
        out: list[FileCorrelation],
    ) -> tuple[list[FileEntry], list[FileEntry]]:
        remaining_after = list(after_files)
        unmatched_before: list[FileEntry] = []

        for entry in before_files:
            key = _move_key(entry)
            candidates = [
                other
                for other in remaining_after
                if key is not None and _move_key(other) == key and _same_kind(entry, other)
            ]
            if not candidates:
                unmatched_before.append(entry)
                continue

            chosen = self._choose(entry, candidates)
            remaining_after.remove(chosen)
            link_peers(entry, chosen, moved_path=True)
            out.append(FileCorrelation(before=entry, after=chosen, moved_path=True))

        return unmatched_before, remaining_after

    def _match_moves_across(
        self,
        leftover_before: list[tuple[PackagePeer, FileEntry]],
        leftover_after: list[tuple[PackagePeer, FileEntry]],
        correlations: dict[int, list[FileCorrelation]],
    ) -> None:
        remaining_after = list(leftover_after)

        for peer, entry in leftover_before:
            same_path = [
                (other_peer, other)
                for other_peer, other in remaining_after
                if other_peer is not peer and other.localpath == entry.localpath
            ]
            candidates = same_path
            if not candidates:
                key = _move_key(entry)
                candidates = [
                    (other_peer, other)
                    for other_peer, other in remaining_after
                    if other_peer is not peer
                    and key is not None
                    and _move_key(other) == key
                    and _same_kind(entry, other)
                ]

            if not candidates:
                correlations[id(peer)].append(FileCorrelation(before=entry, after=None))
                continue

            chosen = self._choose(entry, [other for _, other in candidates])
            target_peer = next(other_peer for other_peer, other in candidates if other is chosen)
            remaining_after = [item for item in remaining_after if item[1] is not chosen]
            link_peers(entry, chosen, moved_subpackage=True)
            correlations[id(target_peer)].append(
                FileCorrelation(before=entry, after=chosen, moved_subpackage=True)
            )
            logger.debug("%s moved to package %s", entry.context(), target_peer.name)

        for peer, entry in remaining_after:
            correlations[id(peer)].append(FileCorrelation(before=None, after=entry))

    def _choose(self, entry: FileEntry, candidates: list[FileEntry]) -> FileEntry:
        """First candidate in peer-iteration order wins; record ambiguity."""
        chosen = candidates[0]
        if len(candidates) > 1:
            self.ambiguities.append(
                AmbiguousMove(entry=entry, chosen=chosen, candidates=tuple(candidates))
            )
            logger.warning(
                "%s has %d move candidates, using %s",
                entry.context(),
                len(candidates),
                chosen.context(),
            )
        return chosen
