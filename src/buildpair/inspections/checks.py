"""Built-in payload inspections."""

from __future__ import annotations

from stat import S_ISGID, S_ISUID, S_ISVTX, S_IWOTH
from typing import TYPE_CHECKING

from buildpair.inspections.base import Inspection, PairedCheck, SingleBuildCheck
from buildpair.results.types import ResultParams, Severity, Verb

if TYPE_CHECKING:
    from buildpair.context import RunContext
    from buildpair.metadata.types import PackageMetadata
    from buildpair.peers.types import FileCorrelation, FileEntry, PackagePeer

HEADER_PAYLOAD = "payload"
HEADER_PERMISSIONS = "permissions"
HEADER_OWNERSHIP = "ownership"
HEADER_EMPTYRPM = "emptyrpm"


def _peer_metadata(peer: PackagePeer) -> PackageMetadata:
    snapshot = peer.after if peer.after is not None else peer.before
    if snapshot is None:
        raise ValueError(f"peer `{peer.name}` has neither a before nor an after snapshot")
    return snapshot.metadata


def _correlation_metadata(item: FileCorrelation, peer: PackagePeer) -> PackageMetadata:
    entry = item.after if item.after is not None else item.before
    if entry is not None and entry.snapshot is not None:
        return entry.snapshot.metadata
    return _peer_metadata(peer)


class _Reporter:
    """Submits findings for one check and remembers whether it failed."""

    def __init__(self, ctx: RunContext, header: str) -> None:
        self.ctx = ctx
        self.header = header
        self.passed = True

    def __call__(
        self,
        severity: Severity,
        verb: Verb,
        noun: str,
        msg: str,
        *,
        package: PackageMetadata | None = None,
        details: str | None = None,
        remedy: str | None = None,
        file: str | None = None,
    ) -> None:
        if severity >= Severity.VERIFY and severity is not Severity.SKIP:
            self.passed = False
        self.ctx.aggregator.submit(
            ResultParams(
                severity=severity,
                header=self.header,
                msg=msg,
                verb=verb,
                noun=noun,
                details=details,
                remedy=remedy,
                arch=package.arch if package is not None else None,
                file=file,
            ),
            package=package,
        )


class PayloadCheck(PairedCheck):
    """Report added, removed, changed and moved packages and files."""

    name = HEADER_PAYLOAD
    description = "Compare package sets and payload file lists between builds."

    def run(self, ctx: RunContext) -> bool:
        report = _Reporter(ctx, self.name)

        for peer in ctx.peers():
            metadata = _peer_metadata(peer)
            if peer.added:
                report(Severity.INFO, Verb.ADDED, metadata.nevra,
                       f"New package {metadata.nevra} appeared in the after build", package=metadata)
            elif peer.removed:
                report(Severity.VERIFY, Verb.REMOVED, metadata.nevra,
                       f"Package {metadata.nevra} is missing from the after build", package=metadata,
                       remedy="Make sure the subpackage was dropped on purpose.")

            for item in peer.files():
                if item.verb is None or ctx.config.is_ignored(item.path, self.name):
                    continue
                self._report_file(report, item, _correlation_metadata(item, peer))

        for ambiguous in ctx.peer_index.ambiguities:
            choices = ", ".join(candidate.context() for candidate in ambiguous.candidates)
            report(Severity.VERIFY, Verb.CHANGED, ambiguous.entry.localpath,
                   f"{ambiguous.entry.context()} matches {len(ambiguous.candidates)} files in the "
                   f"after build; paired with {ambiguous.chosen.context()}",
                   details=f"Candidates: {choices}",
                   file=ambiguous.entry.localpath)

        for failure in ctx.peer_index.errors:
            report(Severity.BAD, Verb.FAILED, failure.error.entry_context,
                   f"Could not correlate {failure.side.value} file {failure.error}")

        return report.passed

    @staticmethod
    def _report_file(report: _Reporter, item: FileCorrelation, metadata: PackageMetadata) -> None:
        path = item.path
        if item.before is None:
            report(Severity.INFO, Verb.ADDED, path, f"{path} added to {metadata.nevra}",
                   package=metadata, file=path)
        elif item.after is None:
            report(Severity.VERIFY, Verb.REMOVED, path, f"{path} removed from {metadata.nevra}",
                   package=metadata, file=path)
        elif item.moved_subpackage:
            report(Severity.INFO, Verb.CHANGED, path,
                   f"{path} moved from {item.before.package_name} to {item.after.package_name}",
                   package=metadata, file=path)
        elif item.moved_path:
            report(Severity.INFO, Verb.CHANGED, path,
                   f"{item.before.localpath} moved to {path} in {metadata.nevra}",
                   package=metadata, file=path)
        else:
            report(Severity.INFO, Verb.CHANGED, path, f"{path} changed content in {metadata.nevra}",
                   package=metadata, file=path,
                   details=f"checksum {item.before.checksum} -> {item.after.checksum}")


def _dangerous_bits(mode: int) -> int:
    bits = mode & (S_ISUID | S_ISGID)
    if mode & S_IWOTH and not mode & S_ISVTX:
        bits |= S_IWOTH
    return bits


def _describe_bits(bits: int) -> str:
    names = []
    if bits & S_ISUID:
        names.append("setuid")
    if bits & S_ISGID:
        names.append("setgid")
    if bits & S_IWOTH:
        names.append("world-writable")
    return ", ".join(names)


class PermissionsCheck(PairedCheck):
    """Report mode drift; new setuid/setgid/world-writable bits are BAD."""

    name = HEADER_PERMISSIONS
    description = "Compare file permissions between builds."

    def run(self, ctx: RunContext) -> bool:
        report = _Reporter(ctx, self.name)

        for peer in ctx.peers():
            for item in peer.files():
                if item.after is None or item.after.stat is None:
                    continue
                if ctx.config.is_ignored(item.path, self.name):
                    continue
                metadata = _correlation_metadata(item, peer)
                self._check(report, item.before, item.after, metadata)

        return report.passed

    @staticmethod
    def _check(report: _Reporter, before: FileEntry | None, after: FileEntry, metadata: PackageMetadata) -> None:
        after_mode = after.stat.permissions
        before_mode = before.stat.permissions if before is not None and before.stat is not None else None
        path = after.localpath

        gained = _dangerous_bits(after_mode) & ~_dangerous_bits(before_mode or 0)
        if gained:
            report(Severity.BAD, Verb.CHANGED if before is not None else Verb.ADDED, path,
                   f"{path} in {metadata.nevra} is now {_describe_bits(gained)} ({after_mode:04o})",
                   package=metadata, file=path,
                   remedy="Drop the extra mode bits or get a security review of the file.")
            return

        if before_mode is not None and before_mode != after_mode:
            report(Severity.VERIFY, Verb.CHANGED, path,
                   f"{path} changed mode from {before_mode:04o} to {after_mode:04o} in {metadata.nevra}",
                   package=metadata, file=path)


class OwnershipCheck(PairedCheck):
    """Report owner and group drift."""

    name = HEADER_OWNERSHIP
    description = "Compare file owners and groups between builds."

    def run(self, ctx: RunContext) -> bool:
        report = _Reporter(ctx, self.name)

        for peer in ctx.peers():
            for item in peer.files():
                before, after = item.before, item.after
                if before is None or after is None or before.stat is None or after.stat is None:
                    continue
                if ctx.config.is_ignored(item.path, self.name):
                    continue
                metadata = _correlation_metadata(item, peer)
                for label, old, new in (
                    ("owner", before.stat.owner, after.stat.owner),
                    ("group", before.stat.group, after.stat.group),
                ):
                    if old != new:
                        report(Severity.VERIFY, Verb.CHANGED, item.path,
                               f"{item.path} changed {label} from {old} to {new} in {metadata.nevra}",
                               package=metadata, file=item.path)

        return report.passed


class EmptyPayloadCheck(SingleBuildCheck):
    """Report after-build packages that ship no files."""

    name = HEADER_EMPTYRPM
    description = "Check for packages with an empty payload."

    def run(self, ctx: RunContext) -> bool:
        report = _Reporter(ctx, self.name)

        for snapshot in ctx.after:
            if snapshot.files:
                continue
            metadata = snapshot.metadata
            if snapshot.name in ctx.config.expected_empty:
                report(Severity.INFO, Verb.ADDED, metadata.nevra,
                       f"{metadata.nevra} has an empty payload, as expected", package=metadata)
                continue

            peer = ctx.peer_index.peer(snapshot.name)
            if peer is not None and peer.before is not None and peer.before.files:
                report(Severity.VERIFY, Verb.CHANGED, metadata.nevra,
                       f"{metadata.nevra} became an empty package", package=metadata,
                       remedy="Add the package to expected_empty if this is intended.")
            else:
                report(Severity.VERIFY, Verb.ADDED, metadata.nevra,
                       f"{metadata.nevra} has an empty payload", package=metadata,
                       remedy="Add the package to expected_empty if this is intended.")

        return report.passed


BUILTIN_CHECKS: tuple[Inspection, ...] = (
    PayloadCheck(),
    PermissionsCheck(),
    OwnershipCheck(),
    EmptyPayloadCheck(),
)


def select_checks(names: list[str] | None = None) -> list[Inspection]:
    """Pick built-in checks by name, keeping registry order."""
    if not names:
        return list(BUILTIN_CHECKS)

    known = {check.name: check for check in BUILTIN_CHECKS}
    unknown = sorted(set(names) - set(known))
    if unknown:
        raise KeyError(f"unknown inspections: {', '.join(unknown)}")
    return [check for check in BUILTIN_CHECKS if check.name in names]
