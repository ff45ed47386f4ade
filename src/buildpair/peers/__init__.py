"""Before/after build pairing."""

from buildpair.peers.index import BuildPeerIndex
from buildpair.peers.types import (
    AmbiguousMove,
    BuildSide,
    CorrelationFailure,
    FavorRelease,
    FileCorrelation,
    FileEntry,
    FileStat,
    PackagePeer,
    PackageSnapshot,
    link_peers,
)
from buildpair.peers.vercmp import compare_evr, rpmvercmp

__all__ = [
    "AmbiguousMove",
    "BuildPeerIndex",
    "BuildSide",
    "CorrelationFailure",
    "FavorRelease",
    "FileCorrelation",
    "FileEntry",
    "FileStat",
    "PackagePeer",
    "PackageSnapshot",
    "compare_evr",
    "link_peers",
    "rpmvercmp",
]
