"""Per-run context shared by the core components."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from buildpair.config import RunConfig
from buildpair.metadata.cache import MetadataCache
from buildpair.peers.index import BuildPeerIndex
from buildpair.peers.types import PackagePeer, PackageSnapshot
from buildpair.policy.resolver import SecurityPolicyResolver
from buildpair.results.aggregator import ResultAggregator

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Everything one inspection run needs, passed explicitly to checks.

    Built once per run by ``create``; ``close`` tears components down in
    reverse construction order (aggregator and resolver, then the peer
    index and the snapshots, then the metadata cache).
    """

    config: RunConfig
    cache: MetadataCache
    resolver: SecurityPolicyResolver
    peer_index: BuildPeerIndex
    aggregator: ResultAggregator
    before: list[PackageSnapshot] = field(default_factory=list)
    after: list[PackageSnapshot] = field(default_factory=list)
    closed: bool = False

    @classmethod
    def create(cls, config: RunConfig | None = None) -> RunContext:
        config = config or RunConfig()
        cache = MetadataCache()
        resolver = SecurityPolicyResolver(config.security)
        peer_index = BuildPeerIndex(favor_release=config.favor_release)
        aggregator = ResultAggregator(resolver)
        return cls(
            config=config,
            cache=cache,
            resolver=resolver,
            peer_index=peer_index,
            aggregator=aggregator,
        )

    @property
    def single_build(self) -> bool:
        return not self.before

    def correlate(
        self,
        before: Iterable[PackageSnapshot],
        after: Iterable[PackageSnapshot],
    ) -> tuple[PackagePeer, ...]:
        """Take ownership of both build sides and build the peer index."""
        self.before = list(before)
        self.after = list(after)
        peers = self.peer_index.build(self.before, self.after)
        logger.info(
            "paired %d before and %d after packages into %d peers",
            len(self.before),
            len(self.after),
            len(peers),
        )
        return peers

    def peers(self) -> tuple[PackagePeer, ...]:
        return self.peer_index.peers()

    def close(self) -> None:
        if self.closed:
            return
        self.aggregator.close()
        self.peer_index.close()
        for snapshot in self.before + self.after:
            snapshot.teardown()
        self.before = []
        self.after = []
        self.cache.clear()
        self.closed = True

    def __enter__(self) -> RunContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
