"""Shared package metadata."""

from buildpair.metadata.cache import MetadataCache, MetadataLoader
from buildpair.metadata.types import PackageMetadata

__all__ = [
    "MetadataCache",
    "MetadataLoader",
    "PackageMetadata",
]
