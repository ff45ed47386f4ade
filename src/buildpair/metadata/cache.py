"""Run-wide package metadata cache."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from buildpair.errors import MetadataLoadError
from buildpair.metadata.types import PackageMetadata

logger = logging.getLogger(__name__)

MetadataLoader = Callable[[], PackageMetadata]


class MetadataCache:
    """Load-once store of PackageMetadata keyed by package identifier.

    Every holder receives the same object, so metadata is parsed and kept
    once no matter how many file entries reference it. There is no
    eviction: the cache is bounded by the number of distinct packages in
    the run.
    """

    def __init__(self) -> None:
        self._entries: dict[str, PackageMetadata] = {}
        self._lock = threading.Lock()
        self._closed = False

    def get_or_load(self, package_name: str, loader: MetadataLoader) -> PackageMetadata:
        """Return cached metadata for ``package_name``, loading it on first use.

        Raises:
            MetadataLoadError: if ``loader`` fails; nothing is stored then.
        """
        with self._lock:
            if self._closed:
                raise MetadataLoadError(package_name, "metadata cache is closed")

            cached = self._entries.get(package_name)
            if cached is not None:
                logger.debug("metadata cache hit for %s", package_name)
                return cached

            try:
                loaded = loader()
            except Exception as exc:
                raise MetadataLoadError(package_name, str(exc)) from exc

            if not isinstance(loaded, PackageMetadata):
                raise MetadataLoadError(
                    package_name,
                    f"loader returned {type(loaded).__name__}, expected PackageMetadata",
                )

            self._entries[package_name] = loaded
            logger.debug("metadata cache loaded %s (%s)", package_name, loaded.nevra)
            return loaded

    def get(self, package_name: str) -> PackageMetadata | None:
        with self._lock:
            return self._entries.get(package_name)

    def names(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._entries))

    def __contains__(self, package_name: object) -> bool:
        with self._lock:
            return package_name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every entry and run each metadata object's release hook once."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            self._closed = True

        for metadata in entries:
            if metadata.release_hook is not None:
                metadata.release_hook()
