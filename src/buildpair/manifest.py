"""Build manifest loading.

A manifest describes one side of a comparison as already-extracted
package data, so no archive parsing happens here:

    packages:
      - name: foo
        version: "1.0"
        release: "1"
        arch: x86_64
        files:
          - path: /usr/bin/foo
            mode: "0755"
            owner: root
            group: root
            checksum: 3f2a...
            type: application/x-pie-executable
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from buildpair.errors import ManifestError
from buildpair.metadata.cache import MetadataCache
from buildpair.metadata.types import PackageMetadata
from buildpair.peers.types import BuildSide, FileEntry, FileStat, PackageSnapshot
from buildpair.schemas.validator import validate_data


def read_manifest(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON manifest and validate its shape."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"cannot read manifest {path}: {exc}") from exc

    try:
        if path.suffix == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"manifest {path} parse error: {exc}") from exc

    if not isinstance(raw, dict):
        raise ManifestError(f"manifest {path} must be a mapping with a `packages` list")

    errors = validate_data(raw, "manifest")
    if errors:
        raise ManifestError(f"manifest {path} is invalid: " + "; ".join(errors))
    return raw


def load_manifest(path: Path, side: BuildSide | str, cache: MetadataCache) -> list[PackageSnapshot]:
    """Build snapshots for one build side, sharing metadata through ``cache``."""
    raw = read_manifest(path)
    return snapshots_from_dict(raw, side, cache, base_dir=path.parent)


def snapshots_from_dict(
    raw: dict[str, Any],
    side: BuildSide | str,
    cache: MetadataCache,
    *,
    base_dir: Path | None = None,
) -> list[PackageSnapshot]:
    snapshots: list[PackageSnapshot] = []
    for package in raw.get("packages", []):
        _require_string_evr(package)
        metadata = cache.get_or_load(
            package_key(package),
            lambda package=package: _metadata_from_entry(package),
        )
        files = [_file_from_entry(item, idx) for idx, item in enumerate(package.get("files", []))]
        snapshots.append(
            PackageSnapshot(
                metadata,
                side,
                files,
                rpm_path=_optional_path(package.get("rpm"), base_dir),
                root=_optional_path(package.get("root"), base_dir),
            )
        )
    return snapshots


def package_key(package: dict[str, Any]) -> str:
    """Cache identifier of a manifest package: name-[epoch:]version-release[.arch]."""
    epoch = f"{package['epoch']}:" if package.get("epoch") else ""
    arch = f".{package['arch']}" if package.get("arch") else ""
    return f"{package['name']}-{epoch}{package['version']}-{package['release']}{arch}"


def _require_string_evr(package: dict[str, Any]) -> None:
    for key in ("version", "release"):
        value = package.get(key)
        if value is not None and not isinstance(value, str):
            raise ManifestError(
                f"package `{package.get('name')}` {key} {value!r} is not a string; quote it in the manifest"
            )


def _metadata_from_entry(package: dict[str, Any]) -> PackageMetadata:
    try:
        return PackageMetadata(
            name=str(package["name"]),
            version=str(package["version"]),
            release=str(package["release"]),
            epoch=package.get("epoch"),
            arch=package.get("arch"),
            declared_files=tuple(
                str(item["path"]) for item in package.get("files", []) if item.get("path")
            ),
            tags=package.get("tags", {}),
        )
    except ValueError as exc:
        raise ManifestError(str(exc)) from exc


def _file_from_entry(item: dict[str, Any], idx: int) -> FileEntry:
    stat: FileStat | None = None
    if "mode" in item:
        stat = FileStat(
            mode=parse_mode(item["mode"]),
            owner=item.get("owner", "root"),
            group=item.get("group", "root"),
            size=int(item.get("size", 0)),
        )
    fullpath = item.get("fullpath")
    return FileEntry(
        localpath=item.get("path", ""),
        stat=stat,
        checksum=item.get("checksum"),
        type=item.get("type"),
        fullpath=Path(fullpath) if fullpath else None,
        caps=item.get("caps"),
        flags=frozenset(item.get("flags", [])),
        idx=idx,
    )


def parse_mode(value: str | int) -> int:
    """Parse an octal mode string (``"0755"``) or pass an int through."""
    if isinstance(value, int):
        return value
    try:
        return int(value, 8)
    except ValueError as exc:
        raise ManifestError(f"invalid file mode `{value}`") from exc


def _optional_path(value: str | None, base_dir: Path | None) -> Path | None:
    if not value:
        return None
    path = Path(value)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path
